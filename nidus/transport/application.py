"""
Application - express-style ASGI transport.

An ordered stack of layers (middleware, routes, error handlers). Each
request walks the stack from the top; a handler passes control on by
calling ``next()`` and reports failures with ``next(err)`` or by raising.
While an error is pending only error layers run.

Handler shapes:
    handler(req, res, next)
    error_handler(err, req, res, next)

Both may be sync or async.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..faults import Fault, HttpError
from .request import Request
from .response import Response
from .routing import PathPattern, compile_path


logger = logging.getLogger("nidus.transport")
request_logger = logging.getLogger("nidus.requests")

Handler = Callable[..., Any]

ROUTE_METHODS = ("get", "post", "put", "patch", "delete")

SLOW_REQUEST_SECONDS = 1.0


@dataclass(frozen=True)
class Layer:
    """
    One entry of the dispatch stack.

    Attributes:
        kind: "middleware", "route" or "error"
        method: Upper-case verb for routes, None otherwise
        pattern: Compiled mount path
        handler: Transport-shaped callable
        name: Display name for diagnostics
    """
    kind: str
    method: Optional[str]
    pattern: PathPattern
    handler: Handler
    name: str

    @property
    def path(self) -> str:
        return self.pattern.path

    def match(self, method: str, path: str) -> Optional[Dict[str, str]]:
        if self.method is not None and self.method != method:
            if not (self.method == "GET" and method == "HEAD"):
                return None
        return self.pattern.match(path)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "method": self.method, "path": self.path, "handler": self.name}


class Next:
    """
    Single-use continuation passed to every handler.

    ``next()`` moves on to the following matching layer, ``next(err)`` to
    the following error layer. Calls after the first are ignored.
    """

    __slots__ = ("layer", "called", "err")

    def __init__(self, layer: Layer):
        self.layer = layer
        self.called = False
        self.err: Optional[BaseException] = None

    def __call__(self, err: Optional[BaseException] = None) -> None:
        if self.called:
            logger.warning("next() called more than once in %s", self.layer.name)
            return
        self.called = True
        self.err = err


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None) or repr(handler)


class Application:
    """
    ASGI application with an express-like registration API.

    Example:
        app = Application()
        app.use(json_body())
        app.get("/users/:id", lambda req, res, next: res.json({"id": req.params["id"]}))
        await app.listen(3000)
    """

    def __init__(self, name: str = "nidus"):
        self.name = name
        self._layers: List[Layer] = []
        self._server: Any = None
        self._serve_task: Optional[asyncio.Task] = None
        self.startup_handlers: List[Callable[[], Any]] = []
        self.shutdown_handlers: List[Callable[[], Any]] = []

    # ========================================================================
    # Registration
    # ========================================================================

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    def use(self, path_or_handler: Union[str, Handler], handler: Optional[Handler] = None) -> "Application":
        """Mount middleware for ``path`` and everything below it (default ``/``)."""
        path, handler = self._split(path_or_handler, handler, "use")
        self._add(Layer("middleware", None, compile_path(path, prefix=True), handler, _handler_name(handler)))
        return self

    def use_error(self, path_or_handler: Union[str, Handler], handler: Optional[Handler] = None) -> "Application":
        """Mount an ``(err, req, res, next)`` error handler."""
        path, handler = self._split(path_or_handler, handler, "use_error")
        self._add(Layer("error", None, compile_path(path, prefix=True), handler, _handler_name(handler)))
        return self

    def route(self, method: str, path: str, handler: Handler) -> "Application":
        verb = str(method).lower()
        if verb not in ROUTE_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method!r}")
        if not callable(handler):
            raise TypeError(f"Route handler for {method.upper()} {path} is not callable: {handler!r}")
        self._add(Layer("route", verb.upper(), compile_path(path), handler, _handler_name(handler)))
        return self

    def get(self, path: str, handler: Handler) -> "Application":
        return self.route("get", path, handler)

    def post(self, path: str, handler: Handler) -> "Application":
        return self.route("post", path, handler)

    def put(self, path: str, handler: Handler) -> "Application":
        return self.route("put", path, handler)

    def patch(self, path: str, handler: Handler) -> "Application":
        return self.route("patch", path, handler)

    def delete(self, path: str, handler: Handler) -> "Application":
        return self.route("delete", path, handler)

    def on_startup(self, handler: Callable[[], Any]) -> None:
        self.startup_handlers.append(handler)

    def on_shutdown(self, handler: Callable[[], Any]) -> None:
        self.shutdown_handlers.append(handler)

    def _split(self, path_or_handler, handler, operation):
        if handler is None:
            path, handler = "/", path_or_handler
        else:
            path = path_or_handler
        if not callable(handler):
            raise TypeError(f"{operation}() expects a callable handler, got {handler!r}")
        return path, handler

    def _add(self, layer: Layer) -> None:
        self._layers.append(layer)
        logger.debug("Layer added: %s %s %s -> %s", layer.kind, layer.method or "*", layer.path, layer.name)

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def handle(
        self,
        req: Request,
        res: Response,
        send: Optional[Callable[[dict], Awaitable[None]]] = None,
    ) -> Response:
        """
        Run ``req`` through the layer stack.

        A finished response is written (when ``send`` is given) as soon as
        the layer that finished it returns. The loop stops when a handler
        returns without calling ``next``; running off the end of the stack
        falls through to the final handler (404 or error response).
        """
        index = 0
        err: Optional[BaseException] = None
        layers = self._layers

        while True:
            layer, params = None, None
            while index < len(layers):
                candidate = layers[index]
                index += 1
                if (candidate.kind == "error") != (err is not None):
                    continue
                params = candidate.match(req.method, req.path)
                if params is not None:
                    layer = candidate
                    break

            if layer is None:
                self._final(req, res, err)
                break

            req.params = params
            step = Next(layer)
            try:
                if layer.kind == "error":
                    result = layer.handler(err, req, res, step)
                else:
                    result = layer.handler(req, res, step)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                err = exc
                continue

            if res.finished and send is not None:
                await res.send_asgi(send)

            if not step.called:
                if not res.finished:
                    logger.debug("%s returned without finishing or calling next()", layer.name)
                    self._final(req, res, err)
                break
            err = step.err

        if send is not None:
            await res.send_asgi(send)
        return res

    def _final(self, req: Request, res: Response, err: Optional[BaseException]) -> None:
        if err is not None:
            self._report(req, err)
            if res.sent or res.finished:
                return
            status, body = _error_body(err)
            res.status(status).json(body)
            return
        if not res.finished:
            res.status(404).json({"error": "Not Found", "message": f"Cannot {req.method} {req.path}"})

    def _report(self, req: Request, err: BaseException) -> None:
        status = err.status if isinstance(err, HttpError) else 500
        if status >= 500:
            logger.error("Unhandled error on %s %s: %s", req.method, req.path, err, exc_info=err)
        else:
            logger.debug("Request error on %s %s: %s", req.method, req.path, err)

    # ========================================================================
    # ASGI
    # ========================================================================

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": 1000})
            return

        started = time.perf_counter()
        req = Request(scope, receive)
        res = Response(head_only=req.method == "HEAD")
        await self.handle(req, res, send)

        elapsed = time.perf_counter() - started
        request_logger.info("%s %s - %d (%.1fms)", req.method, req.path, res.status_code, elapsed * 1000)
        if elapsed > SLOW_REQUEST_SECONDS:
            request_logger.warning("Slow request: %s %s took %.2fs", req.method, req.path, elapsed)

    async def _lifespan(self, receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    for handler in self.startup_handlers:
                        result = handler()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.error("Startup failed: %s", exc, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                for handler in self.shutdown_handlers:
                    try:
                        result = handler()
                        if inspect.isawaitable(result):
                            await result
                    except Exception:
                        logger.error("Shutdown handler %s failed", _handler_name(handler), exc_info=True)
                await send({"type": "lifespan.shutdown.complete"})
                return

    # ========================================================================
    # Server
    # ========================================================================

    @property
    def listening(self) -> bool:
        return self._server is not None and bool(self._server.started)

    async def listen(
        self,
        port: int = 3000,
        host: str = "127.0.0.1",
        callback: Optional[Callable[[], Any]] = None,
        *,
        log_level: str = "info",
    ) -> None:
        """
        Serve this application with uvicorn in the running event loop.

        Returns once the socket is bound; ``close()`` stops the server.
        """
        import uvicorn

        if self._serve_task is not None and not self._serve_task.done():
            logger.warning("Application %s is already listening", self.name)
            return

        config = uvicorn.Config(self, host=host, port=port, log_level=log_level)
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve())

        while not self._server.started:
            if self._serve_task.done():
                # Surface bind failures and startup errors
                self._serve_task.result()
                raise RuntimeError(f"Server on {host}:{port} stopped during startup")
            await asyncio.sleep(0.05)

        logger.info("Listening on http://%s:%s", host, self.bound_port or port)
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result

    @property
    def bound_port(self) -> Optional[int]:
        if self._server is None or not self._server.servers:
            return None
        return list(self._server.servers)[0].sockets[0].getsockname()[1]

    async def close(self) -> None:
        if self._server is None:
            return
        self._server.should_exit = True
        if self._serve_task is not None:
            try:
                await asyncio.wait_for(self._serve_task, timeout=5.0)
            except asyncio.TimeoutError:
                self._serve_task.cancel()
        self._server = None
        self._serve_task = None
        logger.info("Application %s closed", self.name)

    def __repr__(self) -> str:
        return f"Application(name={self.name!r}, layers={len(self._layers)})"


def _error_body(err: BaseException):
    if isinstance(err, HttpError):
        message = err.message if err.public else "Internal Server Error"
        body: Dict[str, Any] = {"error": message}
        if err.public:
            body["code"] = err.code
        return err.status, body
    if isinstance(err, Fault) and err.public:
        return 500, {"error": err.message, "code": err.code}
    return 500, {"error": "Internal Server Error"}

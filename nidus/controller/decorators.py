"""
Controller Decorators

Class and method decorators for controllers. Method decorators only tag
the function; class decorators collect the tags into the metadata store
(see ``controller.metadata``). Nothing is mounted at import time.
"""

import inspect
from typing import Any, Callable, Optional, TypeVar, Union

from ..faults import BootstrapFault
from ..metadata import (
    CONTROLLER_ERROR_HANDLER,
    CONTROLLER_MIDDLEWARE,
    CONTROLLER_PATH,
    define_metadata,
    get_own_metadata,
)
from .metadata import collect_controller, tag_event, tag_item


F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

HTTP_METHODS = ("get", "post", "put", "patch", "delete")


def Controller(path: str = "") -> Callable[[type], type]:
    """
    Declare a controller and its path prefix.

    Example:
        @Controller("/auth")
        class AuthController:
            def __init__(self, users: Annotated[UserService, Inject("UserService")]):
                self.users = users

            @HttpPost("/login")
            async def login(self, ctx: HttpContext):
                ...
    """
    def decorator(cls: type) -> type:
        if not inspect.isclass(cls):
            raise BootstrapFault(f"@Controller expects a class, got {cls!r}")
        define_metadata(CONTROLLER_PATH, path or "", cls)
        collect_controller(cls)
        return cls

    return decorator


class RouteDecorator:
    """
    Base route decorator.

    Tags the controller method with ``(method, path)``; the owning class is
    collected by its class decorator or lazily at bootstrap.
    """

    method: Optional[str] = None

    def __init__(self, path: str = "/"):
        self.path = path

    def __call__(self, func: F) -> F:
        if not callable(func):
            raise BootstrapFault(f"@{type(self).__name__} expects a method, got {func!r}")
        tag_item(func, ("route", self.method, self.path))
        return func


class HttpGet(RouteDecorator):
    """GET request decorator."""
    method = "get"


class HttpPost(RouteDecorator):
    """POST request decorator."""
    method = "post"


class HttpPut(RouteDecorator):
    """PUT request decorator."""
    method = "put"


class HttpPatch(RouteDecorator):
    """PATCH request decorator."""
    method = "patch"


class HttpDelete(RouteDecorator):
    """DELETE request decorator."""
    method = "delete"


_ROUTE_DECORATORS = {
    "get": HttpGet,
    "post": HttpPost,
    "put": HttpPut,
    "patch": HttpPatch,
    "delete": HttpDelete,
}


def route(method: str, path: str = "/") -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route("PATCH", "/:id")
        async def rename(self, ctx):
            ...
    """
    decorator_cls = _ROUTE_DECORATORS.get(str(method).lower())
    if decorator_cls is None:
        raise BootstrapFault(
            f"Unsupported HTTP method {method!r}; expected one of {', '.join(HTTP_METHODS)}",
            method=method,
        )
    return decorator_cls(path)


def Middleware(path: Optional[str] = None) -> Callable[[Union[type, F]], Union[type, F]]:
    """
    Mark middleware.

    On a class, every own public method without a route, middleware,
    error or event decorator becomes global middleware of the module the
    controller is mounted in. On a method, marks just that method,
    optionally narrowed to ``path``.

    Example:
        @Middleware()
        class LogMiddleware:
            async def log(self, ctx: HttpContext):
                logger.info("%s %s", ctx.req.method, ctx.req.path)
                ctx.next()
    """
    def decorator(target):
        if inspect.isclass(target):
            define_metadata(CONTROLLER_MIDDLEWARE, True, target)
            if path is not None and get_own_metadata(CONTROLLER_PATH, target) is None:
                define_metadata(CONTROLLER_PATH, path, target)
            collect_controller(target)
            return target
        if not callable(target):
            raise BootstrapFault(f"@Middleware expects a class or a method, got {target!r}")
        tag_item(target, ("middleware", path or ""))
        return target

    return decorator


def ErrorHandlerMiddleware(path: Optional[str] = None) -> Callable[[Union[type, F]], Union[type, F]]:
    """
    Mark error handlers.

    On a class, every own public undecorated method becomes an error
    handler receiving ``ctx.err``. On a method, marks just that method.
    Error handlers are mounted after every route of the module tree.

    Example:
        @ErrorHandlerMiddleware()
        class Errors:
            def handle(self, ctx: HttpContext):
                ctx.res.internal_server_error({"error": str(ctx.err)})
    """
    def decorator(target):
        if inspect.isclass(target):
            define_metadata(CONTROLLER_ERROR_HANDLER, True, target)
            if path is not None and get_own_metadata(CONTROLLER_PATH, target) is None:
                define_metadata(CONTROLLER_PATH, path, target)
            collect_controller(target)
            return target
        if not callable(target):
            raise BootstrapFault(f"@ErrorHandlerMiddleware expects a class or a method, got {target!r}")
        tag_item(target, ("error", path or ""))
        return target

    return decorator


def EventListener(event_name: str) -> Callable[[F], F]:
    """Subscribe the method to ``event_name`` on the module tree's event manager."""
    def decorator(func: F) -> F:
        tag_event(func, ("listener", event_name))
        return func

    return decorator


def EventEmitter(event_name: str) -> Callable[[F], F]:
    """Declare that the method publishes ``event_name``."""
    def decorator(func: F) -> F:
        tag_event(func, ("emitter", event_name))
        return func

    return decorator

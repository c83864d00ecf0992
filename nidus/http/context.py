"""
HTTP context - what controller methods receive.

Controller methods take a single ``HttpContext`` instead of the
transport's ``(req, res, next)`` triple. The adapters below bridge the
two shapes and forward raised exceptions to ``next(err)``.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..transport.application import Next
from ..transport.request import Request
from ..transport.response import Response
from .response import HttpResponse


logger = logging.getLogger("nidus.http")


@dataclass
class HttpContext:
    """
    Per-invocation request context.

    Attributes:
        req: Native request (``body``, ``params``, ``query``, ``headers``, ``state``)
        res: Chainable response façade
        next: Single-use continuation; ``next(err)`` forwards an error
        err: Pending error, set for error handlers only
    """
    req: Request
    res: HttpResponse
    next: Callable[..., None]
    err: Optional[BaseException] = None


async def _invoke(handler: Callable[[HttpContext], Any], ctx: HttpContext, step: Next, raw: Response) -> None:
    try:
        result = handler(ctx)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        if step.called:
            logger.error("%s raised after calling next()", step.layer.name, exc_info=True)
            return
        step(exc)
        return

    if result is None or isinstance(result, (HttpResponse, Response)):
        return
    if raw.finished or step.called:
        return
    raw.json(result)


def adapt_handler(handler: Callable[[HttpContext], Any]) -> Callable[[Request, Response, Next], Any]:
    """
    Wrap a ``(ctx)`` handler as a transport ``(req, res, next)`` handler.

    A non-None return value that is not the response itself is sent as
    JSON when the handler neither finished the response nor called next.
    """
    async def transport_handler(req: Request, res: Response, next: Next) -> None:
        await _invoke(handler, HttpContext(req, HttpResponse(res), next), next, res)

    transport_handler.__qualname__ = getattr(handler, "__qualname__", transport_handler.__qualname__)
    transport_handler.__wrapped__ = handler
    return transport_handler


def adapt_error_handler(handler: Callable[[HttpContext], Any]) -> Callable[..., Any]:
    """Wrap a ``(ctx)`` handler as a transport ``(err, req, res, next)`` handler."""
    async def transport_error_handler(err: BaseException, req: Request, res: Response, next: Next) -> None:
        await _invoke(handler, HttpContext(req, HttpResponse(res), next, err), next, res)

    transport_error_handler.__qualname__ = getattr(handler, "__qualname__", transport_error_handler.__qualname__)
    transport_error_handler.__wrapped__ = handler
    return transport_error_handler

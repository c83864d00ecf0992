"""
Nidus Controller - decorator-declared request handlers.

Controllers are plain classes whose methods are tagged with route,
middleware, error-handler and event decorators. The bootstrap engine
resolves each controller through the module's registry and mounts its
items on the transport.
"""

from .decorators import (
    Controller,
    ErrorHandlerMiddleware,
    EventEmitter,
    EventListener,
    HttpDelete,
    HttpGet,
    HttpPatch,
    HttpPost,
    HttpPut,
    Middleware,
    RouteDecorator,
    route,
)
from .metadata import (
    ControllerItem,
    ErrorHandlerItem,
    MiddlewareItem,
    RouteItem,
    collect_controller,
    describe_controller,
    get_controller_items,
    get_controller_path,
)

__all__ = [
    "Controller",
    "ErrorHandlerMiddleware",
    "EventEmitter",
    "EventListener",
    "HttpDelete",
    "HttpGet",
    "HttpPatch",
    "HttpPost",
    "HttpPut",
    "Middleware",
    "RouteDecorator",
    "route",
    "ControllerItem",
    "ErrorHandlerItem",
    "MiddlewareItem",
    "RouteItem",
    "collect_controller",
    "describe_controller",
    "get_controller_items",
    "get_controller_path",
]

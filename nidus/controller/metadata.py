"""
Controller Item Collection

Turns the tags left on controller methods by the method decorators into
ordered controller items stored in the metadata store:

- ``controller:items``        route and middleware items, declaration order
- ``controller:error_items``  error-handler items (``@ErrorHandlerMiddleware``)
- ``event:listeners`` / ``event:emitters``

Collection is a pure function of the class body and its class-level
flags, so stacking class decorators re-collects without duplicating.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple, Union

from ..events import EventEmitterMetadata, EventListenerMetadata
from ..metadata import (
    CONTROLLER_ERROR_HANDLER,
    CONTROLLER_ERROR_ITEMS,
    CONTROLLER_ITEMS,
    CONTROLLER_MIDDLEWARE,
    CONTROLLER_PATH,
    EVENT_EMITTERS,
    EVENT_LISTENERS,
    define_metadata,
    get_metadata,
    has_own_metadata,
)


# Attributes written on decorated functions
ITEMS_ATTR = "__nidus_items__"
EVENTS_ATTR = "__nidus_events__"


@dataclass(frozen=True)
class RouteItem:
    """
    A request handler bound to one HTTP verb.

    Attributes:
        method: Lower-case verb (get, post, put, patch, delete)
        path: Path relative to the controller
        handler: The undecorated function
        property_key: Attribute name used to bind the handler per instance
    """
    method: str
    path: str
    handler: Callable[..., Any]
    property_key: str

    kind = "route"


@dataclass(frozen=True)
class MiddlewareItem:
    """A handler invoked for every request under ``path`` before later layers."""
    handler: Callable[..., Any]
    property_key: str
    path: str = ""

    kind = "middleware"


@dataclass(frozen=True)
class ErrorHandlerItem:
    """A handler invoked with the pending error, ``(err, req, res, next)`` shaped."""
    handler: Callable[..., Any]
    property_key: str
    path: str = ""

    kind = "error"


ControllerItem = Union[RouteItem, MiddlewareItem, ErrorHandlerItem]


def tag_item(func: Callable[..., Any], tag: Tuple[Any, ...]) -> None:
    if ITEMS_ATTR not in func.__dict__:
        func.__nidus_items__ = []
    func.__nidus_items__.append(tag)


def tag_event(func: Callable[..., Any], tag: Tuple[str, str]) -> None:
    if EVENTS_ATTR not in func.__dict__:
        func.__nidus_events__ = []
    func.__nidus_events__.append(tag)


def _is_public(name: str) -> bool:
    return not name.startswith("_")


def _own_functions(cls: type) -> List[Tuple[str, Callable[..., Any]]]:
    """Plain functions defined in the class body, declaration order."""
    return [(name, value) for name, value in vars(cls).items() if inspect.isfunction(value)]


def _is_tagged(func: Callable[..., Any]) -> bool:
    return bool(getattr(func, ITEMS_ATTR, None) or getattr(func, EVENTS_ATTR, None))


def _inherited(key: str, cls: type) -> List[Any]:
    """Items collected on the nearest base, minus those the class body redefines."""
    bases = inspect.getmro(cls)[1:]
    if not bases:
        return []
    own_names = set(vars(cls))
    inherited = get_metadata(key, bases[0], []) or []
    return [item for item in inherited if item.property_key not in own_names]


def _tagged(name: str, func: Callable[..., Any]) -> List[ControllerItem]:
    items: List[ControllerItem] = []
    for tag in getattr(func, ITEMS_ATTR, ()):
        if tag[0] == "route":
            items.append(RouteItem(method=tag[1], path=tag[2], handler=func, property_key=name))
        elif tag[0] == "middleware":
            items.append(MiddlewareItem(handler=func, property_key=name, path=tag[1]))
        elif tag[0] == "error":
            items.append(ErrorHandlerItem(handler=func, property_key=name, path=tag[1]))
    return items


def _implicit(name: str, func: Callable[..., Any], middleware: bool, error_handler: bool):
    """Back-filled item for an own public method no decorator claimed."""
    if not _is_public(name) or _is_tagged(func):
        return None
    if middleware:
        return MiddlewareItem(handler=func, property_key=name)
    if error_handler:
        return ErrorHandlerItem(handler=func, property_key=name)
    return None


def collect_controller(cls: type) -> List[ControllerItem]:
    """
    Collect and store every item of ``cls``.

    Items keep the declaration order of the class body, so an undecorated
    method of a middleware class declared above a route runs before it.
    Explicitly decorated methods keep their own item; implicit middleware
    and error-handler items are only generated for methods no decorator
    claimed. Returns the ``controller:items`` list.
    """
    items: List[ControllerItem] = _inherited(CONTROLLER_ITEMS, cls)
    error_items: List[ErrorHandlerItem] = _inherited(CONTROLLER_ERROR_ITEMS, cls)

    middleware = bool(get_metadata(CONTROLLER_MIDDLEWARE, cls, False))
    error_handler = not middleware and bool(get_metadata(CONTROLLER_ERROR_HANDLER, cls, False))

    for name, func in _own_functions(cls):
        found = _tagged(name, func)
        implicit = _implicit(name, func, middleware, error_handler)
        if implicit is not None:
            found.append(implicit)
        for item in found:
            if isinstance(item, ErrorHandlerItem):
                error_items.append(item)
            else:
                items.append(item)

    define_metadata(CONTROLLER_ITEMS, items, cls)
    define_metadata(CONTROLLER_ERROR_ITEMS, error_items, cls)

    listeners: List[EventListenerMetadata] = _inherited(EVENT_LISTENERS, cls)
    emitters: List[EventEmitterMetadata] = _inherited(EVENT_EMITTERS, cls)
    for name, func in _own_functions(cls):
        for kind, event_name in getattr(func, EVENTS_ATTR, ()):
            if kind == "listener":
                listeners.append(EventListenerMetadata(event_name, name, func))
            else:
                emitters.append(EventEmitterMetadata(event_name, name, func))
    define_metadata(EVENT_LISTENERS, listeners, cls)
    define_metadata(EVENT_EMITTERS, emitters, cls)

    return items


def ensure_collected(cls: type) -> None:
    """Collect classes no class decorator has seen yet."""
    if not has_own_metadata(CONTROLLER_ITEMS, cls):
        collect_controller(cls)


def get_controller_path(cls: type) -> str:
    return get_metadata(CONTROLLER_PATH, cls, "") or ""


def get_controller_items(cls: type) -> List[ControllerItem]:
    """
    Items to mount for ``cls``, in mount order.

    Route and middleware items come first in declaration order; error
    handlers follow when the class is flagged as an error-handler
    controller or declares explicit error-handler methods.
    """
    ensure_collected(cls)
    items = list(get_metadata(CONTROLLER_ITEMS, cls, []))
    error_items = get_metadata(CONTROLLER_ERROR_ITEMS, cls, [])
    if error_items and (get_metadata(CONTROLLER_ERROR_HANDLER, cls, False) or _has_explicit_errors(error_items)):
        items.extend(error_items)
    return items


def _has_explicit_errors(error_items: List[ErrorHandlerItem]) -> bool:
    return any(getattr(item.handler, ITEMS_ATTR, None) for item in error_items)


def describe_controller(cls: type) -> Dict[str, Any]:
    """Summary used by the CLI and diagnostics."""
    return {
        "name": cls.__name__,
        "path": get_controller_path(cls),
        "middleware": bool(get_metadata(CONTROLLER_MIDDLEWARE, cls, False)),
        "error_handler": bool(get_metadata(CONTROLLER_ERROR_HANDLER, cls, False)),
        "items": [
            {
                "kind": item.kind,
                "method": getattr(item, "method", None),
                "path": item.path,
                "handler": item.property_key,
            }
            for item in get_controller_items(cls)
        ],
    }

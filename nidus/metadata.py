"""
Metadata store - key/value metadata attached to classes and instances.

Decorators write here at class-definition time; the bootstrap engine
reads it back. Values live in an own ``__nidus_metadata__`` dict on the
target, so a subclass never mutates its parent's entries.
"""

import inspect
from typing import Any, Dict, Iterator, List


METADATA_ATTR = "__nidus_metadata__"

# Well-known keys
CONTROLLER_PATH = "controller:path"
CONTROLLER_ITEMS = "controller:items"
CONTROLLER_MIDDLEWARE = "controller:middleware"
CONTROLLER_ERROR_HANDLER = "controller:error_handler"
CONTROLLER_ERROR_ITEMS = "controller:error_items"
EVENT_LISTENERS = "event:listeners"
EVENT_EMITTERS = "event:emitters"
DI_INJECTABLE = "di:injectable"


def _own_table(target: Any, create: bool = False) -> Dict[str, Any]:
    table = getattr(target, "__dict__", {}).get(METADATA_ATTR)
    if table is None and create:
        table = {}
        setattr(target, METADATA_ATTR, table)
    return table if table is not None else {}


def _lookup_chain(target: Any) -> Iterator[Any]:
    """Target itself, then its class hierarchy (instances) or bases (classes)."""
    if inspect.isclass(target):
        yield from inspect.getmro(target)
    else:
        yield target
        yield from inspect.getmro(type(target))


def define_metadata(key: str, value: Any, target: Any) -> None:
    """Store ``value`` under ``key`` on ``target`` (class or instance)."""
    _own_table(target, create=True)[key] = value


def get_own_metadata(key: str, target: Any, default: Any = None) -> Any:
    """Read ``key`` from ``target`` only, ignoring inherited entries."""
    return _own_table(target).get(key, default)


def get_metadata(key: str, target: Any, default: Any = None) -> Any:
    """Read ``key`` from ``target``, falling back along the inheritance chain."""
    for owner in _lookup_chain(target):
        table = _own_table(owner)
        if key in table:
            return table[key]
    return default


def has_metadata(key: str, target: Any) -> bool:
    return any(key in _own_table(owner) for owner in _lookup_chain(target))


def has_own_metadata(key: str, target: Any) -> bool:
    return key in _own_table(target)


def metadata_keys(target: Any) -> List[str]:
    """All keys visible on ``target``, own keys first."""
    keys: List[str] = []
    for owner in _lookup_chain(target):
        for key in _own_table(owner):
            if key not in keys:
                keys.append(key)
    return keys

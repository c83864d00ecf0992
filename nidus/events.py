"""
Event manager - in-process publish/subscribe.

Listeners and emitters are declared on controller methods with
``@EventListener(name)`` / ``@EventEmitter(name)``; the bootstrap engine
wires them per controller instance. Services can also subscribe by hand
through the ``"EventManager"`` token.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Union

from .metadata import EVENT_EMITTERS, EVENT_LISTENERS, get_metadata


logger = logging.getLogger("nidus.events")

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]

EVENT_MANAGER_TOKEN = "EventManager"


@dataclass(frozen=True)
class EventListenerMetadata:
    """A method subscribed to ``event_name``."""
    event_name: str
    property_key: str
    handler: Callable[..., Any]


@dataclass(frozen=True)
class EventEmitterMetadata:
    """A method declared as publishing ``event_name``."""
    event_name: str
    property_key: str
    handler: Callable[..., Any]


class EventManager:
    """
    Mapping from event name to an ordered list of handlers.

    Registration order is invocation order; the same handler may be
    registered more than once.
    """

    def __init__(self):
        self._listeners: Dict[str, List[EventHandler]] = {}
        self._emitters: Dict[str, List[EventEmitterMetadata]] = {}

    # ------------------------------------------------------------------
    # Declarative registration
    # ------------------------------------------------------------------

    def register_listeners(self, target: Any) -> int:
        """Subscribe every ``@EventListener`` method of ``target``; returns the count."""
        listeners: List[EventListenerMetadata] = get_metadata(EVENT_LISTENERS, type(target), [])
        for listener in listeners:
            self.on(listener.event_name, getattr(target, listener.property_key))
        return len(listeners)

    def register_emitters(self, target: Any) -> int:
        """Record every ``@EventEmitter`` declaration of ``target``; returns the count."""
        emitters: List[EventEmitterMetadata] = get_metadata(EVENT_EMITTERS, type(target), [])
        for emitter in emitters:
            self._emitters.setdefault(emitter.event_name, []).append(emitter)
        return len(emitters)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on(self, event_name: str, handler: EventHandler) -> None:
        self._listeners.setdefault(event_name, []).append(handler)

    def off(self, event_name: str, handler: EventHandler) -> None:
        """Remove the first registration of ``handler`` for ``event_name``."""
        handlers = self._listeners.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def off_all(self, event_name: str) -> None:
        self._listeners.pop(event_name, None)

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    async def emit(self, event_name: str, data: Any = None) -> None:
        """
        Invoke every handler for ``event_name`` concurrently and wait for all.

        A failing handler is logged; it never stops its siblings and never
        reaches the caller.
        """
        handlers = list(self._listeners.get(event_name, ()))
        if not handlers:
            return
        await asyncio.gather(*(self._invoke(event_name, handler, data) for handler in handlers))

    async def _invoke(self, event_name: str, handler: EventHandler, data: Any) -> None:
        try:
            result = handler(data)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.error(
                "Error in event handler %s for %s",
                getattr(handler, "__qualname__", repr(handler)), event_name,
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_listeners(self, event_name: str) -> List[EventHandler]:
        return list(self._listeners.get(event_name, ()))

    def get_emitters(self, event_name: str) -> List[EventEmitterMetadata]:
        return list(self._emitters.get(event_name, ()))

    def get_event_names(self) -> List[str]:
        return list(self._listeners)

    def clear(self) -> None:
        self._listeners.clear()
        self._emitters.clear()

    def __repr__(self) -> str:
        count = sum(len(handlers) for handlers in self._listeners.values())
        return f"EventManager(events={len(self._listeners)}, listeners={count})"

# purvita/core/event_bus.py
"""
In-process event bus.

Listeners receive event dicts shaped {"type": str, "payload": dict}.
Listeners may be plain callables or coroutine functions; a failing listener
is logged and does not stop delivery to the others.
"""
import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], Any]


class EventBus:
    """Set of callback subscribers notified in subscription order."""

    def __init__(self, name: str = "events"):
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Add a listener.

        Returns:
            Function that removes the listener again
        """
        if listener not in self._listeners:
            self._listeners.append(listener)
            logger.debug(f"[{self.name}] Listener subscribed: {getattr(listener, '__name__', listener)}")

        def _unsubscribe():
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        self._listeners.clear()

    @property
    def listenerCount(self) -> int:
        return len(self._listeners)

    async def notify(self, event: Dict[str, Any]) -> int:
        """
        Deliver an event to every listener.

        Returns:
            Number of listeners that completed without error
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(
                    f"[{self.name}] Listener failed for {event.get('type')}: {e}",
                    exc_info=True
                )
        return delivered

    async def emit(self, event_type: str, payload: Dict[str, Any] = None) -> int:
        """Shortcut for notify({"type": event_type, "payload": payload})."""
        return await self.notify({"type": event_type, "payload": payload or {}})

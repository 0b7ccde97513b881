# brewtimer_backend/app/services/timer/channels.py
from __future__ import annotations

from typing import Callable, Generic, List, TypeVar

from brewtimer_backend.app.utils.logs import get_logger

__all__ = ["EventChannel", "Listener"]

log = get_logger("timer")

T = TypeVar("T")
Listener = Callable[[T], None]


class EventChannel(Generic[T]):
    """
    Typed publish/subscribe slot owned by one controller.

    Listeners run synchronously inside the tick that emits; a failing listener
    is logged and skipped, the rest still receive the event.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: T) -> None:
        # copy: a listener may unsubscribe itself mid-emit
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log.warning("[channel:%s] listener %r failed", self.name, listener, exc_info=True)

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

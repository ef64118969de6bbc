"""Emitter backed by one event-loop timer per event."""
import asyncio
from .base import Emitter
from ..event_models import TimedEvent


class TimerEmitter(Emitter):
    """Schedules an independent ``loop.call_later`` handle for every event."""

    backend = "timers"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._handles: dict[int, asyncio.TimerHandle] = {}

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        for index, event in enumerate(self._events):
            self._handles[index] = loop.call_later(
                event.delay(self.scale), self._fire, index, event
            )

    def _fire(self, index: int, event: TimedEvent) -> None:
        self._handles.pop(index, None)
        self._push(event)

    async def _release(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    @property
    def pending(self) -> int:
        return len(self._handles)

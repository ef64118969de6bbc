"""Emitter backed by a single scheduling task over a time-ordered heap."""
import asyncio
import heapq
from .base import Emitter
from ..event_models import TimedEvent


class ScheduledEmitter(Emitter):
    """
    Releases events from one task that sleeps until each deadline in turn.

    Equivalent to ``TimerEmitter`` but holds a single task per source, so
    cancelling a source is one ``Task.cancel()``.
    """

    backend = "scheduler"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # (time, input index, event); the index keeps ties in input order
        self._heap: list[tuple[float, int, TimedEvent]] = []
        self._task: asyncio.Task | None = None

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        self._heap = [(event.time, index, event) for index, event in enumerate(self._events)]
        heapq.heapify(self._heap)
        self._task = loop.create_task(self._run(loop.time()), name=f"emitter-{self.source}")

    async def _run(self, started_at: float) -> None:
        loop = asyncio.get_running_loop()
        while self._heap:
            _, _, event = self._heap[0]
            wait = started_at + event.delay(self.scale) - loop.time()
            if wait > 0:
                await asyncio.sleep(wait)
            heapq.heappop(self._heap)
            self._push(event)

    async def _release(self) -> None:
        self._heap.clear()
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._heap)

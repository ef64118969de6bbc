"""Base interface for delayed emitters."""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterable
import asyncio
import math
import structlog
from ..config import get_settings
from ..errors import InvalidEventError
from ..event_models import TimedEvent
from ..metrics.collector import collector, EVENTS_EMITTED_TOTAL

log = structlog.get_logger()

# Terminal marker pushed once after the last event
_DONE = object()


class Emitter(ABC):
    """
    Releases each event of a source collection after ``event.time / scale`` seconds.

    Emission is hot: it begins at ``start()`` (or on entering ``async with``),
    independent of when the stream is consumed. Released events are buffered
    in an unbounded queue until read. The stream can be iterated once.

    Completion is signalled right after the event with the greatest delay has
    been pushed, whatever its position in the input collection.
    """

    backend: str = "base"

    def __init__(
        self,
        events: Iterable[TimedEvent],
        scale: float | None = None,
        source: str | None = None,
    ):
        """
        Validate the source collection; nothing is scheduled yet.

        Args:
            events: Source collection, ideally sorted by time
            scale: Logical-to-real time divisor (defaults to settings.TIME_SCALE)
            source: Name used in logs and metrics

        Raises:
            InvalidEventError: If any event has a negative or non-finite time
            ValueError: If scale is not a positive finite number
        """
        if scale is None:
            scale = get_settings().TIME_SCALE
        if not (math.isfinite(scale) and scale > 0):
            raise ValueError(f"scale must be a positive finite number, got {scale!r}")

        self._events = list(events)
        for event in self._events:
            _check_schedulable(event)

        self.scale = scale
        self.source = source
        self._queue: asyncio.Queue = asyncio.Queue()
        self._remaining = len(self._events)
        self._started = False
        self._finished = False
        self._closed = False
        self._consumed = False

    @abstractmethod
    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        """Arrange for every event to reach ``_push`` after its delay."""
        pass

    @abstractmethod
    async def _release(self) -> None:
        """Cancel everything still scheduled."""
        pass

    @property
    @abstractmethod
    def pending(self) -> int:
        """Number of events scheduled but not yet released."""
        pass

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Begin emission. Calling it again has no effect."""
        if self._started:
            return
        if self._closed:
            raise RuntimeError("emitter is closed")
        self._started = True

        log.debug(
            "emitter.started",
            source=self.source,
            backend=self.backend,
            events=len(self._events),
            scale=self.scale,
        )
        if not self._events:
            self._finish()
            return
        self._schedule(asyncio.get_running_loop())

    def _push(self, event: TimedEvent) -> None:
        if self._closed or self._finished:
            return
        self._queue.put_nowait(event)
        collector.increment(EVENTS_EMITTED_TOTAL, labels={"source": self.source or "-"})

        self._remaining -= 1
        if self._remaining == 0:
            self._finish()

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_DONE)
        log.debug("emitter.completed", source=self.source, events=len(self._events))

    def __aiter__(self) -> AsyncIterator[TimedEvent]:
        if self._consumed:
            raise RuntimeError("emitter stream can only be consumed once")
        self._consumed = True
        return self._drain()

    async def _drain(self) -> AsyncIterator[TimedEvent]:
        self.start()
        while True:
            item = await self._queue.get()
            if item is _DONE:
                return
            yield item

    async def aclose(self) -> None:
        """Stop emission and release every outstanding timer."""
        if self._closed:
            return
        self._closed = True
        if not self._finished:
            log.debug("emitter.cancelled", source=self.source, pending=self.pending)
        await self._release()

    async def __aenter__(self) -> "Emitter":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _check_schedulable(event: TimedEvent) -> None:
    # model_construct() skips field validation, so check again here
    time = event.time
    if not isinstance(time, (int, float)) or not math.isfinite(time) or time < 0:
        raise InvalidEventError(
            f"event {event.id} has unschedulable time {time!r}",
            event_id=event.id,
        )

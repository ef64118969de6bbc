"""Driver wiring source collections through emitters into a merged result."""
from contextlib import AsyncExitStack
from typing import Iterable, Literal, Sequence
import asyncio
import string
import time
import uuid
import structlog
from ..config import get_settings
from ..emitters import Emitter, ScheduledEmitter, TimerEmitter
from ..errors import MergeTimeoutError
from ..event_models import TimedEvent, tag_source
from ..metrics.collector import collector, MERGE_DURATION_MS, MERGES_TIMED_OUT_TOTAL
from .merger import StreamMerger

log = structlog.get_logger()

Backend = Literal["timers", "scheduler"]

_BACKENDS: dict[str, type[Emitter]] = {
    "timers": TimerEmitter,
    "scheduler": ScheduledEmitter,
}


class MergeDriver:
    """
    Runs a merge end to end: one emitter per source, all started at once,
    merged by arrival and collected into a list.
    """

    def __init__(
        self,
        backend: Backend | None = None,
        scale: float | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            backend: Emitter backend (defaults to settings.EMITTER_BACKEND)
            scale: Logical-to-real time divisor (defaults to settings.TIME_SCALE)
            timeout: Seconds to wait for completion (defaults to settings.MERGE_TIMEOUT)
        """
        settings = get_settings()
        self.backend = backend or settings.EMITTER_BACKEND
        self.scale = settings.TIME_SCALE if scale is None else scale
        self.timeout = settings.MERGE_TIMEOUT if timeout is None else timeout

    async def run(
        self,
        *sources: Sequence[TimedEvent],
        names: Sequence[str] | None = None,
        timeout: float | None = None,
    ) -> list[TimedEvent]:
        """
        Merge ``sources`` and return the events in arrival order.

        Each source is tagged with its name so the result carries unique
        ``(source, id)`` keys.

        Raises:
            InvalidEventError: If an event cannot be scheduled
            MergeTimeoutError: If the merge does not finish within the timeout
        """
        if not sources:
            raise ValueError("run() needs at least one source")
        names = list(names) if names is not None else _default_names(len(sources))
        if len(names) != len(sources):
            raise ValueError(f"got {len(names)} names for {len(sources)} sources")
        if len(set(names)) != len(names):
            raise ValueError(f"source names must be unique: {names}")

        timeout = self.timeout if timeout is None else timeout
        emitters = [
            create_emitter(tag_source(events, name), backend=self.backend, scale=self.scale, source=name)
            for name, events in zip(names, sources)
        ]

        with structlog.contextvars.bound_contextvars(merge_id=str(uuid.uuid4())):
            log.info(
                "merge.started",
                sources=names,
                events=sum(len(events) for events in sources),
                backend=self.backend,
                scale=self.scale,
            )
            start_time = time.monotonic()
            try:
                if timeout is None:
                    result = await _collect(emitters)
                else:
                    result = await asyncio.wait_for(_collect(emitters), timeout)
            except asyncio.TimeoutError:
                collector.increment(MERGES_TIMED_OUT_TOTAL)
                log.warning("merge.timed_out", timeout=timeout)
                raise MergeTimeoutError(timeout) from None

            collector.record_latency(MERGE_DURATION_MS, start_time)
            log.info(
                "merge.completed",
                events=len(result),
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            return result


async def _collect(emitters: Iterable[Emitter]) -> list[TimedEvent]:
    async with AsyncExitStack() as stack:
        # Entering starts each emitter: emission runs before the merger subscribes
        started = [await stack.enter_async_context(emitter) for emitter in emitters]
        async with StreamMerger(*started) as merged:
            return [event async for event in merged]


def create_emitter(
    events: Iterable[TimedEvent],
    backend: Backend | None = None,
    scale: float | None = None,
    source: str | None = None,
) -> Emitter:
    """
    Create an emitter for the configured backend.

    Returns:
        Emitter instance based on the backend argument or EMITTER_BACKEND setting
    """
    backend = backend or get_settings().EMITTER_BACKEND
    try:
        emitter_cls = _BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown emitter backend: {backend!r}") from None
    return emitter_cls(events, scale=scale, source=source)


def _default_names(count: int) -> list[str]:
    letters = string.ascii_lowercase
    if count <= len(letters):
        return list(letters[:count])
    return [f"s{i}" for i in range(count)]


async def run_merge(
    source_a: Sequence[TimedEvent],
    source_b: Sequence[TimedEvent],
    *more: Sequence[TimedEvent],
    names: Sequence[str] | None = None,
    scale: float | None = None,
    timeout: float | None = None,
    backend: Backend | None = None,
) -> list[TimedEvent]:
    """Merge two (or more) source collections by arrival time and collect the result."""
    driver = MergeDriver(backend=backend, scale=scale, timeout=timeout)
    return await driver.run(source_a, source_b, *more, names=names)

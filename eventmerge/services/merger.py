"""Arrival-order merge of several asynchronous event streams."""
from typing import AsyncIterable
import asyncio
import structlog
from ..event_models import TimedEvent
from ..metrics.collector import collector, EVENTS_MERGED_TOTAL, MERGE_SOURCES_ACTIVE

log = structlog.get_logger()

# Queue marker for a source that has completed
_DONE = object()


class StreamMerger:
    """
    Merge asynchronous event streams in the order events arrive.

    Each source is drained by its own pump task, which forwards events into
    a shared queue the moment they are produced; no source is peeked ahead.
    The merged stream ends once every source has completed. If a source
    raises, the other pumps are cancelled and the error is re-raised to the
    consumer. A source that never completes keeps the merge open.

    Use as an async context manager so that leaving early releases every
    pump task and closes the sources:

        async with StreamMerger(a, b) as merged:
            async for event in merged:
                ...
    """

    def __init__(self, *sources: AsyncIterable[TimedEvent]):
        if not sources:
            raise ValueError("StreamMerger needs at least one source")
        self._sources = sources
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._live = 0
        self._started = False
        self._closed = False
        self.merged = 0

    @property
    def live_sources(self) -> int:
        """Sources that have not completed yet."""
        return self._live

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Subscribe to every source. Called implicitly by iteration."""
        if self._started:
            return
        if self._closed:
            raise RuntimeError("merger is closed")
        self._started = True

        loop = asyncio.get_running_loop()
        self._live = len(self._sources)
        collector.adjust(MERGE_SOURCES_ACTIVE, self._live)
        self._tasks = [
            loop.create_task(self._pump(index, source), name=f"merge-pump-{index}")
            for index, source in enumerate(self._sources)
        ]
        log.debug("merge.subscribed", sources=self._live)

    async def _pump(self, index: int, source: AsyncIterable[TimedEvent]) -> None:
        try:
            async for event in source:
                self._queue.put_nowait((index, event))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("merge.source_failed", source_index=index, error=str(exc))
            self._queue.put_nowait((index, exc))
            return
        self._queue.put_nowait((index, _DONE))

    def __aiter__(self) -> "StreamMerger":
        return self

    async def __anext__(self) -> TimedEvent:
        if self._closed:
            raise StopAsyncIteration
        self.start()

        while self._live:
            index, item = await self._queue.get()
            if item is _DONE:
                self._live -= 1
                collector.adjust(MERGE_SOURCES_ACTIVE, -1)
                log.debug("merge.source_completed", source_index=index, remaining=self._live)
                continue
            if isinstance(item, Exception):
                await self.aclose()
                raise item

            self.merged += 1
            collector.increment(EVENTS_MERGED_TOTAL)
            return item

        log.debug("merge.drained", events=self.merged)
        await self.aclose()
        raise StopAsyncIteration

    async def aclose(self) -> None:
        """Cancel every pump task and close the sources."""
        if self._closed:
            return
        self._closed = True

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._live:
            log.debug("merge.cancelled", live_sources=self._live, events=self.merged)
            collector.adjust(MERGE_SOURCES_ACTIVE, -self._live)
            self._live = 0

        for source in self._sources:
            closer = getattr(source, "aclose", None)
            if closer is not None:
                await closer()

    async def __aenter__(self) -> "StreamMerger":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

"""Tests for the arrival-order stream merger."""
import asyncio
import pytest
from eventmerge.emitters import ScheduledEmitter, TimerEmitter
from eventmerge.event_models import int_event, tag_source, text_event
from eventmerge.metrics.collector import (
    collector,
    EVENTS_EMITTED_TOTAL,
    EVENTS_MERGED_TOTAL,
    MERGE_SOURCES_ACTIVE,
)
from eventmerge.samples import int_source, text_source
from eventmerge.services.merger import StreamMerger

BACKENDS = [TimerEmitter, ScheduledEmitter]


async def collect(merger, timeout=3.0):
    async def _drain():
        async with merger:
            return [event async for event in merger]

    return await asyncio.wait_for(_drain(), timeout)


async def agen(events, pause=0.0):
    for event in events:
        await asyncio.sleep(pause)
        yield event


@pytest.mark.asyncio
@pytest.mark.parametrize("emitter_cls", BACKENDS)
async def test_merge_sample_sources_by_arrival(emitter_cls):
    """Test the two sample sources interleave in ascending time order."""
    ints = emitter_cls(tag_source(int_source(), "ints"), scale=10, source="ints")
    texts = emitter_cls(tag_source(text_source(), "texts"), scale=10, source="texts")
    ints.start()
    texts.start()

    result = await collect(StreamMerger(ints, texts))

    assert len(result) == 10
    assert [e.time for e in result] == [0, 1, 1.5, 2, 2.5, 4.5, 5, 6.5, 7.5, 8]
    assert [e.value.value for e in result] == [1, 2, "a", 3, "b", "c", 4, "d", "e", 5]


@pytest.mark.asyncio
@pytest.mark.parametrize("emitter_cls", BACKENDS)
async def test_merge_is_complete_without_duplicates(emitter_cls):
    """Test every event of every source appears exactly once."""
    a = tag_source([int_event(i, i * 0.7, i) for i in range(6)], "a")
    b = tag_source([text_event(i, i * 0.9, chr(97 + i)) for i in range(6)], "b")

    result = await collect(StreamMerger(emitter_cls(a, scale=100), emitter_cls(b, scale=100)))

    keys = [e.key for e in result]
    assert len(keys) == len(set(keys)) == 12
    assert set(result) == set(a) | set(b)


@pytest.mark.asyncio
@pytest.mark.parametrize("emitter_cls", BACKENDS)
async def test_merge_preserves_per_source_order(emitter_cls):
    """Test each sorted source keeps its relative order in the result."""
    a = tag_source([int_event(i, t, i) for i, t in enumerate([0, 0.2, 0.4, 3, 3.1])], "a")
    b = tag_source([int_event(i, t, i) for i, t in enumerate([0.1, 1, 2, 2.5])], "b")

    result = await collect(StreamMerger(emitter_cls(a, scale=100), emitter_cls(b, scale=100)))

    assert [e for e in result if e.source == "a"] == a
    assert [e for e in result if e.source == "b"] == b


@pytest.mark.asyncio
async def test_merge_waits_for_every_source():
    """Test one source finishing early does not complete the merge."""
    quick = TimerEmitter(tag_source([int_event(0, 0, 1)], "quick"), scale=100)
    slow = TimerEmitter(
        tag_source([int_event(0, 1, 1), int_event(1, 20, 2)], "slow"), scale=100
    )
    quick.start()
    slow.start()
    merger = StreamMerger(quick, slow)

    async with merger:
        first = await merger.__anext__()
        second = await merger.__anext__()
        await asyncio.sleep(0.05)

        assert quick.finished
        assert not slow.finished
        assert merger.live_sources >= 1
        assert not merger.closed

        last = await asyncio.wait_for(merger.__anext__(), 1.0)
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(merger.__anext__(), 1.0)

    assert first.key == ("quick", 0)
    assert second.key == ("slow", 0)
    assert last.key == ("slow", 1)
    assert merger.live_sources == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("emitter_cls", BACKENDS)
async def test_merge_with_empty_source(emitter_cls):
    """Test merging an empty source yields exactly the other source."""
    events = tag_source([int_event(i, i, i) for i in range(3)], "full")
    empty = emitter_cls([], scale=100)
    full = emitter_cls(events, scale=100)

    result = await collect(StreamMerger(empty, full))

    assert result == events
    assert empty.finished and full.finished


@pytest.mark.asyncio
async def test_merge_of_empty_sources_completes():
    """Test a merge over only empty sources ends immediately."""
    result = await collect(StreamMerger(TimerEmitter([], scale=10), TimerEmitter([], scale=10)), timeout=0.5)

    assert result == []


@pytest.mark.asyncio
async def test_merge_is_stable_for_identical_delays():
    """Test re-running with identical delays gives the same order."""
    orders = []
    for _ in range(3):
        a = TimerEmitter(tag_source([int_event(0, 1, 1), int_event(1, 2, 2)], "a"), scale=100)
        b = TimerEmitter(tag_source([int_event(0, 1, 3), int_event(1, 2, 4)], "b"), scale=100)
        a.start()
        b.start()
        result = await collect(StreamMerger(a, b))
        orders.append([e.key for e in result])

    assert len(orders[0]) == 4
    assert orders[0] == orders[1] == orders[2]


@pytest.mark.asyncio
async def test_merge_of_n_sources():
    """Test the merger handles more than two sources of any async iterable."""
    sources = [
        agen(tag_source([int_event(i, i, i) for i in range(4)], name), pause=0.001)
        for name in ("a", "b", "c")
    ]

    result = await collect(StreamMerger(*sources))

    assert len(result) == 12
    assert {e.source for e in result} == {"a", "b", "c"}


@pytest.mark.asyncio
@pytest.mark.parametrize("emitter_cls", BACKENDS)
async def test_early_exit_releases_all_sources(emitter_cls):
    """Test leaving the merge early cancels pumps and outstanding timers."""
    a = emitter_cls(tag_source([int_event(i, i * 5, i) for i in range(5)], "a"), scale=100, source="a")
    b = emitter_cls(tag_source([int_event(i, 30 + i, i) for i in range(5)], "b"), scale=100, source="b")
    a.start()
    b.start()
    merger = StreamMerger(a, b)

    async with merger:
        async for event in merger:
            break

    assert event.key == ("a", 0)
    assert merger.closed
    assert a.closed and b.closed
    assert a.pending == 0 and b.pending == 0
    assert all(task.done() for task in merger._tasks)

    # No timer fires after release
    await asyncio.sleep(0.15)
    counters = collector.get_metrics()["counters"]
    assert counters[f"{EVENTS_EMITTED_TOTAL}{{source=a}}"] == 1
    assert f"{EVENTS_EMITTED_TOTAL}{{source=b}}" not in counters
    assert collector.get_metrics()["gauges"][MERGE_SOURCES_ACTIVE] == 0


@pytest.mark.asyncio
async def test_cancelled_consumer_releases_sources():
    """Test cancelling the consuming task releases every source."""
    a = TimerEmitter([int_event(i, i, i) for i in range(5)], scale=10)
    b = TimerEmitter([int_event(i, i, i) for i in range(5)], scale=10)
    merger = StreamMerger(a, b)

    async def consume():
        async with merger:
            return [event async for event in merger]

    task = asyncio.create_task(consume())
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert merger.closed
    assert a.closed and b.closed
    assert a.pending == 0 and b.pending == 0


@pytest.mark.asyncio
async def test_source_error_propagates():
    """Test an error raised by a source reaches the consumer."""

    async def failing():
        yield int_event(0, 0, 1)
        raise RuntimeError("source broke")

    healthy = TimerEmitter([int_event(0, 50, 1)], scale=10)
    merger = StreamMerger(failing(), healthy)

    with pytest.raises(RuntimeError, match="source broke"):
        await collect(merger)

    assert merger.closed
    assert healthy.closed
    assert healthy.pending == 0


@pytest.mark.asyncio
async def test_merged_counter():
    """Test forwarded events are counted."""
    a = TimerEmitter([int_event(0, 0, 1)], scale=100)
    b = TimerEmitter([int_event(0, 0, 2), int_event(1, 1, 3)], scale=100)

    merger = StreamMerger(a, b)
    await collect(merger)

    assert merger.merged == 3
    assert collector.get_metrics()["counters"][EVENTS_MERGED_TOTAL] == 3


def test_merger_requires_a_source():
    """Test constructing a merger without sources fails."""
    with pytest.raises(ValueError):
        StreamMerger()

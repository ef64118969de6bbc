"""JSON interchange for source collections and merged results."""
from typing import Iterable
import orjson
from pydantic import TypeAdapter, ValidationError
import structlog
from .errors import InvalidEventError
from .event_models import TimedEvent

log = structlog.get_logger()

_events_adapter = TypeAdapter(list[TimedEvent])


def dump_events(events: Iterable[TimedEvent]) -> bytes:
    """
    Serialize events to a JSON array, preserving their order.

    Each entry looks like
    ``{"id": 0, "time": 1.5, "value": {"kind": "text", "value": "a"}, "source": "b"}``.
    """
    return orjson.dumps([event.model_dump() for event in events])


def load_events(data: bytes | str) -> list[TimedEvent]:
    """
    Parse a JSON array produced by ``dump_events`` (or written by hand).

    Raises:
        InvalidEventError: If the document is not valid JSON or an entry is malformed
    """
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        log.warning("codec.decode_failed", error=str(e))
        raise InvalidEventError(f"malformed event document: {e}") from e

    try:
        return _events_adapter.validate_python(raw)
    except ValidationError as e:
        log.warning("codec.validation_failed", errors=e.error_count())
        raise InvalidEventError(f"invalid events: {e}") from e

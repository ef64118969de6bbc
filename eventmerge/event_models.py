from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Iterable, Literal, Union


class IntValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["int"] = "int"
    value: int


class TextValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


# New payload kinds join this union; nothing downstream inspects them.
Value = Annotated[Union[IntValue, TextValue], Field(discriminator="kind")]


class TimedEvent(BaseModel):
    """One event of a source collection, released after ``time / scale`` seconds."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Identity, unique within its source")
    time: float = Field(..., ge=0, allow_inf_nan=False, description="Logical time offset")
    value: Value
    source: str | None = Field(default=None, description="Ingestion namespace")

    @property
    def key(self) -> tuple[str | None, int]:
        """Composite identity, unique across sources once tagged."""
        return (self.source, self.id)

    def delay(self, scale: float) -> float:
        return self.time / scale


def int_event(id: int, time: float, n: int, source: str | None = None) -> TimedEvent:
    return TimedEvent(id=id, time=time, value=IntValue(value=n), source=source)


def text_event(id: int, time: float, s: str, source: str | None = None) -> TimedEvent:
    return TimedEvent(id=id, time=time, value=TextValue(value=s), source=source)


def tag_source(events: Iterable[TimedEvent], source: str) -> list[TimedEvent]:
    """Return copies of ``events`` namespaced under ``source``."""
    return [e if e.source == source else e.model_copy(update={"source": source}) for e in events]

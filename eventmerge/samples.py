"""Sample sources: integers at uneven offsets and letters between them."""
from .event_models import TimedEvent, int_event, text_event


def int_source() -> list[TimedEvent]:
    return [
        int_event(0, 0, 1),
        int_event(1, 1, 2),
        int_event(2, 2, 3),
        int_event(3, 5, 4),
        int_event(4, 8, 5),
    ]


def text_source() -> list[TimedEvent]:
    return [
        text_event(1000, 1.5, "a"),
        text_event(1001, 2.5, "b"),
        text_event(1002, 4.5, "c"),
        text_event(1003, 6.5, "d"),
        text_event(1004, 7.5, "e"),
    ]

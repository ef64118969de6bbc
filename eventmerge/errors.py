"""Exceptions raised by emitters, the merger and the driver."""


class EventMergeError(Exception):
    """Base class for eventmerge errors."""


class InvalidEventError(EventMergeError, ValueError):
    """An event cannot be scheduled (negative or non-finite time)."""

    def __init__(self, message: str, event_id: int | None = None):
        super().__init__(message)
        self.event_id = event_id


class MergeTimeoutError(EventMergeError, TimeoutError):
    """A merge did not complete within its time bound."""

    def __init__(self, timeout: float):
        super().__init__(f"merge did not complete within {timeout}s")
        self.timeout = timeout

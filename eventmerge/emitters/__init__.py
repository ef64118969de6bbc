"""
Delayed emitters

Turn a source collection of timed events into a single-use asynchronous
stream that releases each event after its scaled delay:
- TimerEmitter: one event-loop timer per event
- ScheduledEmitter: one task walking a time-ordered heap
"""

from .base import Emitter
from .timers import TimerEmitter
from .scheduler import ScheduledEmitter

__all__ = [
    "Emitter",
    "TimerEmitter",
    "ScheduledEmitter",
]

from .dispatcher import BatchingDispatcher
from .event_queue import EventQueue
from .sink import NotificationSink
from .stats import Statistics
from .triggers import FlushAfterTrigger, FlushAtTrigger, FlushTrigger

__all__ = [
    "BatchingDispatcher",
    "EventQueue",
    "NotificationSink",
    "Statistics",
    "FlushTrigger",
    "FlushAtTrigger",
    "FlushAfterTrigger",
]

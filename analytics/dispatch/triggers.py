"""
Flush triggers decide when the pending records are sealed into a batch.

Triggers only look at counts and time, never at the records themselves.
`should_flush` must not mutate state so that every registered trigger can
be polled on each check; `on_flushed` is called on all of them whenever a
seal happens, whatever caused it.
"""

from abc import ABC, abstractmethod
import time
from typing import Callable

Clock = Callable[[], float]


class FlushTrigger(ABC):
    """
    Abstract base class for flush triggers.
    """

    def on_appended(self) -> None:
        """
        Called, under the queue lock, after a record was appended.
        """

    @abstractmethod
    def should_flush(self) -> bool:
        """
        Return True when the pending records should be sealed now.
        """
        pass

    @abstractmethod
    def on_flushed(self) -> None:
        """
        Reset the trigger state after a seal.
        """
        pass


class FlushAtTrigger(FlushTrigger):
    """
    Fires once `flush_at` records have been appended since the last seal.
    """

    def __init__(self, flush_at: int):
        if flush_at < 1:
            raise ValueError("flush_at must be a positive integer")
        self.flush_at = flush_at
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def on_appended(self) -> None:
        self._count += 1

    def should_flush(self) -> bool:
        return self._count >= self.flush_at

    def on_flushed(self) -> None:
        self._count = 0

    def __repr__(self) -> str:
        return f"FlushAtTrigger(flush_at={self.flush_at}, count={self._count})"


class FlushAfterTrigger(FlushTrigger):
    """
    Fires once `flush_after` seconds have elapsed since the last seal, or
    since creation before the first one.
    """

    def __init__(self, flush_after: float, clock: Clock = time.monotonic):
        if flush_after <= 0:
            raise ValueError("flush_after must be a positive number of seconds")
        self.flush_after = flush_after
        self._clock = clock
        self._last_flush = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._last_flush

    def should_flush(self) -> bool:
        return self.elapsed >= self.flush_after

    def on_flushed(self) -> None:
        self._last_flush = self._clock()

    def __repr__(self) -> str:
        return f"FlushAfterTrigger(flush_after={self.flush_after})"

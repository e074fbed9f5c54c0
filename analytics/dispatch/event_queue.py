"""
Thread-safe accumulator of pending records.
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from analytics.constants import (
    SEAL_REASON_MANUAL,
    SEAL_REASON_MAX_BATCH_SIZE,
    SEAL_REASON_SHUTDOWN,
    SEAL_REASON_TRIGGER,
)
from analytics.errors import ShuttingDownError
from analytics.models import Batch, BaseAction
from .triggers import FlushTrigger

logger = logging.getLogger(__name__)

SealedCallback = Callable[[Batch], None]
AcceptedCallback = Callable[[BaseAction], None]


class EventQueue:
    """
    Pending records plus the triggers that decide when to seal them.

    `append`, `try_seal` and `close` share one lock. An append and the
    trigger check that follows it happen in the same critical section, so
    no other producer's record can slip into a batch a trigger has already
    claimed. Sealing swaps the pending list for a fresh one, so the critical
    section does not depend on the number of pending records. `on_accepted`
    and `on_sealed` run while the lock is held, which keeps batches flowing
    downstream in the order they were sealed.

    A trigger that raises is logged and treated as not firing.
    """

    def __init__(
        self,
        triggers: Sequence[FlushTrigger],
        max_batch_size: int,
        on_sealed: Optional[SealedCallback] = None,
        on_accepted: Optional[AcceptedCallback] = None,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be a positive integer")

        self._triggers = list(triggers)
        self._max_batch_size = max_batch_size
        self._on_sealed = on_sealed
        self._on_accepted = on_accepted
        self._pending: List[BaseAction] = []
        self._sequence = 0
        self._closed = False
        self._lock = threading.Lock()

    @property
    def triggers(self) -> List[FlushTrigger]:
        return list(self._triggers)

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_sequence(self) -> int:
        """
        Sequence number of the most recently sealed batch, 0 if none.
        """
        with self._lock:
            return self._sequence

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def append(self, action: BaseAction) -> Optional[Batch]:
        """
        Add a record to the tail of the pending sequence, then evaluate the
        triggers.

        When the pending sequence already holds `max_batch_size` records it
        is sealed before the record is added. Returns the last batch sealed
        by this call, or None.

        Raises:
            ShuttingDownError: If the queue has been closed.
        """
        with self._lock:
            if self._closed:
                raise ShuttingDownError()

            batch = None
            if len(self._pending) >= self._max_batch_size:
                batch = self._seal(SEAL_REASON_MAX_BATCH_SIZE)

            self._pending.append(action)
            if self._on_accepted is not None:
                self._on_accepted(action)

            for trigger in self._triggers:
                try:
                    trigger.on_appended()
                except Exception as e:
                    logger.exception(f"Flush trigger {trigger!r} failed: {e}")

            if self._fired():
                batch = self._seal(SEAL_REASON_TRIGGER)

            return batch

    def try_seal(self, force: bool = False) -> Optional[Batch]:
        """
        Seal the pending records if a trigger fired or `force` is set.

        Returns None when nothing fired or nothing is pending. A trigger
        firing on an empty queue still resets every trigger.
        """
        with self._lock:
            if force:
                reason = SEAL_REASON_MANUAL
            elif self._fired():
                reason = SEAL_REASON_TRIGGER
            else:
                return None

            if not self._pending:
                self._reset_triggers()
                return None

            return self._seal(reason)

    def close(self) -> Optional[Batch]:
        """
        Refuse further appends and seal whatever is still pending.
        """
        with self._lock:
            if self._closed:
                return None
            self._closed = True

            if not self._pending:
                return None

            return self._seal(SEAL_REASON_SHUTDOWN)

    def _seal(self, reason: str) -> Batch:
        # Caller holds self._lock
        actions, self._pending = self._pending, []
        self._sequence += 1
        self._reset_triggers()

        batch = Batch(sequence=self._sequence, actions=actions, reason=reason)
        logger.debug(
            "Sealed batch %d with %d record(s), reason: %s",
            batch.sequence,
            len(batch),
            reason,
        )

        if self._on_sealed is not None:
            self._on_sealed(batch)

        return batch

    def _fired(self) -> bool:
        # Caller holds self._lock
        for trigger in self._triggers:
            try:
                if trigger.should_flush():
                    return True
            except Exception as e:
                logger.exception(f"Flush trigger {trigger!r} failed: {e}")
        return False

    def _reset_triggers(self) -> None:
        for trigger in self._triggers:
            try:
                trigger.on_flushed()
            except Exception as e:
                logger.exception(f"Flush trigger {trigger!r} failed to reset: {e}")

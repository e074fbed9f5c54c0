from dataclasses import dataclass, field, fields
import threading
from typing import Dict


@dataclass
class Statistics:
    """
    Delivery counters for a dispatcher.

    Counters only ever grow. Every update goes through `_increment` so that
    readers on other threads never observe a torn update.
    """

    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    batches_sent: int = 0
    batches_failed: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def _increment(self, **deltas: int) -> None:
        with self._lock:
            for name, delta in deltas.items():
                setattr(self, name, getattr(self, name) + delta)

    def record_submitted(self) -> None:
        self._increment(submitted=1)

    def record_batch_succeeded(self, size: int) -> None:
        self._increment(succeeded=size, batches_sent=1)

    def record_batch_failed(self, size: int) -> None:
        self._increment(failed=size, batches_failed=1)

    def as_dict(self) -> Dict[str, int]:
        """
        Consistent snapshot of every counter.
        """
        with self._lock:
            return {
                f.name: getattr(self, f.name)
                for f in fields(self)
                if not f.name.startswith("_")
            }

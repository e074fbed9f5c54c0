from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List

from .actions import BaseAction


@dataclass(frozen=True)
class Batch:
    """
    An ordered group of records sealed together.

    The records list is detached from the pending queue when the batch is
    sealed and is never mutated afterwards.
    """

    sequence: int
    actions: List[BaseAction]
    reason: str
    sealed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self) -> Iterator[BaseAction]:
        return iter(self.actions)

    def to_wire(self) -> List[Dict[str, Any]]:
        return [action.to_wire() for action in self.actions]

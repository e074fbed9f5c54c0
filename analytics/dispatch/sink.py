from typing import Protocol, runtime_checkable

from analytics.models import BaseAction


@runtime_checkable
class NotificationSink(Protocol):
    """
    Receives the outcome of every delivered record.

    Implementations are observers only: calling back into the dispatcher
    from inside these methods is not supported.
    """

    def raise_success(self, action: BaseAction) -> None:
        ...

    def raise_failure(self, action: BaseAction, error: Exception) -> None:
        ...

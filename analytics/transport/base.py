"""
Transport definitions for delivering sealed batches.
"""

from abc import ABC, abstractmethod

from analytics.models import Batch


class Transport(ABC):
    """
    Abstract base class for transports.

    `send` is awaited on the dispatcher's background loop. It must resolve
    within a bounded time, must not mutate the batch, and signals failure
    by raising (preferably a DeliveryError).
    """

    @abstractmethod
    async def send(self, batch: Batch, secret: str) -> None:
        """
        Deliver a batch.

        Args:
            batch: The sealed batch to deliver
            secret: The credential the client was initialized with

        Raises:
            DeliveryError: If the batch was not accepted
        """
        pass

    async def close(self) -> None:
        """
        Release any resources held by the transport.
        """
        return None

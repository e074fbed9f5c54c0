"""
Batching dispatcher: owns the pending queue and delivers sealed batches.
"""

import asyncio
import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Set

from analytics.constants import (
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SHUTDOWN_TIMEOUT,
)
from analytics.errors import (
    AlreadyInitializedError,
    ConfigurationError,
    DeliveryError,
    NotInitializedError,
    ShuttingDownError,
    ValidationError,
)
from analytics.models import Batch, BaseAction
from analytics.transport import HttpTransport, Transport
from .event_queue import EventQueue
from .sink import NotificationSink
from .stats import Statistics
from .triggers import FlushTrigger

logger = logging.getLogger(__name__)

# Sentinel pushed onto the delivery queue to stop the worker
_SHUTDOWN = object()


class BatchingDispatcher:
    """
    Accumulates records and ships them in batches from a background thread.

    The background thread runs its own asyncio event loop. Every poll tick
    it either delivers the next sealed batch or, when none is waiting,
    evaluates the flush triggers. Producers never touch the network:
    `process` only appends under the queue lock and checks the triggers.

    Batches are delivered one at a time, in the order they were sealed. A
    failed batch is dropped after its records have been reported to the
    notification sink; the dispatcher itself never retries.
    """

    def __init__(
        self,
        triggers: Sequence[FlushTrigger],
        transport: Optional[Transport] = None,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        """
        Args:
            triggers: Policies deciding when pending records are sealed
            transport: Delivers sealed batches, HttpTransport by default
            max_batch_size: Hard cap on records per batch
            poll_interval: Seconds between trigger evaluations when idle
            shutdown_timeout: Default bound on the wait in `shutdown`
        """
        if poll_interval <= 0:
            raise ConfigurationError(message="poll_interval must be positive.")

        self._queue = EventQueue(
            triggers,
            max_batch_size=max_batch_size,
            on_sealed=self._enqueue,
            on_accepted=self._accepted,
        )
        self._transport = transport
        self._poll_interval = poll_interval
        self._shutdown_timeout = shutdown_timeout

        self.statistics = Statistics()

        # Sealed batches waiting for the worker
        self._sealed: queue.Queue = queue.Queue()

        self._sink: Optional[NotificationSink] = None
        self._secret: Optional[str] = None

        # Lifecycle
        self._state_lock = threading.Lock()
        self._initialized = False
        self._shutting_down = False
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopping = threading.Event()
        self._stopped = threading.Event()
        self._abandoned = threading.Event()
        self._in_flight: Optional[Batch] = None

        # Every batch up to this sequence has a reported outcome
        self._resolved = threading.Condition()
        self._resolved_sequence = 0
        self._claimed: Set[int] = set()
        self._finished: Set[int] = set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        """
        Number of records appended but not yet sealed.
        """
        return len(self._queue)

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    def initialize(self, owner: NotificationSink, secret: str) -> None:
        """
        Wire the owner and credential, then start the background loop.

        Raises:
            AlreadyInitializedError: If called more than once.
            ConfigurationError: If the secret is empty or the owner cannot
                receive notifications.
        """
        with self._state_lock:
            if self._initialized:
                raise AlreadyInitializedError()
            if not secret:
                raise ConfigurationError(
                    message="Please supply a valid secret to initialize."
                )
            if not isinstance(owner, NotificationSink):
                raise ConfigurationError(
                    message="The owner must implement raise_success and raise_failure."
                )

            self._sink = owner
            self._secret = secret
            if self._transport is None:
                self._transport = HttpTransport()
            self._initialized = True

            self._thread = threading.Thread(
                target=self._run_event_loop, name="analytics-dispatcher", daemon=True
            )
            self._thread.start()

        logger.info(
            "Dispatcher started with triggers %s", self._queue.triggers
        )

    def process(self, action: BaseAction) -> None:
        """
        Queue a record and seal a batch right away if a trigger fires.

        Raises:
            ValidationError: If no record is given.
            NotInitializedError: If `initialize` was never called.
            ShuttingDownError: If shutdown has begun.
        """
        if action is None:
            raise ValidationError(message="Please supply a record to process.")
        if not isinstance(action, BaseAction):
            raise ValidationError(
                message="Unsupported record type.", reason=type(action).__name__
            )
        if not self._initialized:
            raise NotInitializedError()

        # Counting and trigger evaluation happen inside the append
        self._queue.append(action)

    def flush(self, wait: bool = False, timeout: Optional[float] = None) -> bool:
        """
        Seal whatever is pending and hand it to the worker.

        Args:
            wait: Block until every batch sealed so far has been resolved
            timeout: Upper bound on that wait, in seconds

        Returns:
            False if waiting timed out, True otherwise.

        Raises:
            NotInitializedError: If `initialize` was never called.
            ShuttingDownError: If shutdown has begun.
        """
        if not self._initialized:
            raise NotInitializedError()
        if self._queue.closed:
            raise ShuttingDownError()

        batch = self._queue.try_seal(force=True)
        if batch is None:
            logger.debug("Flush requested with no pending records")

        if wait:
            return self.drain(timeout)
        return True

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every batch sealed so far has succeeded or failed.

        Must not be called from a notification callback.

        Returns:
            False if the timeout elapsed first.
        """
        target = self._queue.last_sequence
        with self._resolved:
            return self._resolved.wait_for(
                lambda: self._resolved_sequence >= target, timeout
            )

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop accepting records, deliver what is left, and stop the worker.

        Batches that are still undelivered once `timeout` has elapsed are
        reported as failed.

        Returns:
            True if the worker finished within the timeout.
        """
        with self._state_lock:
            if self._shutting_down:
                return True
            self._shutting_down = True

        if timeout is None:
            timeout = self._shutdown_timeout

        self._queue.close()

        if self._thread is None:
            return True

        self._stopping.set()
        self._sealed.put(_SHUTDOWN)

        finished = self._stopped.wait(timeout)
        if not finished:
            logger.warning(
                "Dispatcher did not finish within %.2fs, abandoning pending batches",
                timeout,
            )
            self._abandoned.set()
            # The in-flight batch holds the lowest unresolved sequence
            self._abandon_in_flight()
            self._abandon_sealed()

        logger.info("Dispatcher stopped. Stats: %s", self.statistics.as_dict())
        return finished

    def __enter__(self) -> "BatchingDispatcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def _enqueue(self, batch: Batch) -> None:
        # Runs under the queue lock, so batches are queued in seal order
        self._sealed.put(batch)

    def _accepted(self, action: BaseAction) -> None:
        # Runs under the queue lock, before the record can be sealed
        self.statistics.record_submitted()

    def _check(self) -> None:
        try:
            self._queue.try_seal()
        except Exception as e:
            logger.exception(f"Error evaluating flush triggers: {e}")

    def _run_event_loop(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            self._loop.run_until_complete(self._main())
        finally:
            self._loop.close()
            self._stopped.set()

    async def _main(self) -> None:
        try:
            while True:
                try:
                    item = self._sealed.get(timeout=self._poll_interval)
                except queue.Empty:
                    if not self._stopping.is_set():
                        self._check()
                    continue

                if item is _SHUTDOWN:
                    logger.info("Received shutdown sentinel")
                    break

                await self._deliver(item)
        finally:
            if self._transport is not None:
                try:
                    await self._transport.close()
                except Exception as e:
                    logger.exception(f"Error closing transport: {e}")

    async def _deliver(self, batch: Batch) -> None:
        # Published before the abandon check; shutdown reads it after
        # setting the flag, so one of the two always reports the batch
        self._in_flight = batch
        try:
            if self._abandoned.is_set():
                self._settle(batch, _abandoned_error())
                return

            logger.debug(
                "Delivering batch %d (%d records, reason: %s, waited %.3fs)",
                batch.sequence,
                len(batch),
                batch.reason,
                (datetime.now(timezone.utc) - batch.sealed_at).total_seconds(),
            )

            try:
                await self._transport.send(batch, self._secret)
            except Exception as e:
                error = e
                if not isinstance(e, DeliveryError):
                    error = DeliveryError(
                        message=f"Unexpected error delivering batch: {e!r}"
                    )
                    error.__cause__ = e

                logger.error(
                    "Batch %d (%d records) failed: %s",
                    batch.sequence,
                    len(batch),
                    error,
                )
                self._settle(batch, error)
            else:
                self._settle(batch)
        finally:
            self._in_flight = None

    def _settle(self, batch: Batch, error: Optional[Exception] = None) -> None:
        """
        Count and report the outcome of a batch, once.

        A second outcome for the same batch, such as a delivery finishing
        after shutdown gave up on it, is logged and dropped.
        """
        if not self._claim(batch.sequence):
            logger.warning(
                "Batch %d was already reported, ignoring late %s",
                batch.sequence,
                "failure" if error else "success",
            )
            return

        try:
            if error is None:
                self.statistics.record_batch_succeeded(len(batch))
                for action in batch:
                    self._notify(self._sink.raise_success, action)
            else:
                self.statistics.record_batch_failed(len(batch))
                for action in batch:
                    self._notify(self._sink.raise_failure, action, error)
        finally:
            self._mark_resolved(batch.sequence)

    def _abandon_in_flight(self) -> None:
        batch = self._in_flight
        if batch is not None:
            self._settle(batch, _abandoned_error())

    def _abandon_sealed(self) -> None:
        saw_sentinel = False
        while True:
            try:
                item = self._sealed.get_nowait()
            except queue.Empty:
                break

            if item is _SHUTDOWN:
                saw_sentinel = True
                continue

            self._settle(item, _abandoned_error())

        # Let the worker exit once its in-flight delivery returns
        if saw_sentinel:
            self._sealed.put(_SHUTDOWN)

    def _notify(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.exception(f"Notification callback failed: {e}")

    def _claim(self, sequence: int) -> bool:
        with self._resolved:
            if sequence <= self._resolved_sequence or sequence in self._claimed:
                return False
            self._claimed.add(sequence)
            return True

    def _mark_resolved(self, sequence: int) -> None:
        with self._resolved:
            self._finished.add(sequence)
            # Only advance over a gap-free run, so drain never skips a batch
            while self._resolved_sequence + 1 in self._finished:
                self._resolved_sequence += 1
                self._finished.discard(self._resolved_sequence)
                self._claimed.discard(self._resolved_sequence)
            self._resolved.notify_all()


def _abandoned_error() -> DeliveryError:
    return DeliveryError(message="Batch abandoned at shutdown.")

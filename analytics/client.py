import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from analytics.config import Options, get_proxy_config
from analytics.dispatch import (
    BatchingDispatcher,
    FlushAfterTrigger,
    FlushAtTrigger,
    Statistics,
)
from analytics.errors import ConfigurationError
from analytics.logs_helpers import log_call
from analytics.models import BaseAction, Identify, Track
from analytics.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

SucceededHandler = Callable[[BaseAction], None]
FailedHandler = Callable[[BaseAction, Exception], None]


class Client:
    """
    Analytics client that batches identify and track calls in the background.

    Calls never block on the network. Outcomes are reported asynchronously
    to the handlers registered with `on_success` and `on_failure`, and
    counted in `statistics`.

    Example:
        with Client("my-secret") as client:
            client.on_failure(lambda action, error: print(action, error))
            client.track(None, "user-1", "Item Purchased", {"price": 9.99})
    """

    def __init__(
        self,
        secret: str,
        options: Optional[Options] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Args:
            secret: Credential for the collection endpoint
            options: Batching and delivery settings, defaults if omitted
            transport: Delivery mechanism, an HttpTransport built from the
                options if omitted

        Raises:
            ConfigurationError: If the secret is empty.
        """
        if not secret:
            raise ConfigurationError(
                message="Please supply a valid secret to initialize."
            )

        self._secret = secret
        self._options = options or Options()

        self._handlers_lock = threading.Lock()
        self._succeeded: List[SucceededHandler] = []
        self._failed: List[FailedHandler] = []

        if transport is None:
            try:
                proxy = get_proxy_config()
            except ValueError as e:
                raise ConfigurationError(
                    message="Invalid proxy configuration.", reason=str(e)
                ) from e

            transport = HttpTransport(
                endpoint=self._options.endpoint,
                timeout=self._options.request_timeout,
                max_attempts=self._options.max_attempts,
                proxy=proxy,
            )

        self._dispatcher = BatchingDispatcher(
            triggers=[
                FlushAtTrigger(self._options.flush_at),
                FlushAfterTrigger(self._options.flush_after),
            ],
            transport=transport,
            max_batch_size=self._options.max_batch_size,
            poll_interval=self._options.poll_interval,
            shutdown_timeout=self._options.shutdown_timeout,
        )
        self._dispatcher.initialize(self, secret)

    @property
    def secret(self) -> str:
        return self._secret

    @property
    def options(self) -> Options:
        return self._options

    @property
    def statistics(self) -> Statistics:
        return self._dispatcher.statistics

    @property
    def dispatcher(self) -> BatchingDispatcher:
        return self._dispatcher

    def identify(
        self,
        session_id: Optional[str],
        user_id: Optional[str],
        traits: Optional[Mapping[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> Identify:
        """
        Tie a visitor to an identity and record traits you can segment by.

        Args:
            session_id: The visitor's anonymous identifier until they log in
            user_id: The visitor's identifier once known, usually an email
            traits: Values such as "Subscription Plan" or "Friend Count".
                Strings, booleans, numbers and dates are kept, anything
                else is dropped.
            context: Information related to the visit, like the user agent
                or IP address
            timestamp: When the identification happened, if in the past

        Returns:
            The queued record.

        Raises:
            ValidationError: If neither session_id nor user_id is given.
        """
        identify = Identify.create(
            session_id=session_id,
            user_id=user_id,
            traits=traits,
            context=context,
            timestamp=timestamp,
        )
        self._dispatcher.process(identify)
        return identify

    def track(
        self,
        session_id: Optional[str],
        user_id: Optional[str],
        event: str,
        properties: Optional[Mapping[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> Track:
        """
        Record an action a visitor performed, such as "Bought T-Shirt".

        Raises:
            ValidationError: If no identifier or no event name is given.
        """
        track = Track.create(
            session_id=session_id,
            user_id=user_id,
            event=event,
            properties=properties,
            context=context,
            timestamp=timestamp,
        )
        self._dispatcher.process(track)
        return track

    @log_call(show_result=True)
    def flush(self, wait: bool = False, timeout: Optional[float] = None) -> bool:
        """
        Send everything that is queued.

        With `wait`, block until the batches are delivered or `timeout`
        elapses; returns False on timeout.
        """
        return self._dispatcher.flush(wait=wait, timeout=timeout)

    @log_call(show_result=True)
    def shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._dispatcher.shutdown(timeout=timeout)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def on_success(self, handler: SucceededHandler) -> SucceededHandler:
        """
        Register a handler called with every record that was delivered.

        Returns the handler so this can be used as a decorator.
        """
        with self._handlers_lock:
            self._succeeded.append(handler)
        return handler

    def on_failure(self, handler: FailedHandler) -> FailedHandler:
        """
        Register a handler called with every record that failed, and the error.
        """
        with self._handlers_lock:
            self._failed.append(handler)
        return handler

    def remove_handler(self, handler: Callable[..., None]) -> None:
        with self._handlers_lock:
            self._succeeded = [h for h in self._succeeded if h is not handler]
            self._failed = [h for h in self._failed if h is not handler]

    def raise_success(self, action: BaseAction) -> None:
        with self._handlers_lock:
            handlers = list(self._succeeded)

        for handler in handlers:
            try:
                handler(action)
            except Exception as e:
                logger.exception(f"Success handler {handler!r} failed: {e}")

    def raise_failure(self, action: BaseAction, error: Exception) -> None:
        with self._handlers_lock:
            handlers = list(self._failed)

        for handler in handlers:
            try:
                handler(action, error)
            except Exception as e:
                logger.exception(f"Failure handler {handler!r} failed: {e}")

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional
import uuid

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from analytics.config.proxy import ProxyConfig
from analytics.constants import (
    DEFAULT_ENDPOINT,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
)
from analytics.errors import (
    NetworkConnectionError,
    RequestTimeoutError,
    ServerError,
    TooManyRequestsError,
)
from analytics.meta import get_meta_http_headers
from analytics.models import Batch
from .base import Transport
from .http_utils import raise_for_delivery_status

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    NetworkConnectionError,
    RequestTimeoutError,
    TooManyRequestsError,
    ServerError,
)


class HttpTransport(Transport):
    """
    Posts batches as JSON to the collection endpoint.

    Transient failures (network, timeout, rate limiting, server errors) are
    retried up to `max_attempts` times with exponential backoff; anything
    else fails the batch straight away.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_wait: Optional[wait_base] = None,
        proxy: Optional[ProxyConfig] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            endpoint: URL to send batches to
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per batch, including the first one
            retry_wait: Backoff strategy between attempts
            proxy: Optional proxy to route requests through
            http_transport: Optional httpx transport, mostly for testing
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential_jitter(
            initial=0.2, max=8.0, exp_base=3, jitter=0.3
        )
        self.proxy = proxy
        self._http_transport = http_transport

        # Created on first use, inside the dispatcher's event loop
        self.http_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                proxy=self.proxy.as_url() if self.proxy else None,
                transport=self._http_transport,
                timeout=self.timeout,
            )
        return self.http_client

    def _build_payload(self, batch: Batch, secret: str) -> Dict[str, Any]:
        return {
            "secret": secret,
            "batch": batch.to_wire(),
            "sentAt": datetime.now(timezone.utc).isoformat(),
        }

    async def send(self, batch: Batch, secret: str) -> None:
        payload = self._build_payload(batch, secret)

        headers = {
            "Content-Type": "application/json",
            "X-Idempotency-Key": str(uuid.uuid4()),
        }
        headers.update(get_meta_http_headers())

        logger.info(
            "[Flush] -> Sending batch %d (%d events) to %s",
            batch.sequence,
            len(batch),
            self.endpoint,
        )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                response = await self._post(payload, headers)

        logger.info(
            "Successfully sent batch %d, status: %s",
            batch.sequence,
            response.status_code,
        )

    async def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        client = self._get_client()

        try:
            response = await client.post(
                self.endpoint, json=payload, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError() from e
        except httpx.TransportError as e:
            raise NetworkConnectionError() from e

        if not response.is_success:
            raise_for_delivery_status(response)

        return response

    async def close(self) -> None:
        """Close the HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
            logger.debug("HTTP client closed")

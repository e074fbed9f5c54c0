import json
import logging
from typing import NoReturn, Optional

import httpx

from analytics.errors import (
    DeliveryError,
    InvalidCredentialError,
    ServerError,
    TooManyRequestsError,
)

logger = logging.getLogger(__name__)


def extract_detail(response: httpx.Response) -> Optional[str]:
    """
    Extract error detail from HTTP response.

    Args:
        response: The HTTP response to extract detail from

    Returns:
        The extracted detail message, or None if extraction fails
    """
    try:
        data = response.json()
        return data.get("detail") or data.get("message")
    except (json.JSONDecodeError, ValueError, AttributeError):
        return None


def raise_for_delivery_status(response: httpx.Response) -> NoReturn:
    """
    Raise the DeliveryError matching an unsuccessful response.
    """
    status_code = response.status_code

    if status_code in (401, 403):
        raise InvalidCredentialError(
            reason=extract_detail(response), status_code=status_code
        )
    elif status_code == 429:
        logger.warning("Rate limit exceeded")
        raise TooManyRequestsError(reason=response.text or None)
    elif response.is_server_error:
        raise ServerError(reason=extract_detail(response), status_code=status_code)

    reason = extract_detail(response) or response.reason_phrase or "Client error"
    raise DeliveryError(
        message=f"The collection endpoint rejected the batch: {reason}",
        status_code=status_code,
    )

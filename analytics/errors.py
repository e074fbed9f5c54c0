from typing import Optional


class AnalyticsError(Exception):
    """
    Base error for the analytics client.

    Args:
        message (str): The error message.
    """
    def __init__(self, message: str = "An error occurred in the analytics client."):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(AnalyticsError):
    """
    Error raised when the client is constructed with invalid settings.

    Args:
        message (str): The error message template.
        reason (Optional[str]): The reason for the error.
    """
    def __init__(self, message: str = "Invalid analytics configuration.",
                 reason: Optional[str] = None):
        self.message = message
        if reason:
            self.message += f"\nDetails: {reason}"
        super().__init__(self.message)


class AlreadyInitializedError(ConfigurationError):
    """
    Error raised when a dispatcher is initialized more than once.
    """
    def __init__(self, message: str = "The dispatcher has already been initialized."):
        super().__init__(message)


class NotInitializedError(ConfigurationError):
    """
    Error raised when records are submitted to a dispatcher that was never initialized.
    """
    def __init__(self, message: str = "The dispatcher must be initialized before processing records."):
        super().__init__(message)


class ValidationError(AnalyticsError):
    """
    Error raised when a malformed record is submitted.

    Args:
        message (str): The error message.
        reason (Optional[str]): Details about the failed validation.
    """
    def __init__(self, message: str = "Invalid analytics record.",
                 reason: Optional[str] = None):
        self.message = message
        if reason:
            self.message += f"\nDetails: {reason}"
        super().__init__(self.message)


class ShuttingDownError(AnalyticsError):
    """
    Error raised when records are submitted after shutdown has begun.
    """
    def __init__(self, message: str = "The analytics client is shutting down and no longer accepts records."):
        super().__init__(message)


class DeliveryError(AnalyticsError):
    """
    Error raised when a batch could not be delivered.

    Args:
        message (str): The error message.
        status_code (Optional[int]): The HTTP status code, when one was received.
    """
    def __init__(self, message: str = "Unable to deliver the batch to the collection endpoint.",
                 status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NetworkConnectionError(DeliveryError):
    """
    Error raised when the collection endpoint cannot be reached.
    """
    def __init__(self, message: str = "Network connection error: Unable to reach the collection endpoint.\n"
                                      "If you're behind a proxy or firewall, ensure the endpoint is reachable."):
        super().__init__(message)


class RequestTimeoutError(DeliveryError):
    """
    Error raised when a delivery request times out.
    """
    def __init__(self, message: str = "Request timed out: The collection endpoint did not respond in time."):
        super().__init__(message)


class TooManyRequestsError(DeliveryError):
    """
    Error raised when the collection endpoint is rate limiting the client.

    Args:
        reason (Optional[str]): The reason for the error.
    """
    def __init__(self, reason: Optional[str] = None,
                 message: str = "Rate limit exceeded: Too many requests sent to the collection endpoint."):
        if reason:
            message += f"\nDetails: {reason}"
        super().__init__(message, status_code=429)


class ServerError(DeliveryError):
    """
    Error raised when the collection endpoint fails with a server error.

    Args:
        reason (Optional[str]): The reason for the error.
        status_code (Optional[int]): The HTTP status code.
    """
    def __init__(self, reason: Optional[str] = None, status_code: Optional[int] = None,
                 message: str = "Server error: The collection endpoint failed to process the batch."):
        if reason:
            message += f"\nDetails: {reason}"
        super().__init__(message, status_code=status_code)


class InvalidCredentialError(DeliveryError):
    """
    Error raised when the collection endpoint rejects the secret.

    Args:
        reason (Optional[str]): The reason for the error.
        status_code (Optional[int]): The HTTP status code.
    """
    def __init__(self, reason: Optional[str] = None, status_code: Optional[int] = None,
                 message: str = "Authentication failed: The secret is invalid or has been revoked."):
        if reason:
            message += f"\nDetails: {reason}"
        super().__init__(message, status_code=status_code)

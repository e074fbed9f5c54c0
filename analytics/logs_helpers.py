import functools
import logging
import time
from typing import Any, Collection

REDACTED = "***"

# Keyword arguments whose values never reach the logs
SENSITIVE_ARGUMENTS = frozenset({"secret", "password", "token"})

MAX_VALUE_LENGTH = 120


def short_repr(value: Any, limit: int = MAX_VALUE_LENGTH) -> str:
    """
    repr() of `value`, cut to `limit` characters.
    """
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def log_call(
    *,
    show_args: bool = True,
    show_result: bool = False,
    redact: Collection[str] = SENSITIVE_ARGUMENTS,
):
    """
    Log entry, exit and duration of the decorated callable at DEBUG level.

    Failures are logged at ERROR level and re-raised.

    Args:
        show_args: Log the call arguments (default: True)
        show_result: Log the return value (default: False)
        redact: Keyword argument names whose values are masked
    """

    def decorator(func):
        logger = logging.getLogger(func.__module__)
        name = func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            debug = logger.isEnabledFor(logging.DEBUG)

            if debug:
                if show_args:
                    parts = [short_repr(a) for a in args]
                    parts += [
                        f"{k}={REDACTED if k in redact else short_repr(v)}"
                        for k, v in kwargs.items()
                    ]
                    logger.debug("-> %s(%s)", name, ", ".join(parts))
                else:
                    logger.debug("-> %s", name)

            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error("✗ %s failed: %s", name, e)
                raise

            if debug:
                elapsed = time.monotonic() - started
                if show_result:
                    logger.debug(
                        "<- %s => %s (%.3fs)", name, short_repr(result), elapsed
                    )
                else:
                    logger.debug("<- %s (%.3fs)", name, elapsed)

            return result

        return wrapper

    return decorator

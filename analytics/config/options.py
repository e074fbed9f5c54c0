import configparser
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from analytics.constants import (
    CONFIG,
    DEFAULT_ENDPOINT,
    DEFAULT_FLUSH_AFTER,
    DEFAULT_FLUSH_AT,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
    ENV_PREFIX,
    OPTIONS_SECTION_NAME,
)
from analytics.errors import ConfigurationError
from .log_codes import (
    OPTIONS_CONFIG_MISSING_SECTION,
    OPTIONS_ENV_INVALID,
    OPTIONS_INVALID,
    OPTIONS_RESOLVED,
)

logger = logging.getLogger(__name__)


class Options(BaseModel):
    """
    Batching and delivery settings for a client.

    `flush_at` is the record count that seals a batch, `flush_after` the
    number of seconds after which pending records are sealed regardless of
    count, and `max_batch_size` the hard cap on records per batch.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    flush_at: int = Field(default=DEFAULT_FLUSH_AT, ge=1)
    flush_after: float = Field(default=DEFAULT_FLUSH_AFTER, gt=0)
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=1)
    endpoint: str = Field(default=DEFAULT_ENDPOINT, min_length=1)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    shutdown_timeout: float = Field(default=DEFAULT_SHUTDOWN_TIMEOUT, ge=0)

    @classmethod
    def create(cls, **values: Any) -> "Options":
        """
        Build options, turning validation failures into ConfigurationError.
        """
        try:
            return cls(**values)
        except PydanticValidationError as e:
            logger.error(OPTIONS_INVALID, extra={"errors": e.errors()})
            raise ConfigurationError(
                message="Invalid analytics options.", reason=str(e)
            ) from e


def _options_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Read ANALYTICS_<FIELD> environment variables.

    Only fields declared on Options are looked up; values are passed through
    as strings and coerced by the model.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    for name in Options.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if not raw.strip():
            logger.warning(OPTIONS_ENV_INVALID, extra={"option": name})
            continue
        values[name] = raw.strip()

    return values


def _options_from_config_ini(config_path: Path) -> Dict[str, Any]:
    """
    Read the [analytics] section of the config.ini file.

    Args:
        config_path (Path): The path to the config.ini file.

    Returns:
        Dict[str, Any]: The raw option values found in the file.
    """
    config = configparser.ConfigParser()
    config_files = config.read(filenames=[config_path])

    if not config_files or not config.has_section(OPTIONS_SECTION_NAME):
        if config_files:
            logger.debug(
                OPTIONS_CONFIG_MISSING_SECTION, extra={"config_path": str(config_path)}
            )
        return {}

    section = config[OPTIONS_SECTION_NAME]
    return {
        name: section.get(name)
        for name in Options.model_fields
        if section.get(name, None) is not None
    }


def get_options(
    config_path: Path = CONFIG,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> Options:
    """
    Resolve the effective client options.

    Resolution order per option (first non-None wins):
      1. Keyword overrides
      2. ANALYTICS_* environment variables
      3. [analytics] section of config.ini
      4. Defaults declared on Options

    Raises:
        ConfigurationError: If an override names an unknown option or any
            resolved value is invalid.
    """
    unknown = set(overrides) - set(Options.model_fields)
    if unknown:
        raise ConfigurationError(
            message="Unknown analytics options.", reason=", ".join(sorted(unknown))
        )

    sources: Dict[str, Callable[[], Dict[str, Any]]] = {
        "config": lambda: _options_from_config_ini(config_path=config_path),
        "env": lambda: _options_from_env(environ),
        "arguments": lambda: {k: v for k, v in overrides.items() if v is not None},
    }

    values: Dict[str, Any] = {}
    resolved_from: Dict[str, str] = {}

    # Lowest precedence first, later sources overwrite
    for source_name, source_func in sources.items():
        for name, value in source_func().items():
            values[name] = value
            resolved_from[name] = source_name

    options = Options.create(**values)
    logger.info(
        OPTIONS_RESOLVED,
        extra={"config_path": str(config_path), "sources": resolved_from},
    )
    return options

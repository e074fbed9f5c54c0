# -*- coding: utf-8 -*-
from pathlib import Path

DIR_NAME = ".analytics"


def get_user_dir() -> Path:
    """
    Get the user directory for the analytics configuration.

    Returns:
        Path: The user directory path.
    """
    path = Path("~", DIR_NAME).expanduser()
    return path


USER_CONFIG_DIR = get_user_dir()

CONFIG_FILE_NAME = "config.ini"
CONFIG = USER_CONFIG_DIR / CONFIG_FILE_NAME

OPTIONS_SECTION_NAME = "analytics"
ENV_PREFIX = "ANALYTICS_"

DEFAULT_ENDPOINT = "https://api.segment.io/v1/import"

DEFAULT_FLUSH_AT = 20
DEFAULT_FLUSH_AFTER = 10.0
DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_SHUTDOWN_TIMEOUT = 5.0

# Seal reasons
SEAL_REASON_TRIGGER = "trigger"
SEAL_REASON_MANUAL = "manual"
SEAL_REASON_MAX_BATCH_SIZE = "max_batch_size"
SEAL_REASON_SHUTDOWN = "shutdown"

"""
Library identity sent along with every request.
"""

import functools
import logging
import platform
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Dict

LOG = logging.getLogger(__name__)

DISTRIBUTION_NAME = "analytics-batch"
LIBRARY_NAME = "analytics-python"
VERSION_FILE = Path(__file__).with_name("VERSION")

UNKNOWN = "unknown"

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "arm_64",
    "aarch64": "arm_64",
    "i386": "x86",
    "i686": "x86",
}


@functools.lru_cache(maxsize=None)
def get_version() -> str:
    """
    Version of the library.

    The installed distribution wins; a source checkout falls back to the
    bundled VERSION file.
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        LOG.debug("%s is not installed, reading %s", DISTRIBUTION_NAME, VERSION_FILE)

    try:
        return VERSION_FILE.read_text(encoding="utf8").strip() or UNKNOWN
    except OSError:
        LOG.debug("Unable to read %s", VERSION_FILE)
        return UNKNOWN


def get_platform() -> str:
    machine = platform.machine()
    arch = _ARCH_ALIASES.get(machine.lower(), machine or UNKNOWN)
    return f"{platform.system() or UNKNOWN} {arch}"


def get_user_agent() -> str:
    """
    e.g. analytics-python/0.4.0 (Linux x86_64; CPython/3.12.1)
    """
    runtime = f"{platform.python_implementation()}/{platform.python_version()}"
    return f"{LIBRARY_NAME}/{get_version()} ({get_platform()}; {runtime})"


def get_meta_http_headers() -> Dict[str, str]:
    return {
        "User-Agent": get_user_agent(),
        "X-Analytics-Library": LIBRARY_NAME,
        "X-Analytics-Library-Version": get_version(),
    }

import configparser
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, NamedTuple, Optional

from analytics.constants import CONFIG, ENV_PREFIX
from .log_codes import (
    PROXY_CONFIG_MISSING_SECTION,
    PROXY_HOST_EMPTY,
    PROXY_NOT_DEFINED,
    PROXY_PORT_INVALID,
    PROXY_PROTOCOL_INVALID,
    PROXY_RESOLVED,
)

logger = logging.getLogger(__name__)


DEFAULT_PROXY_PORT: int = 80
DEFAULT_PROXY_SCHEME: str = "http"
PROXY_ALLOWED_PROTOCOLS = ("http", "https")

PROXY_SECTION_NAME = "proxy"
PROXY_PROTOCOL_KEY = "protocol"
PROXY_HOST_KEY = "host"
PROXY_PORT_KEY = "port"

PROXY_ENV_PREFIX = f"{ENV_PREFIX}PROXY_"


class ProxyConfig(NamedTuple):
    """
    Where the HTTP transport tunnels its requests.
    """

    scheme: str
    host: str
    port: int

    def as_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def as_dict(self) -> Dict[str, str]:
        return {
            PROXY_PROTOCOL_KEY: self.scheme,
            PROXY_HOST_KEY: self.host,
            PROXY_PORT_KEY: str(self.port),
        }


def _parse_port(raw: Optional[str], source: str) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        port = int(raw)
    except ValueError:
        port = 0
    if not 0 < port < 65536:
        logger.error(PROXY_PORT_INVALID, extra={"port": raw, "source": source})
        raise ValueError(f"Invalid proxy port {raw!r} in {source}.")
    return port


def _build_proxy_config(
    host: Optional[str],
    port: Optional[int],
    scheme: Optional[str],
    source: str = "unknown",
) -> Optional[ProxyConfig]:
    """
    Turn raw proxy values into a ProxyConfig.

    Returns None when nothing was provided. Raises ValueError when a port
    or protocol was given without a host, or the protocol is unsupported.
    """
    if not host or not host.strip():
        if port is not None or scheme is not None:
            logger.error(PROXY_HOST_EMPTY, extra={"source": source})
            raise ValueError(
                f"Proxy host must be provided when using other proxy options in {source}."
            )
        return None

    scheme = (scheme or DEFAULT_PROXY_SCHEME).lower()
    if scheme not in PROXY_ALLOWED_PROTOCOLS:
        logger.error(
            PROXY_PROTOCOL_INVALID, extra={"protocol": scheme, "source": source}
        )
        raise ValueError(f"Invalid proxy protocol: {scheme!r}")

    return ProxyConfig(
        scheme=scheme, host=host.strip(), port=port or DEFAULT_PROXY_PORT
    )


def _proxy_from_env(environ: Mapping[str, str]) -> Optional[ProxyConfig]:
    """
    Read ANALYTICS_PROXY_HOST, ANALYTICS_PROXY_PORT and
    ANALYTICS_PROXY_PROTOCOL.
    """
    return _build_proxy_config(
        host=environ.get(f"{PROXY_ENV_PREFIX}HOST"),
        port=_parse_port(environ.get(f"{PROXY_ENV_PREFIX}PORT"), "environment"),
        scheme=environ.get(f"{PROXY_ENV_PREFIX}PROTOCOL"),
        source="environment",
    )


def _proxy_from_config_ini(config_path: Path) -> Optional[ProxyConfig]:
    """
    Read the [proxy] section of config.ini.

    Args:
        config_path (Path): The path to the config.ini file.

    Returns:
        Optional[ProxyConfig]: The proxy configuration, or None if absent.
    """
    parser = configparser.ConfigParser()
    if not parser.read(filenames=[config_path]):
        return None

    if not parser.has_section(PROXY_SECTION_NAME):
        logger.debug(
            PROXY_CONFIG_MISSING_SECTION, extra={"config_path": str(config_path)}
        )
        return None

    section = parser[PROXY_SECTION_NAME]
    return _build_proxy_config(
        host=section.get(PROXY_HOST_KEY),
        port=_parse_port(section.get(PROXY_PORT_KEY), "config"),
        scheme=section.get(PROXY_PROTOCOL_KEY),
        source="config",
    )


def get_proxy_config(
    host: Optional[str] = None,
    port: Optional[int] = None,
    scheme: Optional[str] = None,
    config_path: Path = CONFIG,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[ProxyConfig]:
    """
    Resolve the proxy the HTTP transport should go through.

    The first source that defines a host wins:
      1. Explicit arguments
      2. ANALYTICS_PROXY_* environment variables
      3. config.ini file
      4. No proxy (returns None)

    Raises:
        ValueError: If the winning source is invalid.
    """
    if environ is None:
        environ = os.environ

    sources = (
        (
            "arguments",
            lambda: _build_proxy_config(host, port, scheme, source="arguments"),
        ),
        ("environment", lambda: _proxy_from_env(environ)),
        ("config", lambda: _proxy_from_config_ini(config_path)),
    )

    for source_name, resolve in sources:
        proxy = resolve()
        if proxy is None:
            continue

        extra = {"source": source_name, **proxy.as_dict()}
        if source_name == "config":
            extra["config_path"] = str(config_path)
        logger.info(PROXY_RESOLVED, extra=extra)
        return proxy

    logger.info(PROXY_NOT_DEFINED, extra={"config_path": str(config_path)})
    return None

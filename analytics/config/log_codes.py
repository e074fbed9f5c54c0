"""
Log codes for configuration and dispatch operations.
"""

CONFIG = "config"

# Client Options
OPTIONS = f"{CONFIG}.options"
OPTIONS_RESOLVED = f"{OPTIONS}.resolved"
OPTIONS_INVALID = f"{OPTIONS}.invalid"
OPTIONS_ENV_INVALID = f"{OPTIONS}.env_invalid"
OPTIONS_CONFIG_MISSING_SECTION = f"{OPTIONS}.missing_section"

# Proxy Configuration
PROXY = f"{CONFIG}.proxy"
PROXY_RESOLVED = f"{PROXY}.resolved"
PROXY_NOT_DEFINED = f"{PROXY}.not_defined"
PROXY_HOST_EMPTY = f"{PROXY}.host_empty"
PROXY_PROTOCOL_INVALID = f"{PROXY}.invalid_protocol"
PROXY_PORT_INVALID = f"{PROXY}.invalid_port"
PROXY_CONFIG_MISSING_SECTION = f"{PROXY}.missing_section"

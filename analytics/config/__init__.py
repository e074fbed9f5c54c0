from .options import Options, get_options
from .proxy import ProxyConfig, get_proxy_config

__all__ = [
    "Options",
    "get_options",
    "ProxyConfig",
    "get_proxy_config",
]

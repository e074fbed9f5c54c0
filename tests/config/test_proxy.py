import configparser
from pathlib import Path
from typing import Dict, Optional

import pytest

from analytics.config.proxy import (
    DEFAULT_PROXY_PORT,
    DEFAULT_PROXY_SCHEME,
    ProxyConfig,
    _build_proxy_config,
    _parse_port,
    _proxy_from_config_ini,
    _proxy_from_env,
    get_proxy_config,
)


@pytest.fixture
def config_file_factory(tmp_path: Path):
    """
    Factory fixture to create config.ini files with custom content.
    """

    def _create_config(proxy_section: Optional[Dict[str, str]] = None) -> Path:
        config = configparser.ConfigParser()
        if proxy_section is not None:
            config["proxy"] = proxy_section

        config_path = tmp_path / "config.ini"
        with open(config_path, "w") as f:
            config.write(f)
        return config_path

    return _create_config


class TestProxyConfig:
    def test_as_url_formats_correctly(self) -> None:
        proxy = ProxyConfig(scheme="https", host="proxy.example.com", port=8080)
        assert proxy.as_url() == "https://proxy.example.com:8080"

    def test_as_dict_returns_expected_keys(self) -> None:
        proxy = ProxyConfig(scheme="http", host="localhost", port=3128)
        assert proxy.as_dict() == {
            "protocol": "http",
            "host": "localhost",
            "port": "3128",
        }


class TestBuildProxyConfig:
    def test_applies_defaults(self) -> None:
        proxy = _build_proxy_config(host=" proxy.local ", port=None, scheme=None)

        assert proxy == ProxyConfig(
            scheme=DEFAULT_PROXY_SCHEME, host="proxy.local", port=DEFAULT_PROXY_PORT
        )

    def test_normalizes_scheme_case(self) -> None:
        proxy = _build_proxy_config(host="proxy.local", port=8443, scheme="HTTPS")
        assert proxy.scheme == "https"

    def test_nothing_provided_returns_none(self) -> None:
        assert _build_proxy_config(host=None, port=None, scheme=None) is None

    @pytest.mark.parametrize("host", [None, "", "   "])
    def test_options_without_host_raise(self, host) -> None:
        with pytest.raises(ValueError, match="Proxy host must be provided"):
            _build_proxy_config(host=host, port=8080, scheme=None)

    def test_invalid_protocol_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid proxy protocol"):
            _build_proxy_config(host="proxy.local", port=None, scheme="socks5")


class TestProxyFromConfigIni:
    def test_reads_proxy_section(self, config_file_factory) -> None:
        path = config_file_factory(
            {"host": "proxy.corp.com", "port": "9090", "protocol": "https"}
        )

        assert _proxy_from_config_ini(path) == ProxyConfig(
            scheme="https", host="proxy.corp.com", port=9090
        )

    def test_missing_section_returns_none(self, config_file_factory) -> None:
        assert _proxy_from_config_ini(config_file_factory(None)) is None

    def test_missing_file_returns_none(self, tmp_path) -> None:
        assert _proxy_from_config_ini(tmp_path / "nope.ini") is None


class TestGetProxyConfig:
    def test_arguments_win_over_config(self, config_file_factory) -> None:
        path = config_file_factory({"host": "from-config", "port": "1"})

        proxy = get_proxy_config(
            host="from-args", port=2, config_path=path, environ={}
        )

        assert proxy.host == "from-args"
        assert proxy.port == 2

    def test_falls_back_to_config(self, config_file_factory) -> None:
        path = config_file_factory({"host": "from-config"})

        assert get_proxy_config(config_path=path, environ={}).host == "from-config"

    def test_no_proxy_anywhere(self, tmp_path) -> None:
        assert get_proxy_config(config_path=tmp_path / "missing.ini", environ={}) is None

    def test_environment_wins_over_config(self, config_file_factory) -> None:
        path = config_file_factory({"host": "from-config"})
        environ = {"ANALYTICS_PROXY_HOST": "from-env", "ANALYTICS_PROXY_PORT": "3128"}

        proxy = get_proxy_config(config_path=path, environ=environ)

        assert proxy == ProxyConfig(scheme="http", host="from-env", port=3128)

    def test_invalid_config_raises(self, config_file_factory) -> None:
        path = config_file_factory({"port": "8080"})

        with pytest.raises(ValueError, match="Proxy host must be provided"):
            get_proxy_config(config_path=path, environ={})


class TestProxyFromEnv:
    def test_empty_environment_returns_none(self) -> None:
        assert _proxy_from_env({}) is None

    def test_reads_all_variables(self) -> None:
        environ = {
            "ANALYTICS_PROXY_HOST": "proxy.env",
            "ANALYTICS_PROXY_PORT": "8443",
            "ANALYTICS_PROXY_PROTOCOL": "https",
        }

        assert _proxy_from_env(environ) == ProxyConfig(
            scheme="https", host="proxy.env", port=8443
        )


class TestParsePort:
    def test_blank_is_none(self) -> None:
        assert _parse_port("  ", "config") is None

    @pytest.mark.parametrize("raw", ["abc", "0", "70000"])
    def test_invalid_values_raise(self, raw) -> None:
        with pytest.raises(ValueError, match="Invalid proxy port"):
            _parse_port(raw, "config")

"""
Unit tests for configuration and the command line.
"""

import logging

import pytest

from originserver.__main__ import build_parser, load_config
from originserver.config import ServerConfig


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 4221
        assert config.read_timeout == 10.0
        assert config.request_line_limit == 1024
        assert config.header_limit == 8192
        assert config.body_limit == 8192
        assert config.directory is None
        assert config.gzip_level == 1
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_READ_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_DIRECTORY", "/srv")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.read_timeout == 2.5
        assert config.directory == "/srv"
        assert config.log_level_value == logging.DEBUG

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "http")

        with pytest.raises(ValueError):
            ServerConfig.from_env()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"read_timeout": 0},
        {"header_limit": 0},
        {"buffer_size": 10},
        {"gzip_level": 10},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestCommandLine:
    """Tests for argument parsing."""

    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")

        args = build_parser().parse_args(["--port", "5000", "--directory", "/tmp/x", "-l", "debug"])
        config = load_config(args)

        assert config.port == 5000
        assert config.host == "0.0.0.0"
        assert config.directory == "/tmp/x"
        assert config.log_level == "DEBUG"

    def test_defaults(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_READ_TIMEOUT", "HTTP_DIRECTORY", "HTTP_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = load_config(build_parser().parse_args([]))

        assert config == ServerConfig()

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            load_config(build_parser().parse_args(["--read-timeout", "-1"]))

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "originserver" in capsys.readouterr().out

"""Tests for pi.share.config."""

from __future__ import annotations

import pytest

from pi.share.config import Config, InvalidEndpointError, parse_port, validate_endpoint


class TestParsePort:
    @pytest.mark.parametrize("value", [1, 80, 8080, 65535, "1", " 8080 ", "65535"])
    def test_accepts_valid_ports(self, value):
        assert parse_port(value) == int(str(value).strip())

    @pytest.mark.parametrize(
        "value", [0, -1, 65536, 100000, "0", "65536", "", "  ", "abc", "80.5", None, 8080.0, True]
    )
    def test_rejects_everything_else(self, value):
        assert parse_port(value) is None


class TestValidateEndpoint:
    def test_trims_hostname(self):
        assert validate_endpoint("  0.0.0.0 ", "8080") == ("0.0.0.0", 8080)

    def test_empty_hostname(self):
        with pytest.raises(InvalidEndpointError):
            validate_endpoint("   ", 8080)

    def test_none_hostname(self):
        with pytest.raises(InvalidEndpointError):
            validate_endpoint(None, 8080)

    def test_bad_port(self):
        with pytest.raises(InvalidEndpointError):
            validate_endpoint("localhost", "70000")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_endpoint("localhost", "nope")


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.host == "127.0.0.1"
        assert config.port == 8765
        assert config.log_capacity == 200
        assert config.static_dir.endswith("static")

    def test_db_path_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PI_SHARE_DB", str(tmp_path / "x.db"))
        assert Config().db_path == str(tmp_path / "x.db")

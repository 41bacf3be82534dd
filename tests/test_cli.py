"""
Tests for the command line entry point.

Run:
    pytest tests/test_cli.py -v
"""

import os

import pytest

from ecowitt_relay import cli
from ecowitt_relay.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """No RELAY_* variables or .env file leak into these tests."""
    for key in [k for k in os.environ if k.startswith("RELAY_")]:
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{}")
    return str(path)


class TestParseSettings:

    def test_go_style_flags(self):
        settings = cli.parse_settings(["-debug", "-config", "relay.json", "-ttl", "1h30m"])

        assert settings.debug is True
        assert settings.config_path == "relay.json"
        assert settings.ttl == 5400
        assert settings.restart_policy == "activity"

    def test_double_dash_flags(self):
        settings = cli.parse_settings(["--restart-policy", "fixed", "--listen", ":9100", "--ttl", "30s"])

        assert settings.restart_policy == "fixed"
        assert settings.listen == ":9100"
        assert settings.ttl == 30

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("RELAY_TTL", "5m")
        monkeypatch.setenv("RELAY_LISTEN", ":7000")

        settings = cli.parse_settings(["-ttl", "10s"])

        assert settings.ttl == 10
        assert settings.listen == ":7000"

    @pytest.mark.parametrize("argv", [["-ttl", "-1s"], ["--ttl", "-5m"], ["-ttl=-1s"]])
    def test_negative_ttl_disables_watchdog(self, argv):
        settings = cli.parse_settings(argv + ["-debug"])

        assert settings.ttl < 0
        assert settings.watchdog_enabled is False
        assert settings.debug is True

    def test_positional_arguments_are_rejected(self):
        with pytest.raises(ConfigError):
            cli.parse_settings(["extra"])

    def test_bad_duration_exits(self):
        with pytest.raises(SystemExit):
            cli.parse_settings(["-ttl", "soon"])


class TestMain:

    def test_missing_config_fails(self, tmp_path):
        assert cli.main(["-config", str(tmp_path / "absent.json")]) == 1

    def test_positional_argument_fails(self, config_file):
        assert cli.main(["-config", config_file, "extra"]) == 1

    def test_starts_server(self, monkeypatch, config_file):
        calls = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

        assert cli.main(["-config", config_file, "-listen", "127.0.0.1:9100", "-ttl", "10m"]) == 0

        app, kwargs = calls[0]
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100
        assert app.state.restart_policy.ttl == 600

"""
Relay Configuration
===================

Settings come from three places, later ones winning:

1. Built-in defaults
2. Environment variables (a .env file is loaded first, see cli.py)
3. Command line flags

Environment Variables:
    RELAY_DEBUG: Show debug logs (default: false)
    RELAY_CONFIG_PATH: JSON config file (default: /config.json)
    RELAY_TTL: Watchdog TTL as a duration, e.g. 10m (default: no restart)
    RELAY_RESTART_POLICY: activity | fixed (default: activity)
    RELAY_LISTEN: Listen address (default: :8080)
    RELAY_SOURCE_IP_HEADER: Reverse-proxy header holding the client IP (default: X-Real-IP)
    RELAY_TRACK_SOURCE_IP: Add the source_ip label and report counter (default: true)
    RELAY_PROCESS_METRICS: Export process_* metrics (default: true)

The JSON config file is reserved for future options. It must exist and hold
a JSON object; unknown keys are ignored.
"""

import json
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ecowitt_relay.errors import ConfigError
from ecowitt_relay.utils.validation import parse_duration, parse_listen_address


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class Settings(BaseModel):
    """Runtime settings for one relay process."""

    debug: bool = Field(default=False, description="Show debug logs")
    config_path: str = Field(default="/config.json", description="JSON config file")
    ttl: Optional[float] = Field(default=None, description="Watchdog TTL in seconds, None for no restart")
    restart_policy: str = Field(default="activity", description="activity | fixed")
    listen: str = Field(default=":8080", description="host:port to listen on")
    source_ip_header: str = Field(default="X-Real-IP", description="Header holding the client IP")
    track_source_ip: bool = Field(default=True, description="Label series with the source IP")
    process_metrics: bool = Field(default=True, description="Export process metrics")

    @property
    def watchdog_enabled(self) -> bool:
        return self.ttl is not None and self.ttl > 0

    def bind_address(self) -> tuple[str, int]:
        """(host, port) for the HTTP server."""
        try:
            return parse_listen_address(self.listen)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values = {}

        for key, attr in (
            ("RELAY_DEBUG", "debug"),
            ("RELAY_TRACK_SOURCE_IP", "track_source_ip"),
            ("RELAY_PROCESS_METRICS", "process_metrics"),
        ):
            if key in env:
                values[attr] = _parse_bool(key, env[key])

        for key, attr in (
            ("RELAY_CONFIG_PATH", "config_path"),
            ("RELAY_RESTART_POLICY", "restart_policy"),
            ("RELAY_LISTEN", "listen"),
            ("RELAY_SOURCE_IP_HEADER", "source_ip_header"),
        ):
            if env.get(key):
                values[attr] = env[key]

        if env.get("RELAY_TTL"):
            try:
                values["ttl"] = parse_duration(env["RELAY_TTL"])
            except ValueError as e:
                raise ConfigError(f"RELAY_TTL: {e}") from e

        return cls(**values)


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key}: expected a boolean, got {raw!r}")


class FileConfig(BaseModel):
    """Contents of the JSON config file. No options are defined yet."""

    model_config = ConfigDict(extra="ignore")


def load_config_file(path: str) -> FileConfig:
    """
    Load and validate the JSON config file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a JSON object
    """
    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot open config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"cannot decode config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must hold a JSON object")

    try:
        return FileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e

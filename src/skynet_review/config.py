"""Global configuration — XDG config file, env vars, defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from skynet_review.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "http://localhost:5000"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "skynet-review"
    return Path.home() / ".config" / "skynet-review"


@dataclass
class ReviewConfig:
    """Application-wide configuration."""

    gateway_url: str = DEFAULT_GATEWAY_URL
    api_token: str | None = None
    include_ext: tuple[str, ...] = ()
    timeout: float = 300.0  # analysis runs for minutes
    connect_timeout: float = 10.0
    config_dir: Path = field(default_factory=_default_config_dir)

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.yaml"

    @classmethod
    def load(cls) -> ReviewConfig:
        """Load config from the YAML file, then apply environment overrides."""
        config = cls()

        if config.config_file.is_file():
            config._apply_file(config.config_file)

        env_url = os.environ.get("SKYNET_GATEWAY_URL")
        if env_url:
            config.gateway_url = env_url

        # Credentials only ever come from the environment
        env_token = os.environ.get("SKYNET_API_TOKEN")
        if env_token:
            config.api_token = env_token

        env_timeout = os.environ.get("SKYNET_TIMEOUT")
        if env_timeout:
            config.timeout = _parse_seconds("SKYNET_TIMEOUT", env_timeout)

        return config

    def _apply_file(self, path: Path) -> None:
        logger.debug("Reading config file %s", path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Could not read config file {path}") from exc

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError("Config YAML must be a mapping")

        url = data.get("gateway_url")
        if url is not None:
            if not isinstance(url, str):
                raise ConfigError("gateway_url must be a string")
            self.gateway_url = url

        include = data.get("include_ext")
        if include is not None:
            self.include_ext = _parse_extensions(include)

        if "timeout" in data:
            self.timeout = _parse_seconds("timeout", data["timeout"])
        if "connect_timeout" in data:
            self.connect_timeout = _parse_seconds("connect_timeout", data["connect_timeout"])


def _parse_seconds(name: str, value: object) -> float:
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number of seconds") from exc
    if seconds <= 0:
        raise ConfigError(f"{name} must be positive")
    return seconds


def _parse_extensions(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        items: list[object] = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        raise ConfigError("include_ext must be a list or comma-separated string")
    return tuple(str(e).strip() for e in items if str(e).strip())

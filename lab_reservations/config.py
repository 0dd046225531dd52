from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .client import DEFAULT_API_URL, DEFAULT_TIMEOUT

CONFIG_PATH_ENV = "LAB_RESERVATIONS_CONFIG"
ENV_PREFIX = "LAB_RESERVATIONS_"
DEFAULT_CONFIG_FILE = "lab_reservations.yaml"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class AppConfig:
    api_url: str = DEFAULT_API_URL
    timezone: str = "UTC"
    request_timeout: float = DEFAULT_TIMEOUT
    secret_key: str | None = None
    log_level: str = "INFO"
    max_sessions: int = 256


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
        raise ConfigError(f"Failed to read config file: {path}") from error

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Top-level YAML in {path} is not a mapping")
    return payload


def _coerce(raw: Mapping[str, Any]) -> dict[str, Any]:
    known = {item.name for item in fields(AppConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for name, value in raw.items():
        if value is None:
            continue
        if name == "request_timeout":
            try:
                values[name] = float(value)
            except (TypeError, ValueError) as error:
                raise ConfigError(f"request_timeout must be a number, got {value!r}") from error
        elif name == "max_sessions":
            try:
                values[name] = int(value)
            except (TypeError, ValueError) as error:
                raise ConfigError(f"max_sessions must be an integer, got {value!r}") from error
        else:
            values[name] = str(value)
    return values


def _validate(config: AppConfig) -> AppConfig:
    if config.request_timeout <= 0:
        raise ConfigError("request_timeout must be greater than zero")
    if config.max_sessions <= 0:
        raise ConfigError("max_sessions must be greater than zero")
    if config.timezone.upper() != "UTC":
        try:
            ZoneInfo(config.timezone)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise ConfigError(f"Unknown timezone: {config.timezone}") from error
    if not config.api_url.strip():
        raise ConfigError("api_url must not be empty")
    return config


def load_config(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build the config from defaults, an optional YAML file and the environment.

    Environment variables (``LAB_RESERVATIONS_API_URL`` and friends) win
    over the file.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_FILE)

    config = replace(AppConfig(), **_coerce(_read_yaml_mapping(config_path)))

    overrides = {
        item.name: env[ENV_PREFIX + item.name.upper()]
        for item in fields(AppConfig)
        if ENV_PREFIX + item.name.upper() in env
    }
    if overrides:
        config = replace(config, **_coerce(overrides))
    return _validate(config)

"""Runtime settings for the users service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .messages import normalize_locale
from .storage import resolve_data_path

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "INFO"
API_PREFIX = "/v1"

_YAML_KEYS = {"host", "port", "data_file", "locale", "log_level"}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one service instance."""

    host: str
    port: int
    data_file: Path
    locale: str = "en"
    log_level: str = DEFAULT_LOG_LEVEL


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port value: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load optional settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping of settings")

    unknown = set(raw) - _YAML_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    data = dict(raw)
    data_file = data.get("data_file")
    if data_file:
        raw_path = Path(str(data_file)).expanduser()
        if not raw_path.is_absolute():
            raw_path = config_path.parent / raw_path
        data["data_file"] = str(raw_path)
    return data


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve settings from the environment, falling back to the YAML file.

    Environment variables always win over values from ``USERS_API_CONFIG``.
    """

    env = os.environ if environ is None else environ

    file_values: Dict[str, Any] = {}
    config_path = env.get("USERS_API_CONFIG")
    if config_path:
        file_values = load_config_file(Path(config_path).expanduser().resolve(strict=False))

    def pick(env_name: str, key: str) -> Optional[Any]:
        value = env.get(env_name)
        if value is not None and value.strip():
            return value.strip()
        return file_values.get(key)

    host = pick("USERS_API_HOST", "host") or DEFAULT_HOST
    port_value = pick("PORT", "port")
    port = _parse_port(port_value) if port_value is not None else DEFAULT_PORT
    data_file = resolve_data_path(pick("USERS_DATA_FILE", "data_file"))
    locale_value = pick("USERS_API_LOCALE", "locale")
    locale = normalize_locale(str(locale_value) if locale_value is not None else None)
    log_level = str(pick("USERS_API_LOG_LEVEL", "log_level") or DEFAULT_LOG_LEVEL).upper()

    return Settings(
        host=str(host),
        port=port,
        data_file=data_file,
        locale=locale,
        log_level=log_level,
    )


__all__ = ["API_PREFIX", "DEFAULT_PORT", "Settings", "load_config_file", "load_settings"]

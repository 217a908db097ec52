from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/navdash/config.json").expanduser()

# Env vars win over the config file; both map onto NavdashConfig fields.
CONFIG_ENV_OVERRIDES = {
    "db_path": "NAVDASH_DB_PATH",
    "api_url": "NAVDASH_API_URL",
    "api_token": "NAVDASH_API_TOKEN",
    "auth_username": "NAVDASH_AUTH_USERNAME",
    "auth_password": "NAVDASH_AUTH_PASSWORD",
    "request_timeout_s": "NAVDASH_REQUEST_TIMEOUT_S",
    "log_level": "NAVDASH_LOG_LEVEL",
}


def get_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path.expanduser()
    return Path(os.getenv("NAVDASH_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    """Parse the JSON config file; a missing or blank file is an empty config."""

    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    text = config_path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid config json in {config_path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"config must be an object: {config_path}")
    return data


def get_env_overrides() -> dict[str, str]:
    return {
        key: os.environ[env_var]
        for key, env_var in CONFIG_ENV_OVERRIDES.items()
        if env_var in os.environ
    }


@dataclass
class NavdashConfig:
    db_path: str | None = None
    # When set, commands talk to a remote dashboard API instead of the local db.
    api_url: str | None = None
    api_token: str | None = None
    # Empty credentials mean the local store does not require a login.
    auth_username: str | None = None
    auth_password: str | None = None
    request_timeout_s: float = 10.0
    log_level: str = "WARNING"

    @property
    def auth_required(self) -> bool:
        return bool(self.auth_username and self.auth_password)


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=3)
        return default


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def load_config(path: Path | None = None) -> NavdashConfig:
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(f"Ignoring config file: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply(NavdashConfig(), data)
    return _apply(cfg, get_env_overrides())


def _apply(cfg: NavdashConfig, data: dict[str, Any]) -> NavdashConfig:
    for key, value in data.items():
        if key not in CONFIG_ENV_OVERRIDES:
            continue
        if key == "request_timeout_s":
            cfg.request_timeout_s = _parse_float(value, cfg.request_timeout_s, key=key)
        elif key == "log_level":
            cfg.log_level = (_optional_str(value) or cfg.log_level).upper()
        else:
            setattr(cfg, key, _optional_str(value))
    return cfg

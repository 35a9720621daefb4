from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .auth_store import DEFAULT_AUTH_FILE
from .portal.client import DEFAULT_BASE_URL
from .util.dates import DEFAULT_ZONE_NAME, load_zone


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config so most users only need `.env`; a YAML file is an optional override.
    """
    return {
        "portal": {
            "base_url": os.getenv("OPAL_BASE_URL", DEFAULT_BASE_URL),
            "timezone": os.getenv("OPAL_TIMEZONE", DEFAULT_ZONE_NAME),
            "timeout_seconds": os.getenv("OPAL_HTTP_TIMEOUT", "30"),
            "user_agent": os.getenv("OPAL_USER_AGENT", ""),
            "debug_dir": os.getenv("OPAL_DEBUG_DIR", "data/debug"),
        },
        "auth": {
            "file_path": os.getenv("OPAL_AUTH_FILE", DEFAULT_AUTH_FILE),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", "data/opal.log"),
        },
    }


class PortalConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    # Every portal timestamp is wall-clock time in this zone.
    timezone: str = DEFAULT_ZONE_NAME
    timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = ""
    # Raw HTML of pages that fail to parse is saved here. Empty disables captures.
    debug_dir: str = "data/debug"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        load_zone(value)  # raises ValueError for unknown zones
        return value

    @model_validator(mode="after")
    def _normalize_base_url(self) -> "PortalConfig":
        base_url = (self.base_url or "").strip().rstrip("/")
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"portal.base_url must be a full URL like {DEFAULT_BASE_URL!r}")
        self.base_url = base_url
        return self


class AuthConfig(BaseModel):
    file_path: str = DEFAULT_AUTH_FILE

    @field_validator("file_path")
    @classmethod
    def _expand_user(cls, value: str) -> str:
        return str(Path(value or DEFAULT_AUTH_FILE).expanduser())


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = "data/opal.log"


class AppConfig(BaseModel):
    portal: PortalConfig = PortalConfig()
    auth: AuthConfig = AuthConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)

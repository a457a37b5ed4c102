"""
Configuration loader for the FormEngine.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class StoreConfig:
    backend: str = "memory"                     # "memory" | "redis"
    redis_url: str = "redis://localhost:6379"


@dataclass
class FormSetConfig:
    prefix: str = "form:"                       # session key = prefix + chat id
    ttl_ms: Optional[int] = None                # None → sessions never expire


@dataclass
class Settings:
    app_name: str = "FormEngine"
    debug: bool = False
    formset: FormSetConfig = field(default_factory=FormSetConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _parse_ttl(value: Any) -> Optional[int]:
    if value is None or value in ("", "inf", "infinite"):
        return None
    return int(value)


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "FORMENGINE_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "formset" in raw:
            fs = raw["formset"] or {}
            settings.formset = FormSetConfig(
                prefix=fs.get("prefix", settings.formset.prefix),
                ttl_ms=_parse_ttl(fs.get("ttl_ms")),
            )

        if "store" in raw:
            st = raw["store"] or {}
            settings.store = StoreConfig(
                backend=st.get("backend", settings.store.backend),
                redis_url=st.get("redis_url", settings.store.redis_url),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None

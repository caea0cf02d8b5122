"""
Configuration management and loading.

Handles gateway settings from YAML files and provider credentials from
environment variables.
"""

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..core.models import MODEL_CONFIGS

CONFIG_PATH_ENV = "SALESGROW_AI_CONFIG"


class StoreBackend(Enum):
    """Where quota counters, cached replies and sessions live."""
    MEMORY = "memory"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class CacheSettings:
    """Response cache limits."""
    ttl_seconds: float = 300.0
    max_size: int = 500

    def __post_init__(self):
        if self.ttl_seconds <= 0:
            raise ValueError("cache.ttl_seconds must be > 0")
        if self.max_size <= 0:
            raise ValueError("cache.max_size must be > 0")


@dataclass(frozen=True)
class GatewaySettings:
    """Defaults applied to every gateway call."""
    default_temperature: float = 0.7
    request_timeout_seconds: float = 60.0

    def __post_init__(self):
        if not 0 <= self.default_temperature <= 2:
            raise ValueError("gateway.default_temperature must be between 0 and 2")
        if self.request_timeout_seconds <= 0:
            raise ValueError("gateway.request_timeout_seconds must be > 0")


@dataclass(frozen=True)
class CoachSettings:
    """Roleplay session limits."""
    default_max_turns: int = 8
    session_max_age_seconds: float = 3600.0
    max_history_messages: int = 40
    default_locale: str = "en"
    default_culture: str = "taiwan"

    def __post_init__(self):
        if self.default_max_turns < 2:
            raise ValueError("coach.default_max_turns must be >= 2")
        if self.session_max_age_seconds <= 0:
            raise ValueError("coach.session_max_age_seconds must be > 0")
        if self.max_history_messages < 2:
            raise ValueError("coach.max_history_messages must be >= 2")


@dataclass(frozen=True)
class StorageSettings:
    """State store and usage ledger locations."""
    backend: StoreBackend = StoreBackend.MEMORY
    db_path: str = "salesgrow_ai.db"
    usage_ledger: bool = False


@dataclass(frozen=True)
class Settings:
    """Complete gateway configuration."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    coach: CoachSettings = field(default_factory=CoachSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    credentials: Mapping[str, str] = field(default_factory=dict, repr=False)

    def api_key(self, env_name: str) -> Optional[str]:
        """Configured credential for ``env_name``; None when missing or empty."""
        return self.credentials.get(env_name) or None


_SECTIONS = {
    "cache": CacheSettings,
    "gateway": GatewaySettings,
    "coach": CoachSettings,
    "storage": StorageSettings,
}


def credential_names() -> set:
    """Environment variables the model registry reads credentials from."""
    return {config.api_key_env for config in MODEL_CONFIGS.values()}


def load_credentials(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect non-empty provider credentials from the environment."""
    environ = os.environ if environ is None else environ
    return {name: environ[name] for name in credential_names() if environ.get(name)}


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load and validate settings.

    Built-in defaults apply when no file is given. The file path comes from
    ``path`` or the ``SALESGROW_AI_CONFIG`` environment variable.

    Args:
        path: Optional path to a YAML settings file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If the settings file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If settings are invalid
    """
    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_PATH_ENV)
    credentials = load_credentials(environ)
    if not path:
        return Settings(credentials=credentials)

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in settings file {path}: {e}")

    if raw_config is None:
        return Settings(credentials=credentials)
    if not isinstance(raw_config, dict):
        raise ValueError("Settings file must contain a mapping")

    unknown_keys = set(raw_config.keys()) - set(_SECTIONS)
    if unknown_keys:
        raise ValueError(f"Unknown settings keys: {unknown_keys}")

    sections = {
        name: _parse_section(name, cls, raw_config.get(name) or {})
        for name, cls in _SECTIONS.items()
    }
    return Settings(credentials=credentials, **sections)


def _parse_section(name: str, cls, data: Any):
    """Build one settings section, rejecting unknown keys and bad types."""
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    allowed = {f.name: f for f in fields(cls)}
    unknown_keys = set(data.keys()) - set(allowed)
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")

    values = {}
    for key, raw in data.items():
        default = allowed[key].default
        values[key] = _coerce(f"{name}.{key}", raw, default)
    return cls(**values)


def _coerce(path: str, raw: Any, default: Any) -> Any:
    if isinstance(default, Enum):
        try:
            return type(default)(str(raw).lower())
        except ValueError:
            valid = [member.value for member in type(default)]
            raise ValueError(f"'{path}' must be one of: {valid}")
    if isinstance(default, bool):
        if not isinstance(raw, bool):
            raise ValueError(f"'{path}' must be a boolean")
        return raw
    if isinstance(default, int):
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"'{path}' must be an integer")
        return raw
    if isinstance(default, float):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"'{path}' must be a number")
        return float(raw)
    if not isinstance(raw, str):
        raise ValueError(f"'{path}' must be a string")
    return raw

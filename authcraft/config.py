"""
Config system - Layered typed configuration.

Merge precedence (later overrides earlier):
1. Dataclass defaults
2. YAML config file
3. .env file (python-dotenv)
4. Environment variables (AUTHCRAFT_* prefix, ``__`` separates nested keys)
5. Manual overrides

Capability options resolve in three layers: registry defaults, then
``capability_defaults`` from this config, then per-entity overrides.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class RecoveryConfig:
    """Password recovery flow settings."""
    identifier_field: str = "email"
    sign_in_path: str = "/session/new"
    after_sign_in_path: str = "/"
    # Unknown identifiers redirect like known ones instead of erroring.
    paranoid: bool = True


@dataclass
class MailConfig:
    """Recovery notification settings."""
    default_from: str = "no-reply@localhost"
    reset_subject: str = "Reset password instructions"
    reset_url: str = "http://localhost:8000/password/edit?reset_password_token={token}"


@dataclass
class AuthcraftConfig:
    """Top-level configuration."""
    capability_defaults: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)
    mail: MailConfig = field(default_factory=MailConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AuthcraftConfig:
        capability_defaults = data.get("capability_defaults") or {}
        if not isinstance(capability_defaults, dict) or not all(
            isinstance(v, dict) for v in capability_defaults.values()
        ):
            raise ConfigError("capability_defaults must map capability names to option mappings")

        return cls(
            capability_defaults={name: dict(opts) for name, opts in capability_defaults.items()},
            recovery=_instantiate(RecoveryConfig, data.get("recovery") or {}, "recovery"),
            mail=_instantiate(MailConfig, data.get("mail") or {}, "mail"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capability_defaults": {k: dict(v) for k, v in self.capability_defaults.items()},
            "recovery": {f.name: getattr(self.recovery, f.name) for f in fields(self.recovery)},
            "mail": {f.name: getattr(self.mail, f.name) for f in fields(self.mail)},
        }


def _instantiate(config_class: type, data: Dict[str, Any], section: str):
    known = {f.name for f in fields(config_class)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown {section} settings: {', '.join(sorted(unknown))}")
    return config_class(**data)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage:
        config = ConfigLoader.load("authcraft.yaml", env_file=".env")
    """

    def __init__(self, env_prefix: str = "AUTHCRAFT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = "AUTHCRAFT_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> AuthcraftConfig:
        """
        Load configuration with proper merge strategy.

        Args:
            path: YAML (or JSON) config file
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated AuthcraftConfig
        """
        loader = cls(env_prefix=env_prefix)

        if path:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return AuthcraftConfig.from_dict(loader.config_data)

    def _load_file(self, path: Path):
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        if path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
        else:
            import yaml
            with open(path) as f:
                data = yaml.safe_load(f)

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        if not Path(path).exists():
            return

        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert AUTHCRAFT_CAPABILITY_DEFAULTS__AUTHENTICABLE__STRETCHES to nested dict."""
        key = key[len(self.env_prefix):]

        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value


# ============================================================================
# Process-wide configuration
# ============================================================================

_config: AuthcraftConfig | None = None


def get_config() -> AuthcraftConfig:
    """Get the process configuration (defaults until ``configure`` is called)."""
    global _config

    if _config is None:
        _config = AuthcraftConfig()

    return _config


def configure(config: AuthcraftConfig | None = None, **loader_kwargs: Any) -> AuthcraftConfig:
    """
    Install the process configuration.

    Call once at startup, before entity types bind their capabilities:
    bindings resolve options when they are declared.
    """
    global _config

    _config = config if config is not None else ConfigLoader.load(**loader_kwargs)
    return _config

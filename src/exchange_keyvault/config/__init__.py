"""Configuration loader for exchange-keyvault.

Loads settings from a YAML file with built-in defaults. Supports environment
variable overrides using the EXCHANGE_KEYVAULT_ prefix with double-underscore
nesting (e.g., EXCHANGE_KEYVAULT_VAULT__BACKEND=disabled).
"""

from __future__ import annotations

import os
import pathlib
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Config sub-models
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    data_dir: str = "./data"
    db_filename: str = "keyvault.db"

    @property
    def db_path(self) -> pathlib.Path:
        return pathlib.Path(self.data_dir) / self.db_filename


VaultBackend = Literal["auto", "keychain", "encrypted_file", "disabled"]


class VaultConfig(BaseModel):
    backend: VaultBackend = "auto"
    service_name: str = "com.exchange-keyvault"
    secrets_filename: str = "secrets.enc"
    passphrase: str | None = Field(default=None, repr=False)


class LoggingConfig(BaseModel):
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Deep merge helper
# ---------------------------------------------------------------------------

def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into *base*, returning a new dict."""
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "EXCHANGE_KEYVAULT_"


def _collect_env_overrides() -> dict[str, Any]:
    """Collect EXCHANGE_KEYVAULT_* env vars and build a nested dict.

    Double-underscore separates nesting levels.
    Example: EXCHANGE_KEYVAULT_VAULT__BACKEND=disabled
    becomes  {"vault": {"backend": "disabled"}}
    """
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        parts = key[len(_ENV_PREFIX) :].lower().split("__")
        current = overrides
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        # Values stay strings; every setting is a string field
        current[parts[-1]] = value
    return overrides


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_BUILTIN_DEFAULTS_PATH = pathlib.Path(__file__).resolve().parents[3] / "config" / "defaults.yaml"


def load_settings(
    config_path: pathlib.Path | None = None,
) -> Settings:
    """Load settings with layered precedence: defaults < file < env vars.

    Parameters
    ----------
    config_path:
        Path to a YAML config file. If ``None`` or the file does not exist,
        built-in defaults are used.
    """
    # Layer 1: built-in defaults (always loaded from the model defaults)
    base: dict[str, Any] = {}

    # Layer 2: YAML config file
    path = config_path if config_path is not None else _BUILTIN_DEFAULTS_PATH
    if path.exists():
        with open(path) as fh:
            file_data = yaml.safe_load(fh)
        if isinstance(file_data, dict):
            base = _deep_merge(base, file_data)

    # Layer 3: environment variable overrides
    env_overrides = _collect_env_overrides()
    if env_overrides:
        base = _deep_merge(base, env_overrides)

    return Settings(**base)

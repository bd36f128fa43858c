"""
Configuration loading for VersionVault.

Settings come from three layers, lowest priority first:
1. Defaults declared in settings.py
2. An optional YAML file
3. Environment variables named VERSION_VAULT__{SECTION}__{KEY}

Example: VERSION_VAULT__ESCALATION__MAX_ATTEMPTS=6
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from version_vault.config.settings import Settings
from version_vault.core.exceptions import ConfigurationError

ENV_PREFIX = "VERSION_VAULT"

_settings_instance: Settings | None = None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base recursively; override wins on conflicts."""
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def _parse_env_value(raw: str) -> Any:
    """
    Convert an environment string into a bool, None, int, float or str.

    Comma-separated values stay strings; list settings are expected in YAML.
    """
    lowered = raw.strip().lower()

    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    if lowered in ("none", "null", ""):
        return None

    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue

    return raw


def _load_env_overrides(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    Collect {PREFIX}__{SECTION}__{KEY} variables into a nested dict.

    Variables with fewer than two path segments after the prefix are ignored.
    """
    overrides: dict[str, Any] = {}
    marker = f"{prefix}__"

    for name, raw in os.environ.items():
        if not name.startswith(marker):
            continue

        path = name[len(marker):].lower().split("__")
        if len(path) < 2:
            continue

        node = overrides
        for section in path[:-1]:
            node = node.setdefault(section, {})
        node[path[-1]] = _parse_env_value(raw)

    return overrides


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Read a YAML mapping from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in configuration file: {e}",
            details={"path": str(path)},
        ) from e

    if content is None:
        return {}

    if not isinstance(content, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            details={"path": str(path), "type": type(content).__name__},
        )

    return content


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = ENV_PREFIX,
) -> Settings:
    """
    Build a validated Settings object from defaults, YAML and environment.

    Args:
        config_path: Optional YAML file. None means defaults plus environment.
        env_prefix: Prefix for environment variable overrides

    Returns:
        Validated Settings instance

    Raises:
        FileNotFoundError: If config_path is given but missing
        ConfigurationError: If the merged values fail validation
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        data = _deep_merge(data, _load_yaml_file(Path(config_path)))

    data = _deep_merge(data, _load_env_overrides(env_prefix))

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={"errors": [err["loc"] for err in e.errors()]},
        ) from e


def get_settings(
    config_path: Path | str | None = None,
    reload: bool = False,
) -> Settings:
    """Return the cached process-wide Settings, loading them on first use."""
    global _settings_instance

    if _settings_instance is None or reload:
        _settings_instance = load_config(config_path)

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached Settings so the next get_settings() reloads."""
    global _settings_instance
    _settings_instance = None


@lru_cache(maxsize=1)
def get_default_config_path() -> Path | None:
    """
    Locate a config.yaml in the usual places.

    Searches the working directory, ./config/ and ~/.version_vault/.
    """
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config" / "config.yaml",
        Path.home() / ".version_vault" / "config.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None

"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

CLI flags are applied on top by the caller.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import RunConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: RunConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/quiesce/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "quiesce" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .quiesce.json in the working directory
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".quiesce.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set_nested(config_dict: dict[str, Any], section: str, key: str, value: Any) -> None:
    if not isinstance(config_dict.get(section), dict):
        config_dict[section] = {}
    config_dict[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence among the file-based layers.

    Supported env vars:
        QUIESCE_SERVICE_NAME - overrides service.name
        QUIESCE_SERVICE_BACKEND - overrides service.backend
        QUIESCE_TIME_LIMIT - overrides process.time_limit_seconds
        QUIESCE_INSTALL_DIR - overrides payload.install_dir
        QUIESCE_ARCHIVE - overrides payload.archive

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = {
        key: value.copy() if isinstance(value, dict) else value
        for key, value in config_dict.items()
    }

    if service_name := os.environ.get("QUIESCE_SERVICE_NAME"):
        _set_nested(result, "service", "name", service_name)

    if backend := os.environ.get("QUIESCE_SERVICE_BACKEND"):
        backend = backend.lower()
        _set_nested(result, "service", "backend", None if backend == "auto" else backend)

    if limit_str := os.environ.get("QUIESCE_TIME_LIMIT"):
        try:
            limit = float(limit_str)
            if limit <= 0:
                logger.warning("QUIESCE_TIME_LIMIT must be > 0, got %s, ignoring", limit_str)
            else:
                _set_nested(result, "process", "time_limit_seconds", limit)
        except ValueError:
            logger.warning("Invalid QUIESCE_TIME_LIMIT value '%s', ignoring", limit_str)

    if install_dir := os.environ.get("QUIESCE_INSTALL_DIR"):
        _set_nested(result, "payload", "install_dir", install_dir)

    if archive := os.environ.get("QUIESCE_ARCHIVE"):
        _set_nested(result, "payload", "archive", archive)

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> RunConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (QUIESCE_*)
        2. Project config (.quiesce.json)
        3. User config (~/.config/quiesce/config.json)
        4. Model defaults

    Args:
        project_dir: Directory to load .quiesce.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated RunConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = RunConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None

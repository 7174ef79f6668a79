"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Env vars may be seeded from .env files before settings are loaded.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .models import AppSettings

logger = logging.getLogger(__name__)

# Global cache to avoid reloading settings multiple times per process
_settings_cache: AppSettings | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_xdg_data_home() -> Path:
    """
    Get XDG data home directory.

    Returns:
        Path to data directory (defaults to ~/.local/share)
    """
    if xdg_home := os.environ.get("XDG_DATA_HOME"):
        return Path(xdg_home)
    return Path.home() / ".local" / "share"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/chatsync/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "chatsync" / "config.json"


def get_env_file_paths(cwd: Path | None = None) -> list[Path]:
    """
    Get the .env files chatsync reads, highest precedence first.

    Args:
        cwd: Project directory (defaults to current directory)

    Returns:
        .env.local and .env in the project, then the user .env
    """
    if cwd is None:
        cwd = Path.cwd()
    return [
        cwd / ".env.local",
        cwd / ".env",
        get_xdg_config_home() / "chatsync" / ".env",
    ]


def load_env_files(cwd: Path | None = None) -> list[Path]:
    """
    Seed the process environment from .env files.

    A variable keeps the value from the first file that sets it, and
    variables already exported in the shell are never overridden.

    Args:
        cwd: Project directory (defaults to current directory)

    Returns:
        The files that were found and loaded
    """
    loaded: list[Path] = []
    for path in get_env_file_paths(cwd):
        if path.is_file():
            load_dotenv(path, override=False)
            logger.debug("Loaded environment from %s", path)
            loaded.append(path)
    return loaded


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .chatsync.json in that directory
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".chatsync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10, "y": 20}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
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
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken layer
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if isinstance(data, dict):
        return data
    logger.warning("Ignoring config at %s: expected a JSON object", path)
    return None


def _set(config_dict: dict[str, Any], section: str, key: str, value: Any) -> None:
    config_dict.setdefault(section, {})[key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        CHATSYNC_STATE_FILE - overrides paths.state_file
        CHATSYNC_SYNC_CONFIG - overrides paths.sync_config_file
        CHATSYNC_TIMEOUT - overrides network.timeout
        CHATSYNC_MAX_RETRIES - overrides network.max_retries

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = copy.deepcopy(config_dict)

    if state_file := os.environ.get("CHATSYNC_STATE_FILE"):
        _set(result, "paths", "state_file", state_file)

    if sync_config := os.environ.get("CHATSYNC_SYNC_CONFIG"):
        _set(result, "paths", "sync_config_file", sync_config)

    if timeout_str := os.environ.get("CHATSYNC_TIMEOUT"):
        try:
            timeout = float(timeout_str)
        except ValueError:
            logger.warning("Invalid CHATSYNC_TIMEOUT value '%s', ignoring", timeout_str)
        else:
            if timeout <= 0:
                logger.warning("CHATSYNC_TIMEOUT must be > 0, got %s, ignoring", timeout)
            else:
                _set(result, "network", "timeout", timeout)

    if retries_str := os.environ.get("CHATSYNC_MAX_RETRIES"):
        try:
            retries = int(retries_str)
        except ValueError:
            logger.warning("Invalid CHATSYNC_MAX_RETRIES value '%s', ignoring", retries_str)
        else:
            if retries < 0:
                logger.warning("CHATSYNC_MAX_RETRIES must be >= 0, got %d, ignoring", retries)
            else:
                _set(result, "network", "max_retries", retries)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Snapshot and sync config default to the XDG data and config homes.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "paths": {
            "state_file": str(get_xdg_data_home() / "chatsync" / "state.json"),
            "sync_config_file": str(get_xdg_config_home() / "chatsync" / "sync.json"),
            "backup_dir": ".",
        },
    }


def load_settings(project_dir: Path | None = None, use_cache: bool = True) -> AppSettings:
    """
    Load settings with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (CHATSYNC_*)
        2. Project config (.chatsync.json)
        3. User config (~/.config/chatsync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Directory to load .chatsync.json from (defaults to cwd)
        use_cache: If True, return cached settings from a previous load

    Returns:
        Validated AppSettings instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _settings_cache

    if use_cache and _settings_cache is not None:
        return _settings_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    settings = AppSettings(**merged)
    _settings_cache = settings
    return settings


def clear_cache() -> None:
    """
    Clear the cached settings.

    Useful for testing or when config files change during execution.
    """
    global _settings_cache
    _settings_cache = None

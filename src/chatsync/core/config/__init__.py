"""
Application settings and loading.

This module provides Pydantic models for chatsync settings with
multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_env_file_paths,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    get_xdg_data_home,
    load_env_files,
    load_settings,
)
from .models import AppSettings, LoggingConfig, NetworkConfig, PathsConfig

__all__ = [
    # Models
    "AppSettings",
    "LoggingConfig",
    "NetworkConfig",
    "PathsConfig",
    # Loader functions
    "clear_cache",
    "get_env_file_paths",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "get_xdg_data_home",
    "load_env_files",
    "load_settings",
]

"""
Configuration models and loading.

This module provides Pydantic models for quiesce configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import PayloadConfig, ProcessConfig, RunConfig, ServiceConfig

__all__ = [
    # Models
    "PayloadConfig",
    "ProcessConfig",
    "RunConfig",
    "ServiceConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]

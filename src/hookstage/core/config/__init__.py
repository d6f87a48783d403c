"""Configuration management for hookstage."""

from hookstage.core.config.loader import (
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    load_config,
    parse_config,
)
from hookstage.core.config.models import HooksConfig, LifecycleConfig, TaskConfig

__all__ = [
    "HooksConfig",
    "LifecycleConfig",
    "TaskConfig",
    "deep_merge",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "parse_config",
]

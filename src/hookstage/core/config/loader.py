"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Only the ``hooks`` section of each file is read. There is no module-level
cache: every call loads fresh, so independent runners in one process never
share configuration state.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hookstage.core.config.models import HooksConfig
from hookstage.core.hooks.errors import ConfigError
from hookstage.core.hooks.models import FixMode

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".hookstage.json"
CONFIG_SECTION = "hooks"


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
        Path to ~/.config/hookstage/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "hookstage" / "config.json"


def get_project_config_path(project_dir: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        project_dir: Project root (defaults to current directory)

    Returns:
        Path to .hookstage.json in the project root
    """
    if project_dir is None:
        project_dir = Path.cwd()
    return project_dir / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    This is a recursive merge - nested dicts are merged, not replaced.
    Lists are replaced wholesale, so a project's stage list never
    interleaves with a user-level one.

    Args:
        base: Base dictionary (lower priority)
        override: Override dictionary (higher priority)

    Returns:
        Merged dictionary with override values taking precedence

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
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
    Load a JSON object from a file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if the file doesn't exist

    Raises:
        ConfigError: If the file can't be read, isn't valid JSON, or
            doesn't contain a JSON object
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}")
    return data


def extract_section(data: dict[str, Any] | None, path: Path) -> dict[str, Any]:
    """Return the ``hooks`` section of a config file (empty if absent)."""
    if not data:
        return {}
    section = data.get(CONFIG_SECTION)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{CONFIG_SECTION}' in {path} must be an object")
    return section


def _env_flag(value: str) -> bool:
    return value.strip().lower() not in ("false", "0", "no", "off", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        HOOKSTAGE_FIX_MODE - overrides fixMode
        HOOKSTAGE_RESTAGE_FIXED - overrides restageFixed

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if fix_mode := os.environ.get("HOOKSTAGE_FIX_MODE"):
        try:
            result["fixMode"] = FixMode.parse(fix_mode).value
        except ValueError:
            logger.warning(f"Invalid HOOKSTAGE_FIX_MODE value '{fix_mode}', ignoring")

    if (restage := os.environ.get("HOOKSTAGE_RESTAGE_FIXED")) is not None:
        result["restageFixed"] = _env_flag(restage)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Lifecycle stage graphs are not listed here: a lifecycle without
    ``stages`` or ``tasks`` falls back to the built-in graph for its hook.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "fixMode": FixMode.SAFE.value,
        "restageFixed": True,
    }


def load_config(project_dir: Path | None = None) -> HooksConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (HOOKSTAGE_*)
        2. Project config (.hookstage.json)
        3. User config (~/.config/hookstage/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .hookstage.json from

    Returns:
        Validated HooksConfig instance

    Raises:
        ConfigError: If a file is unreadable or the merged config fails
            validation

    Example:
        >>> config = load_config(Path("/path/to/project"))
        >>> config.fix_mode
        <FixMode.SAFE: 'safe'>
    """
    merged = get_default_config()

    user_config_path = get_user_config_path()
    user_section = extract_section(load_json_file(user_config_path), user_config_path)
    if user_section:
        logger.debug(f"Merging user config from {user_config_path}")
        merged = deep_merge(merged, user_section)

    project_config_path = get_project_config_path(project_dir)
    project_section = extract_section(load_json_file(project_config_path), project_config_path)
    if project_section:
        logger.debug(f"Merging project config from {project_config_path}")
        merged = deep_merge(merged, project_section)

    merged = apply_env_overrides(merged)
    return parse_config(merged)


def parse_config(data: dict[str, Any]) -> HooksConfig:
    """
    Validate a ``hooks`` section dictionary.

    Raises:
        ConfigError: With every validation problem listed
    """
    try:
        return HooksConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid hooks configuration: {problems}") from e

"""
hookstage - staged quality-gate runner for git hooks and CI.

Runs formatting, build, test and analysis tasks in dependency-ordered
stages, with automatic fixes gated by a configurable safety level.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from hookstage.core.hooks.models import FixMode, HookType, TaskStatus

__all__ = ["FixMode", "HookType", "TaskStatus", "__version__"]

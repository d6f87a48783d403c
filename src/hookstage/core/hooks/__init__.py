"""
Hook data model and scheduling.

Modules:
- models: hook types, scopes, fix modes, diagnostics and task results
- context: invocation snapshot passed to tasks
- stage: stage and task-reference models
- results: stage and hook run results
- errors: exception hierarchy
- stage_runner: DAG execution of stages
- runner: lifecycle-level orchestration (HookRunner)

Only the leaf modules are re-exported here; import the runners from their
modules directly.
"""

from hookstage.core.hooks.context import FileStatus, HookContext, StagedFile
from hookstage.core.hooks.errors import (
    CircularDependencyError,
    ConfigError,
    DuplicateStageError,
    DuplicateTaskError,
    GitError,
    HookError,
    StageConfigurationError,
    UnknownDependencyError,
    UnknownTaskError,
)
from hookstage.core.hooks.models import (
    FixMode,
    FixResult,
    FixSafety,
    HookDiagnostic,
    HookScope,
    HookSeverity,
    HookType,
    TaskMode,
    TaskResult,
    TaskStatus,
)
from hookstage.core.hooks.results import (
    BlockedStage,
    HookRunResult,
    StageResult,
    StageRunOutcome,
    TaskRunResult,
)
from hookstage.core.hooks.stage import Stage, StageTask, default_stages, implicit_stage

__all__ = [
    "BlockedStage",
    "CircularDependencyError",
    "ConfigError",
    "DuplicateStageError",
    "DuplicateTaskError",
    "FileStatus",
    "FixMode",
    "FixResult",
    "FixSafety",
    "GitError",
    "HookContext",
    "HookDiagnostic",
    "HookError",
    "HookRunResult",
    "HookScope",
    "HookSeverity",
    "HookType",
    "Stage",
    "StageConfigurationError",
    "StageResult",
    "StageRunOutcome",
    "StageTask",
    "StagedFile",
    "TaskMode",
    "TaskResult",
    "TaskRunResult",
    "TaskStatus",
    "UnknownDependencyError",
    "UnknownTaskError",
    "default_stages",
    "implicit_stage",
]

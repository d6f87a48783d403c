"""
Hook data models for hookstage.

Defines the vocabulary shared by tasks, the stage runner and the reporter:
lifecycle points, scopes, fix permissions, diagnostics and the result types
produced while running or fixing a task.

Results are created during execution and consumed immediately by the
reporter; none of them persist across invocations.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class HookType(str, Enum):
    """Lifecycle point a hook run is attached to."""

    PRE_COMMIT = "pre-commit"
    PRE_PUSH = "pre-push"
    CI = "ci"

    @classmethod
    def parse(cls, value: str) -> HookType:
        """
        Parse a hook name, accepting the dash-less spellings.

        Args:
            value: Hook name such as "pre-commit", "precommit" or "ci"

        Returns:
            Matching HookType

        Raises:
            ValueError: If the name does not match any hook
        """
        normalized = value.strip().lower()
        aliases = {
            "pre-commit": cls.PRE_COMMIT,
            "precommit": cls.PRE_COMMIT,
            "pre-push": cls.PRE_PUSH,
            "prepush": cls.PRE_PUSH,
            "ci": cls.CI,
        }
        if normalized not in aliases:
            raise ValueError(
                f"Unknown hook type '{value}' (valid: pre-commit, pre-push, ci)"
            )
        return aliases[normalized]


class HookScope(str, Enum):
    """Which files a hook run considers."""

    STAGED = "staged"  # Only files in the git index
    CHANGED = "changed"  # Files changed against the base branch
    DIFF = "diff"  # Files changed in a PR (CI)
    ALL = "all"  # Entire project


class FixSafety(str, Enum):
    """How safe an automatic fix is."""

    SAFE = "safe"  # Formatting, version sync
    CAUTIOUS = "cautious"  # Regex rewrites in docs
    UNSAFE = "unsafe"  # Could change program behaviour


class FixMode(str, Enum):
    """Global permission level for automatic fixes."""

    SAFE = "safe"
    CAUTIOUS = "cautious"
    ALL = "all"
    NONE = "none"

    def includes(self, safety: FixSafety) -> bool:
        """Check whether fixes of the given safety level are allowed."""
        if self is FixMode.NONE:
            return False
        if self is FixMode.SAFE:
            return safety is FixSafety.SAFE
        if self is FixMode.CAUTIOUS:
            return safety in (FixSafety.SAFE, FixSafety.CAUTIOUS)
        return True

    @classmethod
    def parse(cls, value: str) -> FixMode:
        """Parse a fix mode name; "check" is accepted as an alias of "none"."""
        normalized = value.strip().lower()
        if normalized == "check":
            return cls.NONE
        try:
            return cls(normalized)
        except ValueError as e:
            raise ValueError(
                f"Unknown fix mode '{value}' (valid: safe, cautious, all, none)"
            ) from e


class TaskMode(str, Enum):
    """Execution mode of a task reference inside a stage."""

    CHECK = "check"  # Check only, never fix
    FIX = "fix"  # Fix, then re-run the check
    FIX_ONLY = "fixOnly"  # Fix and report, skip the check


class HookSeverity(str, Enum):
    """Severity level of a diagnostic."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class TaskStatus(str, Enum):
    """Outcome of running a task."""

    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"
    SKIPPED = "skipped"


class HookDiagnostic(BaseModel):
    """
    One normalized finding reported by a task.

    Location fields are optional as a whole: a finding without a location
    has ``file``, ``line`` and ``column`` set to None, never to 0.
    """

    model_config = ConfigDict(frozen=True)

    message: str = Field(description="Human-readable description of the finding")
    severity: HookSeverity = Field(description="Severity of the finding")
    file: str | None = Field(default=None, description="Path of the affected file")
    line: int | None = Field(default=None, ge=1, description="1-based line number")
    column: int | None = Field(default=None, ge=1, description="1-based column number")
    rule_id: str | None = Field(default=None, description="Rule or tool identifier")
    fixable: bool = Field(default=False, description="Whether a fix is available")

    @model_validator(mode="after")
    def _location_is_consistent(self) -> HookDiagnostic:
        if self.column is not None and self.line is None:
            raise ValueError("column requires a line number")
        if self.line is not None and self.file is None:
            raise ValueError("line requires a file path")
        return self

    @property
    def location(self) -> str | None:
        """Return "file:line:col" with missing parts omitted, or None."""
        if self.file is None:
            return None
        location = self.file
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return location

    def __str__(self) -> str:
        """Format in the compiler-style "path:line:col: severity: message" shape."""
        prefix = f"{self.location}: " if self.location else ""
        return f"{prefix}{self.severity.value}: {self.message}"


class TaskResult(BaseModel):
    """
    Result of running a task's check.

    A failed status means at least one error diagnostic from a blocking
    task, or an explicit failure signalled by the task. A skipped result
    carries a reason and no diagnostics.
    """

    model_config = ConfigDict(frozen=True)

    status: TaskStatus
    diagnostics: list[HookDiagnostic] = Field(default_factory=list)
    duration_seconds: float = Field(default=0.0, ge=0.0)
    files_checked: int = Field(default=0, ge=0)
    fixes_available: bool = False
    skip_reason: str | None = None

    @model_validator(mode="after")
    def _skip_invariants(self) -> TaskResult:
        if self.status is TaskStatus.SKIPPED:
            if not self.skip_reason:
                raise ValueError("skipped results require a reason")
            if self.diagnostics:
                raise ValueError("skipped results cannot carry diagnostics")
        elif self.skip_reason is not None:
            raise ValueError("only skipped results carry a skip reason")
        return self

    @classmethod
    def passed(cls, *, duration_seconds: float = 0.0, files_checked: int = 0) -> TaskResult:
        return cls(
            status=TaskStatus.PASSED,
            duration_seconds=duration_seconds,
            files_checked=files_checked,
        )

    @classmethod
    def failed(
        cls,
        diagnostics: list[HookDiagnostic],
        *,
        duration_seconds: float = 0.0,
        files_checked: int = 0,
        fixes_available: bool = False,
    ) -> TaskResult:
        return cls(
            status=TaskStatus.FAILED,
            diagnostics=diagnostics,
            duration_seconds=duration_seconds,
            files_checked=files_checked,
            fixes_available=fixes_available,
        )

    @classmethod
    def warning(
        cls,
        diagnostics: list[HookDiagnostic],
        *,
        duration_seconds: float = 0.0,
        files_checked: int = 0,
    ) -> TaskResult:
        return cls(
            status=TaskStatus.WARNING,
            diagnostics=diagnostics,
            duration_seconds=duration_seconds,
            files_checked=files_checked,
        )

    @classmethod
    def skipped(cls, reason: str, *, duration_seconds: float = 0.0) -> TaskResult:
        return cls(
            status=TaskStatus.SKIPPED,
            skip_reason=reason,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def from_diagnostics(
        cls,
        diagnostics: list[HookDiagnostic],
        *,
        blocking: bool,
        signalled_failure: bool = False,
        duration_seconds: float = 0.0,
        files_checked: int = 0,
        fixes_available: bool = False,
    ) -> TaskResult:
        """
        Derive the status from a list of diagnostics.

        Args:
            diagnostics: Findings in discovery order
            blocking: Whether the producing task blocks on errors
            signalled_failure: The tool itself reported failure (e.g. a
                non-zero exit), whatever severities were parsed
            duration_seconds: How long the check took
            files_checked: Number of files inspected
            fixes_available: Whether running fix could resolve the findings

        Returns:
            failed if the task is blocking and an error exists or failure
            was signalled, warning if there are any other findings, passed
            otherwise
        """
        has_errors = any(d.severity is HookSeverity.ERROR for d in diagnostics)
        if blocking and (has_errors or signalled_failure):
            status = TaskStatus.FAILED
        elif diagnostics:
            status = TaskStatus.WARNING
        else:
            status = TaskStatus.PASSED
        return cls(
            status=status,
            diagnostics=diagnostics,
            duration_seconds=duration_seconds,
            files_checked=files_checked,
            fixes_available=fixes_available and bool(diagnostics),
        )

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is HookSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is HookSeverity.WARNING)


class FixResult(BaseModel):
    """
    Result of applying automatic fixes.

    Errors are non-fatal: a fix that partially fails still returns a
    FixResult, and the follow-up check surfaces whatever is left.
    """

    model_config = ConfigDict(frozen=True)

    files_modified: list[str] = Field(default_factory=list)
    fixes_applied: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)

    @field_validator("files_modified")
    @classmethod
    def _unique_paths(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def success(self) -> bool:
        """True when the fix reported no errors."""
        return not self.errors

    @property
    def is_empty(self) -> bool:
        """True when nothing was changed and nothing went wrong."""
        return not self.files_modified and self.fixes_applied == 0 and not self.errors

"""
Tests for the hook data model.

Covers hook type and fix mode parsing, the fix-mode permission matrix,
diagnostic formatting, and TaskResult/FixResult invariants.
"""

import pytest
from pydantic import ValidationError

from hookstage.core.hooks.context import FileStatus, HookContext, StagedFile
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


class TestHookType:
    """Test HookType.parse."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("pre-commit", HookType.PRE_COMMIT),
            ("precommit", HookType.PRE_COMMIT),
            ("PRE-PUSH", HookType.PRE_PUSH),
            ("prepush", HookType.PRE_PUSH),
            (" ci ", HookType.CI),
        ],
    )
    def test_parse_accepts_aliases(self, value, expected):
        assert HookType.parse(value) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown hook type 'post-merge'"):
            HookType.parse("post-merge")


class TestFixMode:
    """Test the fix-mode permission matrix."""

    @pytest.mark.parametrize(
        "mode,allowed",
        [
            (FixMode.SAFE, {FixSafety.SAFE}),
            (FixMode.CAUTIOUS, {FixSafety.SAFE, FixSafety.CAUTIOUS}),
            (FixMode.ALL, {FixSafety.SAFE, FixSafety.CAUTIOUS, FixSafety.UNSAFE}),
            (FixMode.NONE, set()),
        ],
    )
    def test_includes(self, mode, allowed):
        for safety in FixSafety:
            assert mode.includes(safety) is (safety in allowed)

    def test_parse_check_alias(self):
        assert FixMode.parse("check") is FixMode.NONE

    def test_parse_is_case_insensitive(self):
        assert FixMode.parse("Cautious") is FixMode.CAUTIOUS

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown fix mode"):
            FixMode.parse("aggressive")

    def test_task_mode_wire_values(self):
        assert TaskMode("fixOnly") is TaskMode.FIX_ONLY
        assert TaskMode.CHECK.value == "check"


class TestHookDiagnostic:
    """Test diagnostic location handling and formatting."""

    def test_full_location(self):
        d = HookDiagnostic(
            file="Sources/Foo.swift",
            line=10,
            column=5,
            message="missing trailing comma",
            severity=HookSeverity.ERROR,
        )
        assert d.location == "Sources/Foo.swift:10:5"
        assert str(d) == "Sources/Foo.swift:10:5: error: missing trailing comma"

    def test_file_only_location(self):
        d = HookDiagnostic(
            file="README.md", message="Version mismatch", severity=HookSeverity.ERROR
        )
        assert str(d) == "README.md: error: Version mismatch"

    def test_no_location(self):
        d = HookDiagnostic(message="Tests failed", severity=HookSeverity.WARNING)
        assert d.location is None
        assert str(d) == "warning: Tests failed"

    def test_column_without_line_rejected(self):
        with pytest.raises(ValidationError):
            HookDiagnostic(file="a.swift", column=3, message="x", severity=HookSeverity.ERROR)

    def test_line_without_file_rejected(self):
        with pytest.raises(ValidationError):
            HookDiagnostic(line=3, message="x", severity=HookSeverity.ERROR)

    def test_line_must_be_positive(self):
        with pytest.raises(ValidationError):
            HookDiagnostic(file="a.swift", line=0, message="x", severity=HookSeverity.ERROR)


class TestTaskResult:
    """Test status derivation and result invariants."""

    def _diag(self, severity):
        return HookDiagnostic(message="finding", severity=severity)

    def test_errors_fail_blocking_task(self):
        result = TaskResult.from_diagnostics([self._diag(HookSeverity.ERROR)], blocking=True)
        assert result.status is TaskStatus.FAILED
        assert result.error_count == 1

    def test_errors_only_warn_for_non_blocking_task(self):
        result = TaskResult.from_diagnostics([self._diag(HookSeverity.ERROR)], blocking=False)
        assert result.status is TaskStatus.WARNING

    def test_warnings_give_warning_status(self):
        result = TaskResult.from_diagnostics([self._diag(HookSeverity.WARNING)], blocking=True)
        assert result.status is TaskStatus.WARNING
        assert result.warning_count == 1

    def test_signalled_failure_fails_blocking_task(self):
        result = TaskResult.from_diagnostics(
            [self._diag(HookSeverity.WARNING)], blocking=True, signalled_failure=True
        )
        assert result.status is TaskStatus.FAILED

    def test_signalled_failure_only_warns_for_non_blocking_task(self):
        result = TaskResult.from_diagnostics(
            [self._diag(HookSeverity.WARNING)], blocking=False, signalled_failure=True
        )
        assert result.status is TaskStatus.WARNING

    def test_no_diagnostics_pass(self):
        result = TaskResult.from_diagnostics([], blocking=True, fixes_available=True)
        assert result.status is TaskStatus.PASSED
        assert result.fixes_available is False

    def test_skipped_requires_reason(self):
        with pytest.raises(ValidationError):
            TaskResult(status=TaskStatus.SKIPPED)

    def test_skipped_cannot_carry_diagnostics(self):
        with pytest.raises(ValidationError):
            TaskResult(
                status=TaskStatus.SKIPPED,
                skip_reason="nothing to do",
                diagnostics=[self._diag(HookSeverity.INFO)],
            )

    def test_only_skipped_has_reason(self):
        with pytest.raises(ValidationError):
            TaskResult(status=TaskStatus.PASSED, skip_reason="why")

    def test_duration_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            TaskResult.passed(duration_seconds=-1.0)

    def test_results_are_frozen(self):
        result = TaskResult.passed()
        with pytest.raises(ValidationError):
            result.status = TaskStatus.FAILED


class TestFixResult:
    """Test FixResult helpers."""

    def test_default_is_empty_success(self):
        result = FixResult()
        assert result.success
        assert result.is_empty

    def test_files_are_deduplicated(self):
        result = FixResult(files_modified=["a.swift", "b.swift", "a.swift"], fixes_applied=2)
        assert result.files_modified == ["a.swift", "b.swift"]

    def test_errors_mean_failure(self):
        result = FixResult(errors=["swift format crashed"])
        assert not result.success
        assert not result.is_empty


class TestHookContext:
    """Test the invocation snapshot."""

    def test_staged_scope_excludes_deleted_files(self, project_root):
        context = HookContext(
            project_root=project_root,
            scope=HookScope.STAGED,
            staged_files=[
                StagedFile("Sources/A.swift", FileStatus.ADDED),
                StagedFile("Sources/Old.swift", FileStatus.DELETED),
            ],
        )
        assert context.files_to_check == ["Sources/A.swift"]

    def test_other_scopes_use_all_files(self, project_root):
        context = HookContext(
            project_root=project_root, scope=HookScope.CHANGED, all_files=["a", "b"]
        )
        assert context.files_to_check == ["a", "b"]

    def test_with_fix_mode_returns_copy(self, project_root):
        context = HookContext(project_root=project_root, fix_mode=FixMode.NONE)
        wider = context.with_fix_mode(FixMode.ALL)
        assert context.fix_mode is FixMode.NONE
        assert wider.can_fix(FixSafety.UNSAFE)
        assert not context.can_fix(FixSafety.SAFE)

    @pytest.mark.asyncio
    async def test_read_staged_uses_reader(self):
        async def reader(path: str) -> str:
            return f"staged:{path}"

        staged = StagedFile("a.swift", reader=reader)
        assert await staged.read_staged() == "staged:a.swift"

    @pytest.mark.asyncio
    async def test_read_staged_without_index(self):
        with pytest.raises(RuntimeError, match="No git index"):
            await StagedFile("a.swift").read_staged()

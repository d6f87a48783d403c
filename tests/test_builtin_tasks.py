"""
Tests for the built-in tasks.

External tools are never run here: ``run_process`` is patched with an
AsyncMock returning a ProcessResult, and the tests assert both the command
line a task builds and how it interprets the tool's output.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from hookstage.core.hooks.context import FileStatus, HookContext, StagedFile
from hookstage.core.hooks.models import HookScope, HookSeverity, HookType, TaskStatus
from hookstage.core.hooks.tasks import (
    BuildTask,
    DuplicatesTask,
    FormatTask,
    ShellTask,
    SyncTarget,
    TestTask,
    UnusedTask,
    VersionSource,
    VersionSyncTask,
)
from hookstage.core.hooks.tasks.base import matches_pattern
from hookstage.core.hooks.tasks.shell import expand_variables
from hookstage.core.tools.process import ProcessResult

RUN_PROCESS = "hookstage.core.hooks.tasks.base.run_process"


def process_result(exit_code: int | None = 0, stdout: str = "", stderr: str = "", **kwargs):
    return ProcessResult(
        success=exit_code == 0, exit_code=exit_code, stdout=stdout, stderr=stderr, **kwargs
    )


def mock_process(*args, **kwargs) -> AsyncMock:
    return AsyncMock(return_value=process_result(*args, **kwargs))


def write(root: Path, relative: str, content: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class StaticResolver:
    """Resolver that always returns the same answer."""

    def __init__(self, path: Path | None) -> None:
        self.path = path

    def resolve(self, name: str) -> Path | None:
        return self.path


# ==============================================================================
# Shared helpers
# ==============================================================================


class TestMatchesPattern:
    """Test glob matching of relative paths."""

    def test_double_star_matches_top_level(self):
        assert matches_pattern("Package.swift", "**/*.swift")
        assert matches_pattern("Sources/App/main.swift", "**/*.swift")

    def test_non_matching(self):
        assert not matches_pattern("README.md", "**/*.swift")


# ==============================================================================
# FormatTask
# ==============================================================================


class TestFormatTask:
    """Test the formatting task."""

    @pytest.mark.asyncio
    async def test_no_files_is_skipped(self, context):
        result = await FormatTask().run(context)
        assert result.status is TaskStatus.SKIPPED
        assert result.skip_reason == "No Swift files to check"

    @pytest.mark.asyncio
    async def test_clean_check_passes(self, context, project_root):
        write(project_root, "Sources/App/main.swift")
        with patch(RUN_PROCESS, mock_process(0)) as run:
            result = await FormatTask().run(context)

        assert result.status is TaskStatus.PASSED
        assert result.files_checked == 1
        command = run.call_args.args[0]
        assert command == [
            "swift",
            "format",
            "lint",
            "--strict",
            "--parallel",
            "Sources/App/main.swift",
        ]
        assert run.call_args.kwargs["cwd"] == context.project_root

    @pytest.mark.asyncio
    async def test_lint_warnings_are_errors(self, context, project_root):
        write(project_root, "Sources/App/main.swift")
        output = "Sources/App/main.swift:3:1: warning: [Indentation] replace 2 spaces\n"
        with patch(RUN_PROCESS, mock_process(1, stderr=output)):
            result = await FormatTask().run(context)

        assert result.status is TaskStatus.FAILED
        assert result.fixes_available
        (diagnostic,) = result.diagnostics
        assert diagnostic.severity is HookSeverity.ERROR
        assert diagnostic.file == "Sources/App/main.swift"
        assert diagnostic.line == 3
        assert diagnostic.fixable
        assert diagnostic.rule_id == "format"

    @pytest.mark.asyncio
    async def test_unparseable_failure_gets_generic_diagnostic(self, context, project_root):
        write(project_root, "Sources/App/main.swift")
        with patch(RUN_PROCESS, mock_process(1, stdout="boom")):
            result = await FormatTask().run(context)

        assert result.status is TaskStatus.FAILED
        assert result.diagnostics[0].message == "Format failed with exit code 1"

    @pytest.mark.asyncio
    async def test_staged_scope_uses_staged_files(self, project_root):
        context = HookContext(
            project_root=project_root,
            scope=HookScope.STAGED,
            staged_files=[
                StagedFile("Sources/A.swift", FileStatus.ADDED),
                StagedFile("README.md"),
                StagedFile("Sources/Gone.swift", FileStatus.DELETED),
                StagedFile("Tests/Fixtures/Sample.swift"),
            ],
        )
        with patch(RUN_PROCESS, mock_process(0)) as run:
            result = await FormatTask().run(context)

        assert result.files_checked == 1
        assert run.call_args.args[0][-1] == "Sources/A.swift"

    @pytest.mark.asyncio
    async def test_missing_tool_is_skipped(self, context, project_root):
        write(project_root, "Sources/App/main.swift")
        missing = process_result(
            None, launch_failed=True, error="Command not found: swift"
        )
        with patch(RUN_PROCESS, AsyncMock(return_value=missing)):
            result = await FormatTask().run(context)

        assert result.status is TaskStatus.SKIPPED
        assert result.skip_reason == "Command not found: swift"

    @pytest.mark.asyncio
    async def test_timeout_fails(self, context, project_root):
        write(project_root, "Sources/App/main.swift")
        timed_out = process_result(None, timed_out=True, error="Process timed out after 5s")
        with patch(RUN_PROCESS, AsyncMock(return_value=timed_out)):
            result = await FormatTask(timeout_seconds=5).run(context)

        assert result.status is TaskStatus.FAILED
        assert result.diagnostics[0].message == "Process timed out after 5s"

    @pytest.mark.asyncio
    async def test_fix_reports_only_changed_files(self, context, project_root):
        write(project_root, "Sources/A.swift", "let a=1\n")
        write(project_root, "Sources/B.swift", "let b = 2\n")

        async def reformat(command, **kwargs):
            (project_root / "Sources/A.swift").write_text("let a = 1\n")
            return process_result(0)

        with patch(RUN_PROCESS, AsyncMock(side_effect=reformat)) as run:
            result = await FormatTask().fix(context)

        assert run.call_args.args[0][:4] == ["swift", "format", "format", "--in-place"]
        assert result.files_modified == ["Sources/A.swift"]
        assert result.fixes_applied == 1
        assert result.success

    @pytest.mark.asyncio
    async def test_fix_on_clean_tree_is_noop(self, context, project_root):
        write(project_root, "Sources/A.swift", "let a = 1\n")
        with patch(RUN_PROCESS, mock_process(0)):
            result = await FormatTask().fix(context)
        assert result.is_empty

    @pytest.mark.asyncio
    async def test_fix_failure_is_reported(self, context, project_root):
        write(project_root, "Sources/A.swift")
        with patch(RUN_PROCESS, mock_process(2, stderr="bad config")):
            result = await FormatTask().fix(context)
        assert result.errors == ["Format fix failed: bad config"]


# ==============================================================================
# BuildTask / TestTask
# ==============================================================================


class TestBuildTask:
    """Test the build task."""

    @pytest.mark.asyncio
    async def test_compiler_errors(self, context):
        output = (
            "Building for debugging...\n"
            "Sources/App/main.swift:4:9: error: cannot find 'x' in scope\n"
            "ld: warning: object file was built for newer macOS\n"
        )
        with patch(RUN_PROCESS, mock_process(1, stdout=output)) as run:
            result = await BuildTask().run(context)

        assert run.call_args.args[0] == ["swift", "build", "-c", "debug"]
        assert result.status is TaskStatus.FAILED
        assert [d.message for d in result.diagnostics] == ["cannot find 'x' in scope"]

    @pytest.mark.asyncio
    async def test_link_failure_with_only_warnings_fails(self, context):
        output = (
            "Sources/App/main.swift:3:1: warning: variable 'x' was never used\n"
            "ld: symbol(s) not found for architecture arm64\n"
            "error: link command failed with exit code 1\n"
        )
        with patch(RUN_PROCESS, mock_process(1, stdout=output)):
            result = await BuildTask().run(context)

        assert result.status is TaskStatus.FAILED
        assert [d.severity for d in result.diagnostics] == [HookSeverity.WARNING]

    @pytest.mark.asyncio
    async def test_release_configuration(self, context):
        with patch(RUN_PROCESS, mock_process(0)) as run:
            result = await BuildTask(configuration="release").run(context)
        assert result.status is TaskStatus.PASSED
        assert run.call_args.args[0][-1] == "release"


class TestTestTask:
    """Test the test-suite task."""

    def test_invocation(self, context):
        task = TestTask(test_filter="UnitTests", coverage=True)
        invocation = task.check_invocation(context)
        assert invocation.arguments == [
            "test",
            "--parallel",
            "--enable-code-coverage",
            "--filter",
            "UnitTests",
        ]

    def test_configured_returns_copy(self, context):
        task = TestTask()
        serial = task.configured({"parallel": False})
        assert serial is not task
        assert task.parallel is True
        assert serial.check_invocation(context).arguments == ["test"]
        assert task.configured({}) is task

    @pytest.mark.asyncio
    async def test_failing_tests(self, context):
        output = (
            "Test Case 'FooTests.testBar' started.\n"
            "Tests/FooTests.swift:12: error: XCTAssertEqual failed: (1) is not equal to (2)\n"
            "Test Case 'FooTests.testBar' failed (0.002 seconds).\n"
        )
        with patch(RUN_PROCESS, mock_process(1, stdout=output)):
            result = await TestTask().run(context)

        assert result.status is TaskStatus.FAILED
        located, unlocated = result.diagnostics
        assert located.file == "Tests/FooTests.swift"
        assert located.line == 12
        assert unlocated.file is None
        assert unlocated.message == "Test Case 'FooTests.testBar' failed (0.002 seconds)."

    @pytest.mark.asyncio
    async def test_failure_without_details(self, context):
        with patch(RUN_PROCESS, mock_process(1, stdout="error: fatalError")):
            result = await TestTask().run(context)
        assert result.diagnostics[0].message == "Tests failed. Run 'swift test' for details."


# ==============================================================================
# VersionSyncTask
# ==============================================================================

README_PATTERN = r'from: "(\d+\.\d+\.\d+)"'


class TestVersionSyncTask:
    """Test version consistency checks and fixes against real files."""

    @pytest.fixture
    def versioned(self, project_root):
        write(project_root, ".hookstage.json", json.dumps({"project": {"version": "1.2.0"}}))
        write(project_root, "README.md", '.package(url: "x", from: "1.1.0")\n')
        return VersionSyncTask(sync_targets=[SyncTarget("README.md", README_PATTERN)])

    @pytest.mark.asyncio
    async def test_missing_source_is_skipped(self, context):
        result = await VersionSyncTask().run(context)
        assert result.status is TaskStatus.SKIPPED
        assert result.skip_reason == "No .hookstage.json file found"

    @pytest.mark.asyncio
    async def test_empty_file_source_fails(self, context, project_root):
        write(project_root, "VERSION", "  \n")
        task = VersionSyncTask(source=VersionSource(file="VERSION"))
        result = await task.run(context)
        assert result.status is TaskStatus.FAILED
        assert result.diagnostics[0].file == "VERSION"
        assert result.diagnostics[0].message == "Version is empty"

    @pytest.mark.asyncio
    async def test_mismatch(self, context, versioned):
        result = await versioned.run(context)
        assert result.status is TaskStatus.FAILED
        assert result.fixes_available
        (diagnostic,) = result.diagnostics
        assert diagnostic.file == "README.md"
        assert diagnostic.message == "Version mismatch: found '1.1.0', expected '1.2.0'"
        assert diagnostic.fixable

    @pytest.mark.asyncio
    async def test_fix_rewrites_capture_group(self, context, project_root, versioned):
        result = await versioned.fix(context)
        assert result.files_modified == ["README.md"]
        assert (project_root / "README.md").read_text() == (
            '.package(url: "x", from: "1.2.0")\n'
        )
        assert (await versioned.run(context)).status is TaskStatus.PASSED

        # Fixing again changes nothing
        assert (await versioned.fix(context)).is_empty

    @pytest.mark.asyncio
    async def test_missing_target_and_pattern(self, context, project_root, versioned):
        write(project_root, "CHANGELOG.md", "no versions here\n")
        versioned.sync_targets += [
            SyncTarget("Missing.md", README_PATTERN),
            SyncTarget("CHANGELOG.md", README_PATTERN),
        ]
        result = await versioned.run(context)
        messages = [(d.file, d.message) for d in result.diagnostics]
        assert messages[1:] == [
            ("Missing.md", "File not found"),
            ("CHANGELOG.md", "Version pattern not found in file"),
        ]
        assert result.files_checked == 3

    @pytest.mark.asyncio
    async def test_undecodable_target_does_not_stop_fixes(self, context, project_root, versioned):
        (project_root / "Legacy.txt").write_bytes(b"\xff\xfe version 1.0.0")
        versioned.sync_targets.insert(0, SyncTarget("Legacy.txt", README_PATTERN))

        result = await versioned.fix(context)
        assert result.files_modified == ["README.md"]
        (error,) = result.errors
        assert error.startswith("Legacy.txt: ")
        assert not result.success

        check = await versioned.run(context)
        (diagnostic,) = check.diagnostics
        assert diagnostic.file == "Legacy.txt"
        assert diagnostic.message.startswith("Cannot read file: ")

    @pytest.mark.asyncio
    async def test_undecodable_version_file_is_skipped(self, context, project_root):
        (project_root / "VERSION").write_bytes(b"\xff\xfe")
        task = VersionSyncTask(source=VersionSource(file="VERSION"))
        result = await task.run(context)
        assert result.status is TaskStatus.SKIPPED
        assert result.skip_reason.startswith("Cannot read VERSION: ")

    def test_options(self):
        options = {
            "sourceType": "file",
            "sourceFile": "VERSION",
            "syncTargets": [{"file": "README.md", "pattern": README_PATTERN}, {"file": "x"}],
        }
        assert VersionSource.from_options(options) == VersionSource(file="VERSION")
        assert VersionSource.from_options({}) == VersionSource()
        assert SyncTarget.list_from_options(options) == [SyncTarget("README.md", README_PATTERN)]

    def test_file_patterns_follow_targets(self):
        task = VersionSyncTask(
            source=VersionSource(file="VERSION"),
            sync_targets=[SyncTarget("README.md", README_PATTERN)],
        )
        assert task.file_patterns == ("VERSION", "README.md")


# ==============================================================================
# ShellTask
# ==============================================================================


class TestShellTask:
    """Test configured shell command tasks."""

    def test_expand_variables(self, context):
        expanded = expand_variables("tool ${root} --scope ${scope} ${bin:App}", context)
        root = context.project_root
        assert expanded == f"tool {root} --scope all {root / '.build' / 'debug' / 'App'}"

    @pytest.mark.asyncio
    async def test_malformed_command_fails(self, context):
        result = await ShellTask(id="lint", command='swiftlint "unbalanced').run(context)
        assert result.status is TaskStatus.FAILED
        assert result.diagnostics[0].message.startswith("Empty or malformed command")

    @pytest.mark.asyncio
    async def test_runs_split_command(self, context):
        task = ShellTask(id="lint", command="swiftlint lint --path '${root}'")
        with patch(RUN_PROCESS, mock_process(0)) as run:
            result = await task.run(context)
        assert result.status is TaskStatus.PASSED
        assert run.call_args.args[0] == [
            "swiftlint",
            "lint",
            "--path",
            str(context.project_root),
        ]

    @pytest.mark.asyncio
    async def test_unmatched_output_becomes_diagnostics(self, context):
        output = "Sources/A.swift:1:1: warning: line too long\nsomething went wrong\n"
        with patch(RUN_PROCESS, mock_process(1, stdout=output)):
            result = await ShellTask(id="lint", command="swiftlint").run(context)

        assert result.status is TaskStatus.FAILED
        assert [d.message for d in result.diagnostics] == [
            "line too long",
            "something went wrong",
        ]

    @pytest.mark.asyncio
    async def test_raw_output_when_parsing_disabled(self, context):
        task = ShellTask(id="docs", command="docs-check", parse_output=False)
        with patch(RUN_PROCESS, mock_process(3, stdout="missing docs for Foo\n")):
            result = await task.run(context)
        assert result.diagnostics[0].message == "missing docs for Foo"

    @pytest.mark.asyncio
    async def test_extra_success_codes(self, context):
        task = ShellTask(id="lint", command="swiftlint", success_exit_codes=[0, 1])
        with patch(RUN_PROCESS, mock_process(1, stdout="whatever")):
            result = await task.run(context)
        assert result.status is TaskStatus.PASSED

    @pytest.mark.asyncio
    async def test_failing_exit_with_only_warnings_fails(self, context):
        with patch(RUN_PROCESS, mock_process(2, stdout="a.py:1:1: warning: meh\n")):
            result = await ShellTask(id="lint", command="lint").run(context)
        assert result.status is TaskStatus.FAILED
        assert result.warning_count == 1

    @pytest.mark.asyncio
    async def test_non_blocking_failure_warns(self, context):
        task = ShellTask(id="lint", command="swiftlint", is_blocking=False)
        with patch(RUN_PROCESS, mock_process(1, stdout="bad")):
            result = await task.run(context)
        assert result.status is TaskStatus.WARNING

    @pytest.mark.asyncio
    async def test_without_fix_command(self, context):
        task = ShellTask(id="lint", command="swiftlint")
        assert not task.supports_fix
        assert (await task.fix(context)).is_empty

    @pytest.mark.asyncio
    async def test_fix_command(self, context):
        task = ShellTask(id="lint", command="swiftlint", fix_command="swiftlint --fix")
        with patch(RUN_PROCESS, mock_process(0)) as run:
            result = await task.fix(context)
        assert run.call_args.args[0] == ["swiftlint", "--fix"]
        assert result.success

    def test_defaults(self):
        task = ShellTask(id="lint", command="swiftlint", hooks=[HookType.CI])
        assert task.name == "Lint"
        assert task.applies_to(HookType.CI)
        assert not task.applies_to(HookType.PRE_COMMIT)


# ==============================================================================
# Analyzer tasks
# ==============================================================================


class TestAnalyzerTasks:
    """Test the unused-code and duplicate-code analyzers."""

    @pytest.mark.asyncio
    async def test_missing_binary_is_skipped(self, context):
        task = UnusedTask(resolver=StaticResolver(None))
        result = await task.run(context)
        assert result.status is TaskStatus.SKIPPED
        assert result.skip_reason == "swa binary not found"

    @pytest.mark.asyncio
    async def test_missing_required_binary_fails(self, context):
        task = DuplicatesTask(resolver=StaticResolver(None), required=True, is_blocking=True)
        result = await task.run(context)
        assert result.status is TaskStatus.FAILED
        assert result.diagnostics[0].message == "swa binary not found"

    @pytest.mark.asyncio
    async def test_unused_findings(self, context):
        output = (
            "[high] Sources/A.swift:10:5: unused function 'foo'\n"
            "[low] Sources/B.swift: maybe unused\n"
            "Analyzed 12 files\n"
        )
        task = UnusedTask(resolver=StaticResolver(Path("/opt/swa")))
        with patch(RUN_PROCESS, mock_process(1, stdout=output)) as run:
            result = await task.run(context)

        command = run.call_args.args[0]
        assert command[:3] == ["/opt/swa", "unused", str(context.project_root / "Sources")]
        assert command[-5:] == ["--mode", "reachability", "--format", "text", "--sensible-defaults"]

        # Advisory by default: errors only warn
        assert result.status is TaskStatus.WARNING
        high, low = result.diagnostics
        assert (high.file, high.line, high.column) == ("Sources/A.swift", 10, 5)
        assert high.severity is HookSeverity.ERROR
        assert high.message == "unused function 'foo'"
        assert (low.file, low.line, low.severity) == ("Sources/B.swift", None, HookSeverity.INFO)

    @pytest.mark.asyncio
    async def test_no_clones_passes(self, context):
        task = DuplicatesTask(resolver=StaticResolver(Path("/opt/swa")))
        with patch(RUN_PROCESS, mock_process(0, stdout="Found 0 clone groups\n")):
            result = await task.run(context)
        assert result.status is TaskStatus.PASSED

    @pytest.mark.asyncio
    async def test_clone_groups(self, context):
        output = (
            "[Clone group 1: 2 clones, 120 tokens]\n"
            "  - Sources/A.swift:10-20\n"
            "  - Sources/B.swift:5-15\n"
        )
        task = DuplicatesTask(min_tokens=50, resolver=StaticResolver(Path("/opt/swa")))
        with patch(RUN_PROCESS, mock_process(0, stdout=output)) as run:
            result = await task.run(context)

        assert run.call_args.args[0][-4:] == ["--min-tokens", "50", "--format", "text"]
        assert result.status is TaskStatus.WARNING
        assert [(d.file, d.line) for d in result.diagnostics] == [
            ("Sources/A.swift", 10),
            ("Sources/B.swift", 5),
        ]
        assert all(d.message == "[Clone group 1: 2 clones, 120 tokens]" for d in result.diagnostics)

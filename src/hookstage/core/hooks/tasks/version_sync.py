"""
Version consistency task.

Reads the canonical version from a source (the ``project.version`` field
of .hookstage.json, or a plain version file) and checks that every sync
target carries the same version. A sync target is a file plus a regex
whose first capture group is the version string; fixing rewrites exactly
that group.

Example configuration:
    "versionSync": {
        "options": {
            "sourceType": "file",
            "sourceFile": "VERSION",
            "syncTargets": [
                {"file": "README.md", "pattern": "from: \\"(\\\\d+\\\\.\\\\d+\\\\.\\\\d+)\\""}
            ]
        }
    }
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.models import (
    FixResult,
    FixSafety,
    HookDiagnostic,
    HookSeverity,
    HookType,
    TaskResult,
)
from hookstage.core.hooks.tasks.base import HookTask

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".hookstage.json"


class VersionSourceError(Exception):
    """The canonical version could not be read."""

    def __init__(self, message: str, *, source: str, empty: bool = False) -> None:
        super().__init__(message)
        self.source = source
        self.empty = empty


@dataclass(frozen=True)
class VersionSource:
    """Where the canonical version lives: the project config or a file."""

    file: str | None = None

    @property
    def label(self) -> str:
        return self.file or PROJECT_CONFIG_FILE

    def read(self, root: Path) -> str:
        """
        Read the version.

        Raises:
            VersionSourceError: If the source is missing or the version empty
        """
        if self.file is None:
            return self._read_project_config(root)
        path = root / self.file
        if not path.is_file():
            raise VersionSourceError(f"No {self.file} file found", source=self.file)
        try:
            version = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            raise VersionSourceError(f"Cannot read {self.file}: {e}", source=self.file) from e
        if not version:
            raise VersionSourceError("Version is empty", source=self.file, empty=True)
        return version

    def _read_project_config(self, root: Path) -> str:
        path = root / PROJECT_CONFIG_FILE
        if not path.is_file():
            raise VersionSourceError(
                f"No {PROJECT_CONFIG_FILE} file found", source=PROJECT_CONFIG_FILE
            )
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise VersionSourceError(
                f"Cannot read {PROJECT_CONFIG_FILE}: {e}", source=PROJECT_CONFIG_FILE
            ) from e
        project = data.get("project") if isinstance(data, dict) else None
        version = project.get("version") if isinstance(project, dict) else None
        if not isinstance(version, str):
            raise VersionSourceError(
                f"No project.version in {PROJECT_CONFIG_FILE}", source=PROJECT_CONFIG_FILE
            )
        if not version:
            raise VersionSourceError(
                "Version is empty", source=PROJECT_CONFIG_FILE, empty=True
            )
        return version

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> VersionSource:
        source_type = str(options.get("sourceType", "default")).lower()
        source_file = options.get("sourceFile")
        if source_type == "file" and isinstance(source_file, str) and source_file:
            return cls(file=source_file)
        return cls()


@dataclass(frozen=True)
class SyncTarget:
    """A file whose first regex capture group must equal the version."""

    file: str
    pattern: str

    @classmethod
    def list_from_options(cls, options: dict[str, Any]) -> list[SyncTarget]:
        targets: list[SyncTarget] = []
        for entry in options.get("syncTargets") or []:
            if not isinstance(entry, dict):
                continue
            file, pattern = entry.get("file"), entry.get("pattern")
            if isinstance(file, str) and isinstance(pattern, str):
                targets.append(cls(file=file, pattern=pattern))
            else:
                logger.warning(f"Ignoring sync target without file/pattern: {entry}")
        return targets


class VersionSyncTask(HookTask):
    """Keep version strings in sync with the canonical version."""

    id = "versionSync"
    name = "Version Sync"
    hooks = frozenset({HookType.PRE_COMMIT, HookType.PRE_PUSH, HookType.CI})
    supports_fix = True
    fix_safety = FixSafety.SAFE

    def __init__(
        self,
        *,
        source: VersionSource | None = None,
        sync_targets: list[SyncTarget] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.source = source or VersionSource()
        self.sync_targets = list(sync_targets or [])

    @property
    def file_patterns(self) -> tuple[str, ...]:  # type: ignore[override]
        patterns = [t.file for t in self.sync_targets]
        if self.source.file:
            patterns.insert(0, self.source.file)
        return tuple(patterns)

    async def run(self, context: HookContext) -> TaskResult:
        started = time.monotonic()
        try:
            version = self.source.read(context.project_root)
        except VersionSourceError as e:
            if e.empty:
                return TaskResult.failed(
                    [self._diagnostic(e.source, str(e))],
                    duration_seconds=time.monotonic() - started,
                )
            return TaskResult.skipped(str(e))

        diagnostics = [
            diagnostic
            for target in self.sync_targets
            if (diagnostic := self._check_target(context.project_root, target, version))
        ]
        return TaskResult.from_diagnostics(
            diagnostics,
            blocking=self.is_blocking,
            duration_seconds=time.monotonic() - started,
            files_checked=len(self.sync_targets),
            fixes_available=any(d.fixable for d in diagnostics),
        )

    async def fix(self, context: HookContext) -> FixResult:
        try:
            version = self.source.read(context.project_root)
        except VersionSourceError as e:
            logger.debug(f"versionSync: nothing to fix ({e})")
            return FixResult()

        modified: list[str] = []
        errors: list[str] = []
        for target in self.sync_targets:
            try:
                if self._fix_target(context.project_root, target, version):
                    modified.append(target.file)
            except (OSError, UnicodeDecodeError) as e:
                errors.append(f"{target.file}: {e}")
        return FixResult(files_modified=modified, fixes_applied=len(modified), errors=errors)

    # Internals

    def _diagnostic(self, file: str, message: str, *, fixable: bool = False) -> HookDiagnostic:
        return HookDiagnostic(
            file=file,
            message=message,
            severity=HookSeverity.ERROR,
            rule_id=self.id,
            fixable=fixable,
        )

    def _check_target(
        self, root: Path, target: SyncTarget, expected: str
    ) -> HookDiagnostic | None:
        path = root / target.file
        if not path.is_file():
            return self._diagnostic(target.file, "File not found")
        try:
            regex = re.compile(target.pattern)
        except re.error:
            return self._diagnostic(target.file, f"Invalid pattern: {target.pattern}")

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return self._diagnostic(target.file, f"Cannot read file: {e}")

        match = regex.search(content)
        if match is None or regex.groups < 1 or match.group(1) is None:
            return self._diagnostic(target.file, "Version pattern not found in file")

        found = match.group(1)
        if found != expected:
            return self._diagnostic(
                target.file,
                f"Version mismatch: found '{found}', expected '{expected}'",
                fixable=True,
            )
        return None

    def _fix_target(self, root: Path, target: SyncTarget, version: str) -> bool:
        path = root / target.file
        if not path.is_file():
            return False
        try:
            regex = re.compile(target.pattern)
        except re.error:
            return False

        content = path.read_text(encoding="utf-8")
        match = regex.search(content)
        if match is None or regex.groups < 1 or match.group(1) is None:
            return False
        if match.group(1) == version:
            return False

        start, end = match.span(1)
        path.write_text(content[:start] + version + content[end:], encoding="utf-8")
        logger.info(f"versionSync: updated {target.file} to {version}")
        return True

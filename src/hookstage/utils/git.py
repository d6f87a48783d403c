"""
Git utilities for hookstage.

GitIndex wraps the handful of git plumbing commands a hook run needs:
listing staged files, reading their indexed content, diffing against a
base branch and restaging files after fixes. All calls are async and go
through the shared process runner.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from hookstage.core.hooks.context import FileStatus, StagedFile
from hookstage.core.hooks.errors import GitError
from hookstage.core.tools.process import run_process

logger = logging.getLogger(__name__)

_HEAD_BRANCH = re.compile(r"HEAD branch:\s*(\S+)")

_STATUS_LETTERS = {status.value: status for status in FileStatus}


def parse_name_status(output: str) -> list[tuple[str, FileStatus]]:
    """
    Parse ``git diff --name-status -z`` output.

    Fields are NUL-separated and paths are never quoted. Renames and copies
    ("R100\\0old\\0new") report the new path. Unknown status letters are
    treated as modifications.

    Example:
        >>> parse_name_status("M\\0README.md\\0R100\\0a.py\\0b.py\\0")
        [('README.md', <FileStatus.MODIFIED: 'M'>), ('b.py', <FileStatus.RENAMED: 'R'>)]
    """
    fields = output.split("\0")
    entries: list[tuple[str, FileStatus]] = []
    index = 0
    while index < len(fields):
        status = fields[index].strip()
        index += 1
        if not status:
            continue
        letter = status[0]
        # Renames and copies carry the old and the new path
        width = 2 if letter in ("R", "C") else 1
        paths = fields[index : index + width]
        index += width
        if len(paths) < width or not paths[-1]:
            continue
        entries.append((paths[-1], _STATUS_LETTERS.get(letter, FileStatus.MODIFIED)))
    return entries


class GitIndex:
    """Async access to a repository's index and history."""

    def __init__(self, project_root: Path) -> None:
        self.project_root = Path(project_root)

    async def _git(self, *args: str) -> str:
        command = list(args)
        result = await run_process(["git", *command], cwd=self.project_root)
        if not result.success:
            raise GitError(command, result.output or (result.error or ""), result.exit_code)
        return result.stdout

    async def is_repository(self) -> bool:
        try:
            await self._git("rev-parse", "--git-dir")
        except GitError:
            return False
        return True

    async def staged_files(self) -> list[StagedFile]:
        """Files in the staging area, with a reader for their indexed content."""
        output = await self._git("diff", "--cached", "--name-status", "-z")
        return [
            StagedFile(path=path, status=status, reader=self.staged_content)
            for path, status in parse_name_status(output)
        ]

    async def staged_content(self, path: str) -> str:
        """Content of ``path`` as it exists in the index (``git show :path``)."""
        return await self._git("show", f":{path}")

    async def changed_files(self, base: str) -> list[str]:
        """Files changed between ``base`` and HEAD (three-dot diff)."""
        output = await self._git("diff", "--name-only", "-z", f"{base}...HEAD")
        return [path for path in output.split("\0") if path]

    async def default_branch(self) -> str:
        """
        Name of the remote's default branch.

        Asks ``origin`` first, then falls back to a local main or master.
        """
        try:
            info = await self._git("remote", "show", "origin")
        except GitError:
            info = ""
        if match := _HEAD_BRANCH.search(info):
            if match.group(1) != "(unknown)":
                return match.group(1)

        branches = await self._git("branch", "--list", "main", "master")
        names = {line.strip(" *") for line in branches.splitlines()}
        return "main" if "main" in names or "master" not in names else "master"

    async def changed_files_vs_origin(self, base_branch: str | None = None) -> list[str]:
        """Files changed against ``origin/<base_branch or default branch>``."""
        branch = base_branch or await self.default_branch()
        return await self.changed_files(f"origin/{branch}")

    async def restage(self, files: list[str]) -> None:
        """Add files back to the index after fixes changed them."""
        if not files:
            return
        logger.info(f"Restaging {len(files)} file(s)")
        await self._git("add", "--", *files)

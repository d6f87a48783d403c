"""
Project root discovery utilities for hookstage.

This module provides functions for discovering project boundaries by
searching for marker files like .hookstage.json or .git/.
"""

from __future__ import annotations

from pathlib import Path

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    ".hookstage.json",  # hookstage configuration file
    "Package.swift",  # Swift package manifest
    ".git",  # Git repository
]

# Directories never walked when listing project files
IGNORED_DIRECTORIES = frozenset({".build", "DerivedData", "node_modules", "__pycache__"})


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root(Path("/project/Sources/App"))
        PosixPath('/project')
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for directory in (current, *current.parents):
        for marker in PROJECT_ROOT_MARKERS:
            if (directory / marker).exists():
                return directory
    return None


def list_project_files(root: Path) -> list[str]:
    """
    List every file of a project, relative to ``root``.

    Hidden entries and build output directories are skipped.

    Returns:
        Sorted POSIX-style relative paths
    """
    files: list[str] = []
    for path in root.rglob("*"):
        relative = path.relative_to(root)
        if any(part.startswith(".") or part in IGNORED_DIRECTORIES for part in relative.parts):
            continue
        if path.is_file():
            files.append(relative.as_posix())
    return sorted(files)

"""
Executable resolution for external tools.

Tasks never hard-code where a tool lives. They ask an ExecutableResolver,
which returns a runnable path or None when the tool is not installed.
Downloading or caching binaries is out of scope; a resolver only looks.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

WELL_KNOWN_BIN_DIRS: tuple[str, ...] = (
    "~/.local/bin",
    "~/.spk/bin",
    "/opt/homebrew/bin",
    "/usr/local/bin",
)
"""Directories searched before PATH, in order."""


@runtime_checkable
class ExecutableResolver(Protocol):
    """
    Protocol for locating tool executables.

    Implementations must be safe to call from concurrently running tasks.
    """

    def resolve(self, name: str) -> Path | None:
        """
        Locate an executable by name.

        Args:
            name: Tool name (e.g. "swa") or a path to an executable

        Returns:
            Path to a runnable file, or None if not found
        """
        ...


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class PathExecutableResolver:
    """
    Resolve executables from well-known bin directories, then PATH.

    Example:
        >>> resolver = PathExecutableResolver()
        >>> resolver.resolve("git")
        PosixPath('/usr/bin/git')
    """

    def __init__(
        self,
        search_dirs: Iterable[str | Path] | None = None,
        *,
        use_path: bool = True,
    ) -> None:
        dirs = WELL_KNOWN_BIN_DIRS if search_dirs is None else search_dirs
        self.search_dirs = [Path(d).expanduser() for d in dirs]
        self.use_path = use_path

    def resolve(self, name: str) -> Path | None:
        # Explicit paths bypass the search
        if os.sep in name or (os.altsep and os.altsep in name):
            candidate = Path(name).expanduser()
            return candidate if _is_executable(candidate) else None

        for directory in self.search_dirs:
            candidate = directory / name
            if _is_executable(candidate):
                logger.debug(f"Resolved {name} to {candidate}")
                return candidate

        if self.use_path:
            found = shutil.which(name)
            if found:
                logger.debug(f"Resolved {name} from PATH: {found}")
                return Path(found)

        logger.debug(f"Executable not found: {name}")
        return None

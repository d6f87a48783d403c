"""
Process management utilities for running external tools.

This module provides utilities for:
- Safe process spawning with timeout support
- Concurrent draining of stdout and stderr (no pipe-buffer deadlocks)
- Optional line-by-line streaming for verbose runs
- Process group management for clean termination on timeout

A process that cannot be launched at all (missing binary, permission
denied) is reported through ``ProcessResult.launch_failed`` rather than an
exception, so callers can degrade a check to "not run".
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_UNIX = not IS_WINDOWS

# Bytes per pipe read
READ_CHUNK_SIZE = 65536


class OutputStream(str, Enum):
    """Which pipe a streamed line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"

    @property
    def prefix(self) -> str:
        return f"[{self.value}]"


LineCallback = Callable[[OutputStream, str], None]
"""Called once per output line while a process runs."""


class ProcessResult(BaseModel):
    """Structured result from process execution."""

    success: bool
    """Whether the process completed successfully (exit code 0)."""

    exit_code: int | None
    """Process exit code, or None if it never ran or was killed."""

    stdout: str = ""
    """Standard output from the process."""

    stderr: str = ""
    """Standard error from the process."""

    duration_ms: int = 0
    """Execution duration in milliseconds."""

    timed_out: bool = False
    """Whether the process was terminated due to timeout."""

    launch_failed: bool = False
    """Whether the executable could not be started at all."""

    error: str | None = None
    """Error message if execution failed."""

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stdout and self.stderr:
            separator = "" if self.stdout.endswith("\n") else "\n"
            return f"{self.stdout}{separator}{self.stderr}"
        return self.stdout or self.stderr


async def _drain(
    reader: asyncio.StreamReader | None,
    stream: OutputStream,
    on_line: LineCallback | None,
) -> str:
    """Read a pipe to EOF, forwarding each decoded line to the callback."""
    if reader is None:
        return ""
    chunks: list[bytes] = []
    partial = b""
    while True:
        # Fixed-size reads; readline() fails on lines longer than the stream limit
        chunk = await reader.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        if on_line is not None:
            *lines, partial = (partial + chunk).split(b"\n")
            for line in lines:
                on_line(stream, _decode(line).rstrip("\r"))
    if on_line is not None and partial:
        on_line(stream, _decode(partial).rstrip("\r"))
    return _decode(b"".join(chunks))


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


async def run_process(
    command: list[str],
    *,
    cwd: str | Path | None = None,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
    on_line: LineCallback | None = None,
) -> ProcessResult:
    """
    Run a subprocess, capturing (and optionally streaming) its output.

    Both pipes are drained concurrently so a child that fills one pipe's
    buffer never blocks while we wait on the other.

    Args:
        command: Command and arguments as a list (e.g., ["git", "status"])
        cwd: Working directory for the process
        timeout: Optional timeout in seconds. None means no timeout.
        env: Extra environment variables, merged over os.environ
        on_line: Optional callback receiving every line as it arrives

    Returns:
        ProcessResult with output, exit code, and timing information.

    Example:
        >>> result = await run_process(["git", "status"], cwd="/path/to/repo")
        >>> if result.success:
        ...     print(result.stdout)
    """
    started = time.monotonic()
    process: asyncio.subprocess.Process | None = None

    def elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    process_env = None
    if env is not None:
        process_env = os.environ.copy()
        process_env.update(env)

    kwargs: dict[str, Any] = {
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "stdin": asyncio.subprocess.DEVNULL,
        "cwd": str(cwd) if cwd is not None else None,
        "env": process_env,
    }
    # Own process group so a timeout can take down the whole tree
    if IS_UNIX:
        kwargs["start_new_session"] = True

    try:
        logger.debug(f"Running process: {' '.join(command)}")
        process = await asyncio.create_subprocess_exec(*command, **kwargs)
    except FileNotFoundError:
        return ProcessResult(
            success=False,
            exit_code=None,
            duration_ms=elapsed_ms(),
            launch_failed=True,
            error=f"Command not found: {command[0]}. Ensure it is installed and in PATH.",
        )
    except PermissionError:
        return ProcessResult(
            success=False,
            exit_code=None,
            duration_ms=elapsed_ms(),
            launch_failed=True,
            error=f"Permission denied: {command[0]}",
        )
    except OSError as e:
        return ProcessResult(
            success=False,
            exit_code=None,
            duration_ms=elapsed_ms(),
            launch_failed=True,
            error=f"Failed to start {command[0]}: {e}",
        )

    readers = [
        asyncio.create_task(_drain(process.stdout, OutputStream.STDOUT, on_line)),
        asyncio.create_task(_drain(process.stderr, OutputStream.STDERR, on_line)),
    ]

    async def communicate() -> tuple[str, str]:
        stdout, stderr = await asyncio.gather(*readers)
        await process.wait()
        return stdout, stderr

    try:
        if timeout is not None:
            stdout, stderr = await asyncio.wait_for(communicate(), timeout=timeout)
        else:
            stdout, stderr = await communicate()
    except asyncio.TimeoutError:
        return ProcessResult(
            success=False,
            exit_code=None,
            duration_ms=elapsed_ms(),
            timed_out=True,
            error=f"Process timed out after {timeout}s",
        )
    finally:
        # Readers and the child never outlive this call
        for task in readers:
            task.cancel()
        await kill_process_group(process)

    return ProcessResult(
        success=process.returncode == 0,
        exit_code=process.returncode,
        stdout=stdout,
        stderr=stderr,
        duration_ms=elapsed_ms(),
    )


async def kill_process_group(process: asyncio.subprocess.Process) -> None:
    """
    Kill the process group to ensure all child processes are terminated.

    This function handles platform differences:
    - Unix: Uses process groups with os.killpg()
    - Windows: Falls back to direct process.kill()

    Args:
        process: The subprocess to kill along with its children.
    """
    if process.returncode is not None:
        return

    try:
        if IS_UNIX:
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, signal.SIGKILL)
            logger.debug(f"Killed process group {pgid}")
        else:
            process.kill()
            logger.debug(f"Killed process {process.pid}")
    except (ProcessLookupError, OSError) as e:
        # Process may have already terminated
        logger.debug(f"Process kill failed (process may be dead): {e}")

    try:
        await asyncio.wait_for(process.wait(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning(f"Process {process.pid} did not exit after SIGKILL")

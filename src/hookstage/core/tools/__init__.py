"""
External tool invocation for hookstage.

Components:
- run_process: async subprocess runner with concurrent pipe draining
- ProcessResult: structured result of one process run
- ExecutableResolver: protocol for locating tool binaries
- PathExecutableResolver: resolver searching bin directories and PATH
"""

from hookstage.core.tools.process import OutputStream, ProcessResult, run_process
from hookstage.core.tools.resolver import ExecutableResolver, PathExecutableResolver

__all__ = [
    "ExecutableResolver",
    "OutputStream",
    "PathExecutableResolver",
    "ProcessResult",
    "run_process",
]

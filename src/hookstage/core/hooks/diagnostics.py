"""
Diagnostic extraction from external tool output.

Compilers, formatters and linters mostly agree on one line shape:

    Sources/Foo.swift:10:5: error: missing trailing comma

This module turns such lines into HookDiagnostic objects. Parsing is
tolerant: a line that does not match is either dropped (strict mode) or
kept as a message-only diagnostic without a location. It never raises.
"""

from __future__ import annotations

import re

from hookstage.core.hooks.models import HookDiagnostic, HookSeverity

LOCATION_PATTERN = re.compile(
    r"^(?P<path>[^\s:][^:]*?):(?P<line>\d+):(?:(?P<column>\d+):)?\s*"
    r"(?P<severity>error|warning|note):\s*(?P<message>.*?)\s*$"
)

_SEVERITIES = {
    "error": HookSeverity.ERROR,
    "warning": HookSeverity.WARNING,
    "note": HookSeverity.INFO,
}


def severity_from_text(text: str) -> HookSeverity:
    """Map a tool severity word onto HookSeverity ("note" becomes info)."""
    return _SEVERITIES.get(text.lower(), HookSeverity.INFO)


def _positive(value: str | None) -> int | None:
    # Tools occasionally emit 0 for "unknown"; that is no location, not line 0
    if value is None:
        return None
    number = int(value)
    return number if number >= 1 else None


def parse_location_line(
    line: str,
    *,
    rule_id: str | None = None,
    fixable: bool = False,
) -> HookDiagnostic | None:
    """
    Parse one "path:line:col: severity: message" line.

    Args:
        line: A single line of tool output
        rule_id: Rule identifier to attach to the diagnostic
        fixable: Whether the finding can be fixed automatically

    Returns:
        The diagnostic, or None if the line does not have the expected shape
    """
    match = LOCATION_PATTERN.match(line.rstrip("\r\n"))
    if match is None:
        return None

    line_number = _positive(match.group("line"))
    column = _positive(match.group("column")) if line_number is not None else None
    return HookDiagnostic(
        file=match.group("path"),
        line=line_number,
        column=column,
        severity=severity_from_text(match.group("severity")),
        message=match.group("message") or match.group("severity"),
        rule_id=rule_id,
        fixable=fixable,
    )


def parse_diagnostics(
    output: str,
    *,
    keep_unmatched: bool = False,
    unmatched_severity: HookSeverity = HookSeverity.ERROR,
    rule_id: str | None = None,
    fixable: bool = False,
    path_suffix: str | None = None,
) -> list[HookDiagnostic]:
    """
    Extract diagnostics from multi-line tool output.

    Args:
        output: Combined stdout/stderr of a tool
        keep_unmatched: Surface non-matching, non-blank lines as message-only
            diagnostics instead of dropping them
        unmatched_severity: Severity for message-only diagnostics
        rule_id: Rule identifier attached to every diagnostic
        fixable: Whether the findings can be fixed automatically
        path_suffix: Only accept located lines whose path ends with this
            suffix (e.g. ".swift"); other lines count as unmatched

    Returns:
        Diagnostics in the order they appear in the output
    """
    diagnostics: list[HookDiagnostic] = []
    for raw_line in output.splitlines():
        diagnostic = parse_location_line(raw_line, rule_id=rule_id, fixable=fixable)
        if diagnostic is not None and path_suffix is not None:
            if not (diagnostic.file or "").endswith(path_suffix):
                diagnostic = None

        if diagnostic is not None:
            diagnostics.append(diagnostic)
        elif keep_unmatched and raw_line.strip():
            diagnostics.append(
                HookDiagnostic(
                    message=raw_line.strip(),
                    severity=unmatched_severity,
                    rule_id=rule_id,
                )
            )
    return diagnostics

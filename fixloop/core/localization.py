"""Fallback fault synthesis from raw error text.

When the localizer finds nothing (or none is configured), the engine still
tries one generic fault from the first source reference in the error text.
Recognized references::

    at src/app.ts:15            (file:line, optionally :column)
    File "pkg/mod.py", line 12  (Python traceback)
"""

import logging
import re
from typing import Optional

from fixloop.core.schema.collaborators import FileReader
from fixloop.core.schema.fault import Fault, FaultType, Severity, SourceLocation

logger = logging.getLogger(__name__)

_PY_TRACEBACK_RE = re.compile(r'File "(?P<file>[^"]+)", line (?P<line>\d+)')
# Paths start the line or follow whitespace, a bracket or a quote, so
# "scheme://host:port" and "host:port/path" never match
_FILE_LINE_RE = re.compile(
    r"(?:^|(?<=[\s(\['\"]))"
    r"(?P<file>(?:[A-Za-z]:)?[\w@~./\\-]*[\w-]\.[A-Za-z]\w*):(?P<line>\d+)(?::\d+)?(?![\d/])",
    re.MULTILINE,
)

GENERIC_SUSPICIOUSNESS = 0.5


def find_source_reference(error_text: str) -> Optional[tuple]:
    """Return ``(file, line)`` for the first source reference, or None."""
    candidates = []
    for pattern in (_PY_TRACEBACK_RE, _FILE_LINE_RE):
        match = pattern.search(error_text)
        if match:
            candidates.append((match.start(), match.group("file"), int(match.group("line"))))
    if not candidates:
        return None
    _, file, line = min(candidates)
    if line < 1:
        return None
    return file, line


def _summary(error_text: str) -> str:
    for line in error_text.strip().splitlines():
        if line.strip():
            return line.strip()
    return "Unknown error"


def extract_generic_fault(
    error_text: str, fault_id: str = "fault-generic-1", file_reader: Optional[FileReader] = None
) -> Optional[Fault]:
    """Build one ``generic`` fault from a ``file:line`` reference in ``error_text``.

    Args:
        error_text: Raw error or stack-trace text
        fault_id: Id for the synthesized fault
        file_reader: Used to capture the referenced line as snippet (optional)

    Returns:
        The fault, or None when the text has no source reference
    """
    reference = find_source_reference(error_text)
    if reference is None:
        return None
    file, line = reference

    snippet = None
    if file_reader is not None:
        try:
            lines = file_reader(file).splitlines()
            if line <= len(lines):
                snippet = lines[line - 1]
        except Exception as e:
            logger.debug(f"Could not read snippet for {file}:{line}: {e}")

    logger.info(f"Synthesized generic fault at {file}:{line}")
    return Fault(
        id=fault_id,
        type=FaultType.GENERIC,
        severity=Severity.MEDIUM,
        message=_summary(error_text),
        location=SourceLocation(file=file, start_line=line, end_line=line, snippet=snippet),
        suspiciousness=GENERIC_SUSPICIOUSNESS,
        metadata={"source": "generic", "error_text": error_text},
    )

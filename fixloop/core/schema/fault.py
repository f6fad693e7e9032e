"""Fault model describing a located, classified defect."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class FaultType(str, Enum):
    """Taxonomy of faults a localizer can report."""

    TYPE_ERROR = "type_error"
    NULL_REFERENCE = "null_reference"
    LOGIC_ERROR = "logic_error"
    SYNTAX_ERROR = "syntax_error"
    RUNTIME_ERROR = "runtime_error"
    GENERIC = "generic"


class Severity(str, Enum):
    """Ordinal severity of a fault."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True)
class SourceLocation:
    """Line range in a source file.

    Attributes:
        file: Path of the file, as reported by the localizer
        start_line: First line of the range (1-based)
        end_line: Last line of the range (1-based, inclusive)
        snippet: Offending source text at localization time (read-only evidence)
    """

    file: str
    start_line: int
    end_line: int
    snippet: Optional[str] = None

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.file}:{self.start_line}"
        return f"{self.file}:{self.start_line}-{self.end_line}"


@dataclass(frozen=True)
class Fault:
    """A located, classified candidate cause of a reported error.

    Faults are created by a fault localizer (or synthesized by the engine from
    a ``file:line`` reference) and are never mutated afterwards.

    Attributes:
        id: Identifier, unique within a session
        type: Fault classification
        severity: Ordinal severity
        message: Human-readable description, usually the error message
        location: Where the fault is
        suspiciousness: Likelihood in [0, 1] that this location is the true cause
        metadata: Localizer-specific evidence
    """

    id: str
    type: FaultType
    severity: Severity
    message: str
    location: SourceLocation
    suspiciousness: float = 0.5
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        # Localizers may hand over plain strings
        if not isinstance(self.type, FaultType):
            object.__setattr__(self, "type", FaultType(self.type))
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, "severity", Severity(self.severity))
        if not 0.0 <= self.suspiciousness <= 1.0:
            raise ValueError(f"suspiciousness must be in [0, 1], got {self.suspiciousness}")

"""Patch candidate model.

A patch candidate is a proposed, not-yet-proven set of line-based source
edits that addresses exactly one fault. Line numbers are 1-based and
inclusive, matching what localizers and stack traces report.

Change semantics:

- ``replace``: lines ``start_line..end_line`` are replaced by ``new_code``
- ``insert``: ``new_code`` is inserted before ``start_line``
- ``delete``: lines ``start_line..end_line`` are removed
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from fixloop.core.schema.fault import Fault


class ChangeType(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


class GeneratedBy(str, Enum):
    """Which generator produced a candidate."""

    TEMPLATE = "template"
    LLM = "llm"


LLM_STRATEGY = "llm-generated"


@dataclass
class CodeChange:
    """Single edit to one file.

    Attributes:
        file: Target file path
        type: Kind of edit
        start_line: First affected line (1-based)
        end_line: Last affected line (1-based, inclusive)
        original_code: Code expected at the range before the edit (informational)
        new_code: Replacement or inserted code (unused for deletes)
    """

    file: str
    type: ChangeType
    start_line: int
    end_line: int
    original_code: Optional[str] = None
    new_code: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.type, ChangeType):
            self.type = ChangeType(self.type)
        if self.start_line < 1:
            raise ValueError(f"start_line must be >= 1, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must be >= start_line ({self.start_line})"
            )

    def overlaps(self, other: "CodeChange") -> bool:
        """Check whether two changes touch the same lines of the same file."""
        if self.file != other.file:
            return False
        return self.start_line <= other.end_line and other.start_line <= self.end_line


@dataclass
class PatchCandidate:
    """Proposed fix for one fault.

    ``validated`` is set only by the validation loop, after the candidate has
    passed the test suite.
    """

    id: str
    fault: Fault
    changes: List[CodeChange]
    strategy: str
    confidence: float
    explanation: str = ""
    generated_by: GeneratedBy = GeneratedBy.TEMPLATE
    validated: bool = False

    def __post_init__(self):
        if not isinstance(self.generated_by, GeneratedBy):
            self.generated_by = GeneratedBy(self.generated_by)
        self.confidence = min(1.0, max(0.0, float(self.confidence)))

    def files(self) -> List[str]:
        """Files touched by this candidate, in first-seen order."""
        seen: List[str] = []
        for change in self.changes:
            if change.file not in seen:
                seen.append(change.file)
        return seen

    def overlapping_changes(self) -> bool:
        """True if any two changes describe overlapping line ranges."""
        for i, change in enumerate(self.changes):
            for other in self.changes[i + 1:]:
                if change.overlaps(other):
                    return True
        return False

    def change_key(self) -> tuple:
        """Hashable description of the edits, used for de-duplication."""
        return tuple(
            (c.file, c.type.value, c.start_line, c.end_line, c.new_code or "")
            for c in self.changes
        )

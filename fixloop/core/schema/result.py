"""Repair outcome models: per-fault results, sessions and statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import PatchCandidate


@dataclass
class RepairResult:
    """Outcome of repairing one fault.

    Attributes:
        success: Whether a candidate was accepted
        fault: The fault this result is about
        candidates_generated: Candidates produced by generation (fixed after generation)
        candidates_tested: Validation attempts made, whatever their outcome
        all_patches: Every candidate considered, kept for audit
        applied_patch: The accepted candidate; set iff ``success``
        iterations: Number of validation attempts actually made
        duration: Wall-clock seconds spent on this fault
        error: Last known error (rejection reason, or why nothing was tried)
    """

    success: bool
    fault: Fault
    candidates_generated: int
    candidates_tested: int
    all_patches: List[PatchCandidate] = field(default_factory=list)
    applied_patch: Optional[PatchCandidate] = None
    iterations: int = 0
    duration: float = 0.0
    error: Optional[str] = None


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class RepairSession:
    """One end-to-end ``repair()`` invocation."""

    id: str
    error_signal: str
    start_time: datetime
    end_time: Optional[datetime] = None
    results: List[RepairResult] = field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()


@dataclass(frozen=True)
class RepairStatistics:
    """Point-in-time snapshot of the learning counters."""

    total_faults: int = 0
    repaired_faults: int = 0
    failed_faults: int = 0
    strategy_success_rates: Dict[str, float] = field(default_factory=dict)
    template_success_rates: Dict[str, float] = field(default_factory=dict)

    @property
    def repair_rate(self) -> float:
        if self.total_faults == 0:
            return 0.0
        return self.repaired_faults / self.total_faults

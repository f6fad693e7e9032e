"""Learning statistics for repair strategies and templates.

The tracker keeps running counters per strategy and per template and derives
success rates from them on read. Counters are updated once per resolved fault
(accepted or exhausted) and are shared with observers, so every access goes
through a lock.

Clearing session history does not touch these counters; ``reset()`` is the
only way to forget what was learned.

Persistence is optional and lives outside the engine: ``StatisticsStore``
snapshots a tracker to a git-friendly JSON file and loads it back.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from fixloop.core.schema.patch import GeneratedBy, PatchCandidate
from fixloop.core.schema.result import RepairResult, RepairStatistics

logger = logging.getLogger(__name__)

STORE_VERSION = "1.0"


@dataclass
class SuccessCounter:
    """Attempts and successes for one strategy or template."""

    attempts: int = 0
    successes: int = 0

    @property
    def rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts

    def record(self, success: bool) -> None:
        self.attempts += 1
        if success:
            self.successes += 1


class LearnedRates:
    """Immutable view of learned rates used for ranking.

    Attributes:
        strategies: strategy -> (attempts, rate)
        templates: template id -> (attempts, rate)
    """

    def __init__(
        self,
        strategies: Optional[Dict[str, Tuple[int, float]]] = None,
        templates: Optional[Dict[str, Tuple[int, float]]] = None,
    ):
        self.strategies = dict(strategies or {})
        self.templates = dict(templates or {})

    def lookup(self, candidate: PatchCandidate) -> Optional[Tuple[int, float]]:
        """Template rate for template candidates, strategy rate otherwise."""
        if candidate.generated_by == GeneratedBy.TEMPLATE and candidate.strategy in self.templates:
            return self.templates[candidate.strategy]
        return self.strategies.get(candidate.strategy)


class LearningTracker:
    """Process-lifetime repair counters.

    Example:
        >>> tracker = LearningTracker()
        >>> tracker.record_fault(result)
        >>> tracker.statistics().repaired_faults
        1
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.total_faults = 0
        self.repaired_faults = 0
        self.failed_faults = 0
        self.strategies: Dict[str, SuccessCounter] = {}
        self.templates: Dict[str, SuccessCounter] = {}

    def record_fault(self, result: RepairResult) -> None:
        """Fold one resolved fault into the counters.

        Every candidate that was validated counts as one attempt for its
        strategy (and its template, for template candidates); only the
        accepted candidate counts as a success.

        Args:
            result: The fault's final result
        """
        tested = result.all_patches[:result.candidates_tested]
        accepted_id = result.applied_patch.id if result.applied_patch else None

        with self._lock:
            self.total_faults += 1
            if result.success:
                self.repaired_faults += 1
            else:
                self.failed_faults += 1

            for candidate in tested:
                success = candidate.id == accepted_id
                self.strategies.setdefault(candidate.strategy, SuccessCounter()).record(success)
                if candidate.generated_by == GeneratedBy.TEMPLATE:
                    self.templates.setdefault(candidate.strategy, SuccessCounter()).record(success)

    def statistics(self) -> RepairStatistics:
        """Pure read of the current counters."""
        with self._lock:
            return RepairStatistics(
                total_faults=self.total_faults,
                repaired_faults=self.repaired_faults,
                failed_faults=self.failed_faults,
                strategy_success_rates={k: c.rate for k, c in self.strategies.items()},
                template_success_rates={k: c.rate for k, c in self.templates.items()},
            )

    def rates(self) -> LearnedRates:
        """Snapshot of rates with attempt counts, for ranking."""
        with self._lock:
            return LearnedRates(
                strategies={k: (c.attempts, c.rate) for k, c in self.strategies.items()},
                templates={k: (c.attempts, c.rate) for k, c in self.templates.items()},
            )

    def reset(self) -> None:
        with self._lock:
            self.total_faults = 0
            self.repaired_faults = 0
            self.failed_faults = 0
            self.strategies = {}
            self.templates = {}

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_faults": self.total_faults,
                "repaired_faults": self.repaired_faults,
                "failed_faults": self.failed_faults,
                "strategies": _counters_to_dict(self.strategies.items()),
                "templates": _counters_to_dict(self.templates.items()),
            }

    def load_dict(self, data: Dict[str, Any]) -> None:
        """Replace the counters with a snapshot produced by ``to_dict``."""
        totals = (
            int(data.get("total_faults", 0)),
            int(data.get("repaired_faults", 0)),
            int(data.get("failed_faults", 0)),
        )
        strategies = _counters_from_dict(data.get("strategies", {}))
        templates = _counters_from_dict(data.get("templates", {}))

        with self._lock:
            self.total_faults, self.repaired_faults, self.failed_faults = totals
            self.strategies = strategies
            self.templates = templates


def _counters_to_dict(items: Iterable[Tuple[str, SuccessCounter]]) -> Dict[str, Dict[str, int]]:
    return {
        name: {"attempts": counter.attempts, "successes": counter.successes}
        for name, counter in items
    }


def _counters_from_dict(data: Dict[str, Dict[str, int]]) -> Dict[str, SuccessCounter]:
    return {
        name: SuccessCounter(
            attempts=int(entry.get("attempts", 0)),
            successes=int(entry.get("successes", 0)),
        )
        for name, entry in data.items()
    }


class StatisticsStore:
    """JSON snapshot of a LearningTracker, for reuse across processes.

    Example:
        >>> store = StatisticsStore(".fixloop-stats.json")
        >>> store.load(engine.learning)
        >>> engine.repair(error_text)
        >>> store.save(engine.learning)
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def save(self, tracker: LearningTracker) -> None:
        """Persist tracker counters to the JSON file."""
        data = {
            "version": STORE_VERSION,
            "saved_at": datetime.now().isoformat(),
            "statistics": tracker.to_dict(),
        }
        # Pretty-print for git-friendly diffs
        Path(self.file_path).write_text(json.dumps(data, indent=2, sort_keys=True))
        logger.debug(f"Saved repair statistics to {self.file_path}")

    def load(self, tracker: LearningTracker) -> bool:
        """Load counters into ``tracker``.

        Returns:
            True if a snapshot was loaded; False if the file is missing or unreadable
            (the tracker is left untouched)
        """
        path = Path(self.file_path)
        if not path.exists():
            return False

        try:
            data = json.loads(path.read_text())
            tracker.load_dict(data.get("statistics", {}))
        except (ValueError, TypeError, AttributeError, OSError) as e:
            logger.error(f"Failed to load repair statistics from {self.file_path}: {e}")
            return False

        logger.info(f"Loaded repair statistics from {self.file_path}")
        return True

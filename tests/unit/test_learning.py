"""Tests for learning counters and statistics persistence."""

import json
import tempfile
import threading
from pathlib import Path

from fixloop.core.learning import LearnedRates, LearningTracker, StatisticsStore, SuccessCounter
from fixloop.core.schema import (
    ChangeType,
    CodeChange,
    Fault,
    FaultType,
    GeneratedBy,
    PatchCandidate,
    RepairResult,
    Severity,
    SourceLocation,
)

FAULT = Fault(
    id="fault-1",
    type=FaultType.NULL_REFERENCE,
    severity=Severity.HIGH,
    message="TypeError: x is null",
    location=SourceLocation("src/app.ts", 15, 15),
)


def make_candidate(cid, strategy, generated_by=GeneratedBy.TEMPLATE, line=15):
    change = CodeChange("src/app.ts", ChangeType.REPLACE, line, line, new_code=f"// {cid}")
    return PatchCandidate(cid, FAULT, [change], strategy, 0.5, generated_by=generated_by)


def make_result(candidates, tested, accepted=None):
    return RepairResult(
        success=accepted is not None,
        fault=FAULT,
        candidates_generated=len(candidates),
        candidates_tested=tested,
        all_patches=candidates,
        applied_patch=accepted,
        iterations=tested,
    )


class TestSuccessCounter:
    """Tests for SuccessCounter."""

    def test_rate(self):
        counter = SuccessCounter()
        assert counter.rate == 0.0
        counter.record(True)
        counter.record(False)
        assert counter.rate == 0.5


class TestLearningTracker:
    """Tests for LearningTracker."""

    def test_counts_only_tested_candidates(self):
        tracker = LearningTracker()
        candidates = [
            make_candidate("p1", "null-check"),
            make_candidate("p2", "optional-chaining", line=16),
            make_candidate("p3", "default-value", line=17),
        ]
        tracker.record_fault(make_result(candidates, tested=2, accepted=candidates[1]))

        stats = tracker.statistics()
        assert stats.total_faults == 1
        assert stats.repaired_faults == 1
        assert stats.failed_faults == 0
        assert stats.strategy_success_rates == {"null-check": 0.0, "optional-chaining": 1.0}
        assert "default-value" not in stats.strategy_success_rates

    def test_llm_candidates_not_counted_as_templates(self):
        tracker = LearningTracker()
        candidates = [make_candidate("p1", "llm-generated", generated_by=GeneratedBy.LLM)]
        tracker.record_fault(make_result(candidates, tested=1))

        stats = tracker.statistics()
        assert stats.failed_faults == 1
        assert stats.strategy_success_rates == {"llm-generated": 0.0}
        assert stats.template_success_rates == {}

    def test_statistics_idempotent(self):
        tracker = LearningTracker()
        tracker.record_fault(make_result([make_candidate("p1", "null-check")], tested=1))
        assert tracker.statistics() == tracker.statistics()

    def test_rates_snapshot_is_detached(self):
        tracker = LearningTracker()
        candidate = make_candidate("p1", "null-check")
        tracker.record_fault(make_result([candidate], tested=1, accepted=candidate))
        snapshot = tracker.rates()

        tracker.record_fault(make_result([make_candidate("p2", "null-check")], tested=1))

        assert snapshot.templates["null-check"] == (1, 1.0)
        assert tracker.rates().templates["null-check"] == (2, 0.5)

    def test_reset(self):
        tracker = LearningTracker()
        tracker.record_fault(make_result([make_candidate("p1", "null-check")], tested=1))
        tracker.reset()
        assert tracker.statistics().total_faults == 0
        assert tracker.statistics().strategy_success_rates == {}

    def test_concurrent_updates(self):
        tracker = LearningTracker()

        def worker():
            for _ in range(200):
                tracker.record_fault(make_result([make_candidate("p", "s")], tested=1))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.statistics().total_faults == 800
        assert tracker.rates().strategies["s"] == (800, 0.0)

    def test_dict_round_trip(self):
        tracker = LearningTracker()
        candidate = make_candidate("p1", "null-check")
        tracker.record_fault(make_result([candidate], tested=1, accepted=candidate))

        restored = LearningTracker()
        restored.load_dict(tracker.to_dict())

        assert restored.statistics() == tracker.statistics()


class TestLearnedRates:
    """Tests for LearnedRates lookup."""

    def test_template_rate_preferred_for_templates(self):
        rates = LearnedRates(strategies={"null-check": (5, 0.2)}, templates={"null-check": (3, 0.9)})
        assert rates.lookup(make_candidate("p", "null-check")) == (3, 0.9)

    def test_strategy_rate_for_llm(self):
        rates = LearnedRates(strategies={"llm-generated": (4, 0.25)})
        candidate = make_candidate("p", "llm-generated", generated_by=GeneratedBy.LLM)
        assert rates.lookup(candidate) == (4, 0.25)

    def test_unknown_strategy(self):
        assert LearnedRates().lookup(make_candidate("p", "nothing")) is None


class TestStatisticsStore:
    """Tests for StatisticsStore persistence."""

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = str(Path(tmpdir) / "stats.json")
            tracker = LearningTracker()
            candidate = make_candidate("p1", "null-check")
            tracker.record_fault(make_result([candidate], tested=1, accepted=candidate))

            StatisticsStore(path).save(tracker)

            data = json.loads(Path(path).read_text())
            assert data["version"] == "1.0"
            assert data["statistics"]["templates"]["null-check"] == {"attempts": 1, "successes": 1}

            restored = LearningTracker()
            assert StatisticsStore(path).load(restored) is True
            assert restored.statistics().repaired_faults == 1

    def test_load_missing_file(self):
        tracker = LearningTracker()
        assert StatisticsStore("/nonexistent/stats.json").load(tracker) is False

    def test_load_corrupt_file_leaves_tracker(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "stats.json"
            path.write_text("{broken")
            tracker = LearningTracker()
            tracker.record_fault(make_result([make_candidate("p", "s")], tested=1))

            assert StatisticsStore(str(path)).load(tracker) is False
            assert tracker.statistics().total_faults == 1

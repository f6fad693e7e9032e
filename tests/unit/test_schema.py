"""Tests for fault, patch and result models."""

from datetime import datetime, timedelta

import pytest

from fixloop.core.schema import (
    ChangeType,
    CodeChange,
    Fault,
    FaultType,
    GeneratedBy,
    PatchCandidate,
    RepairSession,
    RepairStatistics,
    Severity,
    SourceLocation,
)


def make_fault(**overrides):
    values = dict(
        id="fault-1",
        type=FaultType.RUNTIME_ERROR,
        severity=Severity.HIGH,
        message="ZeroDivisionError: division by zero",
        location=SourceLocation("src/calc.py", 2, 2),
    )
    values.update(overrides)
    return Fault(**values)


class TestFault:
    """Tests for Fault and SourceLocation."""

    def test_location_str_single_line(self):
        assert str(SourceLocation("a.py", 3, 3)) == "a.py:3"

    def test_location_str_range(self):
        assert str(SourceLocation("a.py", 3, 5)) == "a.py:3-5"

    def test_string_enums_are_coerced(self):
        """Localizers may pass plain strings for type and severity."""
        fault = make_fault(type="null_reference", severity="critical")
        assert fault.type is FaultType.NULL_REFERENCE
        assert fault.severity is Severity.CRITICAL

    def test_invalid_suspiciousness_rejected(self):
        with pytest.raises(ValueError):
            make_fault(suspiciousness=1.5)

    def test_unknown_fault_type_rejected(self):
        with pytest.raises(ValueError):
            make_fault(type="cosmic_ray")

    def test_severity_rank_is_ordinal(self):
        ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
        assert ranks == sorted(ranks)

    def test_fault_is_immutable(self):
        fault = make_fault()
        with pytest.raises(Exception):
            fault.message = "changed"

    def test_metadata_ignored_in_equality(self):
        assert make_fault(metadata={"a": 1}) == make_fault(metadata={"b": 2})


class TestCodeChange:
    """Tests for CodeChange validation and overlap detection."""

    def test_start_line_must_be_positive(self):
        with pytest.raises(ValueError):
            CodeChange("a.py", ChangeType.REPLACE, 0, 1)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            CodeChange("a.py", ChangeType.REPLACE, 5, 4)

    def test_type_coerced_from_string(self):
        change = CodeChange("a.py", "delete", 1, 1)
        assert change.type is ChangeType.DELETE

    def test_overlap_same_file(self):
        a = CodeChange("a.py", ChangeType.REPLACE, 1, 3)
        b = CodeChange("a.py", ChangeType.REPLACE, 3, 4)
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_no_overlap_adjacent_or_other_file(self):
        a = CodeChange("a.py", ChangeType.REPLACE, 1, 2)
        assert not a.overlaps(CodeChange("a.py", ChangeType.REPLACE, 3, 4))
        assert not a.overlaps(CodeChange("b.py", ChangeType.REPLACE, 1, 2))


class TestPatchCandidate:
    """Tests for PatchCandidate."""

    def test_confidence_clamped(self):
        high = PatchCandidate("p1", make_fault(), [], "s", confidence=1.7)
        low = PatchCandidate("p2", make_fault(), [], "s", confidence=-0.2)
        assert high.confidence == 1.0
        assert low.confidence == 0.0

    def test_defaults(self):
        candidate = PatchCandidate("p1", make_fault(), [], "s", confidence=0.5)
        assert candidate.generated_by is GeneratedBy.TEMPLATE
        assert candidate.validated is False

    def test_files_in_first_seen_order(self):
        changes = [
            CodeChange("b.py", ChangeType.REPLACE, 1, 1, new_code="x"),
            CodeChange("a.py", ChangeType.REPLACE, 1, 1, new_code="y"),
            CodeChange("b.py", ChangeType.REPLACE, 5, 5, new_code="z"),
        ]
        candidate = PatchCandidate("p1", make_fault(), changes, "s", 0.5)
        assert candidate.files() == ["b.py", "a.py"]
        assert not candidate.overlapping_changes()

    def test_overlapping_changes_detected(self):
        changes = [
            CodeChange("a.py", ChangeType.REPLACE, 1, 3, new_code="x"),
            CodeChange("a.py", ChangeType.DELETE, 2, 2),
        ]
        candidate = PatchCandidate("p1", make_fault(), changes, "s", 0.5)
        assert candidate.overlapping_changes()

    def test_change_key_ignores_id_and_strategy(self):
        change = CodeChange("a.py", ChangeType.REPLACE, 1, 1, new_code="x")
        a = PatchCandidate("p1", make_fault(), [change], "one", 0.5)
        b = PatchCandidate("p2", make_fault(), [change], "two", 0.9, generated_by="llm")
        assert a.change_key() == b.change_key()


class TestResults:
    """Tests for session and statistics models."""

    def test_session_duration(self):
        start = datetime(2024, 1, 1, 12, 0, 0)
        session = RepairSession(id="s", error_signal="boom", start_time=start)
        assert session.duration is None
        session.end_time = start + timedelta(seconds=3)
        assert session.duration == 3.0

    def test_repair_rate(self):
        assert RepairStatistics().repair_rate == 0.0
        assert RepairStatistics(total_faults=4, repaired_faults=1, failed_faults=3).repair_rate == 0.25

"""Tests for RepairEngine configuration, history and statistics APIs."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from fixloop.core.config import RepairConfig
from fixloop.core.engine import (
    RepairEngine,
    create_repair_engine,
    get_default_engine,
    reset_default_engine,
)
from fixloop.core.errors import RepairInProgressError
from fixloop.core.events import RepairEvent
from fixloop.core.schema import (
    ChangeType,
    CodeChange,
    Fault,
    FaultType,
    LocalizationResult,
    PatchCandidate,
    Severity,
    SourceLocation,
)

FAULT = Fault(
    id="fault-1",
    type=FaultType.NULL_REFERENCE,
    severity=Severity.HIGH,
    message="TypeError: Cannot read property 'x' of null",
    location=SourceLocation("file.ts", 15, 15),
)


def make_templates():
    templates = MagicMock()
    templates.generate_patches.side_effect = lambda fault: [PatchCandidate(
        "patch-1", fault,
        [CodeChange(fault.location.file, ChangeType.REPLACE, 15, 15, new_code="obj?.x")],
        "null-check", 0.8,
    )]
    return templates


def best_effort_engine(**config):
    return RepairEngine(
        config=RepairConfig(use_llm=False, validate_with_tests=False, **config),
        template_generator=make_templates(),
    )


class TestConfigApi:
    """Tests for get_config/update_config."""

    def test_update_config_partial(self):
        engine = RepairEngine()
        config = engine.update_config(max_iterations=2)
        assert config.max_iterations == 2
        assert engine.get_config().max_candidates == 10

    def test_update_config_invalid(self):
        engine = RepairEngine()
        with pytest.raises(ValueError):
            engine.update_config(max_iterations=0)
        assert engine.get_config().max_iterations == 5

    def test_shrinking_history_keeps_newest(self):
        engine = best_effort_engine()
        for i in range(3):
            engine.repair(f"error {i} at file.ts:15")
        engine.update_config(max_history=2)

        history = engine.get_history()
        assert [s.error_signal for s in history] == ["error 1 at file.ts:15", "error 2 at file.ts:15"]


class TestHistoryAndStatistics:
    """Tests for history bounds and statistics snapshots."""

    def test_history_bounded(self):
        engine = best_effort_engine(max_history=2)
        for i in range(3):
            engine.repair(f"error {i} at file.ts:15")
        assert len(engine.get_history()) == 2

    def test_clear_history_keeps_statistics(self):
        engine = best_effort_engine()
        engine.repair("TypeError at file.ts:15")
        engine.clear_history()
        assert engine.get_history() == []
        assert engine.get_statistics().total_faults == 1

    def test_statistics_idempotent(self):
        engine = best_effort_engine()
        engine.repair("TypeError at file.ts:15")
        assert engine.get_statistics() == engine.get_statistics()

    def test_reset_statistics(self):
        engine = best_effort_engine()
        engine.repair("TypeError at file.ts:15")
        engine.reset_statistics()
        assert engine.get_statistics().total_faults == 0
        assert len(engine.get_history()) == 1

    def test_format_result(self):
        engine = best_effort_engine()
        result = engine.repair("TypeError at file.ts:15")[0]
        assert "Fixed (untested)" in engine.format_result(result)


class TestSessionControl:
    """Tests for single-flight execution and cancellation."""

    def test_concurrent_repair_rejected(self):
        entered = threading.Event()
        release = threading.Event()

        class SlowLocalizer:
            def localize(self, error_text):
                entered.set()
                release.wait(5)
                return LocalizationResult(faults=[], technique="slow")

        engine = RepairEngine(config=RepairConfig(use_llm=False), localizer=SlowLocalizer())
        worker = threading.Thread(target=engine.repair, args=("no reference here",))
        worker.start()
        try:
            assert entered.wait(5)
            assert engine.is_running
            with pytest.raises(RepairInProgressError):
                engine.repair("another error")
            with pytest.raises(RepairInProgressError):
                engine.set_executors(file_reader=lambda path: "")
        finally:
            release.set()
            worker.join(5)

        assert not engine.is_running
        assert engine.repair("no reference here") == []

    def test_separate_engines_are_independent(self):
        first = best_effort_engine()
        second = best_effort_engine()
        first.repair("TypeError at file.ts:15")
        assert second.get_statistics().total_faults == 0
        assert second.get_history() == []

    def test_cancel_between_faults(self):
        faults = [
            Fault(f"fault-{i}", FaultType.NULL_REFERENCE, Severity.HIGH, "boom",
                  SourceLocation("file.ts", 15, 15))
            for i in range(3)
        ]
        localizer = MagicMock()
        localizer.localize.return_value = LocalizationResult(faults=faults, confidence=0.9, technique="stack_trace")
        engine = RepairEngine(
            config=RepairConfig(use_llm=False, validate_with_tests=False),
            localizer=localizer,
            template_generator=make_templates(),
        )
        ended = []
        engine.on(RepairEvent.RESULT, lambda e: engine.cancel())
        engine.on(RepairEvent.SESSION_END, ended.append)

        results = engine.repair("boom")

        assert len(results) == 1
        session = engine.get_history()[-1]
        assert session.status.value == "cancelled"
        assert ended[0]["status"] == "cancelled"

    def test_cancel_when_idle(self):
        assert RepairEngine().cancel() is False

    def test_set_executors_keeps_unspecified(self):
        reader = MagicMock()
        writer = MagicMock()
        engine = RepairEngine(file_reader=reader)
        engine.set_executors(file_writer=writer)
        assert engine.file_reader is reader
        assert engine.file_writer is writer


class TestFactory:
    """Tests for create_repair_engine and the default engine."""

    def test_dict_overrides(self):
        engine = create_repair_engine(config={"use_llm": False, "max_iterations": 2})
        assert engine.get_config().max_iterations == 2
        assert engine.llm_generator is None

    def test_config_instance_used_as_is(self):
        config = RepairConfig(use_llm=False, max_candidates=4)
        assert create_repair_engine(config=config).get_config() is config

    @patch('fixloop.llm.clients.openai.OpenAI')
    def test_llm_generator_created_with_key(self, mock_openai_class):
        engine = create_repair_engine(config=RepairConfig(), api_key="sk-test")
        assert engine.llm_generator is not None

    def test_collaborators_passed_through(self):
        templates = make_templates()
        engine = create_repair_engine(config=RepairConfig(use_llm=False), template_generator=templates)
        assert engine.template_generator is templates

    def test_default_engine_is_shared(self):
        reset_default_engine()
        try:
            engine = get_default_engine(factory=RepairEngine)
            assert get_default_engine(factory=RepairEngine) is engine
        finally:
            reset_default_engine()

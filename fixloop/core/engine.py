"""Repair engine: session lifecycle, history and the per-fault pipeline.

This module provides the main entry point for fixloop's repair workflow:
- RepairEngine.repair: localize -> generate -> validate -> learn, per fault
- create_repair_engine: factory wiring config.json and the LLM generator

Per fault, a session moves through::

    localizing -> generating -> validating -> resolved | exhausted

Only localizer failures escape ``repair()``. Everything a generator, file
writer or test executor raises is caught at its seam and degrades the result
for that fault or candidate.
"""

import logging
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from fixloop.core.config import RepairConfig, get_config_value
from fixloop.core.errors import RepairInProgressError
from fixloop.core.events import EventBus, EventHandler, RepairEvent
from fixloop.core.formatter import format_result
from fixloop.core.generation import CandidateGenerator
from fixloop.core.learning import LearnedRates, LearningTracker
from fixloop.core.localization import extract_generic_fault
from fixloop.core.schema.collaborators import (
    FaultLocalizer,
    FileReader,
    FileWriter,
    TemplateGenerator,
    TestExecutor,
)
from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import GeneratedBy
from fixloop.core.schema.result import (
    RepairResult,
    RepairSession,
    RepairStatistics,
    SessionStatus,
)
from fixloop.core.validation import PatchApplier, ValidationLoop

logger = logging.getLogger(__name__)


class RepairEngine:
    """Automated program repair orchestrator.

    One engine owns one working tree: ``repair()`` is single-flight per
    instance, and a second concurrent call raises ``RepairInProgressError``.
    Separate instances share nothing and may run in parallel.

    Example:
        >>> engine = RepairEngine(
        ...     localizer=my_localizer,
        ...     template_generator=my_templates,
        ...     file_reader=fs.read,
        ...     file_writer=fs.write,
        ...     test_executor=runner,
        ... )
        >>> engine.on(RepairEvent.CANDIDATE, lambda e: print(e["candidate_id"]))
        >>> for result in engine.repair(stack_trace):
        ...     print(engine.format_result(result))
    """

    def __init__(
        self,
        config: Optional[RepairConfig] = None,
        localizer: Optional[FaultLocalizer] = None,
        template_generator: Optional[TemplateGenerator] = None,
        llm_generator=None,
        file_reader: Optional[FileReader] = None,
        file_writer: Optional[FileWriter] = None,
        test_executor: Optional[TestExecutor] = None,
    ):
        self._config = config or RepairConfig()
        self.localizer = localizer
        self.template_generator = template_generator
        self.llm_generator = llm_generator
        self.file_reader = file_reader
        self.file_writer = file_writer
        self.test_executor = test_executor

        self.events = EventBus()
        self.learning = LearningTracker()
        self._history: Deque[RepairSession] = deque(maxlen=self._config.max_history)

        self._session_lock = threading.Lock()
        self._cancel_requested = threading.Event()
        self._active_session: Optional[RepairSession] = None

    # -- events -------------------------------------------------------------

    def on(self, event: RepairEvent, handler: EventHandler) -> None:
        self.events.on(event, handler)

    def off(self, event: RepairEvent, handler: EventHandler) -> bool:
        return self.events.off(event, handler)

    def _emit(self, event: RepairEvent, payload: Dict[str, Any]) -> None:
        self.events.emit(event, payload)

    def _progress(self, phase: str, message: str, **extra: Any) -> None:
        self._emit(RepairEvent.PROGRESS, {"phase": phase, "message": message, **extra})

    # -- configuration ------------------------------------------------------

    def get_config(self) -> RepairConfig:
        return self._config

    def update_config(self, **changes: Any) -> RepairConfig:
        """Apply a partial config update.

        A running session keeps the config it started with.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        self._config = self._config.updated(**changes)
        if self._config.max_history != self._history.maxlen:
            self._history = deque(self._history, maxlen=self._config.max_history)
        logger.info(f"Updated repair config: {changes}")
        return self._config

    def set_executors(
        self,
        file_reader: Optional[FileReader] = None,
        file_writer: Optional[FileWriter] = None,
        test_executor: Optional[TestExecutor] = None,
    ) -> None:
        """Install working-tree collaborators. Arguments left as None are unchanged.

        Raises:
            RepairInProgressError: If a session is running
        """
        if not self._session_lock.acquire(blocking=False):
            raise RepairInProgressError(self._active_session.id if self._active_session else None)
        try:
            if file_reader is not None:
                self.file_reader = file_reader
            if file_writer is not None:
                self.file_writer = file_writer
            if test_executor is not None:
                self.test_executor = test_executor
        finally:
            self._session_lock.release()

    # -- statistics & history -----------------------------------------------

    def get_statistics(self) -> RepairStatistics:
        """Current learning counters. Safe to call while a session runs."""
        return self.learning.statistics()

    def reset_statistics(self) -> None:
        """Forget learned counters. History is left as is."""
        self.learning.reset()

    def get_history(self) -> List[RepairSession]:
        """Completed sessions, oldest first (bounded by ``max_history``)."""
        return list(self._history)

    def clear_history(self) -> None:
        """Drop session history. Learned statistics are kept."""
        self._history.clear()

    def format_result(self, result: RepairResult) -> str:
        return format_result(result)

    # -- session control ----------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._session_lock.locked()

    def cancel(self) -> bool:
        """Ask the running session to stop after the fault in progress.

        Returns:
            False if no session is running
        """
        if not self.is_running:
            return False
        logger.info("Cancellation requested")
        self._cancel_requested.set()
        return True

    def repair(self, error_signal: str) -> List[RepairResult]:
        """Run the full repair pipeline for one error signal.

        Args:
            error_signal: Stack trace, test failure output or error message

        Returns:
            One RepairResult per localized fault, in localizer order. Empty when
            no fault (and no ``file:line`` reference) was found.

        Raises:
            RepairInProgressError: If this engine is already repairing
            Exception: Whatever the fault localizer raises, unchanged
        """
        if not self._session_lock.acquire(blocking=False):
            raise RepairInProgressError(self._active_session.id if self._active_session else None)
        try:
            self._cancel_requested.clear()
            return self._run_session(error_signal)
        finally:
            self._active_session = None
            self._session_lock.release()

    def _run_session(self, error_signal: str) -> List[RepairResult]:
        config = self._config
        session = RepairSession(
            id=f"session-{uuid.uuid4().hex[:12]}",
            error_signal=error_signal,
            start_time=datetime.now(),
        )
        self._active_session = session
        logger.info(f"Starting repair session {session.id}")
        self._emit(RepairEvent.SESSION_START, {"session_id": session.id, "error_signal": error_signal})

        self._progress("localizing", "Localizing faults")
        try:
            faults, technique, confidence = self._localize(error_signal)
        except Exception as e:
            session.status = SessionStatus.FAILED
            session.end_time = datetime.now()
            logger.error(f"Fault localization failed: {e}")
            raise

        self._emit(RepairEvent.LOCALIZATION, {
            "session_id": session.id,
            "faults": [fault.id for fault in faults],
            "technique": technique,
            "confidence": confidence,
        })
        logger.info(f"Localized {len(faults)} faults using {technique}")

        # Rates are frozen for the whole session so its own outcomes never re-rank it
        learned = self.learning.rates()
        generator = CandidateGenerator(
            config,
            template_generator=self.template_generator,
            llm_generator=self.llm_generator,
            file_reader=self.file_reader,
        )
        loop = ValidationLoop(
            config,
            PatchApplier(self.file_reader, self.file_writer),
            test_executor=self.test_executor,
            emit=self._emit,
        )

        for index, fault in enumerate(faults):
            if self._cancel_requested.is_set():
                session.status = SessionStatus.CANCELLED
                logger.warning(
                    f"Session {session.id} cancelled after {index}/{len(faults)} faults"
                )
                break

            result = self._repair_fault(session, fault, index, len(faults), generator, loop, learned)
            session.results.append(result)
        else:
            session.status = SessionStatus.COMPLETED

        session.end_time = datetime.now()
        self._history.append(session)
        repaired = sum(1 for r in session.results if r.success)
        logger.info(
            f"Session {session.id} {session.status.value}: "
            f"{repaired}/{len(session.results)} faults repaired"
        )
        self._emit(RepairEvent.SESSION_END, {
            "session_id": session.id,
            "status": session.status.value,
            "results": len(session.results),
            "repaired": repaired,
        })
        return list(session.results)

    def _localize(self, error_signal: str) -> Tuple[List[Fault], str, float]:
        faults: List[Fault] = []
        technique = "none"
        confidence = 0.0

        if self.localizer is not None:
            localization = self.localizer.localize(error_signal)
            faults = list(localization.faults or [])
            technique = localization.technique
            confidence = localization.confidence

        if not faults:
            generic = extract_generic_fault(error_signal, file_reader=self.file_reader)
            if generic is not None:
                faults = [generic]
                technique = "generic"
                confidence = generic.suspiciousness

        return faults, technique, confidence

    def _repair_fault(
        self,
        session: RepairSession,
        fault: Fault,
        index: int,
        total: int,
        generator: CandidateGenerator,
        loop: ValidationLoop,
        learned: LearnedRates,
    ) -> RepairResult:
        self._emit(RepairEvent.START, {
            "session_id": session.id,
            "fault_id": fault.id,
            "index": index,
            "total": total,
            "location": str(fault.location),
        })

        self._progress("generating", f"Generating candidates for {fault.location}", fault_id=fault.id)
        candidates = generator.generate(fault, learned)
        logger.info(f"Generated {len(candidates)} candidates for fault {fault.id}")

        if candidates:
            self._progress("validating", f"Validating {len(candidates)} candidates", fault_id=fault.id)
        result = loop.run(fault, candidates)

        self._learn(result)
        state = "resolved" if result.success else "exhausted"
        self._emit(RepairEvent.RESULT, {
            "session_id": session.id,
            "fault_id": fault.id,
            "state": state,
            "success": result.success,
            "candidates_tested": result.candidates_tested,
        })
        return result

    def _learn(self, result: RepairResult) -> None:
        self.learning.record_fault(result)

        if self.template_generator is None:
            return
        accepted_id = result.applied_patch.id if result.applied_patch else None
        for candidate in result.all_patches[:result.candidates_tested]:
            if candidate.generated_by != GeneratedBy.TEMPLATE:
                continue
            try:
                self.template_generator.record_result(candidate.strategy, candidate.id == accepted_id)
            except Exception as e:
                logger.warning(f"Template feedback for {candidate.strategy} failed: {e}")


def create_repair_engine(
    config: Optional[Any] = None,
    api_key: Optional[str] = None,
    **collaborators: Any,
) -> RepairEngine:
    """Build an engine from config.json defaults, optional overrides and collaborators.

    Args:
        config: RepairConfig, or a dict of overrides applied on top of
            config.json's ``repair`` section
        api_key: OpenAI key enabling the LLM generator (falls back to config.json)
        **collaborators: Any RepairEngine constructor collaborator
            (localizer, template_generator, llm_generator, file_reader, ...)

    Returns:
        RepairEngine
    """
    if isinstance(config, RepairConfig):
        repair_config = config
    else:
        repair_config = RepairConfig.from_config()
        if config:
            repair_config = repair_config.updated(**config)

    if collaborators.get("llm_generator") is None and repair_config.use_llm:
        key = api_key or get_config_value(["openai", "api_key"])
        if key:
            from fixloop.llm.adapter import LLMPatchGenerator
            try:
                collaborators["llm_generator"] = LLMPatchGenerator(api_key=key)
            except Exception as e:
                logger.warning(f"LLM generator unavailable, continuing with templates only: {e}")

    return RepairEngine(config=repair_config, **collaborators)


_default_engine: Optional[RepairEngine] = None
_default_lock = threading.Lock()


def get_default_engine(factory: Callable[[], RepairEngine] = create_repair_engine) -> RepairEngine:
    """Convenience process-wide engine. Nothing in fixloop depends on it."""
    global _default_engine
    with _default_lock:
        if _default_engine is None:
            _default_engine = factory()
        return _default_engine


def reset_default_engine() -> None:
    global _default_engine
    with _default_lock:
        _default_engine = None

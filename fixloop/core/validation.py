"""Validate-and-select loop for patch candidates.

For one fault, candidates are tried strictly in ranked order. Each attempt
applies the candidate to the working tree, runs the test executor and either
accepts the candidate (stopping the loop) or rolls the working tree back to
its previous content before the next attempt. At most one candidate is ever
live on disk.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from fixloop.core.config import RepairConfig
from fixloop.core.errors import PatchApplyError, RollbackError
from fixloop.core.events import RepairEvent
from fixloop.core.schema.collaborators import FileReader, FileWriter, TestExecutor
from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import ChangeType, CodeChange, PatchCandidate
from fixloop.core.schema.result import RepairResult

logger = logging.getLogger(__name__)

Emit = Callable[[RepairEvent, Dict], None]


def apply_changes(content: str, changes: List[CodeChange]) -> str:
    """Apply non-overlapping line changes to one file's content.

    Changes are applied bottom-up so earlier line numbers stay valid.

    Args:
        content: Current file content
        changes: Changes targeting this file

    Returns:
        New file content

    Raises:
        PatchApplyError: If a change falls outside the file
    """
    had_trailing_newline = content.endswith("\n")
    newline = "\r\n" if "\r\n" in content else "\n"
    lines = content.splitlines()

    for change in sorted(changes, key=lambda c: (c.start_line, c.end_line), reverse=True):
        new_lines = [] if change.type == ChangeType.DELETE else (change.new_code or "").splitlines()
        start = change.start_line - 1

        if change.type == ChangeType.INSERT:
            if start > len(lines):
                raise PatchApplyError(
                    f"Cannot insert before line {change.start_line} of {change.file} "
                    f"({len(lines)} lines)",
                    change=change,
                )
            lines[start:start] = new_lines
        else:
            if change.end_line > len(lines):
                raise PatchApplyError(
                    f"Lines {change.start_line}-{change.end_line} out of range for "
                    f"{change.file} ({len(lines)} lines)",
                    change=change,
                )
            lines[start:change.end_line] = new_lines

    result = newline.join(lines)
    if had_trailing_newline and lines:
        result += newline
    return result


@dataclass
class AppliedPatch:
    """Record of a candidate written to the working tree.

    Attributes:
        candidate: The applied candidate
        snapshots: Content of each touched file before the write
        written: Files actually written, in write order
        dry_run: True when no file writer was configured and nothing was written
    """

    candidate: PatchCandidate
    snapshots: Dict[str, str] = field(default_factory=dict)
    written: List[str] = field(default_factory=list)
    dry_run: bool = False


class PatchApplier:
    """Writes candidates to the working tree and restores it afterwards."""

    def __init__(self, file_reader: Optional[FileReader] = None, file_writer: Optional[FileWriter] = None):
        self.file_reader = file_reader
        self.file_writer = file_writer

    def apply(self, candidate: PatchCandidate) -> AppliedPatch:
        """Write ``candidate``'s changes.

        If a write fails midway, files already written are restored before
        the error is raised. When that restore fails too, ``RollbackError``
        is raised instead.

        Raises:
            PatchApplyError: On overlapping changes, out-of-range lines, or
                reader/writer failures
        """
        if candidate.overlapping_changes():
            raise PatchApplyError("Candidate has overlapping changes", candidate=candidate)

        if self.file_writer is None:
            logger.info(f"No file writer configured, candidate {candidate.id} not written (dry run)")
            return AppliedPatch(candidate=candidate, dry_run=True)
        if self.file_reader is None:
            raise PatchApplyError("A file reader is required to apply changes", candidate=candidate)

        by_file: "OrderedDict[str, List[CodeChange]]" = OrderedDict()
        for change in candidate.changes:
            by_file.setdefault(change.file, []).append(change)

        applied = AppliedPatch(candidate=candidate)
        new_contents = {}
        for path, changes in by_file.items():
            try:
                original = self.file_reader(path)
            except Exception as e:
                raise PatchApplyError(f"Cannot read {path}: {e}", candidate=candidate) from e
            applied.snapshots[path] = original
            new_contents[path] = apply_changes(original, changes)

        for path, content in new_contents.items():
            try:
                self.file_writer(path, content)
            except Exception as e:
                logger.error(f"Writing {path} failed, restoring {len(applied.written)} files: {e}")
                self.rollback(applied)
                raise PatchApplyError(f"Cannot write {path}: {e}", candidate=candidate) from e
            applied.written.append(path)

        return applied

    def rollback(self, applied: AppliedPatch) -> None:
        """Restore every file written by ``applied``.

        Raises:
            RollbackError: If any file could not be restored (the others are
                still attempted)
        """
        failures = []
        for path in reversed(applied.written):
            try:
                self.file_writer(path, applied.snapshots[path])
            except Exception as e:
                logger.error(f"Rollback of {path} failed: {e}")
                failures.append(path)
        applied.written = failures
        if failures:
            raise RollbackError(
                f"Rollback failed for {', '.join(failures)}", candidate=applied.candidate
            )


class ValidationLoop:
    """Finds the first candidate that fixes a fault without regressions."""

    def __init__(
        self,
        config: RepairConfig,
        applier: PatchApplier,
        test_executor: Optional[TestExecutor] = None,
        emit: Optional[Emit] = None,
    ):
        self.config = config
        self.applier = applier
        self.test_executor = test_executor
        self.emit = emit or (lambda event, payload: None)

    @property
    def best_effort(self) -> bool:
        """True when candidates are accepted without running tests."""
        return not self.config.validate_with_tests or self.test_executor is None

    def run(self, fault: Fault, candidates: List[PatchCandidate]) -> RepairResult:
        """Try ``candidates`` in order until one is accepted or the budget runs out.

        Args:
            fault: The fault being repaired
            candidates: Ranked candidates for ``fault``

        Returns:
            RepairResult for the fault. ``iterations`` and ``candidates_tested``
            both equal the number of attempts made.
        """
        started = time.monotonic()
        result = RepairResult(
            success=False,
            fault=fault,
            candidates_generated=len(candidates),
            candidates_tested=0,
            all_patches=list(candidates),
        )

        if not candidates:
            result.error = "No candidates generated"
            result.duration = time.monotonic() - started
            return result

        if self.config.validate_with_tests and self.test_executor is None:
            logger.warning("No test executor configured, accepting candidates untested")

        budget = min(self.config.max_iterations, len(candidates))
        for attempt, candidate in enumerate(candidates[:budget]):
            self.emit(RepairEvent.CANDIDATE, {
                "fault_id": fault.id,
                "candidate_id": candidate.id,
                "attempt": attempt,
                "strategy": candidate.strategy,
            })
            result.candidates_tested += 1
            result.iterations += 1
            logger.info(
                f"Trying candidate {candidate.id} ({candidate.strategy}, "
                f"confidence {candidate.confidence:.2f}) for fault {fault.id}"
            )

            try:
                applied = self.applier.apply(candidate)
            except RollbackError as e:
                result.error = str(e)
                logger.error(f"Stopping repair of fault {fault.id}: {e}")
                break
            except PatchApplyError as e:
                logger.warning(f"Candidate {candidate.id} could not be applied: {e}")
                result.error = str(e)
                continue

            accepted, reason = self._check(applied)
            if accepted:
                candidate.validated = not self.best_effort
                result.success = True
                result.applied_patch = candidate
                result.error = None
                logger.info(f"Accepted candidate {candidate.id} for fault {fault.id}")
                break

            result.error = reason
            logger.info(f"Rejected candidate {candidate.id}: {reason}")
            try:
                self.applier.rollback(applied)
            except PatchApplyError as e:
                # Trying another candidate on a dirty tree would stack patches
                result.error = str(e)
                logger.error(f"Stopping repair of fault {fault.id}: {e}")
                break

        result.duration = time.monotonic() - started
        return result

    def _check(self, applied: AppliedPatch) -> Tuple[bool, Optional[str]]:
        """Decide whether an applied candidate is accepted, with the rejection reason."""
        if self.best_effort:
            return True, None
        if applied.dry_run:
            return False, "No file writer configured, candidate cannot be tested"

        try:
            outcome = self.test_executor()
        except Exception as e:
            logger.warning(f"Test executor failed: {e}")
            return False, f"Test execution failed: {e}"

        if outcome.regressions:
            return False, f"Regressions: {', '.join(outcome.regressions)}"
        if not outcome.success:
            failing = ", ".join(outcome.failing_tests) or f"{outcome.tests_failed} failed"
            return False, f"Tests failing: {failing}"
        return True, None

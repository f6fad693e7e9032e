"""Test executor that shells out to the project's test command.

Failing test ids are read from pytest-style output::

    FAILED tests/test_calc.py::test_divide - ZeroDivisionError
    ===== 2 failed, 10 passed in 0.52s =====

Call ``capture_baseline`` on the unmodified tree first; later runs report
tests that passed in the baseline and fail now as regressions.
"""

import logging
import re
import shlex
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Set, Union

from fixloop.core.schema.collaborators import TestRunResult

logger = logging.getLogger(__name__)

_FAILED_RE = re.compile(r"^(?:FAILED|ERROR)\s+(\S+)", re.MULTILINE)
_PASSED_RE = re.compile(r"^(\S+::\S+)\s+PASSED", re.MULTILINE)
_COUNT_RE = re.compile(r"(\d+) (passed|failed|error|errors)\b")


def parse_test_output(output: str) -> dict:
    """Extract failing/passing test ids and summary counts from test output."""
    failing = list(dict.fromkeys(_FAILED_RE.findall(output)))
    passing = list(dict.fromkeys(_PASSED_RE.findall(output)))

    counts = {"passed": 0, "failed": 0}
    for number, kind in _COUNT_RE.findall(output):
        key = "passed" if kind == "passed" else "failed"
        counts[key] += int(number)

    return {"failing": failing, "passing": passing, **counts}


class CommandTestExecutor:
    """Runs a test command in the project directory.

    Example:
        >>> runner = CommandTestExecutor("pytest -q -rf", cwd="/path/to/project")
        >>> runner.capture_baseline()
        >>> outcome = runner()
        >>> outcome.regressions
        []
    """

    def __init__(
        self,
        command: Union[str, List[str]] = "pytest -q -rf",
        cwd: Union[str, Path] = ".",
        timeout: Optional[float] = 600.0,
    ):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.cwd = str(cwd)
        self.timeout = timeout
        self.baseline_failing: Optional[Set[str]] = None
        self.baseline_passing: Set[str] = set()
        self._last_passing: List[str] = []

    def capture_baseline(self) -> TestRunResult:
        """Run the suite on the unmodified tree and remember its failures."""
        outcome = self._run()
        self.baseline_failing = set(outcome.failing_tests)
        self.baseline_passing = set(self._last_passing)
        logger.info(f"Baseline: {len(self.baseline_failing)} failing tests")
        return outcome

    def __call__(self) -> TestRunResult:
        return self._run()

    def _run(self) -> TestRunResult:
        started = time.monotonic()
        logger.info(f"Running tests: {' '.join(self.command)}")
        try:
            completed = subprocess.run(
                self.command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(f"Test command timed out after {self.timeout}s") from e

        output = (completed.stdout or "") + "\n" + (completed.stderr or "")
        parsed = parse_test_output(output)
        failing = parsed["failing"]

        self._last_passing = parsed["passing"]
        regressions: List[str] = []
        if self.baseline_failing is None:
            # Without a baseline nothing can be called a regression
            new_failures = list(failing)
        else:
            new_failures = [t for t in failing if t not in self.baseline_failing]
            if self.baseline_passing:
                regressions = [t for t in new_failures if t in self.baseline_passing]
            else:
                # Quiet output lists no passing tests; count every new failure
                regressions = list(new_failures)

        tests_failed = max(parsed["failed"], len(failing))
        tests_passed = parsed["passed"]
        return TestRunResult(
            success=completed.returncode == 0,
            tests_run=tests_passed + tests_failed,
            tests_passed=tests_passed,
            tests_failed=tests_failed,
            failing_tests=failing,
            new_failures=new_failures,
            regressions=regressions,
            duration=time.monotonic() - started,
        )

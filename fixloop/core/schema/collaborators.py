"""Protocols for the external collaborators the engine drives.

The engine never localizes faults, proposes template fixes, talks to an LLM
vendor, touches the disk or runs tests itself. It calls out to objects that
satisfy these protocols; any callable or object with the right shape works.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Protocol

from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import PatchCandidate


@dataclass
class LocalizationResult:
    """Output of a fault localizer.

    Attributes:
        faults: Located faults, in the order they should be processed
        confidence: Localizer's overall confidence in [0, 1]
        technique: Name of the technique used (e.g. "stack_trace")
    """

    faults: List[Fault] = field(default_factory=list)
    confidence: float = 0.0
    technique: str = "none"


@dataclass
class TestRunResult:
    """Outcome of one test-suite run against the current working tree.

    ``regressions`` lists tests that passed before the candidate was applied
    and fail after it; ``new_failures`` lists failing tests that were not
    failing in the baseline at all.
    """

    __test__ = False  # not a pytest test class

    success: bool
    tests_run: int = 0
    tests_passed: int = 0
    tests_failed: int = 0
    failing_tests: List[str] = field(default_factory=list)
    new_failures: List[str] = field(default_factory=list)
    regressions: List[str] = field(default_factory=list)
    duration: float = 0.0


class FaultLocalizer(Protocol):
    """Maps raw error text to located faults. May raise; errors propagate."""

    def localize(self, error_text: str) -> LocalizationResult:
        ...


class TemplateGenerator(Protocol):
    """Library of reusable, type-specific fix templates.

    ``generate_patches`` returns an empty list when no template applies.
    ``record_result`` is fire-and-forget feedback.
    """

    def generate_patches(self, fault: Fault) -> List[PatchCandidate]:
        ...

    def record_result(self, strategy: str, success: bool) -> None:
        ...


class LLMClient(Protocol):
    """Chat-completion transport returning the assistant's text."""

    def chat(self, messages: List[Dict[str, str]], **kwargs) -> str:
        ...


class FileReader(Protocol):
    def __call__(self, path: str) -> str:
        ...


class FileWriter(Protocol):
    def __call__(self, path: str, content: str) -> None:
        ...


class TestExecutor(Protocol):
    """Runs the project's tests against the current working tree."""

    def __call__(self) -> TestRunResult:
        ...

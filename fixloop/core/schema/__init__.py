"""
Core schema definitions for faults, patch candidates, results and collaborators.

These dataclasses and protocols form the foundation of the fixloop engine.
"""

from fixloop.core.schema.collaborators import (
    FaultLocalizer,
    FileReader,
    FileWriter,
    LLMClient,
    LocalizationResult,
    TemplateGenerator,
    TestExecutor,
    TestRunResult,
)
from fixloop.core.schema.fault import Fault, FaultType, Severity, SourceLocation
from fixloop.core.schema.patch import (
    LLM_STRATEGY,
    ChangeType,
    CodeChange,
    GeneratedBy,
    PatchCandidate,
)
from fixloop.core.schema.result import (
    RepairResult,
    RepairSession,
    RepairStatistics,
    SessionStatus,
)

__all__ = [
    "ChangeType",
    "CodeChange",
    "Fault",
    "FaultLocalizer",
    "FaultType",
    "FileReader",
    "FileWriter",
    "GeneratedBy",
    "LLMClient",
    "LLM_STRATEGY",
    "LocalizationResult",
    "PatchCandidate",
    "RepairResult",
    "RepairSession",
    "RepairStatistics",
    "SessionStatus",
    "Severity",
    "SourceLocation",
    "TemplateGenerator",
    "TestExecutor",
    "TestRunResult",
]

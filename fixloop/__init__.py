"""
fixloop: automated program repair orchestration

Localizes faults from an error signal, generates candidate patches from
templates and an LLM, validates each candidate against the project's test
suite and keeps the first one that fixes the fault without regressions.
Per-strategy outcomes are tracked to bias ranking on later runs.
"""

__version__ = "1.0.0"

from fixloop.core.engine import RepairEngine, create_repair_engine

__all__ = ["__version__", "RepairEngine", "create_repair_engine"]

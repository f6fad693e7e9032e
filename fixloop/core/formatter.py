"""Human-readable rendering of repair results and statistics."""

import logging
from typing import List

from fixloop.core.schema.patch import ChangeType, CodeChange
from fixloop.core.schema.result import RepairResult, RepairStatistics

logger = logging.getLogger(__name__)

RULE = "=" * 60
THIN_RULE = "-" * 60


def _status(result: RepairResult) -> str:
    if not result.success:
        return "Not fixed"
    if result.applied_patch is not None and not result.applied_patch.validated:
        return "Fixed (untested)"
    return "Fixed"


def _indent(code: str, prefix: str) -> List[str]:
    return [f"{prefix}{line}" for line in (code.splitlines() or [""])]


def _format_change(change: CodeChange) -> List[str]:
    if change.start_line == change.end_line:
        span = f"line {change.start_line}"
    else:
        span = f"lines {change.start_line}-{change.end_line}"
    lines = [f"  {change.type.value.capitalize()} {change.file} {span}"]

    if change.type != ChangeType.INSERT and change.original_code is not None:
        lines.append("  Before:")
        lines.extend(_indent(change.original_code, "    - "))
    if change.type != ChangeType.DELETE and change.new_code is not None:
        lines.append("  After:")
        lines.extend(_indent(change.new_code, "    + "))
    return lines


def format_result(result: RepairResult) -> str:
    """Render a RepairResult for terminal output.

    Failure states render the fault and the last known error. Never raises,
    so partial progress can always be printed.
    """
    try:
        return _format_result(result)
    except Exception as e:
        logger.error(f"Failed to format repair result: {e}")
        return f"{RULE}\nAUTOMATED PROGRAM REPAIR RESULT\n{RULE}\n(unrenderable result: {e})"


def _format_result(result: RepairResult) -> str:
    fault = result.fault
    lines = [
        RULE,
        "AUTOMATED PROGRAM REPAIR RESULT",
        RULE,
        f"Status: {_status(result)}",
        f"Fault: {fault.message}",
        f"Type: {fault.type.value}  Severity: {fault.severity.value}",
        f"Location: {fault.location}",
        f"Candidates: {result.candidates_generated} generated, {result.candidates_tested} tested",
        f"Iterations: {result.iterations}",
        f"Duration: {result.duration:.2f}s",
    ]

    patch = result.applied_patch
    if result.success and patch is not None:
        lines += [
            THIN_RULE,
            "Applied Fix",
            THIN_RULE,
            f"Strategy: {patch.strategy} ({patch.generated_by.value})",
            f"Confidence: {patch.confidence:.0%}",
            f"Validated: {'yes' if patch.validated else 'no'}",
        ]
        if patch.explanation:
            lines.append(f"Explanation: {patch.explanation}")
        for change in patch.changes:
            lines.extend(_format_change(change))
    elif result.error:
        lines.append(f"Error: {result.error}")

    lines.append(RULE)
    return "\n".join(lines)


def format_statistics(stats: RepairStatistics) -> str:
    """Render learning statistics as a short report."""
    lines = [
        "Repair statistics",
        f"  Faults: {stats.total_faults} total, {stats.repaired_faults} repaired, "
        f"{stats.failed_faults} failed ({stats.repair_rate:.0%})",
    ]
    for title, rates in (
        ("Strategy success rates", stats.strategy_success_rates),
        ("Template success rates", stats.template_success_rates),
    ):
        if not rates:
            continue
        lines.append(f"  {title}:")
        for name, rate in sorted(rates.items(), key=lambda item: (-item[1], item[0])):
            lines.append(f"    {name}: {rate:.0%}")
    return "\n".join(lines)

"""Prompt engineering for LLM patch generation.

This module contains the source-repair domain knowledge for the LLM adapter:
- Language detection from file extensions
- Numbered context extraction around the fault
- The tagged fix-block response format
"""

import logging
from pathlib import Path
from typing import Optional

from fixloop.core.schema.fault import Fault

logger = logging.getLogger(__name__)

CONTEXT_LINES = 10

LANGUAGES = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cs": "csharp",
    ".kt": "kotlin",
    ".swift": "swift",
    ".sh": "bash",
}

RESPONSE_FORMAT = """
Respond with one or more fix blocks in exactly this format:

<fix>
<file>path/to/file</file>
<line_start>10</line_start>
<line_end>12</line_end>
<original>the original lines being replaced</original>
<fixed>the replacement lines</fixed>
<explanation>why this change fixes the error</explanation>
</fix>

Rules:
- line_start and line_end are 1-based and inclusive; the lines in that range are replaced by <fixed>.
- <fixed> must contain complete lines with their original indentation.
- Keep each fix minimal. Do not rewrite unrelated code.
- If you propose alternatives, emit one <fix> block per alternative, best first.
"""


def detect_language(file_path: str) -> str:
    """Guess the language of a file from its extension ("text" if unknown)."""
    return LANGUAGES.get(Path(file_path).suffix.lower(), "text")


def extract_context(
    file_content: str, start_line: int, end_line: int, radius: int = CONTEXT_LINES
) -> str:
    """Return numbered lines around ``start_line..end_line``.

    Lines inside the faulty range are marked with ``>>``.
    """
    lines = file_content.splitlines()
    if not lines:
        return ""

    first = max(1, start_line - radius)
    last = min(len(lines), end_line + radius)
    width = len(str(last))
    out = []
    for number in range(first, last + 1):
        marker = ">>" if start_line <= number <= end_line else "  "
        out.append(f"{marker} {number:>{width}} | {lines[number - 1]}")
    return "\n".join(out)


def build_repair_prompt(fault: Fault, file_content: Optional[str] = None) -> str:
    """Build the user prompt asking the LLM to fix one fault.

    Args:
        fault: The fault to fix
        file_content: Current content of the faulty file, for context (optional)

    Returns:
        Prompt string for the LLM
    """
    location = fault.location
    language = detect_language(location.file)

    sections = [
        f"Fix the following {language} error.",
        "",
        f"File: {location.file}",
        f"Lines: {location.start_line}-{location.end_line}",
        f"Fault type: {fault.type.value}",
        f"Error: {fault.message}",
    ]

    if location.snippet:
        sections += ["", "Faulty code:", f"```{language}", location.snippet, "```"]

    if file_content:
        context = extract_context(file_content, location.start_line, location.end_line)
        if context:
            sections += ["", "Surrounding code (>> marks the faulty lines):", context]

    sections.append(RESPONSE_FORMAT)
    prompt = "\n".join(sections)
    logger.debug(f"Built repair prompt for {location} ({len(prompt)} chars)")
    return prompt

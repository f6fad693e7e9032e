"""Tolerant parser for tagged fix blocks in LLM responses.

Grammar (whitespace around tags is ignored, tag order inside a block is free)::

    response    := (text | fix_block)*
    fix_block   := "<fix>" field* "</fix>"
    field       := "<" name ">" body "</" name ">"
    name        := file | line_start | line_end | original | fixed | explanation

``line_start`` and ``fixed`` are required. ``line_end`` defaults to
``line_start`` and ``file`` defaults to the caller's file. A block that does
not satisfy the grammar is dropped; parsing never raises.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

_BLOCK_RE = re.compile(r"<fix>(.*?)</fix>", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"^\s*```[\w+-]*\s*\n(.*?)\n?\s*```\s*$", re.DOTALL)


@dataclass
class FixBlock:
    file: Optional[str]
    line_start: int
    line_end: int
    fixed: str
    original: Optional[str] = None
    explanation: str = ""


def _field(body: str, name: str) -> Optional[str]:
    match = re.search(rf"<{name}>(.*?)</{name}>", body, re.DOTALL | re.IGNORECASE)
    if match is None:
        return None
    return match.group(1)


def _strip_code(text: str) -> str:
    """Drop a surrounding markdown fence and the blank lines around the code."""
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    return text.strip("\n")


def parse_fix_block(body: str) -> Optional[FixBlock]:
    """Parse the inside of one ``<fix>`` block, or return None if malformed."""
    fixed = _field(body, "fixed")
    line_start = _field(body, "line_start")
    if fixed is None or line_start is None:
        return None

    line_end = _field(body, "line_end")
    try:
        start = int(line_start.strip())
        end = int(line_end.strip()) if line_end is not None and line_end.strip() else start
    except ValueError:
        return None
    if start < 1 or end < start:
        return None

    file = _field(body, "file")
    if file is not None:
        file = file.strip() or None
    original = _field(body, "original")
    explanation = _field(body, "explanation")
    return FixBlock(
        file=file,
        line_start=start,
        line_end=end,
        fixed=_strip_code(fixed),
        original=_strip_code(original) if original is not None else None,
        explanation=explanation.strip() if explanation else "",
    )


def parse_fix_blocks(response: Optional[str]) -> List[FixBlock]:
    """Extract every well-formed fix block from an LLM response.

    Args:
        response: Raw assistant text (may be None or empty)

    Returns:
        Parsed blocks in response order; empty if none are well-formed
    """
    if not response:
        return []

    blocks: List[FixBlock] = []
    for i, match in enumerate(_BLOCK_RE.finditer(response)):
        block = parse_fix_block(match.group(1))
        if block is None:
            logger.debug(f"Skipping malformed fix block #{i + 1}")
            continue
        blocks.append(block)
    return blocks

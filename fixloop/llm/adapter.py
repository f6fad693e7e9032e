"""LLM adapter for patch candidate generation.

This module provides the vendor-agnostic adapter that orchestrates:
1. Building the repair prompt for a fault (prompts/)
2. Calling a chat client (clients/)
3. Parsing tagged fix blocks into PatchCandidates (parser.py)

Architecture:
- adapter.py (this file): Vendor-agnostic orchestration
- clients/: Vendor-specific API wrappers (OpenAI)
- prompts/: Prompt engineering and response format
- parser.py: Tolerant fix-block parser
"""

import logging
import uuid
from typing import List, Literal, Optional

from fixloop.core.schema.collaborators import LLMClient
from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import (
    LLM_STRATEGY,
    ChangeType,
    CodeChange,
    GeneratedBy,
    PatchCandidate,
)
from fixloop.llm.parser import parse_fix_blocks
from fixloop.llm.prompts.repair import build_repair_prompt

logger = logging.getLogger(__name__)

ClientType = Literal["openai"]

SYSTEM_PROMPT = (
    "You are an expert software engineer who fixes bugs with minimal, "
    "targeted source changes."
)

# LLMs do not report calibrated confidence, so every LLM candidate gets the same prior
DEFAULT_LLM_CONFIDENCE = 0.6


class LLMPatchGenerator:
    """Turns a fault into LLM-proposed patch candidates.

    Example:
        >>> generator = LLMPatchGenerator(api_key="sk-...")
        >>> candidates = generator.propose_patches(fault, file_content=source)
        >>> [c.strategy for c in candidates]
        ['llm-generated']
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        client_type: ClientType = "openai",
        **client_config,
    ):
        """Initialize the generator.

        Args:
            client: Ready chat client. When omitted one is created from
                ``client_type`` and ``client_config`` (api_key, model, ...),
                which fall back to config.json.
            client_type: Vendor used when ``client`` is not given
            **client_config: Client construction arguments
        """
        self.client_type = client_type
        self.client = client if client is not None else self._create_client(client_type, client_config)
        logger.info(f"Initialized LLMPatchGenerator with {type(self.client).__name__}")

    def _create_client(self, client_type: ClientType, config: dict) -> LLMClient:
        """Factory for vendor clients.

        Raises:
            ValueError: If client_type is unknown or the client cannot be configured
        """
        if client_type == "openai":
            from fixloop.llm.clients.openai import OpenAIClient
            return OpenAIClient(**config)
        raise ValueError(f"Unknown client type: {client_type}")

    def propose_patches(
        self,
        fault: Fault,
        file_content: Optional[str] = None,
        confidence: float = DEFAULT_LLM_CONFIDENCE,
    ) -> List[PatchCandidate]:
        """Ask the LLM for fixes to ``fault``.

        Args:
            fault: The fault to fix
            file_content: Current content of the fault's file, for context
            confidence: Confidence assigned to every parsed candidate

        Returns:
            One candidate per well-formed fix block; empty when the response
            contains none

        Raises:
            Exception: Whatever the client raises (network, auth, quota)
        """
        prompt = build_repair_prompt(fault, file_content)
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        response = self.client.chat(messages)
        logger.debug(f"Received LLM response ({len(response or '')} chars)")

        candidates = self.parse_response(fault, response, confidence)
        if not candidates:
            logger.info(f"LLM response for fault {fault.id} contained no usable fix block")
        return candidates

    def parse_response(
        self, fault: Fault, response: Optional[str], confidence: float = DEFAULT_LLM_CONFIDENCE
    ) -> List[PatchCandidate]:
        """Convert an LLM response into candidates. Never raises."""
        candidates = []
        for block in parse_fix_blocks(response):
            change = CodeChange(
                file=block.file or fault.location.file,
                type=ChangeType.REPLACE,
                start_line=block.line_start,
                end_line=block.line_end,
                original_code=block.original,
                new_code=block.fixed,
            )
            candidates.append(PatchCandidate(
                id=f"patch-llm-{uuid.uuid4().hex[:8]}",
                fault=fault,
                changes=[change],
                strategy=LLM_STRATEGY,
                confidence=confidence,
                explanation=block.explanation or "LLM-proposed fix",
                generated_by=GeneratedBy.LLM,
            ))
        return candidates

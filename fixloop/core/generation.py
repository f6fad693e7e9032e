"""Candidate generation: merge, rank and cap patch candidates for one fault.

Sources, in order:
1. The template generator (synchronous, returns [] when nothing applies)
2. The LLM patch generator (failures are logged and degrade to templates only)

Ranking key, descending: confidence blended with the learned success rate of
the candidate's strategy. Ties prefer template over LLM candidates, then keep
generation order.
"""

import logging
from typing import List, Optional

from fixloop.core.config import RepairConfig
from fixloop.core.learning import LearnedRates
from fixloop.core.schema.collaborators import FileReader, TemplateGenerator
from fixloop.core.schema.fault import Fault
from fixloop.core.schema.patch import GeneratedBy, PatchCandidate

logger = logging.getLogger(__name__)

_SOURCE_ORDER = {GeneratedBy.TEMPLATE: 0, GeneratedBy.LLM: 1}


class CandidateGenerator:
    """Produces the ranked, de-duplicated candidate list for a fault."""

    def __init__(
        self,
        config: RepairConfig,
        template_generator: Optional[TemplateGenerator] = None,
        llm_generator=None,
        file_reader: Optional[FileReader] = None,
    ):
        self.config = config
        self.template_generator = template_generator
        self.llm_generator = llm_generator
        self.file_reader = file_reader

    def generate(
        self, fault: Fault, learned: Optional[LearnedRates] = None
    ) -> List[PatchCandidate]:
        """Generate candidates for ``fault``.

        Args:
            fault: Fault to fix
            learned: Rates snapshot taken at session start (None disables bias)

        Returns:
            At most ``config.max_candidates`` candidates, best first
        """
        file_content = None
        if self.file_reader is not None:
            try:
                file_content = self.file_reader(fault.location.file)
            except Exception as e:
                logger.warning(
                    f"Cannot read {fault.location.file}, skipping generation for fault {fault.id}: {e}"
                )
                return []

        candidates: List[PatchCandidate] = []
        candidates.extend(self._from_templates(fault))
        candidates.extend(self._from_llm(fault, file_content))

        ranked = self.rank(candidates, learned)
        if len(ranked) > self.config.max_candidates:
            logger.info(f"Truncating {len(ranked)} candidates to {self.config.max_candidates}")
        return ranked[:self.config.max_candidates]

    def _from_templates(self, fault: Fault) -> List[PatchCandidate]:
        if not self.config.use_templates or self.template_generator is None:
            return []
        try:
            patches = list(self.template_generator.generate_patches(fault) or [])
        except Exception as e:
            logger.error(f"Template generator failed for fault {fault.id}: {e}")
            return []
        logger.info(f"Templates produced {len(patches)} candidates for fault {fault.id}")
        return patches

    def _from_llm(self, fault: Fault, file_content: Optional[str]) -> List[PatchCandidate]:
        if not self.config.use_llm or self.llm_generator is None:
            return []
        try:
            patches = self.llm_generator.propose_patches(
                fault, file_content=file_content, confidence=self.config.llm_confidence
            )
        except Exception as e:
            logger.warning(f"LLM generation failed for fault {fault.id}, using templates only: {e}")
            return []
        logger.info(f"LLM produced {len(patches)} candidates for fault {fault.id}")
        return patches

    def score(self, candidate: PatchCandidate, learned: Optional[LearnedRates]) -> float:
        """Ranking key for one candidate."""
        if learned is None or self.config.learning_weight == 0.0:
            return candidate.confidence
        entry = learned.lookup(candidate)
        if entry is None:
            return candidate.confidence
        attempts, rate = entry
        if attempts < self.config.min_attempts_for_learning:
            return candidate.confidence
        weight = self.config.learning_weight
        return (1.0 - weight) * candidate.confidence + weight * rate

    def rank(
        self, candidates: List[PatchCandidate], learned: Optional[LearnedRates] = None
    ) -> List[PatchCandidate]:
        """Drop duplicates and candidates with overlapping edits, then sort."""
        seen = set()
        unique = []
        for candidate in candidates:
            if not candidate.changes:
                logger.debug(f"Dropping candidate {candidate.id} with no changes")
                continue
            if candidate.overlapping_changes():
                logger.warning(f"Dropping candidate {candidate.id} with overlapping changes")
                continue
            key = candidate.change_key()
            if key in seen:
                logger.debug(f"Dropping duplicate candidate {candidate.id}")
                continue
            seen.add(key)
            unique.append(candidate)

        # sorted() is stable, so equal keys keep generation order
        return sorted(
            unique,
            key=lambda c: (-self.score(c, learned), _SOURCE_ORDER[c.generated_by]),
        )

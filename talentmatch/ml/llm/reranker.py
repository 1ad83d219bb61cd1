"""
LLM re-ranking of semantically retrieved candidates.

Each candidate gets a match score and a written justification from the
generative model; results are ordered by that score.
"""

from typing import Any

from pydantic import ValidationError

from talentmatch.data.models.candidate import CandidateStub
from talentmatch.data.models.match import CandidateVerdict, MatchResult, RerankVerdicts
from talentmatch.utils.constants import MAX_TOP_SKILLS
from talentmatch.utils.exceptions import MalformedModelOutput
from talentmatch.utils.logger import LoggerMixin

from .generative_model import GenerativeModel
from .prompts import RERANK_SYSTEM_PROMPT, build_rerank_prompt


class LLMReranker(LoggerMixin):
    """
    Re-ranks candidates with a generative model.

    Candidates are scored in batches, one prompt per batch. The reply of
    every batch must contain a valid verdict for each candidate in it.
    """

    def __init__(self, model: GenerativeModel, batch_size: int = 10):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.model = model
        self.batch_size = batch_size

    @staticmethod
    def deduplicate(candidates: list[CandidateStub]) -> list[CandidateStub]:
        """Keep one stub per candidate id: the closest hit, in original order."""
        best: dict[str, CandidateStub] = {}
        for candidate in candidates:
            current = best.get(candidate.candidate_id)
            if current is None or candidate.distance < current.distance:
                best[candidate.candidate_id] = candidate

        seen: set[str] = set()
        unique = []
        for candidate in candidates:
            if candidate.candidate_id not in seen:
                seen.add(candidate.candidate_id)
                unique.append(best[candidate.candidate_id])
        return unique

    @staticmethod
    def parse_verdicts(
        reply: dict[str, Any], expected_ids: list[str]
    ) -> dict[str, CandidateVerdict]:
        """
        Validate a model reply against the verdict schema.

        Verdicts for ids outside ``expected_ids`` are ignored; if an id is
        repeated the first verdict wins.

        Raises:
            MalformedModelOutput: If the reply does not match the schema or
                any expected candidate has no verdict.
        """
        try:
            parsed = RerankVerdicts.model_validate(reply)
        except ValidationError as e:
            raise MalformedModelOutput(
                "Re-ranking reply does not match the expected schema",
                details={"validation_errors": e.error_count()},
                cause=e,
            ) from e

        expected = set(expected_ids)
        verdicts: dict[str, CandidateVerdict] = {}
        for verdict in parsed.candidates:
            if verdict.candidate_id in expected and verdict.candidate_id not in verdicts:
                verdicts[verdict.candidate_id] = verdict

        missing = [cid for cid in expected_ids if cid not in verdicts]
        if missing:
            raise MalformedModelOutput(
                "Re-ranking reply is missing candidates",
                details={"missing_count": len(missing), "batch_size": len(expected_ids)},
            )
        return verdicts

    @staticmethod
    def rank(results: list[MatchResult]) -> list[MatchResult]:
        """Order by LLM score, then semantic score (both descending), then id."""
        return sorted(
            results,
            key=lambda r: (-r.llm_match_score, -r.semantic_match_score, r.candidate_id),
        )

    def _score_batch(
        self, job_text: str, company_text: str, batch: list[CandidateStub]
    ) -> dict[str, CandidateVerdict]:
        prompt = build_rerank_prompt(job_text, company_text, batch)
        reply = self.model.generate_json(RERANK_SYSTEM_PROMPT, prompt)
        return self.parse_verdicts(reply, [c.candidate_id for c in batch])

    def rerank(
        self,
        job_text: str,
        company_text: str,
        candidates: list[CandidateStub],
        keep: int,
    ) -> list[MatchResult]:
        """
        Score candidates against a job and return the best ``keep``.

        Args:
            job_text: Job description.
            company_text: Company information (may be empty).
            candidates: Retrieved candidate stubs.
            keep: Maximum number of results.

        Returns:
            Results sorted by descending ``llm_match_score`` with unique ids.

        Raises:
            MalformedModelOutput: If any batch reply is unusable.
            GenerationFailure: If the provider call fails.
        """
        if keep <= 0 or not candidates:
            return []

        unique = self.deduplicate(candidates)
        if len(unique) < len(candidates):
            self.logger.debug(f"Dropped {len(candidates) - len(unique)} duplicate candidate hits")

        verdicts: dict[str, CandidateVerdict] = {}
        for start in range(0, len(unique), self.batch_size):
            batch = unique[start:start + self.batch_size]
            verdicts.update(self._score_batch(job_text, company_text, batch))

        results = [
            MatchResult(
                candidate_id=c.candidate_id,
                full_name=c.full_name,
                current_title=c.current_title,
                top_skills=c.skills[:MAX_TOP_SKILLS],
                profile_summary_excerpt=c.profile_summary_excerpt,
                availability=c.availability,
                semantic_match_score=c.semantic_match_score,
                llm_match_score=verdicts[c.candidate_id].match_score,
                llm_justification=verdicts[c.candidate_id].justification,
            )
            for c in unique
        ]

        ranked = self.rank(results)[:keep]
        self.logger.info(
            f"Re-ranked {len(unique)} candidates in "
            f"{(len(unique) + self.batch_size - 1) // self.batch_size} batch(es), kept {len(ranked)}"
        )
        return ranked

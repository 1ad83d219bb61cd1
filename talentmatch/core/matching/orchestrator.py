"""
Candidate matching pipeline.

Runs a job description through embedding, semantic retrieval of the
nearest active candidates and LLM re-ranking, and summarises the outcome.
The pipeline is all-or-nothing: it either returns a complete response or
raises a single ``MatchingFailed`` naming the stage that broke.
"""

import asyncio
import re
from typing import Any, Callable, Optional, TypeVar, Union

from pymongo.errors import PyMongoError

from talentmatch.data.database import DatabaseManager
from talentmatch.data.models.candidate import CandidateStub
from talentmatch.data.models.match import JobQuery, MatchResponse, MatchResult
from talentmatch.data.repositories.job_repository import JobRepository
from talentmatch.ml.embeddings.embedding_model import EmbeddingClient
from talentmatch.ml.embeddings.semantic_retriever import (
    SemanticRetriever,
    create_semantic_retriever,
)
from talentmatch.ml.llm.generative_model import GenerativeModel
from talentmatch.ml.llm.reranker import LLMReranker
from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import (
    DEFAULT_JOB_TITLE,
    AuditAction,
    PipelineStage,
)
from talentmatch.utils.exceptions import (
    EmbeddingFailure,
    GenerationFailure,
    InvalidQuery,
    MalformedModelOutput,
    MatchingFailed,
    RetrievalFailure,
    TalentMatchError,
)
from talentmatch.utils.logger import audit_log, get_logger

logger = get_logger(__name__)

R = TypeVar("R")

COMPANY_SEPARATOR = "\n\nCompany information:\n"

EMPTY_POOL_SUMMARY = (
    "No candidates found in initial semantic search (0 candidates considered). "
    "Try broadening your job description or checking the candidate pool."
)

_JOB_TITLE_PATTERN = re.compile(r"^[ \t]*Job Title:[ \t]*(.*)$", re.IGNORECASE | re.MULTILINE)

# Error kind reported when a stage exceeds its timeout
_TIMEOUT_ERRORS: dict[PipelineStage, type[TalentMatchError]] = {
    PipelineStage.JOB_LOOKUP: RetrievalFailure,
    PipelineStage.EMBEDDING: EmbeddingFailure,
    PipelineStage.RETRIEVAL: RetrievalFailure,
    PipelineStage.RERANK: GenerationFailure,
}


def validate_query(query: JobQuery, max_semantic_count: int) -> None:
    """
    Check a matching request before any collaborator is called.

    Raises:
        InvalidQuery: If the description is empty (and no job id is given)
            or the counts violate ``1 <= final <= semantic <= maximum``.
    """
    if not query.job_description_text.strip() and not query.job_id:
        raise InvalidQuery(
            "Job description text must not be empty",
            field="jobDescriptionText",
        )

    semantic = query.semantic_search_result_count
    final = query.final_result_count
    if semantic < 1 or semantic > max_semantic_count:
        raise InvalidQuery(
            f"semanticSearchResultCount must be between 1 and {max_semantic_count}",
            field="semanticSearchResultCount",
            value=semantic,
        )
    if final < 1:
        raise InvalidQuery(
            "finalResultCount must be at least 1",
            field="finalResultCount",
            value=final,
        )
    if final > semantic:
        raise InvalidQuery(
            "finalResultCount must not exceed semanticSearchResultCount",
            field="finalResultCount",
            value=final,
        )


def extract_job_title(job_text: str) -> str:
    """Take the title from a 'Job Title: ...' line, if the text has one."""
    found = _JOB_TITLE_PATTERN.search(job_text)
    if found and found.group(1).strip():
        return found.group(1).strip()
    return DEFAULT_JOB_TITLE


def combine_job_text(job_text: str, company_text: str) -> str:
    """Text that gets embedded for retrieval."""
    job_text = job_text.strip()
    company_text = company_text.strip()
    if company_text:
        return f"{job_text}{COMPANY_SEPARATOR}{company_text}"
    return job_text


def compose_summary(considered: int, reranked: int, results: list[MatchResult]) -> str:
    """Human-readable summary of a matching run."""
    if considered == 0:
        return EMPTY_POOL_SUMMARY

    summary = (
        f"Considered {considered} candidate(s) from semantic search, "
        f"re-ranked {reranked} with the LLM and kept the top {len(results)}."
    )
    if results:
        scores = [r.llm_match_score for r in results]
        summary += f" LLM match scores range from {min(scores):.2f} to {max(scores):.2f}."
    return summary


class MatchingOrchestrator:
    """
    Coordinates the matching stages for one request at a time.

    Holds only its injected collaborators, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        retriever: SemanticRetriever,
        reranker: LLMReranker,
        job_repository: Optional[JobRepository] = None,
        settings: Optional[AppSettings] = None,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self.reranker = reranker
        self.job_repository = job_repository
        self._matching = (settings or get_settings()).matching

    # -------------------------------------------------------------------------
    # Stage helpers
    # -------------------------------------------------------------------------

    def _failed(
        self, stage: PipelineStage, error: TalentMatchError, context: dict[str, Any]
    ) -> MatchingFailed:
        failure = MatchingFailed(stage.value, error, details=context)
        logger.error(f"{failure.message} [{failure.error_kind}]")
        audit_log(
            AuditAction.MATCHING_FAILED.value,
            {"stage": stage.value, "error_kind": failure.error_kind, **context},
            audit_type="FAILURE",
        )
        return failure

    def _run_stage(
        self, stage: PipelineStage, fn: Callable[[], R], context: dict[str, Any]
    ) -> R:
        try:
            return fn()
        except InvalidQuery:
            raise
        except TalentMatchError as e:
            raise self._failed(stage, e, context) from e

    def _stage_timeout(self, stage: PipelineStage) -> float:
        if stage == PipelineStage.EMBEDDING:
            return self._matching.embedding_timeout
        if stage == PipelineStage.RERANK:
            return self._matching.rerank_timeout
        return self._matching.retrieval_timeout

    async def _run_stage_async(
        self, stage: PipelineStage, fn: Callable[[], R], context: dict[str, Any]
    ) -> R:
        """Run a blocking stage in a worker thread under the stage timeout."""
        timeout = self._stage_timeout(stage)
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=timeout)
        except asyncio.TimeoutError as e:
            error = _TIMEOUT_ERRORS[stage](
                f"{stage.value} timed out after {timeout}s",
                details={"timeout_seconds": timeout},
                cause=e,
            )
            raise self._failed(stage, error, context) from e
        except InvalidQuery:
            raise
        except TalentMatchError as e:
            raise self._failed(stage, e, context) from e

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _resolve_job(self, query: JobQuery) -> tuple[str, str, str]:
        """
        Return (job text, company text, title) for a query.

        A stored job referenced by ``job_id`` wins over the provided job and
        company text. If it cannot be found the provided text is used
        instead, under the generic title.
        """
        job_text = query.job_description_text
        company_text = query.company_information

        if query.job_id and self.job_repository is not None:
            try:
                job = self.job_repository.get_by_id(query.job_id)
            except PyMongoError as e:
                raise RetrievalFailure(
                    f"Job lookup failed: {e}",
                    details={"job_id": query.job_id},
                    cause=e,
                ) from e

            if job is not None:
                return (
                    job.full_job_description_text,
                    job.company_information,
                    job.title,
                )
            logger.warning(f"Job {query.job_id} not found, using the provided description")
        elif query.job_id:
            logger.warning("No job repository configured, using the provided description")

        if not job_text.strip():
            raise InvalidQuery(
                f"Job {query.job_id} not found and no description text provided",
                field="jobId",
                value=query.job_id,
            )
        if query.job_id:
            return job_text, company_text, DEFAULT_JOB_TITLE
        return job_text, company_text, extract_job_title(job_text)

    def _rerank_with_retry(
        self, job_text: str, company_text: str, candidates: list[CandidateStub], keep: int
    ) -> list[MatchResult]:
        attempts = 1 + self._matching.rerank_retries
        for attempt in range(1, attempts + 1):
            try:
                return self.reranker.rerank(job_text, company_text, candidates, keep)
            except MalformedModelOutput as e:
                if attempt == attempts:
                    raise
                logger.warning(f"Malformed re-ranking reply (attempt {attempt}/{attempts}): {e}")
        return []

    def _respond(
        self,
        query: JobQuery,
        job_title: str,
        candidates: list[CandidateStub],
        results: list[MatchResult],
    ) -> MatchResponse:
        considered = len(candidates)
        reranked = len(self.reranker.deduplicate(candidates)) if candidates else 0
        response = MatchResponse(
            reranked_candidates=results,
            search_summary=compose_summary(considered, reranked, results),
            job_title_used=job_title,
            candidates_considered=considered,
        )

        details: dict[str, Any] = {
            "semantic_requested": query.semantic_search_result_count,
            "final_requested": query.final_result_count,
            "considered": considered,
            "reranked": reranked,
            "kept": len(results),
        }
        if results:
            details["llm_score_min"] = round(min(r.llm_match_score for r in results), 3)
            details["llm_score_max"] = round(max(r.llm_match_score for r in results), 3)
        audit_log(AuditAction.CANDIDATES_MATCHED.value, details)
        logger.info(response.search_summary)
        return response

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def match(self, query: JobQuery) -> MatchResponse:
        """
        Find and re-rank the candidates best matching a job.

        Raises:
            InvalidQuery: If the request is malformed (nothing is called).
            MatchingFailed: If any stage fails.
        """
        validate_query(query, self._matching.max_semantic_result_count)
        context: dict[str, Any] = {
            "semantic_requested": query.semantic_search_result_count,
            "final_requested": query.final_result_count,
        }

        job_text, company_text, title = self._run_stage(
            PipelineStage.JOB_LOOKUP, lambda: self._resolve_job(query), context
        )
        text = combine_job_text(job_text, company_text)
        context["job_text_length"] = len(text)

        embedding = self._run_stage(
            PipelineStage.EMBEDDING, lambda: self.embedder.embed_query(text), context
        )
        candidates = self._run_stage(
            PipelineStage.RETRIEVAL,
            lambda: self.retriever.retrieve(embedding, query.semantic_search_result_count),
            context,
        )
        if not candidates:
            return self._respond(query, title, [], [])

        context["candidate_count"] = len(candidates)
        results = self._run_stage(
            PipelineStage.RERANK,
            lambda: self._rerank_with_retry(
                job_text, company_text, candidates, query.final_result_count
            ),
            context,
        )
        return self._respond(query, title, candidates, results)

    async def match_async(self, query: JobQuery) -> MatchResponse:
        """
        Async variant of :meth:`match`.

        Each stage runs in a worker thread under its own timeout; a timeout
        is reported as that stage's error kind. Cancelling the awaiting task
        abandons the remaining stages.
        """
        validate_query(query, self._matching.max_semantic_result_count)
        context: dict[str, Any] = {
            "semantic_requested": query.semantic_search_result_count,
            "final_requested": query.final_result_count,
        }

        job_text, company_text, title = await self._run_stage_async(
            PipelineStage.JOB_LOOKUP, lambda: self._resolve_job(query), context
        )
        text = combine_job_text(job_text, company_text)
        context["job_text_length"] = len(text)

        embedding = await self._run_stage_async(
            PipelineStage.EMBEDDING, lambda: self.embedder.embed_query(text), context
        )
        candidates = await self._run_stage_async(
            PipelineStage.RETRIEVAL,
            lambda: self.retriever.retrieve(embedding, query.semantic_search_result_count),
            context,
        )
        if not candidates:
            return self._respond(query, title, [], [])

        context["candidate_count"] = len(candidates)
        results = await self._run_stage_async(
            PipelineStage.RERANK,
            lambda: self._rerank_with_retry(
                job_text, company_text, candidates, query.final_result_count
            ),
            context,
        )
        return self._respond(query, title, candidates, results)

    def match_payload(self, payload: Union[JobQuery, dict[str, Any]]) -> dict[str, Any]:
        """
        API entry point: camelCase request dict in, camelCase response dict out.
        """
        query = payload if isinstance(payload, JobQuery) else JobQuery.from_payload(payload)
        return self.match(query).to_payload()


def create_matching_orchestrator(
    settings: Optional[AppSettings] = None,
    db_manager: Optional[DatabaseManager] = None,
) -> MatchingOrchestrator:
    """Build an orchestrator with the providers described by settings."""
    settings = settings or get_settings()
    db_manager = db_manager or DatabaseManager(settings)

    return MatchingOrchestrator(
        embedder=EmbeddingClient(settings=settings),
        retriever=create_semantic_retriever(settings, db_manager),
        reranker=LLMReranker(
            GenerativeModel(settings=settings),
            batch_size=settings.matching.rerank_batch_size,
        ),
        job_repository=JobRepository(db_manager),
        settings=settings,
    )

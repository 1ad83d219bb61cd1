"""
Retrieval-only searches: talent search by free-text query and job
recommendations for a candidate profile. Neither calls the generative model.
"""

from typing import Optional

from talentmatch.data.database import DatabaseManager
from talentmatch.data.models.match import (
    JobRecommendationResponse,
    RecommendedJob,
    SemanticCandidate,
    TalentSearchResponse,
)
from talentmatch.ml.embeddings.embedding_model import EmbeddingClient
from talentmatch.ml.embeddings.semantic_retriever import (
    SemanticRetriever,
    create_semantic_retriever,
)
from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import MAX_TOP_SKILLS, AuditAction
from talentmatch.utils.exceptions import InvalidQuery
from talentmatch.utils.logger import audit_log, get_logger

logger = get_logger(__name__)


def _check_count(field: str, value: int, maximum: int) -> None:
    if value < 1 or value > maximum:
        raise InvalidQuery(f"{field} must be between 1 and {maximum}", field=field, value=value)


class TalentSearch:
    """Find candidates whose profiles are semantically close to a query."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        retriever: SemanticRetriever,
        settings: Optional[AppSettings] = None,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self._matching = (settings or get_settings()).matching

    def search(self, query: str, result_count: int = 5) -> TalentSearchResponse:
        """
        Search active candidates by natural-language query.

        Raises:
            InvalidQuery: If the query is too short or the count out of range.
            EmbeddingFailure / RetrievalFailure: If a stage fails.
        """
        min_length = self._matching.talent_search_min_query_length
        if len((query or "").strip()) < min_length:
            raise InvalidQuery(
                f"Search query must be at least {min_length} characters",
                field="searchQuery",
            )
        _check_count("resultCount", result_count, self._matching.talent_search_max_results)

        embedding = self.embedder.embed_query(query)
        stubs = self.retriever.retrieve(embedding, result_count)

        matched = [
            SemanticCandidate(
                candidate_id=stub.candidate_id,
                full_name=stub.full_name,
                current_title=stub.current_title,
                profile_summary_excerpt=stub.profile_summary_excerpt,
                top_skills=stub.skills[:MAX_TOP_SKILLS],
                availability=stub.availability,
                match_score=stub.semantic_match_score,
            )
            for stub in stubs
        ]

        audit_log(
            AuditAction.TALENT_SEARCHED.value,
            {"query_length": len(query), "requested": result_count, "found": len(matched)},
        )
        return TalentSearchResponse(
            matched_candidates=matched,
            search_summary=f"Found {len(matched)} candidate(s) semantically matching your query.",
        )


class JobRecommender:
    """Recommend open jobs for a candidate profile by embedding similarity."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        retriever: SemanticRetriever,
        settings: Optional[AppSettings] = None,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self._matching = (settings or get_settings()).matching

    def recommend(self, profile_text: str, result_count: int = 5) -> JobRecommendationResponse:
        """
        Recommend the open jobs nearest to a candidate profile.

        Raises:
            InvalidQuery: If the profile is too short or the count out of range.
        """
        min_length = self._matching.job_recommendation_min_profile_length
        if len((profile_text or "").strip()) < min_length:
            raise InvalidQuery(
                f"Candidate profile must be at least {min_length} characters",
                field="candidateProfileText",
            )
        _check_count("resultCount", result_count, self._matching.job_recommendation_max_results)

        embedding = self.embedder.embed_query(profile_text)
        stubs = self.retriever.retrieve_jobs(embedding, result_count)

        jobs = [
            RecommendedJob(
                job_id=stub.job_id,
                title=stub.title,
                company_name=stub.company_name,
                location=stub.location,
                match_score=stub.semantic_match_score,
            )
            for stub in stubs
        ]

        reasoning = f"Found {len(jobs)} job(s) that are semantically similar to your profile."
        logger.info(reasoning)
        audit_log(
            AuditAction.JOBS_RECOMMENDED.value,
            {"profile_length": len(profile_text), "requested": result_count, "found": len(jobs)},
        )
        return JobRecommendationResponse(recommended_jobs=jobs, reasoning=reasoning)


def create_talent_search(
    settings: Optional[AppSettings] = None,
    db_manager: Optional[DatabaseManager] = None,
) -> TalentSearch:
    settings = settings or get_settings()
    db_manager = db_manager or DatabaseManager(settings)
    return TalentSearch(
        EmbeddingClient(settings=settings),
        create_semantic_retriever(settings, db_manager),
        settings=settings,
    )


def create_job_recommender(
    settings: Optional[AppSettings] = None,
    db_manager: Optional[DatabaseManager] = None,
) -> JobRecommender:
    settings = settings or get_settings()
    db_manager = db_manager or DatabaseManager(settings)
    return JobRecommender(
        EmbeddingClient(settings=settings),
        create_semantic_retriever(settings, db_manager),
        settings=settings,
    )

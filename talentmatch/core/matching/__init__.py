"""Candidate-job matching pipeline and retrieval-only searches."""

from .orchestrator import (
    MatchingOrchestrator,
    compose_summary,
    create_matching_orchestrator,
    extract_job_title,
    validate_query,
)
from .semantic_search import (
    JobRecommender,
    TalentSearch,
    create_job_recommender,
    create_talent_search,
)

__all__ = [
    "MatchingOrchestrator",
    "JobRecommender",
    "TalentSearch",
    "compose_summary",
    "create_job_recommender",
    "create_matching_orchestrator",
    "create_talent_search",
    "extract_job_title",
    "validate_query",
]

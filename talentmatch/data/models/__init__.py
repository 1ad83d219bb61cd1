"""
Pydantic data models and schemas for TalentMatch.

This module provides all data models used throughout the application,
including database documents, ephemeral retrieval results and API schemas.
"""

# Base models
from .base import ApiModel, BaseDocument, EmbeddedModel, TimestampMixin

# Candidate models
from .candidate import CandidateProfile, CandidateStub, normalize_skills

# Job models
from .job import JobPosting, JobStub

# Match models
from .match import (
    CandidateVerdict,
    JobQuery,
    JobRecommendationResponse,
    MatchResponse,
    MatchResult,
    RecommendedJob,
    RerankVerdicts,
    SemanticCandidate,
    TalentSearchResponse,
)

__all__ = [
    # Base
    "ApiModel",
    "BaseDocument",
    "EmbeddedModel",
    "TimestampMixin",
    # Candidate
    "CandidateProfile",
    "CandidateStub",
    "normalize_skills",
    # Job
    "JobPosting",
    "JobStub",
    # Match
    "CandidateVerdict",
    "JobQuery",
    "JobRecommendationResponse",
    "MatchResponse",
    "MatchResult",
    "RecommendedJob",
    "RerankVerdicts",
    "SemanticCandidate",
    "TalentSearchResponse",
]

"""
Match and search data models for TalentMatch.

Defines the matching request (JobQuery), its results, the schema the
re-ranking model must follow, and the results of retrieval-only searches.
"""

import math
from typing import Any, Optional, Union

from pydantic import (
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    ValidationError,
    field_validator,
)

from talentmatch.utils.config import get_settings
from talentmatch.utils.constants import MatchScoreLevel
from talentmatch.utils.exceptions import InvalidQuery

from .base import ApiModel, EmbeddedModel


def _default_semantic_count() -> int:
    return get_settings().matching.default_semantic_result_count


def _default_final_count() -> int:
    return get_settings().matching.default_final_result_count


class JobQuery(ApiModel):
    """
    A single matching request.

    Counts are range-checked by the orchestrator, not here, so that an
    out-of-range request still reaches it and fails with ``InvalidQuery``.
    """

    job_description_text: str = ""
    company_information: str = ""
    semantic_search_result_count: int = Field(default_factory=_default_semantic_count)
    final_result_count: int = Field(default_factory=_default_final_count)
    job_id: Optional[str] = None

    @field_validator("job_description_text", "company_information", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "JobQuery":
        """Build a query from an API payload, reporting type errors as InvalidQuery."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise InvalidQuery(
                f"Invalid matching request: {first['msg']}",
                field=field,
                cause=e,
            ) from e


class MatchResult(ApiModel):
    """One re-ranked candidate in the final output."""

    candidate_id: str
    full_name: str
    current_title: str
    top_skills: list[str] = Field(default_factory=list)
    profile_summary_excerpt: Optional[str] = None
    availability: Optional[str] = None

    semantic_match_score: float = Field(ge=0.0, le=1.0)
    llm_match_score: float = Field(ge=0.0, le=1.0)
    llm_justification: str = Field(min_length=1)

    @property
    def score_level(self) -> MatchScoreLevel:
        return MatchScoreLevel.from_score(self.llm_match_score)


class MatchResponse(ApiModel):
    """Result of a matching request."""

    reranked_candidates: list[MatchResult] = Field(default_factory=list)
    search_summary: str
    job_title_used: Optional[str] = None
    candidates_considered: int = 0

    @property
    def results(self) -> list[MatchResult]:
        return self.reranked_candidates

    @property
    def summary(self) -> str:
        return self.search_summary

    def to_payload(self) -> dict[str, Any]:
        """Serialize for API consumers (camelCase keys)."""
        return self.model_dump(by_alias=True)


# =============================================================================
# Re-ranking model output schema
# =============================================================================


class CandidateVerdict(EmbeddedModel):
    """The model's verdict for one candidate."""

    model_config = ConfigDict(extra="ignore")

    candidate_id: str = Field(min_length=1)
    match_score: Union[StrictInt, StrictFloat]
    justification: str

    @field_validator("candidate_id", mode="before")
    @classmethod
    def coerce_candidate_id(cls, v: Any) -> Any:
        # Models occasionally echo numeric-looking ids as numbers
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("match_score")
    @classmethod
    def clamp_score(cls, v: Union[int, float]) -> float:
        """Scores must be finite; out-of-range values are clamped into [0, 1]."""
        v = float(v)
        if not math.isfinite(v):
            raise ValueError("match_score must be a finite number")
        return min(1.0, max(0.0, v))

    @field_validator("justification")
    @classmethod
    def require_justification(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("justification must not be empty")
        return v


class RerankVerdicts(EmbeddedModel):
    """Top-level shape of the re-ranking reply."""

    model_config = ConfigDict(extra="ignore")

    candidates: list[CandidateVerdict]


# =============================================================================
# Retrieval-only searches
# =============================================================================


class SemanticCandidate(ApiModel):
    """Candidate found by talent semantic search."""

    candidate_id: str
    full_name: str
    current_title: str
    profile_summary_excerpt: Optional[str] = None
    top_skills: list[str] = Field(default_factory=list)
    availability: Optional[str] = None
    match_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class TalentSearchResponse(ApiModel):
    matched_candidates: list[SemanticCandidate] = Field(default_factory=list)
    search_summary: str


class RecommendedJob(ApiModel):
    """Job recommended for a candidate profile."""

    job_id: str
    title: str
    company_name: str
    location: Optional[str] = None
    match_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class JobRecommendationResponse(ApiModel):
    recommended_jobs: list[RecommendedJob] = Field(default_factory=list)
    reasoning: str

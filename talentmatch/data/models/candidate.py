"""
Candidate data models for TalentMatch.

Defines the stored candidate profile (with its resume embedding) and the
lightweight stub returned by semantic retrieval.
"""

import math
from typing import Any, Optional

from pydantic import EmailStr, Field, field_validator

from talentmatch.utils.constants import NOT_AVAILABLE, CandidateStatus

from .base import BaseDocument, EmbeddedModel


def normalize_skills(skills: list[str]) -> list[str]:
    """Strip and de-duplicate skills case-insensitively, keeping first-seen order."""
    seen: set[str] = set()
    normalized = []
    for skill in skills:
        name = skill.strip()
        key = name.casefold()
        if name and key not in seen:
            seen.add(key)
            normalized.append(name)
    return normalized


def split_skills(value: Any) -> list[str]:
    """Accept skills stored either as a list or as a comma-joined string."""
    if value is None:
        return []
    if isinstance(value, str):
        return normalize_skills(value.split(","))
    return normalize_skills([str(v) for v in value])


class CandidateProfile(BaseDocument):
    """
    Candidate profile document stored in the candidate collection.

    The profile is read-only for matching; it is written only by indexing.
    """

    candidate_id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    current_title: Optional[str] = None

    skills: list[str] = Field(default_factory=list)
    experience_summary: Optional[str] = None
    ai_generated_summary: Optional[str] = None
    extracted_resume_text: Optional[str] = None

    # Length must equal the configured embedding dimension once set
    resume_embedding: Optional[list[float]] = None

    availability: Optional[str] = None
    phone: Optional[str] = None
    linkedin_profile: Optional[str] = None
    portfolio_url: Optional[str] = None
    avatar_url: Optional[str] = None
    video_intro_url: Optional[str] = None

    status: CandidateStatus = CandidateStatus.ACTIVE

    @field_validator("skills", mode="before")
    @classmethod
    def validate_skills(cls, v: Any) -> list[str]:
        return split_skills(v)

    @field_validator("resume_embedding")
    @classmethod
    def validate_embedding(cls, v: Optional[list[float]]) -> Optional[list[float]]:
        """Reject empty or non-finite vectors."""
        if v is None:
            return v
        if not v:
            raise ValueError("resume_embedding must not be empty")
        if not all(math.isfinite(x) for x in v):
            raise ValueError("resume_embedding must contain only finite values")
        return v

    @property
    def profile_summary(self) -> Optional[str]:
        """Short profile text shown to recruiters and the re-ranker."""
        return self.experience_summary or self.ai_generated_summary

    @property
    def has_embedding(self) -> bool:
        return bool(self.resume_embedding)

    def model_dump_mongo(self) -> dict[str, Any]:
        data = super().model_dump_mongo()
        data["_id"] = self.candidate_id
        return data

    def vector_metadata(self) -> dict[str, Any]:
        """Flat metadata stored next to the embedding in the vector index."""
        return {
            "full_name": self.full_name,
            "current_title": self.current_title or "",
            "skills": ",".join(self.skills),
            "experience_summary": self.experience_summary or "",
            "ai_generated_summary": self.ai_generated_summary or "",
            "availability": self.availability or "",
            "status": CandidateStatus(self.status).value,
        }

    class Settings:
        """MongoDB collection settings."""

        name = "candidates_with_embeddings"
        indexes = [
            "status",
            "email",
            "updated_at",
        ]


class CandidateStub(EmbeddedModel):
    """Candidate as returned by nearest-neighbour retrieval."""

    candidate_id: str
    full_name: str = NOT_AVAILABLE
    current_title: str = NOT_AVAILABLE
    skills: list[str] = Field(default_factory=list)
    experience_summary: Optional[str] = None
    ai_generated_summary: Optional[str] = None
    availability: Optional[str] = None

    distance: float = 0.0
    semantic_match_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("skills", mode="before")
    @classmethod
    def validate_skills(cls, v: Any) -> list[str]:
        return split_skills(v)

    @field_validator("full_name", "current_title", mode="before")
    @classmethod
    def default_missing_text(cls, v: Any) -> str:
        """Missing descriptive fields fall back to a placeholder."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return NOT_AVAILABLE
        return v

    @field_validator("experience_summary", "ai_generated_summary", "availability", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def profile_summary_excerpt(self) -> Optional[str]:
        return self.experience_summary or self.ai_generated_summary

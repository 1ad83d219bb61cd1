"""
Job posting data models for TalentMatch.
"""

import math
from typing import Any, Optional

from pydantic import Field, field_validator

from talentmatch.utils.constants import NOT_AVAILABLE, JobStatus

from .base import BaseDocument, EmbeddedModel


class JobPosting(BaseDocument):
    """Job posting document with its description embedding."""

    job_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    company_name: str = Field(..., min_length=1)
    company_description: Optional[str] = None
    benefits: list[str] = Field(default_factory=list)

    full_job_description_text: str = Field(..., min_length=1)
    job_embedding: Optional[list[float]] = None

    location: Optional[str] = None
    job_level: Optional[str] = None
    department: Optional[str] = None
    responsibilities_summary: Optional[str] = None
    qualifications_summary: Optional[str] = None

    status: JobStatus = JobStatus.OPEN

    @field_validator("job_embedding")
    @classmethod
    def validate_embedding(cls, v: Optional[list[float]]) -> Optional[list[float]]:
        if v is None:
            return v
        if not v or not all(math.isfinite(x) for x in v):
            raise ValueError("job_embedding must be a non-empty vector of finite values")
        return v

    @property
    def company_information(self) -> str:
        """Company context used to enrich matching prompts."""
        parts = [f"{self.company_name}."]
        if self.company_description:
            parts.append(self.company_description.strip())
        if self.benefits:
            parts.append(f"Benefits: {', '.join(self.benefits)}")
        return " ".join(parts)

    def model_dump_mongo(self) -> dict[str, Any]:
        data = super().model_dump_mongo()
        data["_id"] = self.job_id
        return data

    def vector_metadata(self) -> dict[str, Any]:
        """Flat metadata stored next to the embedding in the vector index."""
        return {
            "title": self.title,
            "company_name": self.company_name,
            "location": self.location or "",
            "status": JobStatus(self.status).value,
        }

    class Settings:
        """MongoDB collection settings."""

        name = "jobs_with_embeddings"
        indexes = [
            "status",
            "company_name",
            "updated_at",
        ]


class JobStub(EmbeddedModel):
    """Job as returned by nearest-neighbour retrieval."""

    job_id: str
    title: str = NOT_AVAILABLE
    company_name: str = NOT_AVAILABLE
    location: Optional[str] = None

    distance: float = 0.0
    semantic_match_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("title", "company_name", mode="before")
    @classmethod
    def default_missing_text(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return NOT_AVAILABLE
        return v

    @field_validator("location", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

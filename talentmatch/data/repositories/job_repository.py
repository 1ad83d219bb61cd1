"""
Job repository for TalentMatch.

Provides data access operations for job posting documents.
"""

from typing import Optional

from talentmatch.data.models.job import JobPosting
from talentmatch.utils.constants import JobStatus

from .base import BaseRepository


class JobRepository(BaseRepository[JobPosting]):
    """Repository for job posting operations."""

    @property
    def collection_name(self) -> str:
        return self._db_manager.settings.database.jobs_collection

    @property
    def model_class(self) -> type[JobPosting]:
        return JobPosting

    def find_open(self, skip: int = 0, limit: int = 100) -> list[JobPosting]:
        return self.find({"status": JobStatus.OPEN.value}, skip=skip, limit=limit)

    def close(self, job_id: str) -> Optional[JobPosting]:
        """Mark a job as closed so it no longer appears in recommendations."""
        return self.update(job_id, {"status": JobStatus.CLOSED.value})

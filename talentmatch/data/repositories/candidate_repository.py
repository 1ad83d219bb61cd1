"""
Candidate repository for TalentMatch.

Provides data access operations for candidate profile documents.
Profiles are never hard-deleted; they change status instead.
"""

from typing import Optional

from talentmatch.data.models.candidate import CandidateProfile
from talentmatch.utils.constants import CANDIDATE_EMBEDDING_FIELD, CandidateStatus
from talentmatch.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)


class CandidateRepository(BaseRepository[CandidateProfile]):
    """Repository for candidate profile operations."""

    @property
    def collection_name(self) -> str:
        return self._db_manager.settings.database.candidates_collection

    @property
    def model_class(self) -> type[CandidateProfile]:
        return CandidateProfile

    # -------------------------------------------------------------------------
    # Update Operations
    # -------------------------------------------------------------------------

    def set_status(
        self, candidate_id: str, status: CandidateStatus
    ) -> Optional[CandidateProfile]:
        """Change the soft status of a candidate."""
        updated = self.update(candidate_id, {"status": CandidateStatus(status).value})
        if updated is None:
            logger.warning(f"Status change for unknown candidate: {candidate_id}")
        return updated

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def find_without_embedding(self, limit: int = 100) -> list[CandidateProfile]:
        """Get candidates that have not been embedded yet."""
        return self.find({CANDIDATE_EMBEDDING_FIELD: {"$exists": False}}, limit=limit)

    def count_by_status(self) -> dict[str, int]:
        """Count candidates per status."""
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        results = self._get_sync_collection().aggregate(pipeline)
        return {r["_id"]: r["count"] for r in results if r["_id"]}

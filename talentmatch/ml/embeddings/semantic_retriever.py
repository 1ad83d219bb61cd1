"""
Semantic retrieval of candidates and jobs by embedding similarity.

Turns raw vector store hits into candidate or job stubs carrying the
cosine distance and a [0, 1] semantic match score.
"""

import math
from typing import Any, Optional

import numpy as np

from talentmatch.data.models.candidate import CandidateStub
from talentmatch.data.models.job import JobStub
from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import (
    CANDIDATE_EMBEDDING_FIELD,
    MAX_COSINE_DISTANCE,
    MIN_COSINE_DISTANCE,
    CandidateStatus,
    JobStatus,
)
from talentmatch.utils.exceptions import RetrievalFailure, TalentMatchError
from talentmatch.utils.logger import get_logger

from .vector_store import SearchResult, VectorStore, create_vector_store

logger = get_logger(__name__)

INDEX_GUIDANCE = (
    "Make sure the vector index exists (for MongoDB Atlas: a vectorSearch index "
    "on '{field}' with cosine similarity and {dimension} dimensions; run "
    "'talentmatch init-db')."
)


def distance_to_score(distance: float) -> float:
    """
    Map a cosine distance in [0, 2] to a similarity score in [0, 1].

    ``score = 1 - distance / 2``, clamped. Identical vectors score 1.0,
    orthogonal ones 0.5 and opposite ones 0.0.
    """
    return min(1.0, max(0.0, 1.0 - distance / 2.0))


class SemanticRetriever:
    """
    Nearest-neighbour search over the candidate and job vector indexes.

    Results come back nearest first; exact distance ties are ordered by id
    so identical inputs always yield the same sequence.
    """

    def __init__(
        self,
        candidate_store: VectorStore,
        job_store: Optional[VectorStore] = None,
        embedding_field: str = CANDIDATE_EMBEDDING_FIELD,
        dimension: int = 768,
    ):
        self.candidate_store = candidate_store
        self.job_store = job_store
        self._guidance = INDEX_GUIDANCE.format(field=embedding_field, dimension=dimension)

    def _search(
        self,
        store: VectorStore,
        query_embedding: np.ndarray,
        k: int,
        filter_metadata: Optional[dict[str, Any]],
    ) -> list[SearchResult]:
        """Query a store, normalising ordering and wrapping backend errors."""
        if k <= 0:
            return []

        try:
            if store.count() == 0:
                logger.info("Vector index is empty, nothing to retrieve")
                return []
            hits = store.search(query_embedding, top_k=k, filter_metadata=filter_metadata)
        except TalentMatchError:
            raise
        except Exception as e:
            raise RetrievalFailure(
                f"Vector search failed: {e}. {self._guidance}",
                details={"requested": k, "backend": type(store).__name__},
                cause=e,
            ) from e

        for hit in hits:
            if not math.isfinite(hit.distance):
                raise RetrievalFailure(
                    "Vector search returned a non-finite distance",
                    details={"backend": type(store).__name__},
                )
            hit.distance = min(MAX_COSINE_DISTANCE, max(MIN_COSINE_DISTANCE, hit.distance))

        hits.sort(key=lambda h: (h.distance, h.id))
        return hits[:k]

    def retrieve(
        self,
        query_embedding: np.ndarray,
        k: int,
        filter_metadata: Optional[dict[str, Any]] = None,
        active_only: bool = True,
    ) -> list[CandidateStub]:
        """
        Find the ``k`` candidates nearest to a query embedding.

        Args:
            query_embedding: Unit-norm query vector.
            k: Number of candidates wanted; ``k <= 0`` returns ``[]``.
            filter_metadata: Extra equality filters on stored metadata.
            active_only: Restrict to candidates with status ``active``.

        Returns:
            Candidate stubs sorted by ascending distance.

        Raises:
            RetrievalFailure: If the index cannot be queried.
        """
        filters = dict(filter_metadata or {})
        if active_only:
            filters.setdefault("status", CandidateStatus.ACTIVE.value)

        hits = self._search(self.candidate_store, query_embedding, k, filters or None)

        stubs = [
            CandidateStub.model_validate({
                **hit.metadata,
                "candidate_id": hit.id,
                "distance": hit.distance,
                "semantic_match_score": distance_to_score(hit.distance),
            })
            for hit in hits
        ]
        logger.debug(f"Retrieved {len(stubs)} of {k} requested candidates")
        return stubs

    def retrieve_jobs(self, query_embedding: np.ndarray, k: int) -> list[JobStub]:
        """Find the ``k`` open jobs nearest to a query embedding."""
        if self.job_store is None:
            raise RetrievalFailure("No job vector index configured")

        hits = self._search(
            self.job_store, query_embedding, k, {"status": JobStatus.OPEN.value}
        )
        return [
            JobStub.model_validate({
                **hit.metadata,
                "job_id": hit.id,
                "distance": hit.distance,
                "semantic_match_score": distance_to_score(hit.distance),
            })
            for hit in hits
        ]


def create_semantic_retriever(
    settings: Optional[AppSettings] = None,
    db_manager: Any = None,
) -> SemanticRetriever:
    """Build a retriever over the candidate and job stores described by settings."""
    settings = settings or get_settings()
    return SemanticRetriever(
        create_vector_store("candidate", settings, db_manager),
        create_vector_store("job", settings, db_manager),
        embedding_field=CANDIDATE_EMBEDDING_FIELD,
        dimension=settings.ml.embedding_dimension,
    )

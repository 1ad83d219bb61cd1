"""
Profile indexing: computes embeddings for candidate and job documents and
writes them to the document store and the vector index.

This is the only writer of candidate records; matching only reads them.
"""

from typing import Optional

import numpy as np

from talentmatch.data.database import DatabaseManager
from talentmatch.data.models.candidate import CandidateProfile
from talentmatch.data.models.job import JobPosting
from talentmatch.data.repositories.candidate_repository import CandidateRepository
from talentmatch.data.repositories.job_repository import JobRepository
from talentmatch.ml.embeddings.embedding_model import EmbeddingClient
from talentmatch.ml.embeddings.vector_store import VectorStore, create_vector_store
from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import AuditAction, CandidateStatus
from talentmatch.utils.exceptions import EmbeddingFailure
from talentmatch.utils.logger import LoggerMixin, audit_log


def candidate_embedding_text(profile: CandidateProfile) -> str:
    """Text a candidate embedding is computed from."""
    if profile.extracted_resume_text and profile.extracted_resume_text.strip():
        return profile.extracted_resume_text.strip()

    parts = [profile.full_name]
    if profile.current_title:
        parts.append(profile.current_title)
    if profile.skills:
        parts.append("Skills: " + ", ".join(profile.skills))
    if profile.profile_summary:
        parts.append(profile.profile_summary)
    return "\n".join(parts)


def job_embedding_text(job: JobPosting) -> str:
    """Text a job embedding is computed from."""
    return f"Job Title: {job.title}\n{job.full_job_description_text.strip()}"


class ProfileIndexer(LoggerMixin):
    """
    Embeds and stores candidate profiles and job postings.

    A stored embedding is reused when the embedded text has not changed,
    so re-indexing an unchanged profile never calls the embedding provider.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        candidate_repository: CandidateRepository,
        candidate_store: VectorStore,
        job_repository: Optional[JobRepository] = None,
        job_store: Optional[VectorStore] = None,
        dimension: Optional[int] = None,
    ):
        self.embedder = embedder
        self.candidate_repository = candidate_repository
        self.candidate_store = candidate_store
        self.job_repository = job_repository
        self.job_store = job_store
        self.dimension = dimension or embedder.dimension

    def _check_dimension(self, vector: np.ndarray, owner: str) -> list[float]:
        if vector.shape != (self.dimension,):
            raise EmbeddingFailure(
                f"Embedding for {owner} has shape {vector.shape}, expected ({self.dimension},)",
                details={"expected_dimension": self.dimension},
            )
        return vector.astype(float).tolist()

    def _reusable(self, stored: Optional[list[float]], old_text: Optional[str], new_text: str) -> bool:
        return bool(stored) and len(stored) == self.dimension and old_text == new_text

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    def index_candidate(self, profile: CandidateProfile, persist: bool = True) -> CandidateProfile:
        """
        Embed (if needed) and store one candidate profile.

        Raises:
            EmbeddingFailure: If the profile text cannot be embedded.
        """
        text = candidate_embedding_text(profile)
        existing = self.candidate_repository.get_by_id(profile.candidate_id)

        reembedded = True
        if existing and self._reusable(
            existing.resume_embedding, candidate_embedding_text(existing), text
        ):
            embedding = existing.resume_embedding
            reembedded = False
        else:
            embedding = self._check_dimension(
                self.embedder.embed_document(text), profile.candidate_id
            )

        update = {"resume_embedding": embedding}
        if existing:
            update["created_at"] = existing.created_at
        indexed = profile.model_copy(update=update)

        self.candidate_repository.upsert(indexed)
        self.candidate_store.upsert(
            [indexed.candidate_id],
            np.asarray([embedding], dtype=np.float32),
            metadatas=[indexed.vector_metadata()],
        )
        if persist:
            self.candidate_store.persist()

        self.logger.debug(
            f"Indexed candidate {indexed.candidate_id} (re-embedded: {reembedded})"
        )
        audit_log(
            AuditAction.CANDIDATE_INDEXED.value,
            {"text_length": len(text), "reembedded": reembedded},
            audit_type="INDEX",
        )
        return indexed

    def index_candidates(self, profiles: list[CandidateProfile]) -> int:
        """Index several candidates, persisting the vector index once."""
        for profile in profiles:
            self.index_candidate(profile, persist=False)
        self.candidate_store.persist()
        self.logger.info(f"Indexed {len(profiles)} candidate profile(s)")
        return len(profiles)

    def set_candidate_status(
        self, candidate_id: str, status: CandidateStatus
    ) -> Optional[CandidateProfile]:
        """
        Change a candidate's soft status in both the document store and the
        vector index metadata. Returns None for unknown candidates.
        """
        status = CandidateStatus(status)
        updated = self.candidate_repository.set_status(candidate_id, status)
        if updated is None:
            return None

        if updated.resume_embedding:
            self.candidate_store.upsert(
                [candidate_id],
                np.asarray([updated.resume_embedding], dtype=np.float32),
                metadatas=[updated.vector_metadata()],
            )
            self.candidate_store.persist()

        audit_log(
            AuditAction.CANDIDATE_STATUS_CHANGED.value,
            {"status": status.value},
            audit_type="INDEX",
        )
        return updated

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def index_job(self, job: JobPosting, persist: bool = True) -> JobPosting:
        """Embed (if needed) and store one job posting."""
        if self.job_repository is None or self.job_store is None:
            raise ValueError("Job indexing needs a job repository and a job vector store")

        text = job_embedding_text(job)
        existing = self.job_repository.get_by_id(job.job_id)

        if existing and self._reusable(existing.job_embedding, job_embedding_text(existing), text):
            embedding = existing.job_embedding
            reembedded = False
        else:
            embedding = self._check_dimension(self.embedder.embed_document(text), job.job_id)
            reembedded = True

        update = {"job_embedding": embedding}
        if existing:
            update["created_at"] = existing.created_at
        indexed = job.model_copy(update=update)

        self.job_repository.upsert(indexed)
        self.job_store.upsert(
            [indexed.job_id],
            np.asarray([embedding], dtype=np.float32),
            metadatas=[indexed.vector_metadata()],
        )
        if persist:
            self.job_store.persist()

        audit_log(
            AuditAction.JOB_INDEXED.value,
            {"text_length": len(text), "reembedded": reembedded},
            audit_type="INDEX",
        )
        return indexed

    def index_jobs(self, jobs: list[JobPosting]) -> int:
        for job in jobs:
            self.index_job(job, persist=False)
        if self.job_store is not None:
            self.job_store.persist()
        self.logger.info(f"Indexed {len(jobs)} job posting(s)")
        return len(jobs)


def create_profile_indexer(
    settings: Optional[AppSettings] = None,
    db_manager: Optional[DatabaseManager] = None,
) -> ProfileIndexer:
    """Build an indexer with the providers described by settings."""
    settings = settings or get_settings()
    db_manager = db_manager or DatabaseManager(settings)
    return ProfileIndexer(
        embedder=EmbeddingClient(settings=settings),
        candidate_repository=CandidateRepository(db_manager),
        candidate_store=create_vector_store("candidate", settings, db_manager),
        job_repository=JobRepository(db_manager),
        job_store=create_vector_store("job", settings, db_manager),
        dimension=settings.ml.embedding_dimension,
    )

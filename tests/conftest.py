"""
Shared test fixtures for the TalentMatch test suite.

Sets environment variables before any talentmatch imports to prevent config
failures, then provides fakes for the external providers (embedding model,
vector index, generative model) and factory fixtures for profiles.
"""

import os

# === Set environment BEFORE any talentmatch imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("DB_NAME", "talentmatch_test")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import re
import zlib
from typing import Any, Callable, Optional

import numpy as np
import pytest

from talentmatch.core.matching.orchestrator import MatchingOrchestrator
from talentmatch.data.models import CandidateProfile, CandidateStub, JobPosting
from talentmatch.ml.embeddings.embedding_model import EmbeddingClient
from talentmatch.ml.embeddings.semantic_retriever import SemanticRetriever
from talentmatch.ml.embeddings.vector_store import SearchResult, VectorStore
from talentmatch.ml.llm.reranker import LLMReranker
from talentmatch.utils.config import get_settings
from talentmatch.utils.constants import CandidateStatus

TEST_DIMENSION = 16

_CANDIDATE_ID_LINE = re.compile(r"^Candidate ID: (.+)$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------


class KeywordEmbeddingModel:
    """
    Deterministic stand-in for a sentence-transformers model.

    Hashes each word into one of ``dimension`` buckets, so texts sharing
    words end up close in cosine distance.
    """

    def __init__(self, dimension: int = TEST_DIMENSION):
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def encode(self, texts, **kwargs):
        self.calls.append(list(texts))
        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for row, text in enumerate(texts):
            for word in re.findall(r"[a-z0-9+#]+", text.lower()):
                vectors[row, zlib.crc32(word.encode()) % self.dimension] += 1.0
        return vectors


class InMemoryVectorStore(VectorStore):
    """Exact cosine-distance search over a dict, with equality filters."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.entries: dict[str, tuple[np.ndarray, dict[str, Any]]] = {}
        self.fail_with = fail_with
        self.search_calls = 0
        self.persist_calls = 0
        self.extra_hits: list[SearchResult] = []

    def upsert(self, ids, embeddings, documents=None, metadatas=None):
        for i, doc_id in enumerate(ids):
            vector = np.asarray(embeddings[i], dtype=np.float32)
            self.entries[doc_id] = (vector / np.linalg.norm(vector), dict(metadatas[i]) if metadatas else {})

    def search(self, query_embedding, top_k=10, filter_metadata=None):
        self.search_calls += 1
        if self.fail_with is not None:
            raise self.fail_with

        query = np.asarray(query_embedding, dtype=np.float32)
        query = query / np.linalg.norm(query)
        hits = []
        for doc_id, (vector, metadata) in self.entries.items():
            if filter_metadata and any(metadata.get(k) != v for k, v in filter_metadata.items()):
                continue
            hits.append(SearchResult(
                id=doc_id,
                distance=float(1.0 - np.dot(query, vector)),
                metadata=dict(metadata),
            ))
        hits.sort(key=lambda h: h.distance)
        return hits[:top_k] + list(self.extra_hits)

    def delete(self, ids):
        for doc_id in ids:
            self.entries.pop(doc_id, None)

    def count(self):
        if self.fail_with is not None:
            raise self.fail_with
        return len(self.entries) + len(self.extra_hits)

    def persist(self):
        self.persist_calls += 1


class StubGenerativeModel:
    """
    Generative model fake.

    Replies come from ``replies`` in order when given (a reply may also be an
    exception to raise); otherwise every candidate in the prompt is scored
    from ``scores`` (default 0.5).
    """

    def __init__(
        self,
        scores: Optional[dict[str, float]] = None,
        replies: Optional[list[Any]] = None,
    ):
        self.scores = scores or {}
        self.replies = list(replies or [])
        self.calls: list[tuple[str, str]] = []

    @staticmethod
    def candidate_ids(prompt: str) -> list[str]:
        return [m.strip() for m in _CANDIDATE_ID_LINE.findall(prompt)]

    def generate_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        self.calls.append((system_prompt, user_prompt))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply

        return {
            "candidates": [
                {
                    "candidate_id": cid,
                    "match_score": self.scores.get(cid, 0.5),
                    "justification": f"Assessment of {cid} against the job requirements.",
                }
                for cid in self.candidate_ids(user_prompt)
            ]
        }


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def make_candidate():
    """Factory that returns a callable to build CandidateProfile models."""

    def _factory(
        candidate_id: str = "cand-1",
        full_name: str = "Jane Smith",
        current_title: Optional[str] = "Senior Software Engineer",
        skills: Optional[list[str]] = None,
        experience_summary: Optional[str] = "Backend engineer building Python services.",
        status: CandidateStatus = CandidateStatus.ACTIVE,
        **kwargs,
    ) -> CandidateProfile:
        return CandidateProfile(
            candidate_id=candidate_id,
            full_name=full_name,
            current_title=current_title,
            skills=skills if skills is not None else ["Python", "PostgreSQL"],
            experience_summary=experience_summary,
            status=status,
            **kwargs,
        )

    return _factory


@pytest.fixture
def make_stub():
    """Factory that returns a callable to build CandidateStub models."""

    def _factory(
        candidate_id: str = "cand-1",
        distance: float = 0.4,
        **kwargs,
    ) -> CandidateStub:
        return CandidateStub(
            candidate_id=candidate_id,
            full_name=kwargs.pop("full_name", f"Candidate {candidate_id}"),
            current_title=kwargs.pop("current_title", "Engineer"),
            distance=distance,
            semantic_match_score=max(0.0, 1.0 - distance / 2),
            **kwargs,
        )

    return _factory


@pytest.fixture
def make_job():
    def _factory(job_id: str = "job-1", **kwargs) -> JobPosting:
        data = {
            "job_id": job_id,
            "title": "Senior Backend Engineer",
            "company_name": "Acme Corp",
            "company_description": "Cloud infrastructure company.",
            "full_job_description_text": "Build distributed systems in Go and Python.",
            "location": "Remote",
        }
        data.update(kwargs)
        return JobPosting(**data)

    return _factory


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_model():
    return KeywordEmbeddingModel()


@pytest.fixture
def embedder(embedding_model):
    """EmbeddingClient backed by the keyword model."""
    return EmbeddingClient(
        provider="sentence_transformers",
        dimension=TEST_DIMENSION,
        model=embedding_model,
    )


@pytest.fixture
def candidate_store():
    return InMemoryVectorStore()


@pytest.fixture
def job_store():
    return InMemoryVectorStore()


@pytest.fixture
def index_profiles(embedder, candidate_store):
    """Put candidate profiles straight into the in-memory candidate index."""

    def _index(profiles: list[CandidateProfile]) -> None:
        for profile in profiles:
            text = " ".join(
                [profile.current_title or "", " ".join(profile.skills), profile.profile_summary or ""]
            )
            candidate_store.upsert(
                [profile.candidate_id],
                embedder.embed_document(text)[None, :],
                metadatas=[profile.vector_metadata()],
            )

    return _index


@pytest.fixture
def retriever(candidate_store, job_store):
    return SemanticRetriever(candidate_store, job_store, dimension=TEST_DIMENSION)


@pytest.fixture
def make_orchestrator(embedder, retriever, settings):
    """Factory for an orchestrator wired to the fakes."""

    def _factory(
        model: Optional[StubGenerativeModel] = None,
        batch_size: int = 10,
        **kwargs,
    ) -> MatchingOrchestrator:
        return MatchingOrchestrator(
            embedder=kwargs.pop("embedder", embedder),
            retriever=kwargs.pop("retriever", retriever),
            reranker=LLMReranker(model or StubGenerativeModel(), batch_size=batch_size),
            settings=kwargs.pop("settings", settings),
            **kwargs,
        )

    return _factory


@pytest.fixture
def spy() -> Callable[..., Any]:
    """Build a callable that records its calls and returns a fixed value."""

    def _factory(return_value: Any = None):
        calls: list[tuple] = []

        def _spy(*args, **kwargs):
            calls.append((args, kwargs))
            return return_value

        _spy.calls = calls
        return _spy

    return _factory

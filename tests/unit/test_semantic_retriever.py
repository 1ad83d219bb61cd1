"""
Tests for talentmatch.ml.embeddings.semantic_retriever — SemanticRetriever.
"""

import math

import numpy as np
import pytest

from talentmatch.ml.embeddings.semantic_retriever import SemanticRetriever, distance_to_score
from talentmatch.ml.embeddings.vector_store import SearchResult
from talentmatch.utils.constants import CandidateStatus, JobStatus
from talentmatch.utils.exceptions import RetrievalFailure

from conftest import TEST_DIMENSION, InMemoryVectorStore


# ── distance_to_score ────────────────────────────────────────────────────────


class TestDistanceToScore:
    @pytest.mark.parametrize(
        "distance, score",
        [(0.0, 1.0), (0.5, 0.75), (1.0, 0.5), (2.0, 0.0), (-0.1, 1.0), (2.5, 0.0)],
    )
    def test_mapping(self, distance, score):
        assert distance_to_score(distance) == pytest.approx(score)

    def test_monotonic(self):
        distances = np.linspace(0, 2, 21)
        scores = [distance_to_score(d) for d in distances]
        assert scores == sorted(scores, reverse=True)


# ── retrieve ─────────────────────────────────────────────────────────────────


class TestRetrieve:
    def test_nearest_first(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([
            make_candidate("go-dev", skills=["Go", "Kubernetes"], current_title="Backend engineer",
                           experience_summary="Distributed systems in Go."),
            make_candidate("designer", skills=["Figma"], current_title="Product designer",
                           experience_summary="Designs mobile interfaces."),
        ])
        stubs = retriever.retrieve(embedder.embed_query("Backend engineer Go distributed systems"), 2)

        assert [s.candidate_id for s in stubs] == ["go-dev", "designer"]
        assert stubs[0].distance <= stubs[1].distance
        assert stubs[0].semantic_match_score >= stubs[1].semantic_match_score

    def test_stub_fields_from_metadata(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([make_candidate("c1", full_name="Ada Lovelace", skills=["Python", "SQL"])])
        stub = retriever.retrieve(embedder.embed_query("Python engineer"), 1)[0]

        assert stub.full_name == "Ada Lovelace"
        assert stub.skills == ["Python", "SQL"]
        assert stub.semantic_match_score == pytest.approx(distance_to_score(stub.distance))

    def test_at_most_k(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([make_candidate(f"c{i}") for i in range(6)])
        assert len(retriever.retrieve(embedder.embed_query("engineer"), 4)) == 4

    def test_fewer_than_k_available(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([make_candidate("c1"), make_candidate("c2")])
        assert len(retriever.retrieve(embedder.embed_query("engineer"), 10)) == 2

    @pytest.mark.parametrize("k", [0, -3])
    def test_non_positive_k(self, retriever, candidate_store, k):
        assert retriever.retrieve(np.ones(TEST_DIMENSION), k) == []
        assert candidate_store.search_calls == 0

    def test_empty_store(self, retriever, candidate_store):
        assert retriever.retrieve(np.ones(TEST_DIMENSION), 5) == []
        assert candidate_store.search_calls == 0

    def test_only_active_by_default(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([
            make_candidate("active-1"),
            make_candidate("gone", status=CandidateStatus.ARCHIVED),
        ])
        stubs = retriever.retrieve(embedder.embed_query("engineer"), 5)
        assert [s.candidate_id for s in stubs] == ["active-1"]

    def test_include_inactive(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([
            make_candidate("active-1"),
            make_candidate("paused", status=CandidateStatus.INACTIVE),
        ])
        stubs = retriever.retrieve(embedder.embed_query("engineer"), 5, active_only=False)
        assert {s.candidate_id for s in stubs} == {"active-1", "paused"}

    def test_ties_ordered_by_id(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([make_candidate(cid) for cid in ("c3", "c1", "c2")])
        stubs = retriever.retrieve(embedder.embed_query("engineer"), 3)
        assert [s.candidate_id for s in stubs] == ["c1", "c2", "c3"]

    def test_deterministic(self, retriever, embedder, index_profiles, make_candidate):
        index_profiles([make_candidate(f"c{i}", skills=[f"skill{i}"]) for i in range(5)])
        query = embedder.embed_query("skill2 engineer")
        first = retriever.retrieve(query, 5)
        second = retriever.retrieve(query, 5)
        assert [s.model_dump() for s in first] == [s.model_dump() for s in second]


# ── Failures ─────────────────────────────────────────────────────────────────


class TestRetrievalFailures:
    def test_backend_error_wrapped(self):
        retriever = SemanticRetriever(InMemoryVectorStore(fail_with=ConnectionError("index offline")))
        with pytest.raises(RetrievalFailure) as exc_info:
            retriever.retrieve(np.ones(TEST_DIMENSION), 5)
        assert "vectorSearch index" in exc_info.value.message
        assert isinstance(exc_info.value.cause, ConnectionError)

    def test_non_finite_distance(self, candidate_store):
        candidate_store.extra_hits = [SearchResult(id="bad", distance=math.nan, metadata={})]
        with pytest.raises(RetrievalFailure):
            SemanticRetriever(candidate_store).retrieve(np.ones(TEST_DIMENSION), 3)

    def test_out_of_range_distance_clamped(self, candidate_store):
        candidate_store.extra_hits = [SearchResult(id="far", distance=2.4, metadata={"status": "active"})]
        stub = SemanticRetriever(candidate_store).retrieve(np.ones(TEST_DIMENSION), 3)[0]
        assert stub.distance == 2.0
        assert stub.semantic_match_score == 0.0


# ── retrieve_jobs ────────────────────────────────────────────────────────────


class TestRetrieveJobs:
    def test_open_jobs_only(self, retriever, job_store, embedder, make_job):
        for job in (
            make_job("job-open", title="Backend Engineer"),
            make_job("job-closed", title="Backend Engineer", status=JobStatus.CLOSED),
        ):
            job_store.upsert(
                [job.job_id],
                embedder.embed_document(job.full_job_description_text)[None, :],
                metadatas=[job.vector_metadata()],
            )

        stubs = retriever.retrieve_jobs(embedder.embed_query("Go engineer"), 5)

        assert [s.job_id for s in stubs] == ["job-open"]
        assert stubs[0].company_name == "Acme Corp"
        assert stubs[0].location == "Remote"

    def test_without_job_store(self, candidate_store):
        with pytest.raises(RetrievalFailure):
            SemanticRetriever(candidate_store).retrieve_jobs(np.ones(TEST_DIMENSION), 3)

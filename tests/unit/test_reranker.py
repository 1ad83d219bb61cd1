"""
Tests for talentmatch.ml.llm — prompts, GenerativeModel and LLMReranker.

The generative model is always a stub; no request leaves the process.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from openai import APIConnectionError

from talentmatch.ml.llm.generative_model import GenerativeModel, strip_code_fences
from talentmatch.ml.llm.prompts import build_rerank_prompt, format_candidate
from talentmatch.ml.llm.reranker import LLMReranker
from talentmatch.utils.constants import NOT_AVAILABLE
from talentmatch.utils.exceptions import GenerationFailure, MalformedModelOutput

from conftest import StubGenerativeModel


def verdict(cid, score, justification="Relevant experience."):
    return {"candidate_id": cid, "match_score": score, "justification": justification}


# ── Prompts ──────────────────────────────────────────────────────────────────


class TestPrompts:
    def test_candidate_block(self, make_stub):
        stub = make_stub("c1", skills=["Go", "Kafka"], experience_summary="Ten years of Go.")
        block = format_candidate(stub)
        assert block.splitlines()[0] == "Candidate ID: c1"
        assert "Key Skills: Go, Kafka" in block
        assert "Profile Summary: Ten years of Go." in block
        assert f"Availability: {NOT_AVAILABLE}" in block

    def test_long_summary_truncated(self, make_stub):
        block = format_candidate(make_stub("c1", experience_summary="x" * 5000))
        summary_line = block.splitlines()[-1]
        assert summary_line.endswith("...")
        assert len(summary_line) < 1600

    def test_prompt_contains_job_company_and_all_ids(self, make_stub):
        prompt = build_rerank_prompt(
            "Senior Go engineer", "", [make_stub("a"), make_stub("b")]
        )
        assert "Senior Go engineer" in prompt
        assert f"Company Information:\n{NOT_AVAILABLE}" in prompt
        assert StubGenerativeModel.candidate_ids(prompt) == ["a", "b"]
        assert '{"candidates": [' in prompt


# ── GenerativeModel ──────────────────────────────────────────────────────────


class TestGenerativeModel:
    def make_model(self, content=None, error=None):
        client = MagicMock()
        if error is not None:
            client.chat.completions.create.side_effect = error
        else:
            client.chat.completions.create.return_value = SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
            )
        return GenerativeModel(model="test-model", client=client), client

    def test_parses_json_object(self):
        model, client = self.make_model('{"candidates": []}')
        assert model.generate_json("system", "user") == {"candidates": []}
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_strips_code_fences(self):
        model, _ = self.make_model('```json\n{"candidates": []}\n```')
        assert model.generate_json("s", "u") == {"candidates": []}

    @pytest.mark.parametrize("content", [None, "", "not json", "[1, 2]"])
    def test_malformed_reply(self, content):
        model, _ = self.make_model(content)
        with pytest.raises(MalformedModelOutput):
            model.generate_json("s", "u")

    def test_provider_error(self):
        model, _ = self.make_model(error=APIConnectionError(request=MagicMock()))
        with pytest.raises(GenerationFailure):
            model.generate_json("s", "u")

    def test_strip_code_fences_plain(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


# ── LLMReranker.deduplicate ──────────────────────────────────────────────────


class TestDeduplicate:
    def test_keeps_closest_hit_in_first_seen_order(self, make_stub):
        stubs = [make_stub("a", 0.5), make_stub("b", 0.3), make_stub("a", 0.2)]
        unique = LLMReranker.deduplicate(stubs)
        assert [s.candidate_id for s in unique] == ["a", "b"]
        assert unique[0].distance == 0.2


# ── LLMReranker.rerank ───────────────────────────────────────────────────────


class TestRerank:
    def test_sorted_by_llm_score(self, make_stub):
        model = StubGenerativeModel(scores={"a": 0.4, "b": 0.9, "c": 0.7})
        results = LLMReranker(model).rerank(
            "job", "company", [make_stub("a"), make_stub("b"), make_stub("c")], keep=3
        )
        assert [r.candidate_id for r in results] == ["b", "c", "a"]
        assert [r.llm_match_score for r in results] == [0.9, 0.7, 0.4]

    def test_keep_limits_results(self, make_stub):
        model = StubGenerativeModel(scores={"a": 0.4, "b": 0.9, "c": 0.7})
        results = LLMReranker(model).rerank(
            "job", "", [make_stub("a"), make_stub("b"), make_stub("c")], keep=2
        )
        assert [r.candidate_id for r in results] == ["b", "c"]

    def test_ties_broken_by_semantic_score_then_id(self, make_stub):
        model = StubGenerativeModel(scores={"a": 0.8, "b": 0.8, "c": 0.8})
        stubs = [make_stub("c", 0.6), make_stub("b", 0.2), make_stub("a", 0.6)]
        results = LLMReranker(model).rerank("job", "", stubs, keep=3)
        assert [r.candidate_id for r in results] == ["b", "a", "c"]

    def test_batches(self, make_stub):
        model = StubGenerativeModel()
        stubs = [make_stub(f"c{i:02d}") for i in range(23)]
        results = LLMReranker(model, batch_size=10).rerank("job", "", stubs, keep=23)

        assert len(model.calls) == 3
        assert [len(StubGenerativeModel.candidate_ids(p)) for _, p in model.calls] == [10, 10, 3]
        assert len(results) == 23

    def test_duplicates_scored_once(self, make_stub):
        model = StubGenerativeModel()
        stubs = [make_stub("a", 0.5), make_stub("a", 0.1), make_stub("b", 0.3)]
        results = LLMReranker(model).rerank("job", "", stubs, keep=5)

        assert sorted(r.candidate_id for r in results) == ["a", "b"]
        assert StubGenerativeModel.candidate_ids(model.calls[0][1]) == ["a", "b"]
        assert next(r for r in results if r.candidate_id == "a").semantic_match_score == pytest.approx(0.95)

    def test_result_carries_profile_fields(self, make_stub):
        stub = make_stub("a", 0.4, full_name="Ada", skills=[f"s{i}" for i in range(15)], availability="2 weeks")
        result = LLMReranker(StubGenerativeModel()).rerank("job", "", [stub], keep=1)[0]

        assert result.full_name == "Ada"
        assert len(result.top_skills) == 10
        assert result.availability == "2 weeks"
        assert result.semantic_match_score == pytest.approx(0.8)
        assert result.llm_justification

    @pytest.mark.parametrize("keep", [0, -1])
    def test_nothing_to_keep(self, make_stub, keep):
        model = StubGenerativeModel()
        assert LLMReranker(model).rerank("job", "", [make_stub("a")], keep=keep) == []
        assert model.calls == []

    def test_no_candidates(self):
        model = StubGenerativeModel()
        assert LLMReranker(model).rerank("job", "", [], keep=5) == []
        assert model.calls == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            LLMReranker(StubGenerativeModel(), batch_size=0)


# ── Malformed replies ────────────────────────────────────────────────────────


class TestMalformedReplies:
    def test_missing_candidate(self, make_stub):
        model = StubGenerativeModel(replies=[{"candidates": [verdict("a", 0.5)]}])
        with pytest.raises(MalformedModelOutput, match="missing"):
            LLMReranker(model).rerank("job", "", [make_stub("a"), make_stub("b")], keep=2)

    @pytest.mark.parametrize(
        "reply",
        [
            {"results": []},
            {"candidates": "none"},
            {"candidates": [{"candidate_id": "a", "match_score": "high", "justification": "x"}]},
            {"candidates": [{"candidate_id": "a", "match_score": 0.5}]},
            {"candidates": [{"candidate_id": "a", "match_score": 0.5, "justification": ""}]},
        ],
    )
    def test_schema_violations(self, make_stub, reply):
        model = StubGenerativeModel(replies=[reply])
        with pytest.raises(MalformedModelOutput):
            LLMReranker(model).rerank("job", "", [make_stub("a")], keep=1)

    def test_unknown_ids_ignored(self, make_stub):
        model = StubGenerativeModel(replies=[{
            "candidates": [verdict("ghost", 1.0), verdict("a", 0.6)],
        }])
        results = LLMReranker(model).rerank("job", "", [make_stub("a")], keep=5)
        assert [r.candidate_id for r in results] == ["a"]

    def test_out_of_range_score_clamped(self, make_stub):
        model = StubGenerativeModel(replies=[{"candidates": [verdict("a", 7)]}])
        result = LLMReranker(model).rerank("job", "", [make_stub("a")], keep=1)[0]
        assert result.llm_match_score == 1.0

    def test_generation_failure_propagates(self, make_stub):
        model = StubGenerativeModel(replies=[GenerationFailure("rate limited")])
        with pytest.raises(GenerationFailure):
            LLMReranker(model).rerank("job", "", [make_stub("a")], keep=1)

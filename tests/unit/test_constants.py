"""
Tests for talentmatch.utils.constants — enums and score levels.
"""

import pytest

from talentmatch.utils.constants import (
    DEFAULT_JOB_TITLE,
    SCORE_THRESHOLDS,
    CandidateStatus,
    JobStatus,
    MatchScoreLevel,
    PipelineStage,
)


# ── MatchScoreLevel.from_score ───────────────────────────────────────────────


class TestMatchScoreLevel:
    @pytest.mark.parametrize(
        "score, level",
        [
            (1.0, MatchScoreLevel.EXCELLENT),
            (0.85, MatchScoreLevel.EXCELLENT),
            (0.84, MatchScoreLevel.GOOD),
            (0.70, MatchScoreLevel.GOOD),
            (0.55, MatchScoreLevel.FAIR),
            (0.50, MatchScoreLevel.FAIR),
            (0.49, MatchScoreLevel.POOR),
            (0.0, MatchScoreLevel.POOR),
        ],
    )
    def test_thresholds(self, score, level):
        assert MatchScoreLevel.from_score(score) is level

    def test_thresholds_are_descending(self):
        values = list(SCORE_THRESHOLDS.values())
        assert values == sorted(values, reverse=True)


# ── Status enums ─────────────────────────────────────────────────────────────


class TestStatusEnums:
    def test_candidate_status_values(self):
        assert {s.value for s in CandidateStatus} == {"active", "inactive", "archived"}

    def test_candidate_status_is_str(self):
        assert CandidateStatus.ACTIVE == "active"

    def test_job_status_values(self):
        assert JobStatus("open") is JobStatus.OPEN
        assert JobStatus("closed") is JobStatus.CLOSED

    def test_pipeline_stage_names(self):
        assert PipelineStage.RERANK.value == "rerank"
        assert PipelineStage.RETRIEVAL.value == "retrieval"


def test_default_job_title():
    assert DEFAULT_JOB_TITLE == "Job (Details Provided)"

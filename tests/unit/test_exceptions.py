"""
Tests for talentmatch.utils.exceptions — error codes and stage wrapping.
"""

from talentmatch.utils.exceptions import (
    ConfigurationError,
    EmbeddingFailure,
    InvalidQuery,
    MatchingFailed,
    RetrievalFailure,
    TalentMatchError,
)


class TestTalentMatchError:
    def test_default_code(self):
        assert EmbeddingFailure("boom").error_code == "EMBEDDING_FAILURE"

    def test_to_dict_includes_cause(self):
        error = RetrievalFailure("index down", cause=TimeoutError("slow"))
        data = error.to_dict()
        assert data["error_type"] == "RetrievalFailure"
        assert data["cause"] == "TimeoutError: slow"

    def test_configuration_error_key(self):
        assert ConfigurationError("bad", config_key="DB_HOST").details == {"config_key": "DB_HOST"}


class TestInvalidQuery:
    def test_field_and_value(self):
        error = InvalidQuery("out of range", field="finalResultCount", value=0)
        assert error.details == {"field": "finalResultCount", "invalid_value": "0"}

    def test_is_talentmatch_error(self):
        assert isinstance(InvalidQuery("x"), TalentMatchError)


class TestMatchingFailed:
    def test_wraps_stage_error(self):
        inner = RetrievalFailure("index missing", details={"requested": 20})
        error = MatchingFailed("retrieval", inner, details={"candidate_count": 0})

        assert error.stage == "retrieval"
        assert error.error_kind == "RetrievalFailure"
        assert error.cause is inner
        assert error.details["stage_error_code"] == "RETRIEVAL_FAILURE"
        assert error.details["requested"] == 20
        assert error.details["candidate_count"] == 0
        assert "index missing" in error.message

    def test_user_message_is_generic(self):
        error = MatchingFailed("rerank", EmbeddingFailure("secret details"))
        assert "secret" not in error.user_message

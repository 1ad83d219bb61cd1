"""
Exception hierarchy for TalentMatch.

Every error carries a machine-readable code and a details dict that is safe
to log: stage names, sizes and counts, never candidate text.
"""

from typing import Any, Optional


class TalentMatchError(Exception):
    """Base exception for TalentMatch."""

    default_code = "TALENTMATCH_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/response."""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result


class ConfigurationError(TalentMatchError):
    """Raised when configuration is invalid or missing."""

    default_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)


class InvalidQuery(TalentMatchError):
    """Raised when a matching or search request is malformed. Never retried."""

    default_code = "INVALID_QUERY"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["invalid_value"] = str(value)
        super().__init__(message, details=details, **kwargs)


class EmbeddingFailure(TalentMatchError):
    """Raised when text cannot be turned into a valid embedding."""

    default_code = "EMBEDDING_FAILURE"


class RetrievalFailure(TalentMatchError):
    """Raised when the vector index or document store cannot be queried."""

    default_code = "RETRIEVAL_FAILURE"


class MalformedModelOutput(TalentMatchError):
    """Raised when the generative model reply does not match the expected schema."""

    default_code = "MALFORMED_MODEL_OUTPUT"


class GenerationFailure(TalentMatchError):
    """Raised when the generative model provider call itself fails."""

    default_code = "GENERATION_FAILURE"


class MatchingFailed(TalentMatchError):
    """
    Umbrella error returned to callers of the matching pipeline.

    Wraps exactly one stage error; partial results are never attached.
    """

    default_code = "MATCHING_FAILED"

    def __init__(self, stage: str, error: TalentMatchError, **kwargs):
        self.stage = stage
        self.error_kind = type(error).__name__
        details = {
            "stage": stage,
            "error_kind": self.error_kind,
            "stage_error_code": error.error_code,
            **error.details,
            **(kwargs.pop("details", None) or {}),
        }
        super().__init__(
            f"Matching failed during {stage}: {error.message}",
            details=details,
            cause=error,
            **kwargs,
        )

    @property
    def user_message(self) -> str:
        """Generic message suitable for end users."""
        return "Candidate search failed, please try again."

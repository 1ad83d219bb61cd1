"""
Application-wide constants for TalentMatch.

This module contains all constant values used throughout the application.
Modify these values to customize behavior without changing code logic.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "TalentMatch"
APP_DISPLAY_NAME: Final[str] = "TalentMatch Semantic Matching"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Embedding / Vector Constants
# =============================================================================

# Cosine distance range for vectors of any norm
MIN_COSINE_DISTANCE: Final[float] = 0.0
MAX_COSINE_DISTANCE: Final[float] = 2.0

# Fields holding embeddings in the document store
CANDIDATE_EMBEDDING_FIELD: Final[str] = "resume_embedding"
JOB_EMBEDDING_FIELD: Final[str] = "job_embedding"

# Prefer cutting truncated text at a word boundary if at least this share survives
TRUNCATION_WORD_BOUNDARY_RATIO: Final[float] = 0.8


# =============================================================================
# Matching Constants
# =============================================================================

# Score thresholds for display levels
SCORE_THRESHOLDS: Final[dict[str, float]] = {
    "excellent": 0.85,
    "good": 0.70,
    "fair": 0.50,
    "poor": 0.30,
}

# Placeholder for descriptive fields missing from a stored profile
NOT_AVAILABLE: Final[str] = "N/A"

# Title used when a job is matched from free text without a parseable title
DEFAULT_JOB_TITLE: Final[str] = "Job (Details Provided)"

# Number of skills shown per candidate in prompts and tables
MAX_TOP_SKILLS: Final[int] = 10

# Summary length sent to the re-ranker per candidate
MAX_PROFILE_CHARS_FOR_RERANK: Final[int] = 1500


# =============================================================================
# Enums
# =============================================================================


class CandidateStatus(str, Enum):
    """Soft status of a candidate profile. Profiles are never hard-deleted."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class JobStatus(str, Enum):
    """Status of a job posting."""

    OPEN = "open"
    CLOSED = "closed"


class PipelineStage(str, Enum):
    """Stages of a matching request, used to tag failures."""

    VALIDATION = "validation"
    JOB_LOOKUP = "job_lookup"
    EMBEDDING = "embedding"
    RETRIEVAL = "retrieval"
    RERANK = "rerank"


class MatchScoreLevel(Enum):
    """Categorical levels for match scores."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> "MatchScoreLevel":
        """Convert a numeric score to a level."""
        if score >= SCORE_THRESHOLDS["excellent"]:
            return cls.EXCELLENT
        elif score >= SCORE_THRESHOLDS["good"]:
            return cls.GOOD
        elif score >= SCORE_THRESHOLDS["fair"]:
            return cls.FAIR
        return cls.POOR


class AuditAction(str, Enum):
    """Types of actions that can be audited."""

    CANDIDATE_INDEXED = "candidate_indexed"
    CANDIDATE_STATUS_CHANGED = "candidate_status_changed"
    JOB_INDEXED = "job_indexed"
    CANDIDATES_MATCHED = "candidates_matched"
    MATCHING_FAILED = "matching_failed"
    TALENT_SEARCHED = "talent_searched"
    JOBS_RECOMMENDED = "jobs_recommended"

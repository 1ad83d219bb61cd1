"""
Utility modules for TalentMatch.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants
- exceptions: Error hierarchy
"""

from talentmatch.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
    PACKAGE_DIR,
    DATA_DIR,
)
from talentmatch.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    CandidateStatus,
    JobStatus,
    MatchScoreLevel,
    PipelineStage,
    AuditAction,
)
from talentmatch.utils.exceptions import (
    TalentMatchError,
    ConfigurationError,
    InvalidQuery,
    EmbeddingFailure,
    RetrievalFailure,
    MalformedModelOutput,
    GenerationFailure,
    MatchingFailed,
)
from talentmatch.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    LoggerMixin,
    log,
)

__all__ = [
    # Config
    "AppSettings",
    "get_settings",
    "reload_settings",
    "ROOT_DIR",
    "PACKAGE_DIR",
    "DATA_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "CandidateStatus",
    "JobStatus",
    "MatchScoreLevel",
    "PipelineStage",
    "AuditAction",
    # Exceptions
    "TalentMatchError",
    "ConfigurationError",
    "InvalidQuery",
    "EmbeddingFailure",
    "RetrievalFailure",
    "MalformedModelOutput",
    "GenerationFailure",
    "MatchingFailed",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "LoggerMixin",
    "log",
]

"""
Configuration management for TalentMatch.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Base paths
ROOT_DIR = Path(__file__).resolve().parent.parent.parent
PACKAGE_DIR = ROOT_DIR / "talentmatch"
DATA_DIR = ROOT_DIR / "data"


class DatabaseSettings(BaseSettings):
    """MongoDB database configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    # Full connection URI (e.g. an Atlas mongodb+srv:// URI) wins over host/port
    uri: Optional[str] = None
    host: str = "localhost"
    port: int = 27017
    name: str = "talentmatch"
    username: str | None = None
    password: SecretStr | None = None

    candidates_collection: str = "candidates_with_embeddings"
    jobs_collection: str = "jobs_with_embeddings"

    timeout_ms: int = 10000


class VectorStoreSettings(BaseSettings):
    """Vector index configuration for embeddings."""

    model_config = SettingsConfigDict(env_prefix="VECTOR_")

    provider: Literal["mongodb", "chromadb", "faiss"] = "mongodb"
    persist_directory: Path = DATA_DIR / "vectors"

    # Chroma collections / FAISS sub-directories
    candidate_collection: str = "candidate_embeddings"
    job_collection: str = "job_embeddings"

    # Atlas vector search indexes
    candidate_index_name: str = "resume_embedding_index"
    job_index_name: str = "job_embedding_index"
    num_candidates_multiplier: int = Field(default=10, ge=1)


class MLSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(env_prefix="ML_")

    embedding_provider: Literal["sentence_transformers", "openai"] = "sentence_transformers"
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"
    embedding_dimension: int = Field(default=768, gt=0)

    # Hard truncation budget: max_input_tokens * chars_per_token characters
    max_input_tokens: int = Field(default=2048, gt=0)
    chars_per_token: int = Field(default=4, gt=0)

    # Device settings
    device: Literal["cpu", "cuda", "mps", "auto"] = Field(default="auto", validate_default=True)

    # Batch processing
    batch_size: int = 32

    @field_validator("device")
    @classmethod
    def validate_device(cls, v: str) -> str:
        """Auto-detect device if set to auto."""
        if v == "auto":
            try:
                import torch

                if torch.cuda.is_available():
                    return "cuda"
                elif torch.backends.mps.is_available():
                    return "mps"
            except ImportError:
                pass
            return "cpu"
        return v

    @property
    def max_input_chars(self) -> int:
        return self.max_input_tokens * self.chars_per_token


class LLMSettings(BaseSettings):
    """Generative model configuration used for re-ranking."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    api_key: SecretStr | None = None
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = 2000
    request_timeout: float = 60.0


class MatchingSettings(BaseSettings):
    """Parameters of the matching pipeline."""

    model_config = SettingsConfigDict(env_prefix="MATCH_")

    default_semantic_result_count: int = 20
    default_final_result_count: int = 5
    max_semantic_result_count: int = 50

    rerank_batch_size: int = Field(default=10, ge=1)
    rerank_retries: int = Field(default=1, ge=0)

    # Per-stage timeouts in seconds (async path)
    embedding_timeout: float = 30.0
    retrieval_timeout: float = 30.0
    rerank_timeout: float = 120.0

    talent_search_max_results: int = 20
    talent_search_min_query_length: int = 10
    job_recommendation_max_results: int = 10
    job_recommendation_min_profile_length: int = 50

    @model_validator(mode="after")
    def validate_defaults(self) -> "MatchingSettings":
        """Default counts must satisfy the query invariants themselves."""
        if not (
            1
            <= self.default_final_result_count
            <= self.default_semantic_result_count
            <= self.max_semantic_result_count
        ):
            raise ValueError(
                "Expected 1 <= default_final_result_count <= "
                "default_semantic_result_count <= max_semantic_result_count"
            )
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    file_enabled: bool = True
    file_path: Path = ROOT_DIR / "logs" / "talentmatch.log"
    rotation: str = "10 MB"
    retention: str = "30 days"
    console_output: bool = True


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    name: str = "TalentMatch"
    version: str = "0.1.0"
    description: str = "Semantic candidate/job matching with LLM re-ranking"
    debug: bool = False

    # Environment
    environment: Literal["development", "production", "testing"] = "development"

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    ml: MLSettings = Field(default_factory=MLSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Global settings instance (singleton pattern)
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload settings from environment."""
    global _settings
    _settings = AppSettings()
    return _settings

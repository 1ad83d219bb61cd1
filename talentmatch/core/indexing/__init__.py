"""Embedding and storage of candidate profiles and job postings."""

from .profile_indexer import (
    ProfileIndexer,
    candidate_embedding_text,
    create_profile_indexer,
    job_embedding_text,
)

__all__ = [
    "ProfileIndexer",
    "candidate_embedding_text",
    "create_profile_indexer",
    "job_embedding_text",
]

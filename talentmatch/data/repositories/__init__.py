"""
Database repositories for TalentMatch data access.

This module provides repository classes for the candidate and job
collections, implementing the repository pattern for clean data access.
"""

# Base repository
from .base import BaseRepository

# Entity repositories
from .candidate_repository import CandidateRepository
from .job_repository import JobRepository

__all__ = [
    "BaseRepository",
    "CandidateRepository",
    "JobRepository",
]

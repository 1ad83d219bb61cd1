"""
Data layer for TalentMatch.

Provides database connections, data models, and repository classes
for data access throughout the application.

Submodules:
- database: MongoDB connection and index management
- models: Pydantic data models/schemas
- repositories: Database operations and queries
"""

from .database import DatabaseManager

__all__ = [
    "DatabaseManager",
]

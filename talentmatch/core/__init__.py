"""
Core business logic modules for TalentMatch.

Submodules:
- matching: Candidate/job matching pipeline and retrieval-only searches
- indexing: Embedding and storing candidate and job profiles
"""

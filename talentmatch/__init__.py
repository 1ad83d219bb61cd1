"""
TalentMatch - semantic candidate/job matching.

Two-stage matching of candidates to jobs: embedding-based retrieval over a
vector index followed by LLM re-ranking and justification.
"""

__app_name__ = "TalentMatch"
__version__ = "0.1.0"

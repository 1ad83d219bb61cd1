"""
Machine Learning modules for TalentMatch.

Submodules:
- embeddings: Text embedding, vector indexes and semantic retrieval
- llm: Generative model client and candidate re-ranking
"""

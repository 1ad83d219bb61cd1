"""Generative model client and LLM re-ranking."""

from .generative_model import GenerativeModel, create_generative_model
from .reranker import LLMReranker

__all__ = [
    "GenerativeModel",
    "LLMReranker",
    "create_generative_model",
]

"""
Embedding generation, vector storage and semantic retrieval.
"""

from .embedding_model import EmbeddingClient, create_embedding_client
from .semantic_retriever import SemanticRetriever, create_semantic_retriever, distance_to_score
from .vector_store import (
    ChromaVectorStore,
    FAISSVectorStore,
    MongoVectorStore,
    SearchResult,
    VectorStore,
    create_vector_store,
)

__all__ = [
    # Embeddings
    "EmbeddingClient",
    "create_embedding_client",
    # Vector stores
    "VectorStore",
    "SearchResult",
    "MongoVectorStore",
    "ChromaVectorStore",
    "FAISSVectorStore",
    "create_vector_store",
    # Retrieval
    "SemanticRetriever",
    "create_semantic_retriever",
    "distance_to_score",
]

"""
Embedding client for turning profile and job text into vectors.

Supports local sentence-transformers models and the OpenAI embeddings API.
Every returned vector has the configured dimension, finite values and
unit L2 norm, so cosine distance between any two of them lies in [0, 2].
"""

from typing import Any, Optional

import numpy as np

from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import TRUNCATION_WORD_BOUNDARY_RATIO
from talentmatch.utils.exceptions import EmbeddingFailure
from talentmatch.utils.logger import get_logger

logger = get_logger(__name__)


class EmbeddingClient:
    """
    Wrapper around an embedding provider.

    The provider model or API client is created lazily on first use; tests
    and callers that already hold one can pass it in directly.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        device: Optional[str] = None,
        max_input_chars: Optional[int] = None,
        model: Any = None,
        client: Any = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize the embedding client.

        Args:
            provider: 'sentence_transformers' or 'openai'. Defaults to config.
            model_name: Model to load or request. Defaults to config.
            dimension: Expected vector length. Defaults to config.
            device: Device for local models ('cpu', 'cuda', 'mps').
            max_input_chars: Character budget before truncation.
            model: Pre-built sentence-transformers compatible model.
            client: Pre-built OpenAI client.
            settings: Settings to read defaults from.
        """
        self._settings = settings or get_settings()
        ml = self._settings.ml

        self.provider = provider or ml.embedding_provider
        if self.provider == "openai" and model_name is None and ml.embedding_model.startswith(
            "sentence-transformers/"
        ):
            model_name = "text-embedding-3-small"
        self.model_name = model_name or ml.embedding_model
        self.dimension = dimension or ml.embedding_dimension
        self.device = device or ml.device
        self.batch_size = ml.batch_size
        self.max_input_chars = max_input_chars or ml.max_input_chars

        self._model = model
        self._client = client

    # -------------------------------------------------------------------------
    # Provider access
    # -------------------------------------------------------------------------

    def _load_model(self) -> Any:
        """Lazy load the sentence-transformers model."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name, device=self.device)
            logger.info(f"Embedding model loaded on device: {self.device}")
        return self._model

    def _get_client(self) -> Any:
        """Lazy create the OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            llm = self._settings.llm
            self._client = OpenAI(
                api_key=llm.api_key.get_secret_value() if llm.api_key else None,
                base_url=llm.base_url,
                timeout=llm.request_timeout,
            )
        return self._client

    def _encode(self, texts: list[str]) -> np.ndarray:
        """Call the provider; returns a raw (n, d) array."""
        if self.provider == "openai":
            response = self._get_client().embeddings.create(
                model=self.model_name,
                input=texts,
                dimensions=self.dimension,
            )
            ordered = sorted(response.data, key=lambda item: item.index)
            return np.asarray([item.embedding for item in ordered], dtype=np.float32)

        embeddings = self._load_model().encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            normalize_embeddings=False,
            convert_to_numpy=True,
        )
        return np.atleast_2d(np.asarray(embeddings, dtype=np.float32))

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def truncate(self, text: str) -> str:
        """
        Cut text to the character budget.

        The cut moves back to the last whitespace when that still keeps at
        least 80% of the budget.
        """
        budget = self.max_input_chars
        if len(text) <= budget:
            return text

        cut = text[:budget]
        boundary = cut.rfind(" ")
        if boundary > budget * TRUNCATION_WORD_BOUNDARY_RATIO:
            cut = cut[:boundary]
        logger.debug(f"Truncated embedding input from {len(text)} to {len(cut)} characters")
        return cut

    def embed_many(self, texts: list[str]) -> np.ndarray:
        """
        Embed several texts in one provider call.

        Returns:
            Array of shape (len(texts), dimension) with unit-norm rows.

        Raises:
            EmbeddingFailure: On empty input text, provider error, wrong
                dimension, non-finite values or a zero vector.
        """
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        prepared = []
        for text in texts:
            if not isinstance(text, str) or not text.strip():
                raise EmbeddingFailure("Cannot embed empty text")
            prepared.append(self.truncate(text.strip()))

        try:
            vectors = self._encode(prepared)
        except Exception as e:
            raise EmbeddingFailure(
                f"Embedding provider '{self.provider}' failed: {e}",
                details={"provider": self.provider, "text_count": len(prepared)},
                cause=e,
            ) from e

        return self._validate(vectors, expected_rows=len(prepared))

    def _validate(self, vectors: np.ndarray, expected_rows: int) -> np.ndarray:
        if vectors.ndim != 2 or vectors.shape[0] != expected_rows:
            raise EmbeddingFailure(
                "Embedding provider returned an unexpected number of vectors",
                details={"expected": expected_rows, "shape": list(vectors.shape)},
            )
        if vectors.shape[1] != self.dimension:
            raise EmbeddingFailure(
                f"Expected {self.dimension}-dimensional embeddings, got {vectors.shape[1]}",
                details={"expected_dimension": self.dimension, "actual": vectors.shape[1]},
            )
        if not np.all(np.isfinite(vectors)):
            raise EmbeddingFailure("Embedding contains non-finite values")

        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        if np.any(norms == 0):
            raise EmbeddingFailure("Embedding provider returned a zero vector")
        return (vectors / norms).astype(np.float32)

    def embed(self, text: str) -> np.ndarray:
        """Embed a single text into a unit-norm vector of the configured dimension."""
        return self.embed_many([text])[0]

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a job description or search query."""
        return self.embed(text)

    def embed_document(self, text: str) -> np.ndarray:
        """Embed a stored document (resume or job posting)."""
        return self.embed(text)


def create_embedding_client(settings: Optional[AppSettings] = None) -> EmbeddingClient:
    """Build the embedding client described by settings."""
    return EmbeddingClient(settings=settings)

"""
Vector store abstraction for storing and searching embeddings.

Supports MongoDB Atlas Vector Search, ChromaDB and FAISS backends. Every
backend reports cosine *distance* (0 = identical direction, 2 = opposite)
so callers can map distances to scores uniformly.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional

import numpy as np

from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import CANDIDATE_EMBEDDING_FIELD, JOB_EMBEDDING_FIELD
from talentmatch.utils.exceptions import ConfigurationError
from talentmatch.utils.logger import get_logger

logger = get_logger(__name__)

StoreKind = Literal["candidate", "job"]


@dataclass
class SearchResult:
    """Result from a vector similarity search."""

    id: str
    distance: float
    metadata: dict[str, Any] = field(default_factory=dict)
    document: Optional[str] = None


class VectorStore(ABC):
    """Abstract base class for vector stores."""

    @abstractmethod
    def upsert(
        self,
        ids: list[str],
        embeddings: np.ndarray,
        documents: Optional[list[str]] = None,
        metadatas: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        """Add or replace embeddings in the store."""
        pass

    @abstractmethod
    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 10,
        filter_metadata: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        """Return up to ``top_k`` nearest entries by cosine distance."""
        pass

    @abstractmethod
    def delete(self, ids: list[str]) -> None:
        """Delete embeddings by ID."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of embeddings in store."""
        pass

    def persist(self) -> None:
        """Flush in-memory state to disk, for backends that need it."""
        return None


# =============================================================================
# MongoDB Atlas Vector Search
# =============================================================================


class MongoVectorStore(VectorStore):
    """
    Atlas Vector Search over the embedding field of a document collection.

    The embeddings live on the profile documents themselves, so upserts
    only touch the embedding (and status) fields and deletes unset the
    embedding rather than removing the document.
    """

    # Large text fields never returned with search hits
    EXCLUDED_FIELDS = ("extracted_resume_text", "full_job_description_text")

    def __init__(
        self,
        collection: Any,
        index_name: str,
        embedding_field: str,
        num_candidates_multiplier: int = 10,
    ):
        self._collection = collection
        self.index_name = index_name
        self.embedding_field = embedding_field
        self.num_candidates_multiplier = num_candidates_multiplier

    def upsert(
        self,
        ids: list[str],
        embeddings: np.ndarray,
        documents: Optional[list[str]] = None,
        metadatas: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        if len(ids) == 0:
            return

        for i, doc_id in enumerate(ids):
            update: dict[str, Any] = {
                self.embedding_field: np.asarray(embeddings[i], dtype=float).tolist()
            }
            if metadatas and "status" in metadatas[i]:
                update["status"] = metadatas[i]["status"]
            self._collection.update_one({"_id": doc_id}, {"$set": update}, upsert=True)

        logger.debug(f"Upserted {len(ids)} embeddings into {self._collection.name}")

    def build_pipeline(
        self,
        query_embedding: np.ndarray,
        top_k: int,
        filter_metadata: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Aggregation pipeline for a ``$vectorSearch`` query."""
        vector_search: dict[str, Any] = {
            "index": self.index_name,
            "path": self.embedding_field,
            "queryVector": np.asarray(query_embedding, dtype=float).tolist(),
            "numCandidates": top_k * self.num_candidates_multiplier,
            "limit": top_k,
        }
        if filter_metadata:
            vector_search["filter"] = filter_metadata

        return [
            {"$vectorSearch": vector_search},
            {"$addFields": {"_score": {"$meta": "vectorSearchScore"}}},
            {"$unset": [self.embedding_field, *self.EXCLUDED_FIELDS]},
        ]

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 10,
        filter_metadata: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        pipeline = self.build_pipeline(query_embedding, top_k, filter_metadata)

        results = []
        for doc in self._collection.aggregate(pipeline):
            doc_id = str(doc.pop("_id"))
            # vectorSearchScore for cosine is (1 + cos) / 2
            score = float(doc.pop("_score", 0.0))
            results.append(SearchResult(
                id=doc_id,
                distance=2.0 * (1.0 - score),
                metadata=doc,
            ))
        return results

    def delete(self, ids: list[str]) -> None:
        if ids:
            self._collection.update_many(
                {"_id": {"$in": ids}},
                {"$unset": {self.embedding_field: ""}},
            )
            logger.debug(f"Removed {len(ids)} embeddings from {self._collection.name}")

    def count(self) -> int:
        return self._collection.count_documents({self.embedding_field: {"$exists": True}})


# =============================================================================
# ChromaDB
# =============================================================================


def chroma_where(filter_metadata: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Chroma only accepts one condition per clause; join several with $and."""
    if not filter_metadata:
        return None
    if len(filter_metadata) == 1:
        return dict(filter_metadata)
    return {"$and": [{key: value} for key, value in filter_metadata.items()]}


class ChromaVectorStore(VectorStore):
    """
    ChromaDB-based vector store implementation.

    Provides persistent storage with metadata filtering support.
    """

    def __init__(
        self,
        collection_name: str,
        persist_directory: Path,
        client: Any = None,
    ):
        """
        Initialize ChromaDB vector store.

        Args:
            collection_name: Name of the collection to use.
            persist_directory: Directory for persistent storage.
            client: Pre-built Chroma client (e.g. an ephemeral one).
        """
        self.collection_name = collection_name
        self.persist_directory = Path(persist_directory)

        self._client = client
        self._collection = None

    def _initialize(self) -> None:
        """Lazy initialization of ChromaDB client."""
        import chromadb
        from chromadb.config import Settings as ChromaSettings

        if self._client is None:
            self.persist_directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Initializing ChromaDB at: {self.persist_directory}")
            self._client = chromadb.PersistentClient(
                path=str(self.persist_directory),
                settings=ChromaSettings(anonymized_telemetry=False),
            )

        self._collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        logger.info(
            f"ChromaDB collection ready: {self.collection_name} "
            f"({self._collection.count()} documents)"
        )

    @property
    def collection(self):
        """Get the ChromaDB collection."""
        if self._collection is None:
            self._initialize()
        return self._collection

    def upsert(
        self,
        ids: list[str],
        embeddings: np.ndarray,
        documents: Optional[list[str]] = None,
        metadatas: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        if len(ids) == 0:
            return

        self.collection.upsert(
            ids=list(ids),
            embeddings=np.asarray(embeddings, dtype=np.float32).tolist(),
            documents=documents,
            metadatas=metadatas,
        )
        logger.debug(f"Upserted {len(ids)} embeddings to {self.collection_name}")

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 10,
        filter_metadata: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        total = self.collection.count()
        if total == 0 or top_k <= 0:
            return []

        results = self.collection.query(
            query_embeddings=[np.asarray(query_embedding, dtype=np.float32).tolist()],
            n_results=min(top_k, total),
            where=chroma_where(filter_metadata),
            include=["documents", "metadatas", "distances"],
        )

        search_results = []
        if results["ids"] and results["ids"][0]:
            for i, doc_id in enumerate(results["ids"][0]):
                search_results.append(SearchResult(
                    id=doc_id,
                    distance=float(results["distances"][0][i]),
                    metadata=dict(results["metadatas"][0][i] or {}) if results["metadatas"] else {},
                    document=results["documents"][0][i] if results["documents"] else None,
                ))
        return search_results

    def delete(self, ids: list[str]) -> None:
        if ids:
            self.collection.delete(ids=list(ids))
            logger.debug(f"Deleted {len(ids)} embeddings from {self.collection_name}")

    def count(self) -> int:
        return self.collection.count()


# =============================================================================
# FAISS
# =============================================================================


class FAISSVectorStore(VectorStore):
    """
    FAISS-based vector store implementation.

    Uses an inner-product index over L2-normalised vectors wrapped in an
    ID map, so entries can be replaced and removed. Distance is reported
    as ``1 - inner_product``. Call ``persist()`` to save to disk.
    """

    def __init__(self, dimension: int, persist_path: Optional[Path] = None):
        self.dimension = dimension
        self.persist_path = Path(persist_path) if persist_path else None

        self._index = None
        self._ext_to_int: dict[str, int] = {}
        self._int_to_ext: dict[int, str] = {}
        self._metadata: dict[str, dict[str, Any]] = {}
        self._documents: dict[str, str] = {}
        self._next_id = 0

    def _initialize(self) -> None:
        """Lazy initialization of FAISS index."""
        import faiss

        logger.info(f"Initializing FAISS index with dimension: {self.dimension}")
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(self.dimension))

        if self.persist_path and (self.persist_path / "index.faiss").exists():
            self._load()

        logger.info(f"FAISS index initialized ({self._index.ntotal} vectors)")

    @property
    def index(self):
        if self._index is None:
            self._initialize()
        return self._index

    def _normalized(self, vectors: np.ndarray) -> np.ndarray:
        import faiss

        vectors = np.array(np.atleast_2d(vectors), dtype=np.float32)
        faiss.normalize_L2(vectors)
        return vectors

    def upsert(
        self,
        ids: list[str],
        embeddings: np.ndarray,
        documents: Optional[list[str]] = None,
        metadatas: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        if len(ids) == 0:
            return

        index = self.index
        existing = [self._ext_to_int[ext_id] for ext_id in ids if ext_id in self._ext_to_int]
        if existing:
            index.remove_ids(np.asarray(existing, dtype=np.int64))
            for internal_id in existing:
                del self._int_to_ext[internal_id]

        internal_ids = np.arange(self._next_id, self._next_id + len(ids), dtype=np.int64)
        index.add_with_ids(self._normalized(embeddings), internal_ids)
        self._next_id += len(ids)

        for i, ext_id in enumerate(ids):
            internal_id = int(internal_ids[i])
            self._ext_to_int[ext_id] = internal_id
            self._int_to_ext[internal_id] = ext_id
            self._metadata[ext_id] = dict(metadatas[i]) if metadatas else {}
            if documents:
                self._documents[ext_id] = documents[i]

        logger.debug(f"Upserted {len(ids)} embeddings into FAISS index")

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 10,
        filter_metadata: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        index = self.index
        if index.ntotal == 0 or top_k <= 0:
            return []

        # Filtering happens after the search, so scan everything when filtering
        fetch = index.ntotal if filter_metadata else min(top_k, index.ntotal)
        scores, indices = index.search(self._normalized(query_embedding), fetch)

        results = []
        for score, idx in zip(scores[0], indices[0]):
            ext_id = self._int_to_ext.get(int(idx))
            if ext_id is None:
                continue

            metadata = self._metadata.get(ext_id, {})
            if filter_metadata and not all(
                metadata.get(k) == v for k, v in filter_metadata.items()
            ):
                continue

            results.append(SearchResult(
                id=ext_id,
                distance=float(min(2.0, max(0.0, 1.0 - score))),
                metadata=metadata,
                document=self._documents.get(ext_id),
            ))
            if len(results) >= top_k:
                break

        return results

    def delete(self, ids: list[str]) -> None:
        internal = [self._ext_to_int.pop(ext_id) for ext_id in ids if ext_id in self._ext_to_int]
        if internal:
            self.index.remove_ids(np.asarray(internal, dtype=np.int64))
        for internal_id in internal:
            self._int_to_ext.pop(internal_id, None)
        for ext_id in ids:
            self._metadata.pop(ext_id, None)
            self._documents.pop(ext_id, None)
        logger.debug(f"Deleted {len(internal)} embeddings from FAISS index")

    def count(self) -> int:
        return self.index.ntotal

    def persist(self) -> None:
        """Save index and id mappings to disk."""
        if self._index is None or self.persist_path is None:
            return

        import faiss

        self.persist_path.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, str(self.persist_path / "index.faiss"))

        meta = {
            "ext_to_int": self._ext_to_int,
            "metadata": self._metadata,
            "documents": self._documents,
            "next_id": self._next_id,
        }
        with open(self.persist_path / "metadata.json", "w", encoding="utf-8") as f:
            json.dump(meta, f)

        logger.info(f"Saved FAISS index to {self.persist_path}")

    def _load(self) -> None:
        import faiss

        self._index = faiss.read_index(str(self.persist_path / "index.faiss"))

        meta_path = self.persist_path / "metadata.json"
        if meta_path.exists():
            with open(meta_path, encoding="utf-8") as f:
                meta = json.load(f)
            self._ext_to_int = {k: int(v) for k, v in meta["ext_to_int"].items()}
            self._int_to_ext = {v: k for k, v in self._ext_to_int.items()}
            self._metadata = meta["metadata"]
            self._documents = meta["documents"]
            self._next_id = meta["next_id"]

        logger.info(f"Loaded FAISS index from {self.persist_path}")


# =============================================================================
# Factory
# =============================================================================


def create_vector_store(
    kind: StoreKind = "candidate",
    settings: Optional[AppSettings] = None,
    db_manager: Any = None,
) -> VectorStore:
    """
    Build the candidate or job vector store described by settings.

    Args:
        kind: 'candidate' for resume embeddings, 'job' for job embeddings.
        settings: Application settings. Defaults to the global settings.
        db_manager: DatabaseManager, required for the 'mongodb' provider.
    """
    settings = settings or get_settings()
    vs = settings.vector_store
    provider = vs.provider

    collection_name = vs.candidate_collection if kind == "candidate" else vs.job_collection

    if provider == "mongodb":
        if db_manager is None:
            raise ConfigurationError(
                "The mongodb vector store needs a database manager",
                config_key="VECTOR_PROVIDER",
            )
        db = settings.database
        if kind == "candidate":
            return MongoVectorStore(
                db_manager.get_sync_collection(db.candidates_collection),
                index_name=vs.candidate_index_name,
                embedding_field=CANDIDATE_EMBEDDING_FIELD,
                num_candidates_multiplier=vs.num_candidates_multiplier,
            )
        return MongoVectorStore(
            db_manager.get_sync_collection(db.jobs_collection),
            index_name=vs.job_index_name,
            embedding_field=JOB_EMBEDDING_FIELD,
            num_candidates_multiplier=vs.num_candidates_multiplier,
        )
    elif provider == "chromadb":
        return ChromaVectorStore(
            collection_name=collection_name,
            persist_directory=vs.persist_directory / "chroma",
        )
    elif provider == "faiss":
        return FAISSVectorStore(
            dimension=settings.ml.embedding_dimension,
            persist_path=vs.persist_directory / "faiss" / collection_name,
        )
    raise ConfigurationError(
        f"Unknown vector store provider: {provider}", config_key="VECTOR_PROVIDER"
    )

"""
Base repository class providing common CRUD operations.

All entity-specific repositories inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from pymongo.collection import Collection
from pymongo.results import UpdateResult

from talentmatch.data.database import DatabaseManager
from talentmatch.data.models.base import BaseDocument, utc_now
from talentmatch.utils.logger import get_logger

logger = get_logger(__name__)

# Type variable for document models
T = TypeVar("T", bound=BaseDocument)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common database operations.

    Documents are keyed by opaque string ids. Subclasses define the
    collection name and model class.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the MongoDB collection."""
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Pydantic model class for this repository."""
        pass

    def __init__(self, db_manager: DatabaseManager) -> None:
        self._db_manager = db_manager

    # -------------------------------------------------------------------------
    # Collection Access
    # -------------------------------------------------------------------------

    def _get_sync_collection(self) -> Collection:
        return self._db_manager.get_sync_collection(self.collection_name)

    # -------------------------------------------------------------------------
    # Document Conversion
    # -------------------------------------------------------------------------

    def _to_model(self, document: Optional[dict[str, Any]]) -> Optional[T]:
        """Convert MongoDB document to Pydantic model."""
        if document is None:
            return None
        return self.model_class.model_validate(document)

    def _to_models(self, documents: list[dict[str, Any]]) -> list[T]:
        return [self._to_model(doc) for doc in documents if doc is not None]

    def _to_document(self, model: T) -> dict[str, Any]:
        return model.model_dump_mongo()

    # -------------------------------------------------------------------------
    # Synchronous CRUD Operations
    # -------------------------------------------------------------------------

    def get_by_id(self, id_value: str) -> Optional[T]:
        """Get a document by its ID."""
        collection = self._get_sync_collection()
        return self._to_model(collection.find_one({"_id": id_value}))

    def find(
        self,
        query: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort_by: Optional[str] = None,
        sort_order: int = -1,
    ) -> list[T]:
        """Find documents matching a query."""
        collection = self._get_sync_collection()
        cursor = collection.find(query).skip(skip).limit(limit)
        cursor = cursor.sort(sort_by or "created_at", sort_order)
        return self._to_models(list(cursor))

    def upsert(self, model: T) -> T:
        """
        Insert or fully replace a document, keyed by its id.

        ``created_at`` is kept from the stored document when it exists.
        """
        collection = self._get_sync_collection()
        document = self._to_document(model)
        id_value = document.pop("_id")
        created_at = document.pop("created_at", None) or utc_now()
        document["updated_at"] = utc_now()

        collection.update_one(
            {"_id": id_value},
            {"$set": document, "$setOnInsert": {"created_at": created_at}},
            upsert=True,
        )
        model.id = id_value
        logger.debug(f"Upserted {self.collection_name} document: {id_value}")
        return model

    def update(self, id_value: str, update_data: dict[str, Any]) -> Optional[T]:
        """Update fields of a document by ID."""
        collection = self._get_sync_collection()
        update_data["updated_at"] = utc_now()

        result: UpdateResult = collection.update_one(
            {"_id": id_value},
            {"$set": update_data},
        )

        if result.matched_count > 0:
            logger.debug(f"Updated {self.collection_name} document: {id_value}")
            return self.get_by_id(id_value)
        return None

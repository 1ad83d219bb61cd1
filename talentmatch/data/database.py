"""
Database connection manager for TalentMatch.

Provides MongoDB connection management with both synchronous (PyMongo)
and asynchronous (Motor) client support, plus creation of the regular
and vector search indexes the matching pipeline relies on.
"""

from typing import Any, Optional
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from pymongo.operations import SearchIndexModel

from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.constants import CANDIDATE_EMBEDDING_FIELD, JOB_EMBEDDING_FIELD
from talentmatch.utils.exceptions import ConfigurationError
from talentmatch.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages MongoDB database connections.

    Clients are created lazily on first use. One manager is built per
    process by the application entry point and passed to repositories
    and vector stores explicitly.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_name = self._settings.database.name
        self._uri = self._build_uri()
        self._sync_client: Optional[MongoClient] = None
        self._async_client: Optional[AsyncIOMotorClient] = None

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def _build_uri(self) -> str:
        """
        Build MongoDB connection URI from settings.

        A full ``DB_URI`` (e.g. Atlas ``mongodb+srv://``) is used as-is;
        otherwise the URI is assembled with URL-encoded credentials.
        """
        db_settings = self._settings.database
        if db_settings.uri:
            return db_settings.uri

        host = db_settings.host.strip()
        if not host or any(c in host for c in [";", "&", "|", "$", "`", "/"]):
            raise ConfigurationError(f"Invalid database host: {host!r}", config_key="DB_HOST")

        auth = ""
        if db_settings.username and db_settings.password:
            encoded_user = quote_plus(db_settings.username)
            encoded_pass = quote_plus(db_settings.password.get_secret_value())
            auth = f"{encoded_user}:{encoded_pass}@"

        return f"mongodb://{auth}{host}:{db_settings.port}"

    def _client_options(self) -> dict[str, Any]:
        timeout = self._settings.database.timeout_ms
        return {
            "serverSelectionTimeoutMS": timeout,
            "connectTimeoutMS": timeout,
            "socketTimeoutMS": timeout,
            "maxPoolSize": 50,
        }

    # -------------------------------------------------------------------------
    # Synchronous Client
    # -------------------------------------------------------------------------

    def get_sync_client(self) -> MongoClient:
        """Get or create synchronous MongoDB client."""
        if self._sync_client is None:
            logger.info("Creating synchronous MongoDB client")
            self._sync_client = MongoClient(self._uri, **self._client_options())
        return self._sync_client

    def get_sync_database(self) -> Database:
        return self.get_sync_client()[self._db_name]

    def get_sync_collection(self, collection_name: str) -> Any:
        """Get a synchronous collection by name."""
        return self.get_sync_database()[collection_name]

    def check_sync_connection(self) -> bool:
        """Check if synchronous connection is healthy."""
        try:
            self.get_sync_client().admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Sync connection check failed: {e}")
            self.close_sync()
            return False

    # -------------------------------------------------------------------------
    # Asynchronous Client
    # -------------------------------------------------------------------------

    def get_async_client(self) -> AsyncIOMotorClient:
        """Get or create asynchronous MongoDB client."""
        if self._async_client is None:
            logger.info("Creating asynchronous MongoDB client")
            self._async_client = AsyncIOMotorClient(self._uri, **self._client_options())
        return self._async_client

    def get_async_database(self) -> AsyncIOMotorDatabase:
        return self.get_async_client()[self._db_name]

    def get_async_collection(self, collection_name: str) -> Any:
        """Get an asynchronous collection by name."""
        return self.get_async_database()[collection_name]

    async def check_async_connection(self) -> bool:
        """Check if asynchronous connection is healthy."""
        try:
            await self.get_async_client().admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Async connection check failed: {e}")
            return False

    # -------------------------------------------------------------------------
    # Lifecycle Management
    # -------------------------------------------------------------------------

    def close_sync(self) -> None:
        if self._sync_client:
            logger.info("Closing synchronous MongoDB client")
            self._sync_client.close()
            self._sync_client = None

    def close_async(self) -> None:
        if self._async_client:
            logger.info("Closing asynchronous MongoDB client")
            self._async_client.close()
            self._async_client = None

    def close_all(self) -> None:
        """Close all database connections."""
        self.close_sync()
        self.close_async()

    # -------------------------------------------------------------------------
    # Index Management
    # -------------------------------------------------------------------------

    async def ensure_indexes(self) -> None:
        """Create regular indexes for the candidate and job collections."""
        logger.info("Ensuring database indexes")
        db_settings = self._settings.database

        candidates = self.get_async_collection(db_settings.candidates_collection)
        await candidates.create_index("status")
        await candidates.create_index("email")
        await candidates.create_index("updated_at")

        jobs = self.get_async_collection(db_settings.jobs_collection)
        await jobs.create_index("status")
        await jobs.create_index("company_name")
        await jobs.create_index("updated_at")

        logger.info("Database indexes created successfully")

    def vector_index_definitions(self) -> list[tuple[str, SearchIndexModel]]:
        """Atlas vector search index models, paired with their collection names."""
        db_settings = self._settings.database
        vector_settings = self._settings.vector_store
        dimension = self._settings.ml.embedding_dimension

        def model(path: str, name: str) -> SearchIndexModel:
            return SearchIndexModel(
                definition={
                    "fields": [
                        {
                            "type": "vector",
                            "path": path,
                            "numDimensions": dimension,
                            "similarity": "cosine",
                        },
                        {"type": "filter", "path": "status"},
                    ]
                },
                name=name,
                type="vectorSearch",
            )

        return [
            (
                db_settings.candidates_collection,
                model(CANDIDATE_EMBEDDING_FIELD, vector_settings.candidate_index_name),
            ),
            (
                db_settings.jobs_collection,
                model(JOB_EMBEDDING_FIELD, vector_settings.job_index_name),
            ),
        ]

    def ensure_vector_indexes(self) -> list[str]:
        """
        Create the Atlas vector search indexes if they do not exist yet.

        Returns the names of the indexes that were created.
        """
        created = []
        for collection_name, index_model in self.vector_index_definitions():
            collection = self.get_sync_collection(collection_name)
            name = index_model.document["name"]
            existing = {idx["name"] for idx in collection.list_search_indexes()}
            if name in existing:
                logger.debug(f"Vector index '{name}' already exists on {collection_name}")
                continue
            collection.create_search_index(model=index_model)
            logger.info(f"Created vector index '{name}' on {collection_name}")
            created.append(name)
        return created

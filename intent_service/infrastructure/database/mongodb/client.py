from typing import Any, Dict, Optional
import time

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConfigurationError,
    ConnectionFailure,
    PyMongoError,
    ServerSelectionTimeoutError
)

from intent_service.utils.logger import get_logger
from intent_service.utils.exceptions import StoreUnavailableError

logger = get_logger(__name__)


class MongoDBClient:
    """
    MongoDB client wrapper.

    Owns one `MongoClient` (which pools connections internally) and exposes
    the database and collections of the configured database.
    """

    def __init__(
        self,
        connection_uri: str,
        database_name: str,
        timeout_ms: int = 5000,
        **kwargs
    ):
        """
        Initialize MongoDB client.

        Args:
            connection_uri: MongoDB connection URI
            database_name: Name of the database to connect to
            timeout_ms: Connect and server selection timeout (ms)
            **kwargs: Additional connection options
        """
        self.connection_uri = connection_uri
        self.database_name = database_name
        self.connection_options = {
            "connectTimeoutMS": timeout_ms,
            "serverSelectionTimeoutMS": timeout_ms,
            "retryWrites": True,
            **kwargs
        }
        self._client: Optional[MongoClient] = None
        self.stats = {
            "last_connection_error": None,
            "last_successful_connection": None
        }

    def connect(self) -> MongoClient:
        """
        Create the MongoDB client and verify it with a ping.

        Returns:
            MongoDB client

        Raises:
            StoreUnavailableError: If the server cannot be reached
        """
        if self._client is not None:
            return self._client

        try:
            client = MongoClient(self.connection_uri, **self.connection_options)
            client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError, ConfigurationError) as e:
            logger.error(f"Failed to connect to MongoDB: {str(e)}")
            self.stats["last_connection_error"] = {
                "timestamp": time.time(),
                "error": str(e)
            }
            raise StoreUnavailableError(f"MongoDB connection failed: {str(e)}") from e

        self._client = client
        self.stats["last_successful_connection"] = time.time()
        logger.info("Successfully connected to MongoDB", extra={"database": self.database_name})
        return client

    def get_database(self) -> Database:
        """
        Get MongoDB database instance.

        Raises:
            StoreUnavailableError: If the server cannot be reached
        """
        return self.connect()[self.database_name]

    def get_collection(self, collection_name: str) -> Collection:
        """
        Get MongoDB collection.

        Args:
            collection_name: Name of the collection

        Raises:
            StoreUnavailableError: If the server cannot be reached
        """
        return self.get_database()[collection_name]

    def health_check(self) -> Dict[str, Any]:
        """
        Check MongoDB health status.

        Returns:
            Dictionary containing health check results
        """
        try:
            start_time = time.time()
            self.connect().admin.command("ping")
            response_time = time.time() - start_time
            return {
                "status": "ok",
                "latency_ms": round(response_time * 1000, 2),
                "last_successful_connection": self.stats["last_successful_connection"],
            }
        except (PyMongoError, StoreUnavailableError) as e:
            logger.error(f"MongoDB health check failed: {str(e)}")
            return {
                "status": "error",
                "message": str(e),
                "last_connection_error": self.stats["last_connection_error"],
            }

    def close(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Closed MongoDB client connection")

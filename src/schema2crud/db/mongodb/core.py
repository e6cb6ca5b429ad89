"""
MongoDB connection management.
"""

import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from schema2crud.exceptions import UnavailableError

logger = logging.getLogger(__name__)


class MongoCore:
    """Owns the Motor client; established once and reused by every request"""

    def __init__(self) -> None:
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    async def init(self, connection_str: str, database_name: str, timeout_ms: int = 5000) -> None:
        """
        Initialize the MongoDB connection.

        Raises:
            UnavailableError: when the server cannot be reached within timeout_ms
        """
        if self._client is not None:
            logger.info("MongoDatabase: Already initialized")
            return

        try:
            client = AsyncIOMotorClient(
                connection_str,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
                socketTimeoutMS=max(timeout_ms, 45000),
                tz_aware=True,
            )
        except PyMongoError as e:
            raise UnavailableError(e, f"Invalid MongoDB configuration: {e}")

        try:
            # Test connection
            await asyncio.wait_for(client.admin.command('ping'), timeout=timeout_ms / 1000 + 1)
        except (asyncio.TimeoutError, PyMongoError) as e:
            client.close()
            raise UnavailableError(e, f"MongoDB unavailable: {e or 'connection timed out'}")

        self._client = client
        self._db = client[database_name]
        logger.info(f"MongoDatabase: Connected to {database_name}")

    async def close(self) -> None:
        """Close MongoDB connection"""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDatabase: Connection closed")

    def get_connection(self) -> AsyncIOMotorDatabase:
        """Get MongoDB database instance"""
        if self._db is None:
            raise UnavailableError(message="MongoDB not initialized")
        return self._db

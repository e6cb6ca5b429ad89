"""
Database factory: picks the storage provider for the process.

The MongoDB connection is established once, cached and reused. When it
cannot be established, or fails later, the process switches to the
in-memory store and stays usable.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from schema2crud.db.base import StorageProvider
from schema2crud.db.memory import MemoryStorage
from schema2crud.db.mongodb import MongoStorage
from schema2crud.exceptions import UnavailableError

logger = logging.getLogger(__name__)

T = TypeVar('T')

CONNECTED = "connected"
MEMORY = "memory"


class DatabaseFactory:
    """
    Factory for creating and managing the storage provider.

    Usage:
        # Initialize
        await DatabaseFactory.initialize(mongo_uri, db_name, timeout_ms)

        # Run an operation with automatic fallback
        records, total = await DatabaseFactory.run(lambda db: db.find(model, None, 0, 10))
    """

    _instance: Optional[StorageProvider] = None
    _mongo: Optional[MongoStorage] = None
    _memory: MemoryStorage = MemoryStorage()
    _params: Optional[Tuple[str, str, int]] = None

    @classmethod
    async def initialize(cls, connection_str: str, database_name: str, timeout_ms: int = 5000) -> StorageProvider:
        """
        Initialize the storage provider.

        Args:
            connection_str: MongoDB connection string; empty selects memory mode
            database_name: Database name
            timeout_ms: Upper bound for the connection attempt

        Returns:
            The active StorageProvider
        """
        if cls._instance is not None:
            logger.info("DatabaseFactory: Already initialized")
            return cls._instance

        cls._params = (connection_str, database_name, timeout_ms)

        if not connection_str:
            logger.warning("MongoDB URI not set, using in-memory storage")
            cls._instance = cls._memory
            return cls._instance

        mongo = MongoStorage()
        try:
            await mongo.core.init(connection_str, database_name, timeout_ms)
        except UnavailableError as e:
            logger.warning(f"MongoDB unavailable, using in-memory storage: {e}")
            cls._instance = cls._memory
            return cls._instance

        cls._mongo = mongo
        cls._instance = mongo
        logger.info(f"DatabaseFactory: Initialized mongodb database {database_name}")
        return mongo

    @classmethod
    def get_instance(cls) -> StorageProvider:
        """Get the current storage provider; memory until initialize() has connected"""
        if cls._instance is None:
            return cls._memory
        return cls._instance

    @classmethod
    def set_instance(cls, instance: StorageProvider) -> None:
        """Set the current storage provider (mainly for testing)."""
        cls._instance = instance
        logger.info(f"Storage provider set to: {instance.name}")

    @classmethod
    def memory(cls) -> MemoryStorage:
        return cls._memory

    @classmethod
    def mode(cls) -> str:
        """"connected" when MongoDB serves requests, "memory" otherwise"""
        return CONNECTED if cls.get_instance() is not cls._memory else MEMORY

    @classmethod
    def fall_back(cls, reason: Any) -> StorageProvider:
        """Switch the process to the in-memory store"""
        if cls._instance is not cls._memory:
            logger.warning(f"Switching to in-memory storage: {reason}")
            cls._instance = cls._memory
        return cls._memory

    @classmethod
    async def run(cls, operation: Callable[[StorageProvider], Awaitable[T]]) -> T:
        """Run a storage operation, retrying it on the memory store if the external store is unreachable"""
        provider = cls.get_instance()
        try:
            return await operation(provider)
        except UnavailableError as e:
            if provider is cls._memory:
                raise
            return await operation(cls.fall_back(e))

    @classmethod
    async def close(cls) -> None:
        """Close the database connection and clean up"""
        if cls._mongo is not None:
            await cls._mongo.core.close()
            cls._mongo = None
        cls._instance = None
        logger.info("Database instance closed and cleaned up")

    @classmethod
    async def reset(cls) -> None:
        """Close any connection and start over with an empty memory store"""
        await cls.close()
        cls._memory = MemoryStorage()
        cls._params = None

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if a storage provider has been initialized"""
        return cls._instance is not None

    @classmethod
    async def reconnect(cls) -> StorageProvider:
        """
        Retry MongoDB with the parameters of the last initialize() call.

        Only acts in memory mode with a configured URI. Records written to the
        memory store in the meantime stay there.
        """
        if cls.mode() == CONNECTED or cls._params is None or not cls._params[0]:
            return cls.get_instance()
        if cls._mongo is not None:
            await cls._mongo.core.close()
            cls._mongo = None
        cls._instance = None
        return await cls.initialize(*cls._params)

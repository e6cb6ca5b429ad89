"""
Storage provider interface.

Both the MongoDB driver and the in-memory fallback implement the same
contract, so the entity handlers never branch on which backend is active.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from schema2crud.models.entity_model import EntityModel


class StorageProvider(ABC):
    """Document CRUD operations against one backing store"""

    # "mongodb" or "memory"
    name: str = "unknown"

    def is_surrogate_key(self, token: str) -> bool:
        """Whether an id token can be a store-assigned key"""
        return ObjectId.is_valid(token)

    async def ensure_collection(self, model: EntityModel) -> None:
        """Prepare storage for a model (indexes etc.); nothing by default"""
        return None

    @abstractmethod
    async def find(self, model: EntityModel, search: Optional[str], skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        """
        Get one page of records, newest first.

        Args:
            model: Entity model
            search: Case-insensitive substring; None for no filter
            skip: Records to skip
            limit: Page size

        Returns:
            Tuple of (records, total matching records)
        """
        pass

    @abstractmethod
    async def get_by_key(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        """Lookup by surrogate key"""
        pass

    @abstractmethod
    async def get_by_field(self, model: EntityModel, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """Lookup by a declared field value"""
        pass

    @abstractmethod
    async def insert(self, model: EntityModel, document: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a new record and return it with its surrogate key"""
        pass

    @abstractmethod
    async def replace(self, model: EntityModel, key: str, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Replace the record stored under key; None when it no longer exists"""
        pass

    @abstractmethod
    async def delete(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        """Remove the record stored under key and return it; None when absent"""
        pass

    @abstractmethod
    async def next_sequence(self, model: EntityModel, field: str) -> int:
        """Next value for an auto-numbered field (max + 1)"""
        pass

"""
MongoDB document operations implementation.
"""

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, OperationFailure, PyMongoError

from schema2crud.db.base import StorageProvider
from schema2crud.db.mongodb.core import MongoCore
from schema2crud.exceptions import DatabaseError, DuplicateConstraintError, UnavailableError
from schema2crud.models.entity_model import CREATED_AT, SURROGATE_KEY, EntityModel

logger = logging.getLogger(__name__)

NEWEST_FIRST = [(CREATED_AT, DESCENDING), (SURROGATE_KEY, DESCENDING)]


def duplicate_field(error: DuplicateKeyError) -> Optional[str]:
    """Extract the offending field name from a duplicate key error"""
    details = error.details or {}
    for key in ('keyPattern', 'keyValue'):
        pattern = details.get(key)
        if isinstance(pattern, dict) and pattern:
            return next(iter(pattern))
    match = re.search(r'index: (\S+?)_-?1', str(error))
    return match.group(1) if match else None


@contextmanager
def translate_errors(operation: str, entity: str) -> Iterator[None]:
    """Map PyMongo exceptions to storage-neutral ones"""
    try:
        yield
    except DuplicateKeyError as e:
        field = duplicate_field(e)
        raise DuplicateConstraintError(f"Duplicate entry for field: {field}", entity=entity, field=field)
    except ConnectionFailure as e:
        raise UnavailableError(e, f"MongoDB unavailable during {operation}: {e}")
    except PyMongoError as e:
        raise DatabaseError(e, f"MongoDB {operation} error: {e}")


def normalize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Expose the surrogate key as a string, first in the record"""
    if doc is None:
        return None
    key = doc.pop(SURROGATE_KEY, None)
    if isinstance(key, ObjectId):
        key = str(key)
    return {SURROGATE_KEY: key, **doc}


def search_filter(model: EntityModel, search: Optional[str]) -> Dict[str, Any]:
    """OR of case-insensitive substring matches over the String fields"""
    if not search or not model.string_fields:
        return {}
    pattern = re.escape(search.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in model.string_fields]}


class MongoStorage(StorageProvider):
    """MongoDB implementation of the storage provider"""

    name = "mongodb"

    def __init__(self, core: Optional[MongoCore] = None) -> None:
        self.core = core or MongoCore()

    def _collection(self, model: EntityModel):
        return self.core.get_connection()[model.collection]

    @staticmethod
    def _key(key: str) -> Optional[ObjectId]:
        return ObjectId(key) if ObjectId.is_valid(key) else None

    async def ensure_collection(self, model: EntityModel) -> None:
        """Create indexes for unique/indexed fields and the creation-order sort"""
        collection = self._collection(model)
        with translate_errors("create_index", model.entity):
            for field in model.indexed_fields:
                try:
                    await collection.create_index(
                        [(field.name, ASCENDING)], unique=field.unique, sparse=field.sparse)
                except OperationFailure as e:
                    logger.warning(f"Could not create index {model.collection}.{field.name}: {e}")
            if model.options.timestamps:
                await collection.create_index([(CREATED_AT, DESCENDING)])

    async def find(self, model: EntityModel, search: Optional[str], skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        collection = self._collection(model)
        query = search_filter(model, search)

        with translate_errors("find", model.entity):
            total = await collection.count_documents(query)
            cursor = collection.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit)
            raw_documents = await cursor.to_list(length=limit)

        return [normalize_document(doc) for doc in raw_documents], total

    async def get_by_key(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        object_id = self._key(key)
        if object_id is None:
            return None
        with translate_errors("get", model.entity):
            doc = await self._collection(model).find_one({SURROGATE_KEY: object_id})
        return normalize_document(doc)

    async def get_by_field(self, model: EntityModel, field: str, value: Any) -> Optional[Dict[str, Any]]:
        with translate_errors("get", model.entity):
            doc = await self._collection(model).find_one({field: value})
        return normalize_document(doc)

    async def insert(self, model: EntityModel, document: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in document.items() if k != SURROGATE_KEY}
        with translate_errors("create", model.entity):
            result = await self._collection(model).insert_one(data)
        if not result.inserted_id:
            raise DatabaseError(message=f"MongoDB insert failed: {result}")
        data[SURROGATE_KEY] = result.inserted_id
        return normalize_document(data)  # type: ignore[return-value]

    async def replace(self, model: EntityModel, key: str, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        object_id = self._key(key)
        if object_id is None:
            return None
        data = {k: v for k, v in document.items() if k != SURROGATE_KEY}
        with translate_errors("update", model.entity):
            doc = await self._collection(model).find_one_and_replace(
                {SURROGATE_KEY: object_id}, data, return_document=ReturnDocument.AFTER)
        return normalize_document(doc)

    async def delete(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        object_id = self._key(key)
        if object_id is None:
            return None
        with translate_errors("delete", model.entity):
            doc = await self._collection(model).find_one_and_delete({SURROGATE_KEY: object_id})
        return normalize_document(doc)

    async def next_sequence(self, model: EntityModel, field: str) -> int:
        with translate_errors("sequence", model.entity):
            doc = await self._collection(model).find_one(
                {field: {"$type": "number"}}, sort=[(field, DESCENDING)])
        if not doc:
            return 1
        return int(doc[field]) + 1

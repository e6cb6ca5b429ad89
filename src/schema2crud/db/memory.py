"""
In-process fallback store.

Used when the external store was never reached or has failed. One list of
records per collection; writes are visible to the next read immediately.
Uniqueness is not enforced here.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from schema2crud.db.base import StorageProvider
from schema2crud.models.entity_model import SURROGATE_KEY, EntityModel

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool)


class MemoryStorage(StorageProvider):
    name = "memory"

    def __init__(self) -> None:
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

    def _records(self, model: EntityModel) -> List[Dict[str, Any]]:
        return self._collections.setdefault(model.collection, [])

    @staticmethod
    def _matches(record: Dict[str, Any], needle: str) -> bool:
        for value in record.values():
            if isinstance(value, SCALAR_TYPES) and needle in str(value).lower():
                return True
        return False

    async def find(self, model: EntityModel, search: Optional[str], skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        records = self._records(model)
        if search:
            needle = search.lower()
            records = [r for r in records if self._matches(r, needle)]
        newest_first = list(reversed(records))
        page = newest_first[skip:skip + limit]
        return [dict(r) for r in page], len(newest_first)

    async def get_by_key(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        for record in self._records(model):
            if record.get(SURROGATE_KEY) == key:
                return dict(record)
        return None

    async def get_by_field(self, model: EntityModel, field: str, value: Any) -> Optional[Dict[str, Any]]:
        for record in self._records(model):
            if field in record and record[field] == value:
                return dict(record)
        return None

    async def insert(self, model: EntityModel, document: Dict[str, Any]) -> Dict[str, Any]:
        record = {SURROGATE_KEY: str(ObjectId()), **document}
        self._records(model).append(record)
        return dict(record)

    async def replace(self, model: EntityModel, key: str, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        records = self._records(model)
        for position, record in enumerate(records):
            if record.get(SURROGATE_KEY) == key:
                records[position] = {SURROGATE_KEY: key, **{k: v for k, v in document.items() if k != SURROGATE_KEY}}
                return dict(records[position])
        return None

    async def delete(self, model: EntityModel, key: str) -> Optional[Dict[str, Any]]:
        records = self._records(model)
        for position, record in enumerate(records):
            if record.get(SURROGATE_KEY) == key:
                return records.pop(position)
        return None

    async def next_sequence(self, model: EntityModel, field: str) -> int:
        numbers = [r[field] for r in self._records(model)
                   if isinstance(r.get(field), (int, float)) and not isinstance(r.get(field), bool)]
        return int(max(numbers)) + 1 if numbers else 1

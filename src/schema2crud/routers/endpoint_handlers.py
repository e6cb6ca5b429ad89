"""
CRUD handlers bound to one entity.

Handlers resolve record ids, apply search and pagination and translate
storage errors into the application error taxonomy. They run every
storage call through DatabaseFactory.run so an unreachable MongoDB
degrades to the in-memory store instead of failing the request.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from schema2crud.config import Config
from schema2crud.db import DatabaseFactory, StorageProvider
from schema2crud.exceptions import (ConflictError, DatabaseError, DuplicateConstraintError,
                                    NotFoundError, StopWorkError)
from schema2crud.models.entity_model import SURROGATE_KEY, EntityModel
from schema2crud.models.list_params import ListParams
from schema2crud.services.notify import HTTP, Notification, pagination_envelope

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(entity: str, operation: str) -> Iterator[None]:
    """Translate storage exceptions raised inside a handler"""
    try:
        yield
    except DuplicateConstraintError as e:
        raise ConflictError(e.field, entity=entity)
    except DatabaseError as e:
        logger.error(f"Error during {operation} of {entity}: {e}")
        details = [repr(e.error)] if Config.is_development() and e.error else None
        raise StopWorkError(str(e), HTTP.INTERNAL_ERROR, "database", entity=entity, details=details)


class EntityHandlers:
    """The five CRUD operations for one (entity, model) pair"""

    def __init__(self, entity: str, model: EntityModel):
        self.entity = entity
        self.model = model

    async def resolve(self, db: StorageProvider, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Find a record by id token.

        The surrogate key is tried first when the token can be one, then each
        declared identity field in order (``id`` unless configured otherwise).
        """
        if db.is_surrogate_key(record_id):
            record = await db.get_by_key(self.model, record_id)
            if record is not None:
                return record

        for field in self.model.options.identity_fields:
            value = self.model.identity_value(field, record_id)
            record = await db.get_by_field(self.model, field, value)
            if record is not None:
                return record
        return None

    async def _require(self, db: StorageProvider, record_id: str) -> Dict[str, Any]:
        record = await self.resolve(db, record_id)
        if record is None:
            raise NotFoundError(self.entity, record_id)
        return record

    async def list(self, params: ListParams) -> Dict[str, Any]:
        async def operation(db: StorageProvider):
            return await db.find(self.model, params.search, params.skip, params.limit)

        with storage_errors(self.entity, "list"):
            records, total = await DatabaseFactory.run(operation)
        return Notification.success(records, pagination=pagination_envelope(total, params.page, params.limit))

    async def get(self, record_id: str) -> Dict[str, Any]:
        async def operation(db: StorageProvider):
            return await self._require(db, record_id)

        with storage_errors(self.entity, "get"):
            record = await DatabaseFactory.run(operation)
        return Notification.success(record)

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async def operation(db: StorageProvider):
            data = dict(payload)
            sequence_field = self.model.auto_number_field
            if sequence_field and data.get(sequence_field) in (None, ''):
                data[sequence_field] = await db.next_sequence(self.model, sequence_field)
            document = self.model.validate_create(data)
            return await db.insert(self.model, document)

        with storage_errors(self.entity, "create"):
            record = await DatabaseFactory.run(operation)
        logger.info(f"Created {self.entity}: {record.get(SURROGATE_KEY)}")
        return Notification.success(record, message=f"{self.entity} created successfully")

    async def update(self, record_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async def operation(db: StorageProvider):
            existing = await self._require(db, record_id)
            document = self.model.validate_update(existing, payload)
            updated = await db.replace(self.model, existing[SURROGATE_KEY], document)
            if updated is None:
                raise NotFoundError(self.entity, record_id)
            return updated

        with storage_errors(self.entity, "update"):
            record = await DatabaseFactory.run(operation)
        return Notification.success(record, message=f"{self.entity} updated successfully")

    async def delete(self, record_id: str) -> Dict[str, Any]:
        async def operation(db: StorageProvider):
            existing = await self._require(db, record_id)
            deleted = await db.delete(self.model, existing[SURROGATE_KEY])
            if deleted is None:
                raise NotFoundError(self.entity, record_id)
            return deleted

        with storage_errors(self.entity, "delete"):
            record = await DatabaseFactory.run(operation)
        return Notification.success(record, message=f"{self.entity} deleted successfully")

"""
Dynamic router factory.

Creates one FastAPI router per entity from its EntityModel. Routers are
not included in the application directly; the RouteRegistry dispatches to
them so a schema update can swap the whole set at once.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Request

from schema2crud.config import Config
from schema2crud.models.entity_model import EntityModel
from schema2crud.models.list_params import ListParams
from schema2crud.routers.endpoint_handlers import EntityHandlers

logger = logging.getLogger(__name__)


def mount_path(route: str) -> str:
    """Route as declared in the schema, without trailing slash"""
    return route.strip().rstrip('/')


class EntityRouterFactory:
    """Factory for creating entity-specific routers from schema entities."""

    @classmethod
    def create_entity_router(cls, entity: str, route: str, model: EntityModel) -> APIRouter:
        """
        Create a complete CRUD router for an entity.

        Args:
            entity: The entity name (e.g., "users")
            route: Mount path from the schema (e.g., "/api/users")
            model: The entity's model

        Returns:
            FastAPI router with all CRUD endpoints for the entity
        """
        prefix = mount_path(route)
        router = APIRouter(prefix=prefix, tags=[entity])
        handlers = EntityHandlers(entity, model)
        collection_path = ""
        record_path = "/{record_id}"

        @router.get(
            collection_path,
            summary=f"List {entity}",
            responses={500: {"description": "Server error"}},
        )
        async def list_records(request: Request) -> Dict[str, Any]:
            default_limit, max_limit = Config.page_limits()
            params = ListParams.from_query_params(request.query_params, default_limit, max_limit)
            return await handlers.list(params)

        @router.get(
            record_path,
            summary=f"Get a {entity} record by id",
            responses={404: {"description": f"{entity} not found"}},
        )
        async def get_record(record_id: str) -> Dict[str, Any]:
            return await handlers.get(record_id)

        @router.post(
            collection_path,
            summary=f"Create a {entity} record",
            status_code=201,
            responses={
                400: {"description": "Validation error"},
                409: {"description": "Duplicate entry"},
            },
        )
        async def create_record(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
            return await handlers.create(payload)

        @router.put(
            record_path,
            summary=f"Update a {entity} record",
            responses={
                400: {"description": "Validation error"},
                404: {"description": f"{entity} not found"},
                409: {"description": "Duplicate entry"},
            },
        )
        async def update_record(record_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
            return await handlers.update(record_id, payload)

        @router.patch(
            record_path,
            summary=f"Partially update a {entity} record",
            responses={
                400: {"description": "Validation error"},
                404: {"description": f"{entity} not found"},
            },
        )
        async def patch_record(record_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
            return await handlers.update(record_id, payload)

        @router.delete(
            record_path,
            summary=f"Delete a {entity} record",
            responses={404: {"description": f"{entity} not found"}},
        )
        async def delete_record(record_id: str) -> Dict[str, Any]:
            return await handlers.delete(record_id)

        logger.debug(f"Created dynamic router for entity: {entity} at {prefix}")
        return router

"""
Schema management endpoints.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Request

from schema2crud.services.notify import Notification
from schema2crud.services.orchestrator import SchemaOrchestrator
from schema2crud.services.schema_validator import validate_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schema", tags=["schema"])


def get_orchestrator(request: Request) -> SchemaOrchestrator:
    return request.app.state.orchestrator


@router.get("", summary="Get the active schema document")
async def get_schema(request: Request) -> Dict[str, Any]:
    return Notification.success(schema=get_orchestrator(request).schema)


@router.post(
    "/update",
    summary="Replace the schema and rebind all entity routes",
    responses={400: {"description": "Malformed schema"}},
)
async def update_schema(request: Request, doc: Any = Body(...)) -> Dict[str, Any]:
    routes = await get_orchestrator(request).update_schema(doc)
    logger.info(f"Schema updated: {len(routes)} entities bound")
    return Notification.success(
        message="Schema updated successfully",
        entities=list(routes),
        routes=routes,
    )


@router.post("/validate", summary="Validate a schema document without applying it")
async def check_schema(doc: Any = Body(...)) -> Dict[str, Any]:
    result = validate_schema(doc)
    return Notification.success(**result.model_dump())

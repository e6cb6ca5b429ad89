"""
Service status endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter, Request

from schema2crud import __version__
from schema2crud.db import DatabaseFactory
from schema2crud.db.factory import CONNECTED, MEMORY
from schema2crud.routers.registry import RouteRegistry

router = APIRouter(tags=["admin"])


def get_routes(request: Request) -> RouteRegistry:
    return request.app.state.routes


@router.get("/health", summary="Health check")
async def health(request: Request) -> Dict[str, Any]:
    """Report the storage mode; in memory mode a configured MongoDB is retried first"""
    if DatabaseFactory.mode() == MEMORY:
        await DatabaseFactory.reconnect()
        if DatabaseFactory.mode() == CONNECTED:
            await request.app.state.orchestrator.prepare_storage()

    routes = get_routes(request)
    return {
        "status": "ok",
        "database": DatabaseFactory.mode(),
        "entities": routes.entities(),
        "routes": routes.routes(),
    }


@router.get("/", summary="Service information")
async def info(request: Request) -> Dict[str, Any]:
    return {
        "name": "schema2crud",
        "version": __version__,
        "database": DatabaseFactory.mode(),
        "routes": get_routes(request).routes(),
        "endpoints": {
            "schema": "/api/schema",
            "update": "/api/schema/update",
            "validate": "/api/schema/validate",
            "health": "/health",
        },
    }

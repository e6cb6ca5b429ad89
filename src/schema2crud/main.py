"""
Application entry point.

Builds the FastAPI app: configuration, logging, storage, schema binding,
exception handlers and the dynamic entity routes.
"""

import argparse
import logging
import time
import traceback
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schema2crud import __version__
from schema2crud.config import Config
from schema2crud.db import DatabaseFactory
from schema2crud.exceptions import StopWorkError
from schema2crud.routers import admin, schema
from schema2crud.routers.registry import BindingRoute, RouteRegistry
from schema2crud.services.model import ModelRegistry
from schema2crud.services.notify import HTTP, Notification
from schema2crud.services.orchestrator import SchemaOrchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT, force=True)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Render every failure as the ``{success: false, error, ...}`` envelope.

    Handles:
    - StopWorkError: application errors carrying their own status (400/404/409/500)
    - HTTPException: framework errors; 404 lists the routes currently bound
    - RequestValidationError: malformed request bodies (400)
    - Exception: anything else (500, traceback only in development)
    """

    @app.exception_handler(StopWorkError)
    async def stop_work_handler(request: Request, exc: StopWorkError) -> JSONResponse:
        content = Notification.error(exc.status_code, exc.message, details=exc.details,
                                     field=exc.field, entity=exc.entity)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == HTTP.NOT_FOUND:
            content = Notification.error(
                exc.status_code, f"Route not found: {request.method} {request.url.path}",
                availableRoutes=request.app.state.routes.routes(),
            )
        else:
            content = Notification.error(exc.status_code, str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details: List[str] = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ()))
            details.append(f"{location}: {err.get('msg', 'Invalid value')}")
        content = Notification.error(HTTP.BAD_REQUEST, "Invalid request", details=details)
        return JSONResponse(status_code=HTTP.BAD_REQUEST, content=content)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        details = traceback.format_exception(exc) if Config.is_development() else None
        content = Notification.error(HTTP.INTERNAL_ERROR, str(exc) or exc.__class__.__name__, details=details)
        return JSONResponse(status_code=HTTP.INTERNAL_ERROR, content=content)


def _custom_openapi(app: FastAPI):
    """OpenAPI document that includes the entity routes bound right now"""

    def openapi() -> Dict[str, Any]:
        routes = list(app.routes)
        for binding in app.state.routes.snapshot():
            routes.extend(binding.router.routes)
        return get_openapi(title=app.title, version=app.version, description=app.description, routes=routes)

    return openapi


def create_app(config_file: str = '', **overrides: Any) -> FastAPI:
    """
    Create the application.

    Args:
        config_file: Path to config.json; empty uses defaults and environment
        overrides: Config keys that take precedence over file and environment

    Returns:
        The FastAPI application; storage and schema are bound on startup
    """
    Config.initialize(config_file, overrides)
    configure_logging(Config.get('log_level', 'info'))

    models = ModelRegistry()
    routes = RouteRegistry()
    orchestrator = SchemaOrchestrator(Config.schema_path(), models, routes)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        uri, db_name, timeout_ms = Config.get_db_params()
        await DatabaseFactory.initialize(uri, db_name, timeout_ms)
        bound = await orchestrator.load_schema()
        logger.info(f"Ready: {len(bound)} entities bound, database {DatabaseFactory.mode()}")
        yield
        await DatabaseFactory.close()

    app = FastAPI(
        title="schema2crud",
        description="CRUD API generated at runtime from a schema document",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.models = models
    app.state.routes = routes
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.get('cors_origins', ['*']),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        return response

    register_exception_handlers(app)

    app.include_router(schema.router)
    app.include_router(admin.router)
    # Entity routes are resolved per request from the registry; keep this last
    app.router.routes.append(BindingRoute(routes))
    app.openapi = _custom_openapi(app)  # type: ignore[method-assign]

    return app


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve a CRUD API from a schema document")
    parser.add_argument('--config', default='config.json', help='Path to config.json')
    parser.add_argument('--host', help='Bind address (overrides server_host)')
    parser.add_argument('--port', type=int, help='Port (overrides server_port)')
    parser.add_argument('--schema', help='Schema file (overrides schema_file)')
    args = parser.parse_args(argv)

    app = create_app(args.config, server_host=args.host, server_port=args.port, schema_file=args.schema)
    uvicorn.run(
        app,
        host=Config.get('server_host', '0.0.0.0'),
        port=int(Config.get('server_port', 5000)),
        log_level=str(Config.get('log_level', 'info')).lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

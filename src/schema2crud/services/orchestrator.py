"""
Schema orchestrator: loads the schema at startup and applies replacements at runtime.

A replacement builds the complete set of models and routers off to the
side and installs them with one swap of each registry. Requests already
running finish against the bindings they started with.
"""

import asyncio
import copy
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Tuple

from schema2crud.db import DatabaseFactory
from schema2crud.exceptions import MalformedSchemaError, StopWorkError
from schema2crud.routers.registry import RouteBinding, RouteRegistry
from schema2crud.routers.router_factory import EntityRouterFactory
from schema2crud.services.model import ModelRegistry
from schema2crud.services.notify import HTTP
from schema2crud.services.schema_validator import validate_schema
from schema2crud.utils import load_settings, save_settings

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA: Dict[str, Any] = {
    "record": {
        "users": {
            "route": "/api/users",
            "backend": {
                "schema": {
                    "name": {"type": "String", "required": True},
                    "email": {"type": "String", "required": True},
                },
                "options": {"timestamps": True},
            },
            "frontend": {},
        }
    }
}


class BindingState(str, Enum):
    BOUND = "bound"
    REBINDING = "rebinding"


class SchemaOrchestrator:
    """Owns the current schema document and keeps both registries in step with it"""

    def __init__(self, schema_path: Path, models: ModelRegistry, routes: RouteRegistry):
        self.schema_path = schema_path
        self.models = models
        self.routes = routes
        self.schema: Dict[str, Any] = {}
        self.state = BindingState.BOUND
        self._lock = asyncio.Lock()

    async def load_schema(self) -> Dict[str, str]:
        """
        Read the persisted schema and bind it. Never fails: a missing or
        invalid file is replaced by the built-in default schema.

        Returns:
            Entity name to route for everything bound
        """
        doc: Any = None
        if self.schema_path.exists():
            doc = load_settings(self.schema_path)
        else:
            logger.warning(f"Schema file {self.schema_path} not found")

        result = validate_schema(doc)
        if not result.valid:
            for error in result.errors:
                logger.error(f"Schema error: {error}")
            logger.warning("Using default schema")
            doc = copy.deepcopy(DEFAULT_SCHEMA)
        for warning in result.warnings:
            logger.warning(f"Schema warning: {warning}")

        async with self._lock:
            return await self._bind(doc)

    async def update_schema(self, doc: Any) -> Dict[str, str]:
        """
        Persist a new schema document and rebind every entity to it.

        Args:
            doc: The new schema document

        Returns:
            Entity name to route for everything bound

        Raises:
            MalformedSchemaError: doc has no ``record`` object
            StopWorkError: the schema file could not be written
        """
        if not isinstance(doc, dict) or not isinstance(doc.get('record'), dict):
            raise MalformedSchemaError()

        result = validate_schema(doc)
        for error in result.errors:
            logger.warning(f"Schema update problem: {error}")

        async with self._lock:
            try:
                await asyncio.to_thread(save_settings, self.schema_path, doc)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to persist schema to {self.schema_path}: {e}")
                raise StopWorkError(f"Failed to save schema: {e}", HTTP.INTERNAL_ERROR, "schema_persist")
            logger.info(f"Schema written to {self.schema_path}")
            return await self._bind(doc)

    async def _bind(self, doc: Dict[str, Any]) -> Dict[str, str]:
        self.state = BindingState.REBINDING
        try:
            staging = ModelRegistry()
            bindings: List[RouteBinding] = []
            for entity, config in doc['record'].items():
                usable, reason = self._bindable(entity, config)
                if not usable:
                    logger.warning(f"Skipping entity {entity}: {reason}")
                    continue
                model = staging.get_or_build(entity, config)
                router = EntityRouterFactory.create_entity_router(entity, config['route'], model)
                bindings.append(RouteBinding(entity, config['route'], router, model))

            for binding in bindings:
                await self._prepare_collection(binding)

            self.models.replace(staging.snapshot())
            self.routes.replace(bindings)
            self.schema = doc
        finally:
            self.state = BindingState.BOUND

        routes = {b.entity: b.route for b in bindings}
        for entity, route in routes.items():
            logger.info(f"Bound {entity} at {route}")
        return routes

    @staticmethod
    def _bindable(entity: Any, config: Any) -> Tuple[bool, str]:
        if not isinstance(entity, str) or not entity.strip():
            return False, "entity name must be a non-empty string"
        if not isinstance(config, dict):
            return False, "configuration is not an object"
        route = config.get('route')
        if not isinstance(route, str) or not route.startswith('/'):
            return False, "missing or invalid route"
        if not route.strip().rstrip('/'):
            return False, "route \"/\" is reserved for the service root"
        if not isinstance(config.get('backend'), dict):
            return False, "missing backend"
        return True, ""

    async def prepare_storage(self) -> None:
        """Create collections and indexes for every bound entity, e.g. after reconnecting"""
        for binding in self.routes.snapshot():
            await self._prepare_collection(binding)

    @staticmethod
    async def _prepare_collection(binding: RouteBinding) -> None:
        async def operation(db):
            await db.ensure_collection(binding.model)

        try:
            await DatabaseFactory.run(operation)
        except Exception as e:
            logger.warning(f"Could not prepare storage for {binding.entity}: {e}")

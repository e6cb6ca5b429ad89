"""
Route registry: the live table of entity routers.

The table is an immutable tuple swapped in one assignment. A request picks
its binding when Starlette matches the route and keeps that binding until
it completes, so a schema update never serves a request half from the old
schema and half from the new one.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import APIRouter
from starlette.routing import BaseRoute, Match, NoMatchFound
from starlette.types import Receive, Scope, Send

from schema2crud.models.entity_model import EntityModel
from schema2crud.routers.router_factory import mount_path

logger = logging.getLogger(__name__)

BINDING_SCOPE_KEY = "schema2crud.binding"


@dataclass(frozen=True)
class RouteBinding:
    entity: str
    route: str
    router: APIRouter
    model: EntityModel

    @property
    def prefix(self) -> str:
        return mount_path(self.route)

    def matches(self, path: str) -> bool:
        prefix = self.prefix
        return path == prefix or path.startswith(prefix + "/")


class RouteRegistry:
    """Entity name to mounted router, replaced wholesale on schema change"""

    def __init__(self) -> None:
        self._bindings: Tuple[RouteBinding, ...] = ()

    def snapshot(self) -> Tuple[RouteBinding, ...]:
        return self._bindings

    def replace(self, bindings: Iterable[RouteBinding]) -> None:
        """
        Install a new binding table.

        Longer prefixes are matched first; among equal routes the binding
        given first wins.
        """
        ordered = sorted(bindings, key=lambda b: len(b.prefix), reverse=True)
        entities = [b.entity for b in ordered]
        if len(entities) != len(set(entities)):
            raise ValueError("An entity can only be bound once")
        self._bindings = tuple(ordered)
        logger.info(f"Route table replaced: {len(self._bindings)} entities")

    def match(self, path: str) -> Optional[RouteBinding]:
        for binding in self._bindings:
            if binding.matches(path):
                return binding
        return None

    def get(self, entity: str) -> Optional[RouteBinding]:
        for binding in self._bindings:
            if binding.entity == entity:
                return binding
        return None

    def routes(self) -> Dict[str, str]:
        """Entity name to route, sorted by entity name"""
        return {b.entity: b.route for b in sorted(self._bindings, key=lambda b: b.entity)}

    def entities(self) -> List[str]:
        return sorted(b.entity for b in self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)


def _route_path(scope: Scope) -> str:
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        return path[len(root_path):] or "/"
    return path


class BindingRoute(BaseRoute):
    """Starlette route that dispatches to whichever entity router currently owns the path"""

    def __init__(self, registry: RouteRegistry):
        self.registry = registry

    def matches(self, scope: Scope) -> Tuple[Match, Scope]:
        if scope["type"] == "http":
            binding = self.registry.match(_route_path(scope))
            if binding is not None:
                return Match.FULL, {BINDING_SCOPE_KEY: binding}
        return Match.NONE, {}

    def url_path_for(self, name: str, /, **path_params: Any):
        raise NoMatchFound(name, path_params)

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        binding: RouteBinding = scope[BINDING_SCOPE_KEY]
        await binding.router(scope, receive, send)

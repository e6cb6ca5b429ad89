"""Route table swaps and per-request binding resolution."""

import pytest
from starlette.routing import Match

from schema2crud.routers.registry import BINDING_SCOPE_KEY, BindingRoute, RouteBinding, RouteRegistry
from schema2crud.routers.router_factory import EntityRouterFactory
from schema2crud.services.model import build_model


def make_binding(entity: str, route: str) -> RouteBinding:
    model = build_model(entity, {"backend": {"schema": {"name": "String"}}})
    return RouteBinding(entity, route, EntityRouterFactory.create_entity_router(entity, route, model), model)


def http_scope(path: str) -> dict:
    return {"type": "http", "path": path, "root_path": "", "method": "GET"}


def test_match_prefers_longest_route():
    registry = RouteRegistry()
    registry.replace([make_binding("items", "/api/items"), make_binding("archive", "/api/items/archive")])

    assert registry.match("/api/items/archive/1").entity == "archive"
    assert registry.match("/api/items/2").entity == "items"
    assert registry.match("/api/items").entity == "items"
    assert registry.match("/api/itemsx") is None


def test_replace_is_atomic_for_snapshot_holders():
    registry = RouteRegistry()
    registry.replace([make_binding("users", "/api/users")])
    before = registry.snapshot()

    registry.replace([make_binding("orders", "/api/orders")])

    assert [b.entity for b in before] == ["users"]
    assert registry.routes() == {"orders": "/api/orders"}
    assert registry.get("users") is None


def test_entity_bound_once():
    registry = RouteRegistry()
    with pytest.raises(ValueError):
        registry.replace([make_binding("users", "/a"), make_binding("users", "/b")])


def test_trailing_slash_route():
    binding = make_binding("users", "/api/users/")
    assert binding.matches("/api/users")
    assert binding.matches("/api/users/1")


def test_binding_route_pins_binding_in_scope():
    registry = RouteRegistry()
    registry.replace([make_binding("users", "/api/users")])
    route = BindingRoute(registry)

    match, child_scope = route.matches(http_scope("/api/users/1"))
    assert match is Match.FULL
    assert child_scope[BINDING_SCOPE_KEY].entity == "users"

    assert route.matches(http_scope("/health")) == (Match.NONE, {})
    assert route.matches({"type": "websocket", "path": "/api/users"}) == (Match.NONE, {})

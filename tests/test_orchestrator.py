"""Schema loading and rebinding without the HTTP layer."""

import json

import pytest

from schema2crud.exceptions import MalformedSchemaError
from schema2crud.routers.registry import RouteRegistry
from schema2crud.services.model import ModelRegistry
from schema2crud.services.orchestrator import DEFAULT_SCHEMA, BindingState, SchemaOrchestrator
from tests.conftest import sample_schema


@pytest.fixture
def orchestrator(schema_file):
    return SchemaOrchestrator(schema_file, ModelRegistry(), RouteRegistry())


@pytest.mark.asyncio
async def test_load_schema_binds_every_entity(orchestrator):
    routes = await orchestrator.load_schema()

    assert routes == {"users": "/api/users", "products": "/api/products"}
    assert "users" in orchestrator.models
    assert orchestrator.routes.match("/api/products/1").entity == "products"
    assert orchestrator.state is BindingState.BOUND


@pytest.mark.asyncio
async def test_yaml_schema_file(tmp_path):
    path = tmp_path / "schema.yaml"
    path.write_text(
        "record:\n"
        "  notes:\n"
        "    route: /api/notes\n"
        "    backend:\n"
        "      schema:\n"
        "        body: String\n"
        "    frontend: {}\n",
        encoding="utf-8",
    )
    orchestrator = SchemaOrchestrator(path, ModelRegistry(), RouteRegistry())

    assert await orchestrator.load_schema() == {"notes": "/api/notes"}


@pytest.mark.asyncio
async def test_invalid_file_uses_default(tmp_path):
    path = tmp_path / "schemaConfig.json"
    path.write_text(json.dumps({"record": {"x": {"backend": {}}}}), encoding="utf-8")
    orchestrator = SchemaOrchestrator(path, ModelRegistry(), RouteRegistry())

    routes = await orchestrator.load_schema()

    assert routes == {"users": "/api/users"}
    assert orchestrator.schema == DEFAULT_SCHEMA
    users = orchestrator.models.get("users")
    assert users.fields["name"].required and users.fields["email"].required


@pytest.mark.asyncio
async def test_update_replaces_both_registries(orchestrator, schema_file):
    await orchestrator.load_schema()
    old_users = orchestrator.models.get("users")
    schema = sample_schema()
    del schema["record"]["products"]

    routes = await orchestrator.update_schema(schema)

    assert routes == {"users": "/api/users"}
    assert orchestrator.models.get("products") is None
    assert orchestrator.models.get("users") is not old_users
    assert orchestrator.routes.match("/api/products") is None
    assert json.loads(schema_file.read_text(encoding="utf-8")) == schema


@pytest.mark.asyncio
@pytest.mark.parametrize("doc", [{}, {"record": []}, "text", None])
async def test_update_without_record_is_rejected(orchestrator, doc):
    await orchestrator.load_schema()

    with pytest.raises(MalformedSchemaError):
        await orchestrator.update_schema(doc)

    assert len(orchestrator.routes) == 2

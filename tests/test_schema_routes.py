"""
Schema management, hot reload and status endpoints.
"""

import json
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from schema2crud.db.mongodb import MongoCore
from schema2crud.exceptions import UnavailableError
from schema2crud.main import create_app
from tests.conftest import sample_schema

ORDERS_SCHEMA = {
    "record": {
        "orders": {
            "route": "/api/orders",
            "backend": {"schema": {"total": {"type": "Number", "required": True}}},
            "frontend": {},
        }
    }
}


def test_get_schema_returns_active_document(client):
    response = client.get("/api/schema")

    assert response.status_code == 200
    assert response.json() == {"success": True, "schema": sample_schema()}


def test_health_reports_memory_mode(client):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["database"] == "memory"
    assert body["entities"] == ["products", "users"]
    assert body["routes"]["users"] == "/api/users"


def test_root_describes_service(client):
    body = client.get("/").json()

    assert body["name"] == "schema2crud"
    assert body["routes"] == {"products": "/api/products", "users": "/api/users"}


class TestSchemaUpdate:

    def test_update_rebinds_routes(self, client, schema_file):
        response = client.post("/api/schema/update", json=ORDERS_SCHEMA)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["entities"] == ["orders"]
        assert body["routes"] == {"orders": "/api/orders"}

        assert client.post("/api/orders", json={"total": 12}).status_code == 201
        assert client.get("/api/orders").json()["pagination"]["total"] == 1

        gone = client.get("/api/users")
        assert gone.status_code == 404
        assert gone.json()["availableRoutes"] == {"orders": "/api/orders"}

    def test_update_is_persisted(self, client, schema_file):
        client.post("/api/schema/update", json=ORDERS_SCHEMA)

        assert json.loads(schema_file.read_text(encoding="utf-8")) == ORDERS_SCHEMA
        assert client.get("/api/schema").json()["schema"] == ORDERS_SCHEMA

    def test_update_changes_model_of_existing_route(self, client):
        schema = sample_schema()
        schema["record"]["users"]["backend"]["schema"]["nickname"] = {"type": "String", "required": True}
        client.post("/api/schema/update", json=schema)

        response = client.post("/api/users", json={"name": "Alice", "email": "a@example.com"})

        assert response.status_code == 400
        assert "Path `nickname` is required." in response.json()["details"]

    def test_entities_without_route_are_skipped(self, client):
        schema = sample_schema()
        del schema["record"]["products"]["route"]

        body = client.post("/api/schema/update", json=schema).json()

        assert body["routes"] == {"users": "/api/users"}

    def test_entity_at_root_route_is_skipped(self, client):
        schema = sample_schema()
        schema["record"]["products"]["route"] = "/"

        body = client.post("/api/schema/update", json=schema).json()

        assert body["routes"] == {"users": "/api/users"}
        assert client.get("/").json()["name"] == "schema2crud"

    def test_missing_record_is_rejected(self, client, schema_file):
        before = schema_file.read_text(encoding="utf-8")

        response = client.post("/api/schema/update", json={"entities": {}})

        assert response.status_code == 400
        assert response.json()["error"] == 'Schema must contain a "record" object'
        assert schema_file.read_text(encoding="utf-8") == before
        assert client.get("/api/users").status_code == 200


def test_validate_does_not_apply(client):
    response = client.post("/api/schema/validate", json={"record": {"orders": {"backend": {}}}})

    body = response.json()
    assert body["valid"] is False
    assert 'Missing "route" for entity: orders' in body["errors"]
    assert client.get("/health").json()["entities"] == ["products", "users"]


def test_invalid_schema_file_falls_back_to_default(tmp_path):
    schema_file = tmp_path / "schemaConfig.json"
    schema_file.write_text("{ not json", encoding="utf-8")

    app = create_app(schema_file=str(schema_file), mongo_uri="")
    with TestClient(app) as client:
        assert client.get("/health").json()["entities"] == ["users"]
        response = client.post("/api/users", json={"name": "Alice"})
        assert response.status_code == 400
        assert response.json()["details"] == ["Path `email` is required."]


def test_missing_schema_file_falls_back_to_default(tmp_path):
    app = create_app(schema_file=str(tmp_path / "absent.json"), mongo_uri="")
    with TestClient(app) as client:
        assert client.get("/health").json()["routes"] == {"users": "/api/users"}


def test_unreachable_store_at_startup_uses_memory(schema_file):
    app = create_app(schema_file=str(schema_file), mongo_uri="mongodb://127.0.0.1:1", db_timeout_ms=200)
    with TestClient(app) as client:
        assert client.get("/health").json()["database"] == "memory"
        response = client.post("/api/users", json={"name": "Ann", "email": "a@x.com"})
        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Ann"


def test_health_reconnects_when_store_comes_back(schema_file, monkeypatch):
    async def unreachable(core, connection_str, database_name, timeout_ms=5000):
        raise UnavailableError(message="no servers")

    async def reachable(core, connection_str, database_name, timeout_ms=5000):
        core._client = MagicMock()
        core._db = MagicMock()

    monkeypatch.setattr(MongoCore, "init", unreachable)
    app = create_app(schema_file=str(schema_file), mongo_uri="mongodb://db:27017")
    with TestClient(app) as client:
        assert client.get("/health").json()["database"] == "memory"

        monkeypatch.setattr(MongoCore, "init", reachable)
        body = client.get("/health").json()

        assert body["database"] == "connected"
        assert body["entities"] == ["products", "users"]

"""
Shared fixtures: an application in memory mode bound to a temporary schema file.
"""

import asyncio
import copy
import json
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
from fastapi.testclient import TestClient

from schema2crud.db import DatabaseFactory
from schema2crud.main import create_app

ENV_VARS = ("MONGODB_URI", "DB_NAME", "SCHEMA_FILE", "LOG_LEVEL", "ENVIRONMENT")

SAMPLE_SCHEMA: Dict[str, Any] = {
    "record": {
        "users": {
            "route": "/api/users",
            "backend": {
                "schema": {
                    "name": {"type": "String", "required": True, "trim": True},
                    "email": {"type": "String", "required": True, "unique": True, "lowercase": True},
                    "age": {"type": "Number", "min": 0, "max": 150},
                    "role": {"type": "String", "enum": ["user", "admin"], "default": "user"},
                    "active": {"type": "Boolean", "default": "true"},
                    "joinedAt": {"type": "Date", "default": "Date.now"},
                },
                "options": {"timestamps": True},
            },
            "frontend": {},
        },
        "products": {
            "route": "/api/products",
            "backend": {
                "schema": {
                    "id": {"type": "Number"},
                    "title": {"type": "String", "required": True},
                    "price": {"type": "Number", "min": 0},
                },
                "options": {"strict": True},
            },
            "frontend": {},
        },
    }
}


def sample_schema() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_SCHEMA)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """No external MongoDB and a fresh memory store for every test"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    asyncio.run(DatabaseFactory.reset())
    yield
    asyncio.run(DatabaseFactory.reset())


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "schemaConfig.json"
    path.write_text(json.dumps(sample_schema()), encoding="utf-8")
    return path


@pytest.fixture
def app(schema_file: Path):
    return create_app(schema_file=str(schema_file), mongo_uri="", environment="test")


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client

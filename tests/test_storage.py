"""In-memory store and the storage factory's fallback behaviour."""

from unittest.mock import MagicMock

import pytest

from schema2crud.db import DatabaseFactory, MemoryStorage, MongoStorage
from schema2crud.db.mongodb import MongoCore
from schema2crud.db.factory import CONNECTED, MEMORY
from schema2crud.exceptions import UnavailableError
from schema2crud.services.model import build_model
from tests.conftest import sample_schema


@pytest.fixture
def users():
    return build_model("users", sample_schema()["record"]["users"])


@pytest.fixture
def store():
    return MemoryStorage()


class TestMemoryStorage:

    @pytest.mark.asyncio
    async def test_insert_assigns_surrogate_key(self, store, users):
        record = await store.insert(users, {"name": "Ann"})

        assert list(record)[0] == "_id"
        assert store.is_surrogate_key(record["_id"])
        assert await store.get_by_key(users, record["_id"]) == record

    @pytest.mark.asyncio
    async def test_find_newest_first_with_total(self, store, users):
        for name in ("a", "b", "c"):
            await store.insert(users, {"name": name})

        records, total = await store.find(users, None, 1, 1)

        assert total == 3
        assert [r["name"] for r in records] == ["b"]

    @pytest.mark.asyncio
    async def test_search_covers_all_scalar_values(self, store, users):
        await store.insert(users, {"name": "Ann", "note": "Prefers EMAIL"})
        await store.insert(users, {"name": "Bob", "tags": ["email"]})

        records, total = await store.find(users, "email", 0, 10)

        assert total == 1
        assert records[0]["name"] == "Ann"

    @pytest.mark.asyncio
    async def test_replace_and_delete(self, store, users):
        record = await store.insert(users, {"name": "Ann"})

        updated = await store.replace(users, record["_id"], {"name": "Anna", "_id": "other"})
        assert updated == {"_id": record["_id"], "name": "Anna"}

        deleted = await store.delete(users, record["_id"])
        assert deleted["name"] == "Anna"
        assert await store.delete(users, record["_id"]) is None
        assert (await store.find(users, None, 0, 10))[1] == 0

    @pytest.mark.asyncio
    async def test_get_by_field_and_sequence(self, store, users):
        assert await store.next_sequence(users, "id") == 1
        await store.insert(users, {"id": 4})
        await store.insert(users, {"id": "x"})

        assert await store.next_sequence(users, "id") == 5
        assert (await store.get_by_field(users, "id", 4))["id"] == 4
        assert await store.get_by_field(users, "id", 5) is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store, users):
        record = await store.insert(users, {"name": "Ann"})
        record["name"] = "changed"

        assert (await store.get_by_key(users, record["_id"]))["name"] == "Ann"


class FailingStorage(MemoryStorage):
    name = "failing"

    async def find(self, model, search, skip, limit):
        raise UnavailableError(message="server selection timed out")


class TestDatabaseFactory:

    @pytest.mark.asyncio
    async def test_empty_uri_selects_memory(self):
        provider = await DatabaseFactory.initialize("", "test")

        assert provider is DatabaseFactory.memory()
        assert DatabaseFactory.mode() == MEMORY

    @pytest.mark.asyncio
    async def test_unreachable_server_selects_memory(self):
        provider = await DatabaseFactory.initialize("mongodb://127.0.0.1:1", "test", timeout_ms=200)

        assert provider is DatabaseFactory.memory()
        assert DatabaseFactory.is_initialized()

    @pytest.mark.asyncio
    async def test_run_falls_back_when_store_becomes_unavailable(self, users):
        DatabaseFactory.set_instance(FailingStorage())
        assert DatabaseFactory.mode() == CONNECTED
        await DatabaseFactory.memory().insert(users, {"name": "Ann"})

        records, total = await DatabaseFactory.run(lambda db: db.find(users, None, 0, 10))

        assert total == 1
        assert DatabaseFactory.mode() == MEMORY

    @pytest.mark.asyncio
    async def test_memory_failures_propagate(self, users):
        async def broken(db):
            raise UnavailableError(message="boom")

        with pytest.raises(UnavailableError):
            await DatabaseFactory.run(broken)

    @pytest.mark.asyncio
    async def test_reconnect_returns_to_mongodb(self, monkeypatch):
        async def unreachable(core, connection_str, database_name, timeout_ms=5000):
            raise UnavailableError(message="no servers")

        async def reachable(core, connection_str, database_name, timeout_ms=5000):
            core._client = MagicMock()
            core._db = MagicMock()

        monkeypatch.setattr(MongoCore, "init", unreachable)
        await DatabaseFactory.initialize("mongodb://db:27017", "test")
        assert DatabaseFactory.mode() == MEMORY

        monkeypatch.setattr(MongoCore, "init", reachable)
        provider = await DatabaseFactory.reconnect()

        assert isinstance(provider, MongoStorage)
        assert DatabaseFactory.mode() == CONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_without_uri_stays_in_memory(self):
        await DatabaseFactory.initialize("", "test")

        assert await DatabaseFactory.reconnect() is DatabaseFactory.memory()

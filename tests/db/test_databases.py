"""Tests for the JSON and in-memory database backends."""

import json

import pytest

from walkgraph.db import JsonDB, MemoryDB
from walkgraph.exceptions import DatabaseError


@pytest.fixture(params=["memory", "json"])
def database(request, tmp_path):
    """Each backend behind the same Database interface."""
    if request.param == "memory":
        return MemoryDB()
    return JsonDB(str(tmp_path / "db"))


class TestCrud:
    """Test CRUD operations common to every backend."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, database):
        record = {"id": "n:A:1", "name": "A", "context": {"x": 1}}
        await database.save("node", record)
        assert await database.get("node", "n:A:1") == record
        assert await database.get("node", "n:A:2") is None
        assert await database.get("edge", "n:A:1") is None

    @pytest.mark.asyncio
    async def test_save_replaces(self, database):
        await database.save("node", {"id": "n:A:1", "v": 1})
        await database.save("node", {"id": "n:A:1", "v": 2})
        assert (await database.get("node", "n:A:1"))["v"] == 2
        assert await database.count("node") == 1

    @pytest.mark.asyncio
    async def test_save_requires_id(self, database):
        with pytest.raises(DatabaseError):
            await database.save("node", {"name": "no id"})

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, database):
        await database.save("node", {"id": "n:A:1"})
        await database.delete("node", "n:A:1")
        await database.delete("node", "n:A:1")
        assert await database.get("node", "n:A:1") is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, database):
        await database.save("node", {"id": "n:A:1", "context": {"x": 1}})
        fetched = await database.get("node", "n:A:1")
        fetched["context"]["x"] = 99
        assert (await database.get("node", "n:A:1"))["context"]["x"] == 1

    @pytest.mark.asyncio
    async def test_clear(self, database):
        await database.save("node", {"id": "n:A:1"})
        await database.save("edge", {"id": "e:E:1"})
        await database.clear("node")
        assert await database.count("node") == 0
        assert await database.count("edge") == 1
        await database.clear()
        assert await database.count("edge") == 0


class TestFind:
    """Test MongoDB-style queries through find()."""

    @pytest.mark.asyncio
    async def test_find_with_operators(self, database):
        for i, name in enumerate(["a", "b", "c"]):
            await database.save(
                "node", {"id": f"n:T:{i}", "name": "T", "context": {"rank": i, "tag": name}}
            )

        found = await database.find("node", {"context.rank": {"$gte": 1}})
        assert sorted(r["context"]["tag"] for r in found) == ["b", "c"]

        found = await database.find(
            "node", {"$or": [{"context.tag": "a"}, {"context.rank": 2}]}
        )
        assert sorted(r["id"] for r in found) == ["n:T:0", "n:T:2"]

        assert await database.find_one("node", {"context.tag": "z"}) is None
        assert (await database.find_one("node", {"context.tag": "b"}))["id"] == "n:T:1"
        assert await database.count("node", {"name": "T"}) == 3


class TestJsonDB:
    """Test JSON specific behavior."""

    @pytest.mark.asyncio
    async def test_one_file_per_record(self, tmp_path):
        database = JsonDB(str(tmp_path))
        await database.save("node", {"id": "n:A:1", "v": 1})
        path = tmp_path / "node" / "n:A:1.json"
        assert path.exists()
        assert json.loads(path.read_text())["v"] == 1

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        await JsonDB(str(tmp_path)).save("node", {"id": "n:A:1", "v": 1})
        assert (await JsonDB(str(tmp_path)).get("node", "n:A:1"))["v"] == 1

    @pytest.mark.asyncio
    async def test_unsafe_ids(self, tmp_path):
        database = JsonDB(str(tmp_path))
        with pytest.raises(DatabaseError):
            await database.save("node", {"id": "../escape"})
        assert await database.get("node", "../escape") is None

    @pytest.mark.asyncio
    async def test_unreadable_records_are_skipped(self, tmp_path):
        database = JsonDB(str(tmp_path))
        await database.save("node", {"id": "n:A:1"})
        (tmp_path / "node" / "broken.json").write_text("{not json")
        assert [r["id"] for r in await database.find("node", {})] == ["n:A:1"]

    @pytest.mark.asyncio
    async def test_unserializable_data(self, tmp_path):
        database = JsonDB(str(tmp_path))
        with pytest.raises(DatabaseError):
            await database.save("node", {"id": "n:A:1", "value": object()})

"""Tests for per-account graph contexts."""

import pytest

from walkgraph.api import RunnerRegistry
from walkgraph.core.entities import Node
from walkgraph.db import JsonDB, MemoryDB


class Note(Node):
    text: str = ""


class TestRunnerRegistry:
    """Test context creation and isolation."""

    def test_context_is_cached(self):
        registry = RunnerRegistry(db_type="memory")
        first = registry.context_for("o:User:1")
        assert registry.context_for("o:User:1") is first
        assert "o:User:1" in registry
        assert len(registry) == 1

    def test_memory_backend(self):
        registry = RunnerRegistry(db_type="memory")
        assert isinstance(registry.context_for("a").database, MemoryDB)

    def test_json_namespace_is_sanitized(self, tmp_path):
        registry = RunnerRegistry(db_type="json", base_path=str(tmp_path))
        database = registry.context_for("o:User:../x").database
        assert isinstance(database, JsonDB)
        assert database.base_path == (tmp_path / "o_User_.._x").resolve()

    @pytest.mark.asyncio
    async def test_accounts_are_isolated(self, tmp_path):
        registry = RunnerRegistry(db_type="json", base_path=str(tmp_path))
        ann = registry.context_for("ann")
        bob = registry.context_for("bob")

        root = await ann.get_root()
        note = await ann.create_node(Note, text="private")
        await ann.connect(root, note)

        assert await bob.get_node(note.id) is None
        assert await bob.all_nodes(Note) == []
        assert [n.text for n in await ann.all_nodes(Note)] == ["private"]

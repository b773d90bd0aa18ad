"""Tests for GraphContext: reachability persistence, queries and transactions."""

import asyncio

import pytest

from walkgraph.core.context import (
    EDGE_COLLECTION,
    NODE_COLLECTION,
    GraphContext,
    activate,
    get_default_context,
    graph_context,
)
from walkgraph.core.entities import ROOT_ID, Edge, Node, Root
from walkgraph.db import JsonDB, MemoryDB
from walkgraph.exceptions import NodeNotFoundError, ValidationError


class Parcel(Node):
    """Persisted node type for context tests."""

    label: str = ""
    weight: float = 0.0


class Route(Edge):
    """Typed edge with a field."""

    distance: int = 0


async def stored_node_ids(context):
    return {record["id"] for record in await context.database.find(NODE_COLLECTION, {})}


class TestReachability:
    """Test that persistence follows reachability from root."""

    @pytest.mark.asyncio
    async def test_root_always_exists(self, memory_context):
        root = await memory_context.get_root()
        assert isinstance(root, Root)
        assert root.id == ROOT_ID
        assert await memory_context.reachable() == {ROOT_ID}

    @pytest.mark.asyncio
    async def test_unlinked_node_is_transient(self, memory_context):
        parcel = await memory_context.create_node(Parcel, label="loose")
        assert parcel.id not in await stored_node_ids(memory_context)
        assert not await memory_context.is_persistent(parcel)
        assert await memory_context.get_node(parcel.id) is parcel

    @pytest.mark.asyncio
    async def test_linking_persists_whole_subgraph(self, memory_context):
        root = await memory_context.get_root()
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        await memory_context.connect(a, b)
        assert await stored_node_ids(memory_context) == {ROOT_ID}

        await memory_context.connect(root, a)
        assert await stored_node_ids(memory_context) == {ROOT_ID, a.id, b.id}
        assert await memory_context.is_persistent(b)

    @pytest.mark.asyncio
    async def test_edges_are_followed_forward_only(self, memory_context):
        root = await memory_context.get_root()
        parcel = await memory_context.create_node(Parcel, label="points at root")
        await memory_context.connect(parcel, root)
        assert parcel.id not in await memory_context.reachable()
        stored_edges = await memory_context.database.find(EDGE_COLLECTION, {})
        assert stored_edges == []

    @pytest.mark.asyncio
    async def test_unlinking_removes_records(self, memory_context):
        root = await memory_context.get_root()
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        await memory_context.connect(root, a)
        await memory_context.connect(a, b)

        await memory_context.disconnect(root, a)
        assert await stored_node_ids(memory_context) == {ROOT_ID}
        assert await memory_context.database.find(EDGE_COLLECTION, {}) == []
        # still usable in memory
        assert await a.nodes() == [b]

    @pytest.mark.asyncio
    async def test_delete_cascades_edges(self, memory_context):
        root = await memory_context.get_root()
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        await memory_context.connect(root, a)
        await memory_context.connect(a, b)

        assert await memory_context.delete_node(a) is True
        assert await memory_context.get_node(a.id) is None
        assert root.edge_ids == []
        assert b.edge_ids == []
        assert await stored_node_ids(memory_context) == {ROOT_ID}

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_noop(self, memory_context):
        """Deleting a node id that does not exist changes nothing."""
        root = await memory_context.get_root()
        parcel = await memory_context.create_node(Parcel)
        await memory_context.connect(root, parcel)
        before = await memory_context.reachable()

        assert await memory_context.delete_node("404") is False
        assert await memory_context.reachable() == before

    @pytest.mark.asyncio
    async def test_root_cannot_be_deleted_or_created(self, memory_context):
        with pytest.raises(ValidationError):
            await memory_context.delete_node(ROOT_ID)
        with pytest.raises(ValidationError):
            await memory_context.create_node(Root)

    @pytest.mark.asyncio
    async def test_field_changes_are_written(self, memory_context):
        root = await memory_context.get_root()
        parcel = await memory_context.create_node(Parcel, label="old")
        await memory_context.connect(root, parcel)

        parcel.label = "new"
        await memory_context.commit()
        record = await memory_context.database.get(NODE_COLLECTION, parcel.id)
        assert record["context"]["label"] == "new"

    @pytest.mark.asyncio
    async def test_cycles_terminate(self, memory_context):
        root = await memory_context.get_root()
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        await memory_context.connect(root, a)
        await memory_context.connect(a, b)
        await memory_context.connect(b, a)
        await memory_context.connect(b, root)
        assert [n.label for n in await memory_context.all_nodes(Parcel)] == ["a", "b"]


class TestReload:
    """Test that a fresh context over the same storage sees the same graph."""

    @pytest.mark.asyncio
    async def test_reload_from_json(self, tmp_path):
        first = GraphContext(database=JsonDB(str(tmp_path)))
        root = await first.get_root()
        a = await first.create_node(Parcel, label="a", weight=1.5)
        b = await first.create_node(Parcel, label="b")
        loose = await first.create_node(Parcel, label="loose")
        await first.connect(root, a, edge=Route, distance=7)
        await first.connect(a, b)
        await first.connect(loose, a)
        reachable = await first.reachable()

        second = GraphContext(database=JsonDB(str(tmp_path)))
        assert await second.reachable() == reachable

        reloaded_root = await second.get_root()
        (reloaded_a,) = await reloaded_root.nodes()
        assert isinstance(reloaded_a, Parcel)
        assert reloaded_a.id == a.id
        assert reloaded_a.weight == 1.5
        assert [n.label for n in await reloaded_a.nodes()] == ["b"]
        (route,) = await reloaded_root.edges(direction="out")
        assert isinstance(route, Route)
        assert route.distance == 7
        assert await second.get_node(loose.id) is None

    @pytest.mark.asyncio
    async def test_load_replaces_memory_state(self):
        database = MemoryDB()
        context = GraphContext(database=database)
        root = await context.get_root()
        parcel = await context.create_node(Parcel, label="kept")
        await context.connect(root, parcel)
        transient = await context.create_node(Parcel, label="dropped")

        await context.load()
        assert await context.get_node(transient.id) is None
        reloaded = await context.get_node(parcel.id)
        assert reloaded is not parcel
        assert reloaded.label == "kept"

    @pytest.mark.asyncio
    async def test_unknown_record_type_is_skipped(self, caplog):
        database = MemoryDB()
        await database.save(
            NODE_COLLECTION,
            {"id": "n:Vanished:1", "name": "Vanished", "context": {}, "edges": []},
        )
        context = GraphContext(database=database)
        assert await context.reachable() == {ROOT_ID}
        assert "unknown type Vanished" in caplog.text


class TestQueries:
    """Test adjacency queries."""

    @pytest.mark.asyncio
    async def test_query_is_deterministic(self, memory_context):
        """Repeated queries return the same nodes in creation order."""
        root = await memory_context.get_root()
        parcels = []
        for label in "dcab":
            parcel = await memory_context.create_node(Parcel, label=label)
            await memory_context.connect(root, parcel)
            parcels.append(parcel)

        first = await memory_context.query(root)
        second = await memory_context.query(root)
        assert first == second == parcels

    @pytest.mark.asyncio
    async def test_query_directions(self, memory_context):
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        c = await memory_context.create_node(Parcel, label="c")
        await memory_context.connect(a, b)
        await memory_context.connect(c, a)

        assert await memory_context.query(a, direction="out") == [b]
        assert await memory_context.query(a, direction="in") == [c]
        assert await memory_context.query(a, direction="both") == [b, c]
        with pytest.raises(ValidationError):
            await memory_context.query(a, direction="sideways")

    @pytest.mark.asyncio
    async def test_query_by_edge_type(self, memory_context):
        a = await memory_context.create_node(Parcel, label="a")
        b = await memory_context.create_node(Parcel, label="b")
        c = await memory_context.create_node(Parcel, label="c")
        await memory_context.connect(a, b, edge=Route, distance=5)
        await memory_context.connect(a, c)

        assert await memory_context.query(a, edge=Route) == [b]
        assert await memory_context.query(a, edge="Route") == [b]

    @pytest.mark.asyncio
    async def test_get_node_strict(self, memory_context):
        assert await memory_context.get_node("n:Parcel:missing") is None
        with pytest.raises(NodeNotFoundError):
            await memory_context.get_node("n:Parcel:missing", strict=True)

    @pytest.mark.asyncio
    async def test_delete_edge(self, memory_context):
        a = await memory_context.create_node(Parcel)
        b = await memory_context.create_node(Parcel)
        edge = await memory_context.connect(a, b)
        assert await memory_context.get_edge(edge.id) is edge
        assert await memory_context.delete_edge(edge.id) is True
        assert await memory_context.delete_edge(edge) is False
        assert a.edge_ids == [] and b.edge_ids == []

    @pytest.mark.asyncio
    async def test_conflicting_id_rejected(self, memory_context):
        await memory_context.create_node(Parcel, id="n:Parcel:dup")
        with pytest.raises(ValidationError):
            await memory_context.add_node(Parcel(id="n:Parcel:dup"))


class TestTransactions:
    """Test transaction rollback and serialization."""

    @pytest.mark.asyncio
    async def test_failed_transaction_rolls_back(self, memory_context):
        root = await memory_context.get_root()
        kept = await memory_context.create_node(Parcel, label="kept")
        await memory_context.connect(root, kept)

        with pytest.raises(RuntimeError):
            async with memory_context.transaction():
                extra = await memory_context.create_node(Parcel, label="extra")
                await memory_context.connect(root, extra)
                kept.label = "changed"
                raise RuntimeError("abort")

        assert await root.nodes() == [kept]
        assert kept.label == "kept"
        assert await memory_context.get_node(extra.id) is None
        assert await stored_node_ids(memory_context) == {ROOT_ID, kept.id}

    @pytest.mark.asyncio
    async def test_concurrent_mutations_are_serialized(self, memory_context):
        root = await memory_context.get_root()

        async def add(label):
            async with memory_context.transaction():
                parcel = await memory_context.create_node(Parcel, label=label)
                await asyncio.sleep(0)
                await memory_context.connect(root, parcel)

        await asyncio.gather(*(add(str(i)) for i in range(5)))
        assert len(await root.nodes()) == 5
        assert len(await stored_node_ids(memory_context)) == 6


    @pytest.mark.asyncio
    async def test_subtasks_join_open_transaction(self, memory_context):
        async with memory_context.transaction():
            made = await asyncio.gather(
                *(memory_context.create_node(Parcel, label=str(i)) for i in range(3))
            )
        assert [p.label for p in made] == ["0", "1", "2"]

    @pytest.mark.asyncio
    async def test_task_outliving_transaction_waits_for_lock(self, memory_context):
        release = asyncio.Event()
        entered = []

        async def late_writer():
            await release.wait()
            async with memory_context.transaction():
                entered.append("late")

        async with memory_context.transaction():
            late = asyncio.create_task(late_writer())

        async with memory_context.transaction():
            release.set()
            for _ in range(3):
                await asyncio.sleep(0)
            assert entered == []

        await late
        assert entered == ["late"]


class TestDefaultContext:
    """Test the default and active context helpers."""

    def test_default_context_is_fixture_context(self, memory_context):
        assert get_default_context() is memory_context

    def test_activate_overrides_default(self, memory_context):
        other = GraphContext(database=MemoryDB())
        with activate(other):
            assert get_default_context() is other
        assert get_default_context() is memory_context

    @pytest.mark.asyncio
    async def test_graph_context_helper(self, memory_context):
        async with graph_context(MemoryDB()) as ctx:
            parcel = await Parcel.create(label="scoped")
            assert parcel.get_context() is ctx
            assert await ctx.get_node(parcel.id) is parcel
        assert await memory_context.get_node(parcel.id) is None

"""Shared fixtures for the walkgraph test suite."""

import pytest

from walkgraph.config import reset_settings
from walkgraph.core.context import GraphContext, set_default_context
from walkgraph.db import MemoryDB


@pytest.fixture(autouse=True)
def memory_context(monkeypatch):
    """Give every test a fresh default context backed by a MemoryDB."""
    for name in (
        "WALKGRAPH_DB_TYPE",
        "WALKGRAPH_JSONDB_PATH",
        "WALKGRAPH_WALKER_MAX_STEPS",
        "WALKGRAPH_WALKER_MAX_VISITS_PER_NODE",
        "WALKGRAPH_WALKER_MAX_EXECUTION_TIME",
        "WALKGRAPH_WALKER_MAX_QUEUE_SIZE",
        "WALKGRAPH_JWT_SECRET",
        "WALKGRAPH_JWT_EXPIRE_MINUTES",
        "WALKGRAPH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    context = GraphContext(database=MemoryDB())
    set_default_context(context)
    yield context
    set_default_context(None)
    reset_settings()

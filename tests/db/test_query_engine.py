"""Tests for QueryEngine and the shared comparison operators."""

import pytest

from walkgraph.db import QueryEngine
from walkgraph.db.query import COMPARISON_OPERATORS


DOCUMENT = {
    "id": "n:T:1",
    "context": {"rank": 3, "tags": ["a", "b"], "owner": {"name": "ann"}},
}


class TestFieldAccess:
    """Test dot-notation lookups."""

    def test_nested(self):
        assert QueryEngine.get_field_value(DOCUMENT, "context.owner.name") == "ann"

    def test_list_index(self):
        assert QueryEngine.get_field_value(DOCUMENT, "context.tags.1") == "b"
        assert QueryEngine.get_field_value(DOCUMENT, "context.tags.9") is None
        assert QueryEngine.get_field_value(DOCUMENT, "context.tags.x") is None

    def test_missing(self):
        assert QueryEngine.get_field_value(DOCUMENT, "context.nothing.here") is None
        assert QueryEngine.get_field_value(DOCUMENT, "") is None


class TestMatch:
    """Test query matching."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ({}, True),
            ({"id": "n:T:1"}, True),
            ({"context.rank": {"$gt": 2, "$lte": 3}}, True),
            ({"context.rank": {"$lt": 3}}, False),
            ({"context.rank": {"$in": [1, 2]}}, False),
            ({"context.rank": {"$nin": [1, 2]}}, True),
            ({"context.missing": {"$exists": False}}, True),
            ({"context.rank": {"$exists": False}}, False),
            ({"$and": [{"id": "n:T:1"}, {"context.rank": 3}]}, True),
            ({"$or": [{"id": "other"}, {"context.rank": 4}]}, False),
            ({"$not": {"context.rank": 3}}, False),
        ],
    )
    def test_queries(self, query, expected):
        assert QueryEngine.match(DOCUMENT, query) is expected

    def test_ordering_against_missing_is_false(self):
        assert not QueryEngine.match(DOCUMENT, {"context.missing": {"$gt": 0}})

    def test_unknown_operator_never_matches(self):
        assert QueryEngine.compare(1, "$near", 1) is False

    def test_operator_table(self):
        assert set(COMPARISON_OPERATORS) == {
            "$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin"
        }

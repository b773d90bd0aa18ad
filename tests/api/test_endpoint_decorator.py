"""Tests for publishing walkers and functions."""

import pytest

from walkgraph.api import endpoint, get_published, list_published, unpublish
from walkgraph.api.decorators import ENDPOINT_ATTR, FUNCTION_KIND, WALKER_KIND
from walkgraph.core.entities import Walker
from walkgraph.exceptions import InvalidConfigurationError, ValidationError


class TestEndpoint:
    """Test endpoint registration."""

    def test_bare_walker(self):
        @endpoint
        class PublishedScout(Walker):
            pass

        try:
            assert get_published(WALKER_KIND, "PublishedScout") is PublishedScout
            assert getattr(PublishedScout, ENDPOINT_ATTR) == {
                "kind": WALKER_KIND,
                "name": "PublishedScout",
            }
        finally:
            unpublish("PublishedScout")
        assert get_published(WALKER_KIND, "PublishedScout") is None
        assert not hasattr(PublishedScout, ENDPOINT_ATTR)

    def test_named_function(self):
        @endpoint(name="ping-graph")
        async def ping(context):
            return "pong"

        try:
            assert get_published(FUNCTION_KIND, "ping-graph") is ping
            assert "ping-graph" in list_published()[FUNCTION_KIND]
        finally:
            unpublish("ping-graph", kind=FUNCTION_KIND)

    def test_republishing_same_target_is_allowed(self):
        async def echo(value):
            return value

        async def other(value):
            return value

        try:
            endpoint(echo)
            endpoint(echo)
            with pytest.raises(InvalidConfigurationError):
                endpoint(name="echo")(other)
        finally:
            unpublish("echo")

    def test_sync_function_rejected(self):
        with pytest.raises(ValidationError):

            @endpoint
            def blocking():
                return 1

    def test_non_walker_class_rejected(self):
        with pytest.raises(ValidationError):

            @endpoint
            class NotAWalker:
                pass

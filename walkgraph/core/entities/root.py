"""Root node of a graph context."""

from typing import Any, Optional, Type

from typing_extensions import override

from .node import Node

ROOT_ID = "n:Root:root"


class Root(Node):
    """Anchor node of a graph.

    Every GraphContext owns exactly one Root with the fixed id
    ``n:Root:root``; nodes reachable from it are persistent.
    """

    def __init__(self: "Root", **kwargs: Any) -> None:
        kwargs["id"] = ROOT_ID
        super().__init__(**kwargs)

    @override
    @classmethod
    async def get(cls: Type["Root"], id: Optional[str] = None) -> "Root":  # type: ignore[override]
        """Return the root of the current context."""
        from ..context import get_default_context

        return await get_default_context().get_root()


__all__ = ["Root", "ROOT_ID"]

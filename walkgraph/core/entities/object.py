"""Base class shared by nodes, edges and walkers."""

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional, Type

from pydantic import BaseModel

from ..annotations import ProtectedAttributeMixin, private, protected
from ..utils import generate_id, register_type

if TYPE_CHECKING:
    from ..context import GraphContext


class Object(ProtectedAttributeMixin, BaseModel):
    """Identified graph object bound to a GraphContext.

    Identity is reference identity: two distinct instances are two objects
    even when every field is equal. The ``id`` string only names the object
    in storage.

    Attributes:
        id: Unique identifier (protected - cannot be modified after initialization)
        type_code: Type identifier used for ids and collections
        _graph_context: GraphContext the object belongs to (transient)
    """

    id: str = protected("", description="Unique identifier for the object")
    type_code: ClassVar[str] = "o"
    _graph_context: Optional["GraphContext"] = private(default=None)

    def __init__(self: "Object", **kwargs: Any) -> None:
        """Initialize an Object with auto-generated ID if not provided."""
        if not kwargs.get("id"):
            kwargs["id"] = generate_id(self.type_code, self.__class__.__name__)
        super().__init__(**kwargs)

    def __init_subclass__(cls: Type["Object"], **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        register_type(cls)

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    def set_context(self: "Object", context: "GraphContext") -> None:
        """Bind the object to a GraphContext."""
        self._graph_context = context

    def get_context(self: "Object") -> "GraphContext":
        """Get the GraphContext, using the default one if not set."""
        if self._graph_context is None:
            from ..context import get_default_context

            self._graph_context = get_default_context()
        return self._graph_context

    def export(
        self: "Object", exclude_transient: bool = True, **kwargs: Any
    ) -> Dict[str, Any]:
        """Export the object to a JSON-compatible record.

        Returns:
            ``{"id", "name", "context"}`` where ``context`` holds the field values
        """
        exclude = set(kwargs.pop("exclude", None) or ()) | {"id"}
        context = super().export(
            exclude_transient=exclude_transient, exclude=exclude, mode="json", **kwargs
        )
        return {
            "id": self.id,
            "name": self.__class__.__name__,
            "context": context,
        }


__all__ = ["Object"]

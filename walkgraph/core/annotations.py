"""Attribute protection and export annotations for graph entities.

1. ``protected``: field cannot be assigned after the object is constructed
2. ``transient``: field is excluded from persisted exports
3. ``private``: pydantic private attribute (underscore names)

Examples:
    class Entity(ProtectedAttributeMixin, BaseModel):
        id: str = protected("", description="Unique identifier")
        scratch: dict = transient(Field(default_factory=dict))
        _cache: dict = private(default_factory=dict)
        frozen_scratch: dict = protected(transient(Field(default_factory=dict)))
"""

from typing import Any, Dict, FrozenSet, Type

from pydantic import Field
from pydantic.fields import FieldInfo, PrivateAttr

from walkgraph.exceptions import AttributeProtectionError

PROTECTED = "protected"
TRANSIENT = "transient"

_FLAG_CACHE: Dict[tuple, FrozenSet[str]] = {}


# FieldInfo attributes carried over when an existing Field is re-annotated
_COPIED_FIELD_ATTRS = (
    "default_factory",
    "alias",
    "title",
    "description",
    "examples",
    "exclude",
    "frozen",
    "validate_default",
    "repr",
)


def _annotate(field_def: Any, flag: str, **kwargs: Any) -> Any:
    """Return a new Field carrying ``flag`` in its ``json_schema_extra``.

    An existing Field is rebuilt with its settings, never modified in place.
    """
    if not isinstance(field_def, FieldInfo):
        return Field(field_def, json_schema_extra={flag: True}, **kwargs)

    field_kwargs: Dict[str, Any] = {
        attr: getattr(field_def, attr)
        for attr in _COPIED_FIELD_ATTRS
        if getattr(field_def, attr, None) is not None
    }
    if field_def.default_factory is None:
        field_kwargs["default"] = field_def.default
    for key, value in kwargs.items():
        field_kwargs.setdefault(key, value)

    extra = field_def.json_schema_extra
    merged = dict(extra) if isinstance(extra, dict) else {}
    merged[flag] = True
    field_kwargs["json_schema_extra"] = merged
    return Field(**field_kwargs)


def protected(field_def: Any = None, **kwargs: Any) -> Any:
    """Mark a field as protected: it cannot be modified after construction.

    Args:
        field_def: Default value or an existing ``Field``
        **kwargs: Additional Field arguments (description, alias, etc.)
    """
    return _annotate(field_def, PROTECTED, **kwargs)


def transient(field_def: Any = None, **kwargs: Any) -> Any:
    """Mark a field as transient: it is never written to the database.

    Args:
        field_def: Default value or an existing ``Field``
        **kwargs: Additional Field arguments (description, etc.)
    """
    return _annotate(field_def, TRANSIENT, **kwargs)


def private(default: Any = None, **kwargs: Any) -> Any:
    """Pydantic private attribute with either a default or a ``default_factory``."""
    if "default_factory" in kwargs:
        return PrivateAttr(default_factory=kwargs["default_factory"])
    return PrivateAttr(default=default)


def _flagged(cls: Type, flag: str) -> FrozenSet[str]:
    key = (cls, flag)
    cached = _FLAG_CACHE.get(key)
    if cached is None:
        names = set()
        for name, info in getattr(cls, "model_fields", {}).items():
            extra = info.json_schema_extra
            if isinstance(extra, dict) and extra.get(flag):
                names.add(name)
        cached = _FLAG_CACHE[key] = frozenset(names)
    return cached


def get_protected_attrs(cls: Type) -> FrozenSet[str]:
    """Names of the protected fields of a model class."""
    return _flagged(cls, PROTECTED)


def get_transient_attrs(cls: Type) -> FrozenSet[str]:
    """Names of the transient fields of a model class."""
    return _flagged(cls, TRANSIENT)


def is_transient(cls: Type, name: str) -> bool:
    return name in get_transient_attrs(cls)


class ProtectedAttributeMixin:
    """Mixin enforcing ``protected`` fields and honoring ``transient`` on export.

    Pydantic populates fields without going through ``__setattr__``, so any
    assignment that reaches it happens after construction.
    """

    def __setattr__(self, name: str, value: Any) -> None:
        if name in get_protected_attrs(type(self)):
            raise AttributeProtectionError(name, type(self).__name__)
        super().__setattr__(name, value)

    def export(self, exclude_transient: bool = True, **kwargs: Any) -> Dict[str, Any]:
        """Dump the model, leaving out transient fields unless asked otherwise."""
        exclude = set(kwargs.pop("exclude", None) or ())
        if exclude_transient:
            exclude.update(get_transient_attrs(type(self)))
        result: Dict[str, Any] = self.model_dump(  # type: ignore[attr-defined]
            exclude=exclude or None, **kwargs
        )
        return result


__all__ = [
    "protected",
    "transient",
    "private",
    "get_protected_attrs",
    "get_transient_attrs",
    "is_transient",
    "ProtectedAttributeMixin",
]

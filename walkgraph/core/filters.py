"""Type-and-field predicates over sequences of typed records.

A NodeFilter is a conjunction of a type test and field clauses::

    where(Task, done=False)                       # Task with done == False
    where(Task, priority={"$gte": 2, "$lt": 5})   # range on one field
    where("Task") & where(title={"$ne": ""})      # composition by AND

Filters work on any ordered sequence, not only graph query results. The
type test runs first and records failing it are discarded before any field
is read; clauses are then evaluated left to right and stop at the first
one that fails. When a type is given, naming a field the type does not
declare is an error at construction.
"""

import dataclasses
import inspect
from collections.abc import Mapping
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from walkgraph.db.query import COMPARISON_OPERATORS, QueryEngine
from walkgraph.exceptions import TypeMismatchError, ValidationError

from .utils import resolve_type

TypeSelector = Union[type, str, Sequence[Union[type, str]]]
Selector = Union[TypeSelector, "NodeFilter"]
Clause = Tuple[str, Tuple[Tuple[str, Any], ...]]

_MISSING = object()


def resolve_types(selector: TypeSelector) -> Tuple[type, ...]:
    """Turn a class, class name or sequence of them into a tuple of classes.

    Raises:
        TypeMismatchError: A name is not a registered type, or an entry is
            neither a class nor a string
    """
    items = selector if isinstance(selector, (tuple, list)) else (selector,)
    resolved: List[type] = []
    for item in items:
        if isinstance(item, str):
            found = resolve_type(item)
            if found is None:
                raise TypeMismatchError(
                    f"Unknown type '{item}' in filter", details={"type": item}
                )
            resolved.append(found)
        elif inspect.isclass(item):
            resolved.append(item)
        else:
            raise TypeMismatchError(
                f"Filter type must be a class or class name, got {item!r}",
                details={"type": repr(item)},
            )
    if not resolved:
        raise TypeMismatchError("Filter type selector is empty")
    return tuple(resolved)


def declared_fields(cls: type) -> FrozenSet[str]:
    """Field names a record type declares."""
    model_fields = getattr(cls, "model_fields", None)
    if isinstance(model_fields, dict):
        return frozenset(model_fields)
    if dataclasses.is_dataclass(cls):
        return frozenset(f.name for f in dataclasses.fields(cls))
    names = set()
    for klass in cls.__mro__:
        names.update(getattr(klass, "__annotations__", {}))
    return frozenset(names)


def _normalize(field: str, condition: Any) -> Clause:
    if isinstance(condition, Mapping) and condition and all(
        isinstance(key, str) and key.startswith("$") for key in condition
    ):
        unknown = [op for op in condition if op not in COMPARISON_OPERATORS]
        if unknown:
            raise ValidationError(
                f"Unknown operator(s) {unknown} for field '{field}'",
                details={"field": field, "operators": unknown},
            )
        return field, tuple(condition.items())
    return field, (("$eq", condition),)


def _read(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(field, _MISSING)
    return getattr(record, field, _MISSING)


class NodeFilter:
    """Reusable predicate over typed records.

    Args:
        type_: Class, registered class name, or a tuple/list of them
        **criteria: ``field=literal`` for equality or
            ``field={"$op": literal, ...}`` with $eq $ne $lt $lte $gt $gte $in $nin

    Raises:
        TypeMismatchError: Unknown type, or a criterion names a field that
            one of the given types does not declare
        ValidationError: Unknown operator
    """

    def __init__(self, type_: Optional[TypeSelector] = None, **criteria: Any) -> None:
        type_tests: Tuple[Tuple[type, ...], ...] = ()
        if type_ is not None:
            types = resolve_types(type_)
            for field in criteria:
                for cls in types:
                    if field not in declared_fields(cls):
                        raise TypeMismatchError(
                            f"{cls.__name__} has no field '{field}'",
                            details={"type": cls.__name__, "field": field},
                        )
            type_tests = (types,)
        self._type_tests = type_tests
        self._clauses: Tuple[Clause, ...] = tuple(
            _normalize(field, condition) for field, condition in criteria.items()
        )

    @classmethod
    def _compose(
        cls, type_tests: Tuple[Tuple[type, ...], ...], clauses: Tuple[Clause, ...]
    ) -> "NodeFilter":
        flt = cls.__new__(cls)
        flt._type_tests = type_tests
        flt._clauses = clauses
        return flt

    @property
    def types(self) -> Tuple[Tuple[type, ...], ...]:
        return self._type_tests

    @property
    def clauses(self) -> Tuple[Clause, ...]:
        return self._clauses

    def matches(self, record: Any) -> bool:
        """Evaluate the predicate against one record."""
        for types in self._type_tests:
            if not isinstance(record, types):
                return False
        for field, conditions in self._clauses:
            value = _read(record, field)
            if value is _MISSING:
                return False
            for op, operand in conditions:
                if not QueryEngine.compare(value, op, operand):
                    return False
        return True

    def apply(self, records: Iterable[Any]) -> List[Any]:
        """New list of the matching records, in input order."""
        return [record for record in records if self.matches(record)]

    __call__ = apply

    def __and__(self, other: "NodeFilter") -> "NodeFilter":
        if not isinstance(other, NodeFilter):
            return NotImplemented
        return NodeFilter._compose(
            self._type_tests + other._type_tests, self._clauses + other._clauses
        )

    def __repr__(self) -> str:
        types = " & ".join(
            "|".join(cls.__name__ for cls in group) for group in self._type_tests
        )
        clauses: Dict[str, Any] = {field: dict(ops) for field, ops in self._clauses}
        return f"NodeFilter({types or '*'}, {clauses})"


def where(type_: Optional[TypeSelector] = None, **criteria: Any) -> NodeFilter:
    """Build a NodeFilter; ``where(Task, done=False)``."""
    return NodeFilter(type_, **criteria)


def filter_nodes(
    records: Iterable[Any], type_: Optional[TypeSelector] = None, **criteria: Any
) -> List[Any]:
    """Filter a sequence in one call; ``filter_nodes(nodes, Task, done=False)``."""
    return NodeFilter(type_, **criteria).apply(records)


def as_filter(selector: Optional[Selector]) -> Optional[NodeFilter]:
    """Coerce a type selector into a NodeFilter; None and filters pass through."""
    if selector is None or isinstance(selector, NodeFilter):
        return selector
    return NodeFilter(selector)


__all__ = [
    "NodeFilter",
    "where",
    "filter_nodes",
    "as_filter",
    "resolve_types",
    "declared_fields",
    "Selector",
]

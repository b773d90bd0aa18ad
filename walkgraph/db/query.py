"""MongoDB-style query evaluation.

Provides a small query engine that evaluates MongoDB-style filters against
plain dictionaries. It backs ``Database.find`` for every backend and its
operator table is shared with the node filter sub-language.
"""

from typing import Any, Callable, Dict, Optional

_MISSING = object()


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    """Wrap an ordering comparison so incomparable values simply do not match."""

    def safe(value: Any, operand: Any) -> bool:
        if value is None or value is _MISSING:
            return False
        try:
            return bool(compare(value, operand))
        except TypeError:
            return False

    return safe


def _contains(value: Any, operand: Any) -> bool:
    try:
        return value in operand
    except TypeError:
        return False


# Operators understood by both the database layer and NodeFilter
COMPARISON_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda value, operand: value == operand,
    "$ne": lambda value, operand: value != operand,
    "$gt": _ordered(lambda value, operand: value > operand),
    "$gte": _ordered(lambda value, operand: value >= operand),
    "$lt": _ordered(lambda value, operand: value < operand),
    "$lte": _ordered(lambda value, operand: value <= operand),
    "$in": _contains,
    "$nin": lambda value, operand: not _contains(value, operand),
}


class QueryEngine:
    """Unified MongoDB-style query engine for all backends."""

    @staticmethod
    def get_field_value(document: Dict[str, Any], field: str) -> Any:
        """Get a field value from a document, supporting dot notation.

        Args:
            document: Document to extract value from
            field: Field name, supports dot notation for nested fields

        Returns:
            Field value or None if not found
        """
        if not field:
            return None
        if "." not in field:
            return document.get(field)
        current: Any = document
        for key in field.split("."):
            if isinstance(current, dict) and key in current:
                current = current[key]
            elif isinstance(current, list):
                try:
                    idx = int(key)
                except ValueError:
                    return None
                if 0 <= idx < len(current):
                    current = current[idx]
                else:
                    return None
            else:
                return None
        return current

    @staticmethod
    def compare(value: Any, operator: str, operand: Any) -> bool:
        """Evaluate a single comparison operator.

        Args:
            value: Value taken from the record
            operator: Operator key such as ``$gte``
            operand: Literal from the query

        Returns:
            True if the comparison holds. Unknown operators never match.
        """
        handler = COMPARISON_OPERATORS.get(operator)
        if handler is None:
            return False
        return handler(value, operand)

    @staticmethod
    def match(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
        """Check if a document matches a query.

        Args:
            document: Document to check
            query: Query conditions

        Returns:
            True if document matches query, False otherwise
        """
        if not query:
            return True
        for key, condition in query.items():
            if key == "$and":
                if not all(QueryEngine.match(document, sub) for sub in condition or []):
                    return False
            elif key == "$or":
                if not any(QueryEngine.match(document, sub) for sub in condition or []):
                    return False
            elif key == "$not":
                if QueryEngine.match(document, condition):
                    return False
            else:
                value = QueryEngine.get_field_value(document, key)
                if not QueryEngine._match_value(value, condition):
                    return False
        return True

    @staticmethod
    def _match_value(value: Any, condition: Any) -> bool:
        if not isinstance(condition, dict):
            return value == condition  # type: ignore[no-any-return]

        for op, operand in condition.items():
            if op == "$exists":
                if bool(operand) != (value is not None):
                    return False
            elif not QueryEngine.compare(value, op, operand):
                return False
        return True


__all__ = ["QueryEngine", "COMPARISON_OPERATORS"]

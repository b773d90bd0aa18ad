"""Database abstraction layer for graph persistence."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from walkgraph.exceptions import DatabaseError


class Database(ABC):
    """Abstract base class for database adapters.

    Records are plain JSON-compatible dictionaries with an ``id`` key, grouped
    into named collections ("node", "edge", "user", ...).

    All implementations must support:
    - Async CRUD operations (save, get, delete, find)
    - Collection-based data organization
    - Query operations with dict-based filters
    """

    @abstractmethod
    async def save(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Save a record to the database, replacing any record with the same id.

        Args:
            collection: Collection name
            data: Record data

        Returns:
            Saved record
        """

    @abstractmethod
    async def get(self, collection: str, id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a record by ID.

        Args:
            collection: Collection name
            id: Record ID

        Returns:
            Record data or None if not found
        """

    @abstractmethod
    async def delete(self, collection: str, id: str) -> None:
        """Delete a record by ID. Deleting an absent record is a no-op.

        Args:
            collection: Collection name
            id: Record ID
        """

    @abstractmethod
    async def find(
        self, collection: str, query: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Find records matching a query.

        Args:
            collection: Collection name
            query: Query parameters (empty dict for all records)

        Returns:
            List of matching records
        """

    @abstractmethod
    async def clear(self, collection: Optional[str] = None) -> None:
        """Remove every record of a collection, or of all collections.

        Args:
            collection: Collection to clear; all collections when None
        """

    async def find_one(
        self, collection: str, query: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Find the first record matching a query.

        Args:
            collection: Collection name
            query: MongoDB-style query

        Returns:
            First matching record or None if not found
        """
        results = await self.find(collection, query)
        return results[0] if results else None

    async def count(
        self, collection: str, query: Optional[Dict[str, Any]] = None
    ) -> int:
        """Count records matching a query.

        Args:
            collection: Collection name
            query: MongoDB-style query (empty dict for all records)

        Returns:
            Number of matching records
        """
        results = await self.find(collection, query or {})
        return len(results)

    @staticmethod
    def _require_id(data: Dict[str, Any]) -> str:
        record_id = data.get("id")
        if not record_id:
            raise DatabaseError(
                "Record data must contain a non-empty 'id' field",
                details={"keys": sorted(data.keys())},
            )
        return str(record_id)


__all__ = ["Database"]

"""In-process database implementation.

Keeps records in dictionaries. Useful for tests and for sessions that do
not need to survive the process.
"""

import copy
from typing import Any, Dict, List, Optional

from walkgraph.db.database import Database
from walkgraph.db.query import QueryEngine


class MemoryDB(Database):
    """Dictionary-backed database. Records are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def save(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        record_id = self._require_id(data)
        self._collections.setdefault(collection, {})[record_id] = copy.deepcopy(data)
        return data

    async def get(self, collection: str, id: str) -> Optional[Dict[str, Any]]:
        record = self._collections.get(collection, {}).get(id)
        return copy.deepcopy(record) if record is not None else None

    async def delete(self, collection: str, id: str) -> None:
        self._collections.get(collection, {}).pop(id, None)

    async def find(
        self, collection: str, query: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(record)
            for record in self._collections.get(collection, {}).values()
            if QueryEngine.match(record, query)
        ]

    async def clear(self, collection: Optional[str] = None) -> None:
        if collection is None:
            self._collections.clear()
        else:
            self._collections.pop(collection, None)


__all__ = ["MemoryDB"]

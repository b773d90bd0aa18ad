"""JSON-based database implementation for graph persistence."""

import asyncio
import contextlib
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from walkgraph.db.database import Database
from walkgraph.db.query import QueryEngine
from walkgraph.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class JsonDB(Database):
    """JSON file-based database: one file per record, one directory per collection."""

    def __init__(self, base_path: str = "wgdb") -> None:
        """Initialize JSON database.

        Args:
            base_path: Base directory for JSON files

        Raises:
            DatabaseError: If the base directory cannot be created
        """
        self.base_path = Path(base_path).resolve()
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseError(
                f"Cannot create database directory {base_path}: {e}"
            ) from e
        self._lock: Optional[asyncio.Lock] = None  # Lazy initialization

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _get_collection_path(self, collection: str) -> Path:
        """Get path for collection directory, creating it when missing.

        Raises:
            ValueError: If collection name is invalid
        """
        if not collection or "/" in collection or "\\" in collection:
            raise ValueError(f"Invalid collection name: {collection}")

        path = self.base_path / collection
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseError(f"Cannot create collection directory {path}: {e}") from e
        return path

    def _get_file_path(self, collection: str, id: str) -> Path:
        """Get file path for a record.

        Raises:
            ValueError: If id contains invalid characters
        """
        if not id or "/" in id or "\\" in id or id.startswith("."):
            raise ValueError(f"Invalid document ID: {id}")

        return self._get_collection_path(collection) / f"{id}.json"

    async def save(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Save record to its JSON file.

        Raises:
            DatabaseError: If the record has no id or cannot be written
        """
        record_id = self._require_id(data)
        try:
            file_path = self._get_file_path(collection, record_id)
        except ValueError as e:
            raise DatabaseError(str(e), details={"collection": collection}) from e

        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Cannot serialize data to JSON: {e}") from e

        async with self._get_lock():
            try:
                with open(file_path, "w", encoding="utf-8") as f:
                    f.write(payload)
            except OSError as e:
                raise DatabaseError(f"Cannot write to file {file_path}: {e}") from e
        return data

    async def get(self, collection: str, id: str) -> Optional[Dict[str, Any]]:
        try:
            file_path = self._get_file_path(collection, id)
        except ValueError:
            return None  # Invalid ID returns None instead of error

        if not file_path.exists():
            return None

        async with self._get_lock():
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    result = json.load(f)
            except (OSError, json.JSONDecodeError):
                logger.warning("Skipping unreadable record %s", file_path)
                return None
        return result if isinstance(result, dict) else None

    async def delete(self, collection: str, id: str) -> None:
        try:
            file_path = self._get_file_path(collection, id)
        except ValueError:
            return  # Invalid ID is silently ignored

        if file_path.exists():
            async with self._get_lock():
                with contextlib.suppress(OSError):
                    file_path.unlink()

    async def find(
        self, collection: str, query: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        try:
            collection_path = self._get_collection_path(collection)
        except ValueError:
            return []

        results = []
        seen_ids = set()

        for file_path in sorted(collection_path.glob("*.json")):
            try:
                async with self._get_lock():
                    with open(file_path, "r", encoding="utf-8") as f:
                        doc = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning("Skipping unreadable record %s", file_path)
                continue

            if not isinstance(doc, dict) or "id" not in doc:
                continue
            if doc["id"] in seen_ids:
                continue
            seen_ids.add(doc["id"])

            if QueryEngine.match(doc, query):
                results.append(doc)

        return results

    async def clear(self, collection: Optional[str] = None) -> None:
        async with self._get_lock():
            targets = (
                [self.base_path / collection]
                if collection
                else [p for p in self.base_path.iterdir() if p.is_dir()]
            )
            for path in targets:
                shutil.rmtree(path, ignore_errors=True)


__all__ = ["JsonDB"]

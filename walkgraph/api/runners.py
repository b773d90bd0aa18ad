"""Per-account graph contexts.

Each account owns an isolated graph: its own GraphContext with its own
root and its own database namespace. The registry creates contexts on
first use and hands the same one back for every later request.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from walkgraph.config import get_settings
from walkgraph.core.context import GraphContext
from walkgraph.db import Database, get_database

logger = logging.getLogger(__name__)

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class RunnerRegistry:
    """Maps account ids to their GraphContext.

    Args:
        db_type: Backend for account graphs; ``Settings.db_type`` when None
        base_path: Root directory for JSON graphs, one subdirectory per
            account; ``Settings.jsondb_path`` when None
    """

    def __init__(self, db_type: Optional[str] = None, base_path: Optional[str] = None):
        settings = get_settings()
        self.db_type = db_type or settings.db_type
        self.base_path = Path(base_path or settings.jsondb_path)
        self._contexts: Dict[str, GraphContext] = {}

    def _make_database(self, user_id: str) -> Database:
        if self.db_type == "json":
            namespace = _UNSAFE_PATH_CHARS.sub("_", user_id)
            return get_database("json", base_path=str(self.base_path / namespace))
        return get_database(self.db_type)

    def context_for(self, user_id: str) -> GraphContext:
        """Get the account's context, creating it on first use."""
        context = self._contexts.get(user_id)
        if context is None:
            context = GraphContext(database=self._make_database(user_id))
            self._contexts[user_id] = context
            logger.debug("Created %s graph context for %s", self.db_type, user_id)
        return context

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)


__all__ = ["RunnerRegistry"]

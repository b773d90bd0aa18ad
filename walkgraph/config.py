"""Runtime settings for walkgraph.

Settings are read from ``WALKGRAPH_*`` environment variables the first time
:func:`get_settings` is called and cached afterwards.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Library-wide settings.

    Attributes:
        db_type: Default database backend ("json" or "memory")
        jsondb_path: Base directory for the JSON backend
        walker_max_steps: Maximum traversal steps before a walker faults
        walker_max_visits_per_node: Maximum visits to a single node
        walker_max_execution_time: Maximum traversal time in seconds
        walker_max_queue_size: Maximum number of pending nodes in a walker queue
        jwt_secret: Secret used to sign access tokens
        jwt_algorithm: JWT signing algorithm
        jwt_expire_minutes: Access token lifetime
        log_level: Level applied by ``configure_logging``
    """

    db_type: str = "json"
    jsondb_path: str = "wgdb"

    walker_max_steps: int = Field(default=10000, ge=0)
    walker_max_visits_per_node: int = Field(default=100, ge=0)
    walker_max_execution_time: float = Field(default=300.0, ge=0.0)
    walker_max_queue_size: int = Field(default=1000, ge=0)

    jwt_secret: str = "walkgraph-dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = Field(default=60, gt=0)

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            db_type=os.getenv("WALKGRAPH_DB_TYPE", defaults.db_type),
            jsondb_path=os.getenv("WALKGRAPH_JSONDB_PATH", defaults.jsondb_path),
            walker_max_steps=int(
                os.getenv("WALKGRAPH_WALKER_MAX_STEPS", str(defaults.walker_max_steps))
            ),
            walker_max_visits_per_node=int(
                os.getenv(
                    "WALKGRAPH_WALKER_MAX_VISITS_PER_NODE",
                    str(defaults.walker_max_visits_per_node),
                )
            ),
            walker_max_execution_time=float(
                os.getenv(
                    "WALKGRAPH_WALKER_MAX_EXECUTION_TIME",
                    str(defaults.walker_max_execution_time),
                )
            ),
            walker_max_queue_size=int(
                os.getenv(
                    "WALKGRAPH_WALKER_MAX_QUEUE_SIZE",
                    str(defaults.walker_max_queue_size),
                )
            ),
            jwt_secret=os.getenv("WALKGRAPH_JWT_SECRET", defaults.jwt_secret),
            jwt_algorithm=os.getenv("WALKGRAPH_JWT_ALGORITHM", defaults.jwt_algorithm),
            jwt_expire_minutes=int(
                os.getenv(
                    "WALKGRAPH_JWT_EXPIRE_MINUTES", str(defaults.jwt_expire_minutes)
                )
            ),
            log_level=os.getenv("WALKGRAPH_LOG_LEVEL", defaults.log_level).upper(),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the cached settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


__all__ = ["Settings", "get_settings", "reset_settings"]

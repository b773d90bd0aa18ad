"""HTTP exposure of walkers and functions, with per-account graphs."""

from .auth import AuthService
from .config import ServerConfig
from .decorators import endpoint, get_published, list_published, unpublish
from .runners import RunnerRegistry
from .server import create_app, serve

__all__ = [
    "AuthService",
    "RunnerRegistry",
    "ServerConfig",
    "create_app",
    "endpoint",
    "get_published",
    "list_published",
    "serve",
    "unpublish",
]

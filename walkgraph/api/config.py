"""Configuration model for the walkgraph HTTP server."""

from typing import Optional

from pydantic import BaseModel


class ServerConfig(BaseModel):
    """Configuration model for the walkgraph server.

    Attributes:
        title: API title
        description: API description
        version: API version
        debug: Include error details in unexpected 500 responses
        host: Server host address
        port: Server port number
        docs_url: OpenAPI documentation URL (None disables it)
        log_level: Logging level passed to uvicorn
    """

    title: str = "walkgraph API"
    description: str = "Walkers and functions published with walkgraph"
    version: str = "1.0.0"
    debug: bool = False

    host: str = "0.0.0.0"
    port: int = 8000
    docs_url: Optional[str] = "/docs"

    log_level: str = "info"


__all__ = ["ServerConfig"]

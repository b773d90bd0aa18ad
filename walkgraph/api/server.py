"""FastAPI application exposing published walkers and functions.

Every account gets its own graph. Requests other than registration and
login carry a bearer token; the token's account selects the GraphContext
the walker or function runs in.

Example:
    app = create_app(RunnerRegistry(db_type="json"), AuthService())
    serve(app, port=8000)
"""

import inspect
import logging
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError

from walkgraph.core.context import activate
from walkgraph.core.entities import Object
from walkgraph.exceptions import (
    AuthenticationError,
    NodeNotFoundError,
    TraversalFault,
    WalkGraphError,
)
from walkgraph.logging import configure_logging

from .auth import AuthService, TokenResponse, UserCreate, UserLogin, UserResponse
from .config import ServerConfig
from .decorators import FUNCTION_KIND, WALKER_KIND, get_published
from .runners import RunnerRegistry

logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    """Convert reported values to JSON, exporting graph objects as records."""
    if isinstance(value, Object):
        return value.export()
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return jsonable_encoder(value)


def _error_body(exc: WalkGraphError) -> Dict[str, Any]:
    return {"error": exc.message, "details": jsonable_encoder(exc.details)}


def create_app(
    registry: Optional[RunnerRegistry] = None,
    auth: Optional[AuthService] = None,
    config: Optional[ServerConfig] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        registry: Per-account contexts; a default RunnerRegistry when None
        auth: Authentication service; an in-memory AuthService when None
        config: Server configuration

    Returns:
        FastAPI application
    """
    if registry is None:
        registry = RunnerRegistry()
    if auth is None:
        auth = AuthService()
    config = config or ServerConfig()

    app = FastAPI(
        title=config.title,
        description=config.description,
        version=config.version,
        docs_url=config.docs_url,
        debug=config.debug,
    )
    app.state.registry = registry
    app.state.auth = auth
    app.state.config = config

    security = HTTPBearer(auto_error=False)

    async def current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),  # noqa: B008
    ) -> str:
        """Resolve the bearer token to an account id."""
        if credentials is None:
            raise HTTPException(
                status_code=401,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        try:
            return await auth.authenticate(credentials.credentials)
        except AuthenticationError as e:
            raise HTTPException(
                status_code=401,
                detail=e.message,
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

    @app.exception_handler(TraversalFault)
    async def traversal_fault_handler(
        request: Request, exc: TraversalFault
    ) -> JSONResponse:
        return JSONResponse(
            status_code=500, content={"status": "failed", **_error_body(exc)}
        )

    @app.exception_handler(NodeNotFoundError)
    async def node_not_found_handler(
        request: Request, exc: NodeNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_body(exc))

    @app.exception_handler(WalkGraphError)
    async def walkgraph_error_handler(
        request: Request, exc: WalkGraphError
    ) -> JSONResponse:
        logger.warning("Request to %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content=_error_body(exc))

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": config.title,
            "version": config.version,
            "runners": len(registry),
        }

    @app.post("/user/register", response_model=UserResponse)
    async def register(user_data: UserCreate) -> UserResponse:
        """Register a new account."""
        try:
            return await auth.register(user_data.email, user_data.password)
        except AuthenticationError as e:
            raise HTTPException(status_code=400, detail=e.message) from e

    @app.post("/user/login", response_model=TokenResponse)
    async def login(credentials: UserLogin) -> TokenResponse:
        """Exchange credentials for a bearer token."""
        try:
            return await auth.login(credentials.email, credentials.password)
        except AuthenticationError as e:
            raise HTTPException(status_code=401, detail=e.message) from e

    @app.post("/walker/{name}")
    async def run_walker(
        name: str,
        payload: Optional[Dict[str, Any]] = Body(None),  # noqa: B008
        start: Optional[str] = None,
        user_id: str = Depends(current_user),  # noqa: B008
    ) -> Dict[str, Any]:
        """Spawn a published walker in the caller's graph.

        The request body holds the walker's fields; ``start`` is the id of
        the first node to visit (the root when omitted).
        """
        walker_cls = get_published(WALKER_KIND, name)
        if walker_cls is None:
            raise HTTPException(status_code=404, detail=f"Walker '{name}' not found")

        try:
            walker = walker_cls(**(payload or {}))
        except PydanticValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        context = registry.context_for(user_id)
        walker.set_context(context)
        start_node = await context.get_node(start, strict=True) if start else None

        logger.info("User %s spawning %s", user_id, name)
        await walker.spawn(start_node)
        return {"status": walker.status.value, "reports": _encode(walker.reports)}

    @app.post("/function/{name}")
    async def call_function(
        name: str,
        payload: Optional[Dict[str, Any]] = Body(None),  # noqa: B008
        user_id: str = Depends(current_user),  # noqa: B008
    ) -> Dict[str, Any]:
        """Call a published function with the request body as keyword arguments.

        The call runs as one graph transaction: concurrent calls are
        serialized and a failing call leaves the graph unchanged.
        """
        func = get_published(FUNCTION_KIND, name)
        if func is None:
            raise HTTPException(status_code=404, detail=f"Function '{name}' not found")

        kwargs = dict(payload or {})
        context = registry.context_for(user_id)
        signature = inspect.signature(func)
        if "context" in signature.parameters:
            kwargs["context"] = context
        try:
            signature.bind(**kwargs)
        except TypeError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        with activate(context):
            async with context.transaction():
                result = await func(**kwargs)
        return {"result": _encode(result)}

    return app


def serve(
    app: FastAPI,
    host: Optional[str] = None,
    port: Optional[int] = None,
    **uvicorn_kwargs: Any,
) -> None:
    """Run the application with uvicorn.

    Args:
        app: Application built by ``create_app``
        host: Override host address
        port: Override port number
        **uvicorn_kwargs: Additional uvicorn parameters
    """
    config: ServerConfig = getattr(app.state, "config", None) or ServerConfig()
    run_host = host or config.host
    run_port = port or config.port
    configure_logging(config.log_level)
    logger.info("Server starting at http://%s:%s", run_host, run_port)
    uvicorn.run(
        app,
        host=run_host,
        port=run_port,
        log_level=config.log_level,
        **uvicorn_kwargs,
    )


__all__ = ["create_app", "serve"]

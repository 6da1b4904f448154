"""Sandbox API implementing the remote collection contract in memory."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from resource_sync.api.v1.api import api_router
from resource_sync.core.config import Settings, get_settings
from resource_sync.services.sandbox_repository import SandboxRepository

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Require the configured bearer token on every API route."""

    def __init__(self, app, token: str) -> None:
        super().__init__(app)
        self.token = token

    async def dispatch(self, request: Request, call_next):
        """Check the Authorization header for protected routes.

        Args:
            request: The FastAPI request object.
            call_next: The next middleware or endpoint handler.

        Returns:
            Response: The response from the next middleware or endpoint.
        """
        if request.url.path == "/ping" or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header != f"Bearer {self.token}":
            return Response(
                content='{"success":false,"error":"Not authenticated"}',
                status_code=401,
                media_type="application/json",
            )

        return await call_next(request)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[SandboxRepository] = None,
) -> FastAPI:
    """Build a sandbox app backed by ``repository`` (a fresh one by default)."""
    settings = settings or get_settings()

    app = FastAPI(title=settings.project_name, redirect_slashes=False)
    if settings.api_token:
        logger.info("Sandbox API requires bearer authentication")
        app.add_middleware(AuthMiddleware, token=settings.api_token)

    app.include_router(api_router)
    app.state.repository = repository or SandboxRepository()

    @app.get("/ping")
    async def pong() -> Dict[str, Any]:
        """Ping the API to check if it's running."""
        return {
            "ping": "pong!",
            "environment": settings.environment,
            "testing": settings.testing,
        }

    return app


def build_default_app() -> FastAPI:
    """Entry point for ``uvicorn --factory resource_sync.main:build_default_app``."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    return create_app(settings)

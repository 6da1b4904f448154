"""Dependencies for the sandbox API using FastAPI app state for singletons."""

import logging

from fastapi import Request

from resource_sync.services.sandbox_repository import SandboxRepository

logger = logging.getLogger(__name__)


def get_repository(request: Request) -> SandboxRepository:
    """Get the sandbox repository from application state."""
    if not hasattr(request.app.state, "repository"):
        raise ValueError("Sandbox repository not initialized in application state")

    return request.app.state.repository

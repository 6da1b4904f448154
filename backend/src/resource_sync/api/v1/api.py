"""API for the resource sandbox."""

from fastapi import APIRouter

from resource_sync.api.v1.endpoints.resources import build_resource_router
from resource_sync.models.resource import RESOURCES

api_router = APIRouter()
for resource in RESOURCES.values():
    api_router.include_router(build_resource_router(resource))

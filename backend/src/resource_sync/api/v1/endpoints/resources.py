"""Generic collection endpoints served by the sandbox API."""

import logging
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from resource_sync.core.dependencies import get_repository
from resource_sync.core.exceptions import (
    ConflictError,
    NotFoundError,
    ResourceError,
    ValidationError,
)
from resource_sync.models.resource import ResourceDefinition
from resource_sync.services.sandbox_repository import SandboxRepository

logger = logging.getLogger(__name__)

_ERROR_STATUSES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


def _error_response(error: ResourceError) -> JSONResponse:
    status_code = _ERROR_STATUSES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    content: Dict[str, Any] = {"success": False, "error": str(error)}
    if isinstance(error, ValidationError) and error.field_errors:
        content["errors"] = error.field_errors
    return JSONResponse(status_code=status_code, content=content)


def _positive_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", {name: ["must be an integer"]}) from None
    if value < 1:
        raise ValidationError(f"{name} must be >= 1", {name: ["must be >= 1"]})
    return value


def build_resource_router(resource: ResourceDefinition) -> APIRouter:
    """Create the list/get/create/update/delete routes for one resource."""
    router = APIRouter(tags=[resource.name])

    async def list_records(
        request: Request,
        repository: SandboxRepository = Depends(get_repository),
    ) -> JSONResponse:
        """List one page of records, honouring search, filters and sort."""
        params = request.query_params
        try:
            page = _positive_int(params.get("page"), 1, "page")
            limit = _positive_int(params.get("limit"), 10, "limit")
        except ValidationError as e:
            return _error_response(e)

        filters = {}
        for key in resource.filter_keys:
            value = params.get(resource.query_param_for(key))
            if value:
                filters[key] = value
        sort = params.get(resource.sort_param)
        order = params.get(resource.order_param, "asc")

        records, total = repository.collection(resource.name).list(
            page, limit, filters=filters, sort=sort, order=order
        )
        logger.info(f"Listed {len(records)} of {total} {resource.name} (page {page})")
        return JSONResponse(
            content={
                "success": True,
                "data": records,
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "totalPages": math.ceil(total / limit),
                },
            }
        )

    async def get_record(
        record_id: int,
        repository: SandboxRepository = Depends(get_repository),
    ) -> JSONResponse:
        try:
            record = repository.collection(resource.name).get(record_id)
        except ResourceError as e:
            return _error_response(e)
        return JSONResponse(content={"success": True, "data": record})

    async def create_record(
        fields: Dict[str, Any] = Body(...),
        repository: SandboxRepository = Depends(get_repository),
    ) -> JSONResponse:
        try:
            record = repository.collection(resource.name).create(fields)
        except ResourceError as e:
            logger.warning(f"Rejected {resource.name} create: {e}")
            return _error_response(e)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"success": True, "data": record},
        )

    async def update_record(
        record_id: int,
        fields: Dict[str, Any] = Body(...),
        repository: SandboxRepository = Depends(get_repository),
    ) -> JSONResponse:
        try:
            record = repository.collection(resource.name).update(record_id, fields)
        except ResourceError as e:
            logger.warning(f"Rejected {resource.name} {record_id} update: {e}")
            return _error_response(e)
        return JSONResponse(content={"success": True, "data": record})

    async def delete_record(
        record_id: int,
        repository: SandboxRepository = Depends(get_repository),
    ) -> JSONResponse:
        try:
            repository.collection(resource.name).delete(record_id)
        except ResourceError as e:
            return _error_response(e)
        return JSONResponse(
            content={"success": True, "message": f"{resource.name} {record_id} deleted"}
        )

    router.add_api_route(resource.list_path, list_records, methods=["GET"], name=f"list_{resource.name}")
    router.add_api_route(f"{resource.list_path}/{{record_id}}", get_record, methods=["GET"], name=f"get_{resource.name}")
    router.add_api_route(resource.admin_path, create_record, methods=["POST"], name=f"create_{resource.name}")
    router.add_api_route(f"{resource.admin_path}/{{record_id}}", update_record, methods=["PUT"], name=f"update_{resource.name}")
    router.add_api_route(f"{resource.admin_path}/{{record_id}}", delete_record, methods=["DELETE"], name=f"delete_{resource.name}")
    return router

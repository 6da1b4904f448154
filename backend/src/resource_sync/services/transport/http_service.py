"""httpx transport for the remote collection endpoints."""

import json
import logging
import time
from typing import Any, Dict, FrozenSet, Mapping, Optional

import httpx

from resource_sync.core.exceptions import (
    ConflictError,
    NetworkError,
    NotFoundError,
    ParseError,
    ServerError,
    ValidationError,
)
from resource_sync.models.page import PageResult, Record
from resource_sync.models.query_state import QueryState
from resource_sync.models.resource import ResourceDefinition
from resource_sync.schemas.resource_api import (
    decode_delete,
    decode_page,
    decode_record,
    error_message,
    field_errors,
)
from resource_sync.services.transport.base import ResourceTransport

logger = logging.getLogger(__name__)

# Status codes mapped to a dedicated error; anything else non-2xx is a ServerError.
_VALIDATION_STATUSES = frozenset({400, 422})
_NOT_FOUND_STATUSES = frozenset({404})
_CONFLICT_STATUSES = frozenset({409})
_MUTATION_STATUSES = _VALIDATION_STATUSES | _NOT_FOUND_STATUSES | _CONFLICT_STATUSES


class HttpResourceTransport(ResourceTransport):
    """Transport speaking the JSON envelope contract over httpx.

    The client is shared for connection pooling. Timeouts come from the
    client configuration and are reported as ``NetworkError``.
    """

    def __init__(
        self,
        resource: ResourceDefinition,
        client: httpx.AsyncClient,
        *,
        owns_client: bool = True,
    ) -> None:
        super().__init__(resource)
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_url(
        cls,
        resource: ResourceDefinition,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpResourceTransport":
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        return cls(resource, client)

    async def list(self, state: QueryState) -> PageResult:
        params = self.build_params(state)
        body = await self._request(
            "GET", self.resource.list_path, params=params, mapped=frozenset()
        )
        return decode_page(body, state.page, state.page_size)

    async def get(self, record_id: int) -> Record:
        body = await self._request(
            "GET", self.resource.item_path(record_id), mapped=_NOT_FOUND_STATUSES
        )
        return decode_record(body)

    async def create(self, fields: Mapping[str, Any]) -> Record:
        payload = {k: v for k, v in fields.items() if k != "id"}
        body = await self._request(
            "POST", self.resource.admin_path, json_body=payload, mapped=_MUTATION_STATUSES
        )
        return decode_record(body)

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> Record:
        payload = {**fields, "id": record_id}
        body = await self._request(
            "PUT",
            self.resource.admin_item_path(record_id),
            json_body=payload,
            mapped=_MUTATION_STATUSES,
        )
        return decode_record(body)

    async def delete(self, record_id: int) -> None:
        body = await self._request(
            "DELETE", self.resource.admin_item_path(record_id), mapped=_NOT_FOUND_STATUSES
        )
        message = decode_delete(body)
        logger.info(f"Deleted {self.resource.name} {record_id}: {message or 'ok'}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        mapped: FrozenSet[int],
    ) -> Any:
        start_time = time.time()
        try:
            response = await self._client.request(method, path, params=params, json=json_body)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise NetworkError(f"Request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        elapsed_time = time.time() - start_time
        logger.info(f"{method} {path} -> {response.status_code} in {elapsed_time:.2f} seconds")

        body = self._parse_body(response)
        if response.is_success:
            if body is None:
                raise ParseError(f"{method} {path} returned a non-JSON body")
            return body

        raise self._error_for(response.status_code, body, mapped)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    @staticmethod
    def _error_for(status_code: int, body: Any, mapped: FrozenSet[int]) -> Exception:
        message = error_message(body, status_code)
        if status_code in mapped:
            if status_code in _VALIDATION_STATUSES:
                return ValidationError(message, field_errors(body))
            if status_code in _NOT_FOUND_STATUSES:
                return NotFoundError(message)
            if status_code in _CONFLICT_STATUSES:
                return ConflictError(message)
        return ServerError(message, status_code=status_code)

"""Abstract base class for resource transports."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping

from resource_sync.models.page import PageResult, Record
from resource_sync.models.query_state import QueryState
from resource_sync.models.resource import ResourceDefinition


class ResourceTransport(ABC):
    """Abstract base class for talking to a remote collection endpoint."""

    def __init__(self, resource: ResourceDefinition) -> None:
        self.resource = resource

    def build_params(self, state: QueryState) -> Dict[str, str]:
        """Translate a query snapshot into query-string parameters."""
        params: Dict[str, str] = {
            "page": str(state.page),
            "limit": str(state.page_size),
        }
        if state.sort_field:
            params[self.resource.sort_param] = state.sort_field
            params[self.resource.order_param] = state.sort_direction
        for key, value in state.filters.items():
            params[self.resource.query_param_for(key)] = _render(value)
        return params

    @abstractmethod
    async def list(self, state: QueryState) -> PageResult:
        """Fetch one page of records."""
        pass

    @abstractmethod
    async def get(self, record_id: int) -> Record:
        """Fetch a single record."""
        pass

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> Record:
        """Create a record and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, record_id: int, fields: Mapping[str, Any]) -> Record:
        """Update a record and return its new representation."""
        pass

    @abstractmethod
    async def delete(self, record_id: int) -> None:
        """Delete a record."""
        pass

    async def aclose(self) -> None:
        """Release transport resources."""
        return None


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

"""Resource table controller: the single contract a table UI binds to."""

import logging
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional

from resource_sync.core.config import Settings, get_settings
from resource_sync.core.exceptions import BulkDeleteError, BusyError, ResourceError
from resource_sync.models.page import PageResult, Record
from resource_sync.models.query_state import QueryState, SortDirection
from resource_sync.models.resource import ResourceDefinition, get_resource
from resource_sync.models.table_state import (
    ErrorInfo,
    EventType,
    OperationResult,
    TableEvent,
    TableState,
    TableView,
)
from resource_sync.services.fetch_coordinator import FetchCoordinator
from resource_sync.services.mutation_coordinator import MutationCoordinator
from resource_sync.services.record_store import RecordStore
from resource_sync.services.table_state_service import transition
from resource_sync.services.transport.base import ResourceTransport
from resource_sync.services.transport.factory import TransportFactory

logger = logging.getLogger(__name__)

Listener = Callable[[TableView], None]


class ResourceTableController:
    """Facade over the record store, query state and the two coordinators.

    Owns exactly one ``QueryState`` and one ``RecordStore``. Every
    operation returns an ``OperationResult``; failures from the remote side
    are reported there and in the machine state, never raised.
    """

    def __init__(
        self,
        resource: ResourceDefinition,
        transport: ResourceTransport,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.resource = resource
        self._transport = transport
        self._store = RecordStore(page_size=self.settings.default_page_size)
        self._fetcher = FetchCoordinator(transport, self._store)
        self._mutations = MutationCoordinator(
            transport, self._store, policy=self.settings.mutation_policy
        )
        self._query = QueryState(page_size=self.settings.default_page_size)
        self._state = TableState()
        self._listeners: List[Listener] = []

    @classmethod
    def for_resource(
        cls, name: str, settings: Optional[Settings] = None, app: Optional[Any] = None
    ) -> "ResourceTableController":
        """Build a controller for a catalogued console resource."""
        settings = settings or get_settings()
        resource = get_resource(name)
        if resource is None:
            raise ValueError(f"Unknown resource: {name}")
        transport = TransportFactory.create_transport(settings, resource, app=app)
        if transport is None:
            raise ValueError(f"Unsupported transport: {settings.transport}")
        return cls(resource, transport, settings)

    # View

    @property
    def query(self) -> QueryState:
        return self._query

    @property
    def state(self) -> TableState:
        return self._state

    @property
    def page(self) -> PageResult:
        return self._store.page

    @property
    def view(self) -> TableView:
        return TableView(resource=self.resource.name, state=self._state, query=self._query)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every new view; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, event_type: EventType, **payload: Any) -> None:
        self._state = transition(self._state, TableEvent(type=event_type, **payload))
        view = self.view
        for listener in list(self._listeners):
            listener(view)

    # Query changes

    async def load(self) -> OperationResult[PageResult]:
        """Fetch the current query; used at start-up."""
        return await self._fetch("load")

    async def refresh(self) -> OperationResult[PageResult]:
        return await self._fetch("refresh")

    async def change_page(self, page: int) -> OperationResult[PageResult]:
        self._query = self._query.with_page(page)
        return await self._fetch("change_page")

    async def change_page_size(self, page_size: int) -> OperationResult[PageResult]:
        if page_size > self.settings.max_page_size:
            raise ValueError(
                f"Page size {page_size} exceeds maximum of {self.settings.max_page_size}"
            )
        self._query = self._query.with_page_size(page_size)
        return await self._fetch("change_page_size")

    async def change_filter(self, key: str, value: Any) -> OperationResult[PageResult]:
        self._query = self._query.with_filter(key, value)
        return await self._fetch("change_filter")

    async def change_filters(self, filters: Mapping[str, Any]) -> OperationResult[PageResult]:
        self._query = self._query.with_filters(filters)
        return await self._fetch("change_filter")

    async def change_sort(
        self, field: Optional[str], direction: SortDirection = "asc"
    ) -> OperationResult[PageResult]:
        """Sort by ``field``; ``None`` clears sorting."""
        if field is None:
            self._query = self._query.without_sort()
        else:
            self._query = self._query.with_sort(field, direction)
        return await self._fetch("change_sort")

    async def _fetch(self, operation: str) -> OperationResult[PageResult]:
        state = self._query
        self._dispatch(EventType.LOAD_STARTED)
        try:
            result = await self._fetcher.fetch_page(state)
        except ResourceError as e:
            logger.error(f"Failed to {operation} {self.resource.name}: {e}")
            self._dispatch(EventType.LOAD_FAILED, error=ErrorInfo.from_exception(e, operation))
            return OperationResult.failure(operation, e, input=state)

        if result is None:
            # superseded; the newer request settles the machine
            return OperationResult(ok=True, operation=operation, superseded=True, input=state)

        self._dispatch(EventType.LOAD_SUCCEEDED, result=result)
        return OperationResult.success(operation, result, input=state)

    # Reads

    async def get_record(self, record_id: int) -> OperationResult[Record]:
        """Fetch one record for display without touching the table."""
        try:
            record = await self._transport.get(record_id)
        except ResourceError as e:
            logger.error(f"Failed to get {self.resource.name} {record_id}: {e}")
            return OperationResult.failure("get", e, input=record_id)
        return OperationResult.success("get", record, input=record_id)

    # Mutations

    async def create(self, fields: Mapping[str, Any]) -> OperationResult[Record]:
        fields = dict(fields)
        return await self._mutate(
            "create", fields, lambda: self._mutations.create(fields, lambda: self._query)
        )

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> OperationResult[Record]:
        fields = dict(fields)
        return await self._mutate(
            "update",
            {"id": record_id, "fields": fields},
            lambda: self._mutations.update(record_id, fields),
        )

    async def delete(self, record_id: int) -> OperationResult[None]:
        outcome = await self._mutate(
            "delete", {"id": record_id}, lambda: self._mutations.delete(record_id)
        )
        if outcome.ok and outcome.value:
            await self._step_back_if_empty()
        return OperationResult.success("delete", None, input=outcome.input) if outcome.ok else outcome

    async def delete_many(self, record_ids: Iterable[int]) -> OperationResult[List[int]]:
        record_ids = list(record_ids)
        outcome = await self._mutate(
            "delete_many", {"ids": record_ids}, lambda: self._mutations.delete_many(record_ids)
        )
        deleted = outcome.value if outcome.ok else getattr(outcome.error, "deleted", [])
        if deleted:
            await self._step_back_if_empty()
        return outcome

    async def _step_back_if_empty(self) -> None:
        # An emptied trailing page is never shown.
        if len(self._store) == 0 and self._query.page > 1:
            logger.info(
                f"Page {self._query.page} of {self.resource.name} emptied, moving to page {self._query.page - 1}"
            )
            self._query = self._query.with_page(self._query.page - 1)
            await self._fetch("change_page")

    async def _mutate(
        self, operation: str, input: Any, call: Callable[[], Awaitable[Any]]
    ) -> OperationResult:
        if self._mutations.busy and self._mutations.policy == "reject":
            error = BusyError(f"Cannot {operation}: another mutation is in progress")
            logger.warning(f"{self.resource.name}: {error}")
            return OperationResult.failure(operation, error, input=input)

        self._dispatch(EventType.MUTATION_STARTED, operation=operation)
        try:
            value = await call()
        except ResourceError as e:
            logger.error(f"Failed to {operation} {self.resource.name}: {e}")
            # bulk deletes may have reconciled some records before failing
            result = self._store.page if isinstance(e, BulkDeleteError) else None
            self._dispatch(
                EventType.MUTATION_FAILED,
                error=ErrorInfo.from_exception(e, operation, input),
                result=result,
            )
            return OperationResult.failure(operation, e, input=input)

        self._dispatch(EventType.MUTATION_SUCCEEDED, result=self._store.page)
        return OperationResult.success(operation, value, input=input)

    async def aclose(self) -> None:
        await self._transport.aclose()

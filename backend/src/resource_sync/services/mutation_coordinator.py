"""Mutation coordinator: create, update and delete with local reconciliation."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Iterable, List, Literal, Mapping

from resource_sync.core.exceptions import BulkDeleteError, BusyError, ResourceError
from resource_sync.models.page import Record
from resource_sync.models.query_state import QueryState
from resource_sync.services.record_store import RecordStore
from resource_sync.services.transport.base import ResourceTransport

logger = logging.getLogger(__name__)

MutationPolicy = Literal["reject", "queue"]


class MutationCoordinator:
    """Runs one mutation at a time and patches the store on success.

    With the ``reject`` policy a mutation attempted while another is in
    flight fails immediately with ``BusyError``; with ``queue`` it waits
    for its turn. On failure the store is never touched.
    """

    def __init__(
        self,
        transport: ResourceTransport,
        store: RecordStore,
        policy: MutationPolicy = "reject",
    ) -> None:
        self._transport = transport
        self._store = store
        self.policy = policy
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def _slot(self, operation: str) -> AsyncIterator[None]:
        if self.policy == "reject" and self._lock.locked():
            raise BusyError(f"Cannot {operation}: another mutation is in progress")
        async with self._lock:
            yield

    async def create(
        self, fields: Mapping[str, Any], current_query: Callable[[], QueryState]
    ) -> Record:
        """Create a record.

        The total always grows by one. The record only joins the visible
        page on an unsorted first page with room left; anywhere else its
        position is unknown until the next fetch. ``current_query`` is read
        after the remote create returns.
        """
        async with self._slot("create"):
            record = await self._transport.create(fields)

            query = current_query()
            visible = (
                query.page == 1
                and self._store.page.page == 1
                and not query.is_sorted
                and len(self._store) < self._store.page.page_size
            )
            if visible and self._store.insert(record):
                logger.info(f"Created {self._transport.resource.name} {record['id']} on current page")
            else:
                self._store.adjust_total(1)
                logger.info(f"Created {self._transport.resource.name} {record['id']} off current page")
            return record

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> Record:
        """Update a record, replacing it in place when it is on the page."""
        async with self._slot("update"):
            record = await self._transport.update(record_id, fields)
            if not self._store.replace_record(record):
                logger.debug(f"Updated record {record_id} is not on the current page")
            return record

    async def delete(self, record_id: int) -> bool:
        """Delete a record.

        Returns True when the record was removed from the visible page.
        """
        async with self._slot("delete"):
            await self._transport.delete(record_id)
            return self._reconcile_delete(record_id)

    async def delete_many(self, record_ids: Iterable[int]) -> List[int]:
        """Delete several records one after another in a single slot.

        Stops at the first failure and raises ``BulkDeleteError`` carrying
        the ids deleted so far.
        """
        deleted: List[int] = []
        async with self._slot("delete"):
            for record_id in record_ids:
                try:
                    await self._transport.delete(record_id)
                except ResourceError as e:
                    logger.error(f"Bulk delete stopped at {record_id} after {len(deleted)} deletions: {e}")
                    raise BulkDeleteError(e, deleted) from e
                self._reconcile_delete(record_id)
                deleted.append(record_id)
        return deleted

    def _reconcile_delete(self, record_id: int) -> bool:
        removed = self._store.remove(record_id)
        if not removed:
            self._store.adjust_total(-1)
        return removed

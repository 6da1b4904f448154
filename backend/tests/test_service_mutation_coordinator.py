"""Tests for the mutation coordinator."""

import asyncio

import pytest
from conftest import make_page, settle

from resource_sync.core.exceptions import (
    BulkDeleteError,
    BusyError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from resource_sync.models.query_state import QueryState
from resource_sync.services.mutation_coordinator import MutationCoordinator
from resource_sync.services.record_store import RecordStore


@pytest.fixture
def store():
    store = RecordStore()
    store.replace(make_page([1, 2, 3], total=3))
    return store


@pytest.fixture
def coordinator(transport, store):
    return MutationCoordinator(transport, store)


@pytest.mark.asyncio
async def test_create_on_unsorted_first_page_inserts(transport, store, coordinator):
    """Test that a new record joins an unsorted first page."""
    transport.create_mock.return_value = {"id": 4, "name": "New"}

    record = await coordinator.create({"name": "New"}, QueryState)

    assert record["id"] == 4
    assert store.page.ids == [1, 2, 3, 4]
    assert store.total == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query",
    [QueryState().with_page(2), QueryState().with_sort("name", "desc")],
)
async def test_create_elsewhere_only_counts(transport, store, coordinator, query):
    """Test that records with an unknown position only bump the total."""
    transport.create_mock.return_value = {"id": 4, "name": "New"}

    await coordinator.create({"name": "New"}, lambda: query)

    assert store.page.ids == [1, 2, 3]
    assert store.total == 4


@pytest.mark.asyncio
async def test_create_on_full_first_page_only_counts(transport):
    """Test that a full page is not overfilled."""
    store = RecordStore()
    store.replace(make_page(range(1, 11), total=25))
    coordinator = MutationCoordinator(transport, store)
    transport.create_mock.return_value = {"id": 26}

    await coordinator.create({"name": "New"}, QueryState)

    assert len(store) == 10
    assert store.total == 26


@pytest.mark.asyncio
async def test_update_replaces_in_place(transport, store, coordinator):
    """Test in-place replacement."""
    transport.update_mock.return_value = {"id": 2, "name": "Renamed"}

    await coordinator.update(2, {"name": "Renamed"})

    assert store.page.ids == [1, 2, 3]
    assert store.get(2)["name"] == "Renamed"


@pytest.mark.asyncio
async def test_update_absent_record_leaves_store(transport, store, coordinator):
    """Test that updating an off-page record succeeds without touching the store."""
    before = store.page
    transport.update_mock.return_value = {"id": 7, "name": "X"}

    record = await coordinator.update(7, {"name": "X"})

    assert record == {"id": 7, "name": "X"}
    assert store.page is before


@pytest.mark.asyncio
async def test_delete_removes_and_decrements(transport, store, coordinator):
    """Test delete reconciliation."""
    assert await coordinator.delete(2) is True

    assert store.page.ids == [1, 3]
    assert store.total == 2
    transport.delete_mock.assert_awaited_once_with(2)


@pytest.mark.asyncio
async def test_failures_leave_store_untouched(transport, store, coordinator):
    """Test that no failure patches the store."""
    before = store.page
    transport.create_mock.side_effect = ValidationError("bad", {"name": ["required"]})
    transport.update_mock.side_effect = NotFoundError("gone")
    transport.delete_mock.side_effect = NetworkError("down")

    with pytest.raises(ValidationError):
        await coordinator.create({}, QueryState)
    with pytest.raises(NotFoundError):
        await coordinator.update(1, {"name": "x"})
    with pytest.raises(NetworkError):
        await coordinator.delete(1)

    assert store.page is before
    assert not coordinator.busy


@pytest.mark.asyncio
async def test_second_mutation_rejected_while_busy(transport, coordinator):
    """Test the reject policy."""
    release = asyncio.Event()

    async def slow_delete(record_id):
        await release.wait()

    transport.delete_mock.side_effect = slow_delete
    first = asyncio.ensure_future(coordinator.delete(3))
    await settle()

    assert coordinator.busy
    with pytest.raises(BusyError):
        await coordinator.delete(3)

    release.set()
    assert await first is True
    assert not coordinator.busy


@pytest.mark.asyncio
async def test_queue_policy_waits_for_turn(transport, store):
    """Test the queue policy runs mutations one after another."""
    coordinator = MutationCoordinator(transport, store, policy="queue")
    release = asyncio.Event()
    order = []

    async def slow_delete(record_id):
        order.append(f"start {record_id}")
        if record_id == 1:
            await release.wait()
        order.append(f"end {record_id}")

    transport.delete_mock.side_effect = slow_delete
    first = asyncio.ensure_future(coordinator.delete(1))
    await settle()
    second = asyncio.ensure_future(coordinator.delete(2))
    await settle()

    assert order == ["start 1"]
    release.set()
    await asyncio.gather(first, second)

    assert order == ["start 1", "end 1", "start 2", "end 2"]
    assert store.page.ids == [3]


@pytest.mark.asyncio
async def test_delete_many_stops_at_first_failure(transport, store, coordinator):
    """Test bulk delete bookkeeping."""

    async def delete(record_id):
        if record_id == 3:
            raise NotFoundError("Client 3 not found")

    transport.delete_mock.side_effect = delete

    with pytest.raises(BulkDeleteError) as exc_info:
        await coordinator.delete_many([1, 2, 3])

    assert exc_info.value.deleted == [1, 2]
    assert exc_info.value.kind == "not_found"
    assert store.page.ids == [3]
    assert store.total == 1


@pytest.mark.asyncio
async def test_create_reads_query_after_remote_call(transport, store, coordinator):
    """Test that a page change during a create keeps the record off the page."""
    query = QueryState()
    release = asyncio.Event()

    async def slow_create(fields):
        await release.wait()
        return {"id": 4, "name": "New"}

    transport.create_mock.side_effect = slow_create
    task = asyncio.ensure_future(coordinator.create({"name": "New"}, lambda: query))
    await settle()

    query = query.with_page(2)
    store.replace(make_page([11, 12], total=12, page=2))
    release.set()
    await task

    assert store.page.ids == [11, 12]
    assert store.total == 13

"""Shared fixtures for the resource sync tests."""

import asyncio
from typing import Callable, Iterable, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from resource_sync.core.config import Settings
from resource_sync.models.page import PageResult
from resource_sync.models.query_state import QueryState
from resource_sync.models.resource import CLIENTS
from resource_sync.services.transport.base import ResourceTransport


def make_page(
    ids: Iterable[int], total: Optional[int] = None, page: int = 1, page_size: int = 10
) -> PageResult:
    """Build a page of client records with the given ids."""
    records = [{"id": i, "name": f"Client {i}", "industry": "Tech"} for i in ids]
    return PageResult(
        records=records,
        total=len(records) if total is None else total,
        page=page,
        page_size=page_size,
    )


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run up to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ScriptedTransport(ResourceTransport):
    """Transport whose list responses are released by the test.

    Each ``list`` call is recorded in ``requests`` together with a future
    the test resolves. When ``responder`` is set, list calls answer
    immediately instead. Mutations delegate to ``AsyncMock`` attributes.
    """

    def __init__(self, responder: Optional[Callable[[QueryState], PageResult]] = None) -> None:
        super().__init__(CLIENTS)
        self.responder = responder
        self.requests: List[Tuple[QueryState, "asyncio.Future[PageResult]"]] = []
        self.list_calls = 0
        self.get_mock = AsyncMock()
        self.create_mock = AsyncMock()
        self.update_mock = AsyncMock()
        self.delete_mock = AsyncMock(return_value=None)
        self.closed = False

    async def list(self, state: QueryState) -> PageResult:
        self.list_calls += 1
        if self.responder is not None:
            return self.responder(state)
        future = asyncio.get_running_loop().create_future()
        self.requests.append((state, future))
        return await future

    def respond(self, index: int, page: PageResult) -> None:
        self.requests[index][1].set_result(page)

    def fail(self, index: int, error: Exception) -> None:
        self.requests[index][1].set_exception(error)

    async def get(self, record_id):
        return await self.get_mock(record_id)

    async def create(self, fields):
        return await self.create_mock(fields)

    async def update(self, record_id, fields):
        return await self.update_mock(record_id, fields)

    async def delete(self, record_id):
        return await self.delete_mock(record_id)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    """Create a settings object for testing."""
    return Settings(
        testing=True,
        api_base_url="https://admin.example.com",
        api_token="test-token",
        default_page_size=10,
        mutation_policy="reject",
    )


@pytest.fixture
def transport():
    """Create a scripted transport for testing."""
    return ScriptedTransport()

"""Fetch coordinator: ordered page requests against a resource transport."""

import asyncio
import logging
import time
from typing import Optional, Tuple

from resource_sync.core.exceptions import ResourceError
from resource_sync.models.page import PageResult
from resource_sync.models.query_state import QueryState
from resource_sync.services.record_store import RecordStore
from resource_sync.services.transport.base import ResourceTransport

logger = logging.getLogger(__name__)


class FetchCoordinator:
    """Issues page fetches and reconciles them into a ``RecordStore``.

    Every request gets a monotonically increasing token. A response is
    applied only if its token is still the highest one issued, so a slow
    request can never overwrite the result of a newer one, whatever order
    they complete in. Superseded requests are not cancelled, only ignored.
    """

    def __init__(self, transport: ResourceTransport, store: RecordStore) -> None:
        self._transport = transport
        self._store = store
        self._latest_token = 0
        self._in_flight: Optional[Tuple[int, QueryState, "asyncio.Future[PageResult]"]] = None

    @property
    def latest_token(self) -> int:
        """Highest token issued so far."""
        return self._latest_token

    @property
    def loading(self) -> bool:
        return self._in_flight is not None

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    async def fetch_page(self, state: QueryState) -> Optional[PageResult]:
        """Fetch the page described by ``state`` and apply it to the store.

        Returns the applied ``PageResult``, or ``None`` when the request was
        superseded by a newer one before it completed. Raises
        ``NetworkError``, ``ServerError`` or ``ParseError`` on failure of
        the current request; the store is left untouched in that case.
        """
        if self._in_flight is not None:
            token, in_flight_state, future = self._in_flight
            if in_flight_state == state and not future.done():
                logger.debug(f"Joining in-flight fetch {token} for identical query")
                return await self._settle(token, future)

        self._latest_token += 1
        token = self._latest_token
        future = asyncio.ensure_future(self._transport.list(state))
        self._in_flight = (token, state, future)
        logger.info(
            f"Fetch {token} issued for {self._transport.resource.name}: "
            f"page {state.page}, size {state.page_size}, sort {state.sort_field}, "
            f"filters {dict(state.filters)}"
        )
        return await self._settle(token, future)

    async def _settle(self, token: int, future: "asyncio.Future[PageResult]") -> Optional[PageResult]:
        start_time = time.time()
        try:
            # Shielded so a cancelled caller does not abort a request another caller joined.
            result = await asyncio.shield(future)
        except ResourceError as e:
            self._clear(token)
            if not self.is_current(token):
                logger.info(f"Discarding failure of stale fetch {token}: {e}")
                return None
            logger.error(f"Fetch {token} failed: {e}")
            raise
        finally:
            elapsed_time = time.time() - start_time
            logger.debug(f"Fetch {token} settled in {elapsed_time:.2f} seconds")

        self._clear(token)
        if not self.is_current(token):
            logger.info(
                f"Discarding stale fetch {token} (latest issued is {self._latest_token})"
            )
            return None

        if self._store.page is not result:
            self._store.replace(result)
        return result

    def _clear(self, token: int) -> None:
        if self._in_flight is not None and self._in_flight[0] == token:
            self._in_flight = None

"""In-memory store for the current page of one resource."""

import logging
from typing import Dict, List, Optional

from resource_sync.models.page import PageResult, Record

logger = logging.getLogger(__name__)


class RecordStore:
    """Holds the visible page of records, keyed by ``id``.

    The page is kept as a single immutable ``PageResult`` that is swapped in
    one assignment, so readers never observe a half-applied change.
    """

    def __init__(self, page_size: int = 10) -> None:
        self._page = PageResult(page_size=page_size)

    @property
    def page(self) -> PageResult:
        return self._page

    @property
    def records(self) -> List[Record]:
        return list(self._page.records)

    @property
    def total(self) -> int:
        return self._page.total

    def __len__(self) -> int:
        return len(self._page.records)

    def __contains__(self, record_id: int) -> bool:
        return self.get(record_id) is not None

    def get(self, record_id: int) -> Optional[Record]:
        for record in self._page.records:
            if record["id"] == record_id:
                return record
        return None

    def replace(self, page: PageResult) -> None:
        """Replace the whole page with a fetched result."""
        self._page = page
        logger.debug(
            f"Store replaced: page {page.page}, {len(page.records)} records, total {page.total}"
        )

    def insert(self, record: Record) -> bool:
        """Append a new record to the page and count it in the total.

        Returns False, leaving the page unchanged, if the id is already
        present.
        """
        if record["id"] in self:
            logger.warning(f"Record {record['id']} already in store, not inserted")
            return False
        self._swap(records=[*self._page.records, record], total=self._page.total + 1)
        return True

    def replace_record(self, record: Record) -> bool:
        """Replace the record with the same id in place.

        Returns False when the id is not on the current page.
        """
        records = list(self._page.records)
        for index, existing in enumerate(records):
            if existing["id"] == record["id"]:
                records[index] = record
                self._swap(records=records)
                return True
        return False

    def remove(self, record_id: int) -> bool:
        """Remove a record from the page and the total.

        Returns False when the id is not on the current page; the total is
        still decremented by the caller in that case through
        ``adjust_total``.
        """
        records = [r for r in self._page.records if r["id"] != record_id]
        if len(records) == len(self._page.records):
            return False
        self._swap(records=records, total=max(self._page.total - 1, 0))
        return True

    def adjust_total(self, delta: int) -> None:
        """Shift the total count without touching the visible records."""
        self._swap(total=max(self._page.total + delta, len(self._page.records)))

    def _swap(self, **changes) -> None:
        data: Dict = {
            "records": self._page.records,
            "total": self._page.total,
            "page": self._page.page,
            "page_size": self._page.page_size,
        }
        data.update(changes)
        self._page = PageResult(**data)

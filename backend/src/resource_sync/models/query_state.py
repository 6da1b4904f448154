"""Immutable query snapshot for one resource table."""

from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

SortDirection = Literal["asc", "desc"]


class QueryState(BaseModel):
    """Pagination, sort and filter state of a resource table.

    Every ``with_*`` method returns a new snapshot and leaves the receiver
    untouched, so a fetch can be tagged with the exact snapshot that
    produced it. Equality is structural.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    sort_field: Optional[str] = None
    sort_direction: SortDirection = "asc"
    filters: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("filters", mode="after")
    @classmethod
    def freeze_filters(cls, filters: Mapping[str, Any]) -> Mapping[str, Any]:
        # read-only view over a private copy
        return MappingProxyType(dict(filters))

    @field_serializer("filters")
    def dump_filters(self, filters: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(filters)

    def _replace(self, **changes: Any) -> "QueryState":
        # Rebuild through the constructor so field constraints are re-checked.
        data = self.model_dump()
        data.update(changes)
        return type(self)(**data)

    def with_page(self, page: int) -> "QueryState":
        """Return a snapshot pointing at ``page``."""
        return self._replace(page=page)

    def with_page_size(self, page_size: int) -> "QueryState":
        """Return a snapshot with a new page size, back on page 1."""
        return self._replace(page_size=page_size, page=1)

    def with_sort(self, field: str, direction: SortDirection = "asc") -> "QueryState":
        """Return a snapshot sorted by ``field``, back on page 1."""
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unknown sort direction: {direction}")
        return self._replace(sort_field=field, sort_direction=direction, page=1)

    def without_sort(self) -> "QueryState":
        """Return a snapshot with sorting cleared, back on page 1."""
        return self._replace(sort_field=None, sort_direction="asc", page=1)

    def with_filter(self, key: str, value: Any) -> "QueryState":
        """Return a snapshot with one filter set, back on page 1.

        ``None`` and the empty string remove the filter.
        """
        filters = dict(self.filters)
        if value is None or value == "":
            filters.pop(key, None)
        else:
            filters[key] = value
        return self._replace(filters=filters, page=1)

    def with_filters(self, filters: Mapping[str, Any]) -> "QueryState":
        """Return a snapshot whose filter set is replaced wholesale."""
        cleaned = {k: v for k, v in filters.items() if v is not None and v != ""}
        return self._replace(filters=cleaned, page=1)

    @property
    def is_sorted(self) -> bool:
        return self.sort_field is not None

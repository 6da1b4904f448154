"""In-memory repository behind the sandbox API."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from resource_sync.core.exceptions import ConflictError, NotFoundError, ValidationError
from resource_sync.models.page import Record
from resource_sync.models.resource import RESOURCES, ResourceDefinition

logger = logging.getLogger(__name__)


def _sort_key(field: str):
    def key(record: Record) -> Tuple[bool, bool, Any]:
        value = record.get(field)
        if value is None:
            return (True, False, 0)
        if isinstance(value, (int, float)):
            return (False, False, value)
        return (False, True, str(value).lower())

    return key


def _as_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ResourceCollection:
    """Records of one resource, with server-assigned integer ids."""

    def __init__(self, resource: ResourceDefinition) -> None:
        self.resource = resource
        self._records: Dict[int, Record] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._records)

    def list(
        self,
        page: int,
        limit: int,
        filters: Optional[Mapping[str, str]] = None,
        sort: Optional[str] = None,
        order: str = "asc",
    ) -> Tuple[List[Record], int]:
        """Return one page of matching records and the match count."""
        records = list(self._records.values())
        for key, value in (filters or {}).items():
            if key == "search":
                needle = value.lower()
                records = [
                    r for r in records
                    if any(isinstance(v, str) and needle in v.lower() for v in r.values())
                ]
            else:
                records = [r for r in records if _as_query_value(r.get(key)) == value]

        if sort:
            records.sort(key=_sort_key(sort), reverse=order == "desc")

        total = len(records)
        start = (page - 1) * limit
        return records[start:start + limit], total

    def get(self, record_id: int) -> Record:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"{self.resource.name} {record_id} not found")
        return record

    def create(self, fields: Mapping[str, Any]) -> Record:
        if "id" in fields:
            raise ValidationError("id is assigned by the server", {"id": ["must not be provided"]})
        self._validate(fields, partial=False)
        self._check_unique(fields)

        now = datetime.now(timezone.utc).isoformat()
        record = {**fields, "id": self._next_id, "createdAt": now, "updatedAt": now}
        self._records[self._next_id] = record
        self._next_id += 1
        logger.info(f"Sandbox created {self.resource.name} {record['id']}")
        return record

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Record:
        existing = self.get(record_id)
        changes = {k: v for k, v in fields.items() if k not in ("id", "createdAt")}
        self._validate(changes, partial=True)
        self._check_unique(changes, exclude_id=record_id)

        record = {**existing, **changes, "updatedAt": datetime.now(timezone.utc).isoformat()}
        self._records[record_id] = record
        logger.info(f"Sandbox updated {self.resource.name} {record_id}")
        return record

    def delete(self, record_id: int) -> None:
        self.get(record_id)
        del self._records[record_id]
        logger.info(f"Sandbox deleted {self.resource.name} {record_id}")

    def seed(self, records: Iterable[Mapping[str, Any]]) -> List[Record]:
        return [self.create(dict(record)) for record in records]

    def _validate(self, fields: Mapping[str, Any], partial: bool) -> None:
        errors: Dict[str, List[str]] = {}
        for name in self.resource.required_fields:
            if partial and name not in fields:
                continue
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[name] = [f"{name} is required"]
        if errors:
            raise ValidationError("Validation failed", errors)

    def _check_unique(self, fields: Mapping[str, Any], exclude_id: Optional[int] = None) -> None:
        for name in self.resource.unique_fields:
            if name not in fields:
                continue
            for record_id, record in self._records.items():
                if record_id != exclude_id and record.get(name) == fields[name]:
                    raise ConflictError(
                        f"{self.resource.name} with {name} '{fields[name]}' already exists"
                    )


class SandboxRepository:
    """One ``ResourceCollection`` per catalogued resource."""

    def __init__(self, resources: Optional[Iterable[ResourceDefinition]] = None) -> None:
        resources = list(resources) if resources is not None else list(RESOURCES.values())
        self._collections = {r.name: ResourceCollection(r) for r in resources}

    def collection(self, name: str) -> ResourceCollection:
        return self._collections[name]

    def seed(self, name: str, records: Iterable[Mapping[str, Any]]) -> List[Record]:
        """Insert records through the normal create path."""
        return self.collection(name).seed(records)

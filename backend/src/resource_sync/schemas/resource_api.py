"""Wire envelopes for the remote collection endpoints and their decoding.

Every response body passes through one of the ``decode_*`` functions below,
which produce either a fully validated value or a ``ParseError``.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from resource_sync.core.exceptions import ParseError, ServerError
from resource_sync.models.page import PageResult, Record

logger = logging.getLogger(__name__)


def _check_record(record: Dict[str, Any]) -> Dict[str, Any]:
    record_id = record.get("id")
    # bool is an int subclass but never a valid identifier
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise ValueError(f"record id must be an integer, got {record_id!r}")
    return record


class PaginationSchema(BaseModel):
    """Pagination block of a collection response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: Optional[int] = Field(default=None, alias="totalPages", ge=0)


class CollectionEnvelope(BaseModel):
    """Schema for ``GET /{resource}`` responses."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    data: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Optional[PaginationSchema] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @field_validator("data")
    @classmethod
    def validate_records(cls, v: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        seen: Set[int] = set()
        for record in v:
            _check_record(record)
            if record["id"] in seen:
                raise ValueError(f"duplicate record id {record['id']}")
            seen.add(record["id"])
        return v


class RecordEnvelope(BaseModel):
    """Schema for single-record responses (get, create, update)."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @field_validator("data")
    @classmethod
    def validate_record(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if v is not None:
            _check_record(v)
        return v


class DeleteEnvelope(BaseModel):
    """Schema for ``DELETE /{resource}/{id}`` responses."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


def error_message(body: Any, status_code: Optional[int] = None) -> str:
    """Pick the server-supplied message out of an error body."""
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    if status_code is not None:
        return f"HTTP {status_code}"
    return "Request failed"


def field_errors(body: Any) -> Dict[str, List[str]]:
    """Extract per-field validation messages.

    Accepts ``{"errors": {"field": "msg" | ["msg", ...]}}`` and
    ``{"errors": [{"field": ..., "message": ...}]}``.
    """
    if not isinstance(body, dict):
        return {}
    errors = body.get("errors")
    result: Dict[str, List[str]] = {}
    if isinstance(errors, dict):
        for field, messages in errors.items():
            if isinstance(messages, list):
                result[str(field)] = [str(m) for m in messages]
            else:
                result[str(field)] = [str(messages)]
    elif isinstance(errors, list):
        for item in errors:
            if isinstance(item, dict) and "field" in item:
                message = item.get("message") or item.get("msg") or ""
                result.setdefault(str(item["field"]), []).append(str(message))
    return result


def _validate(model: type, body: Any, what: str) -> Any:
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        logger.warning(f"Malformed {what} response: {e.error_count()} error(s)")
        raise ParseError(f"Malformed {what} response: {e.errors()[0]['msg']}") from e


def decode_page(body: Any, requested_page: int, requested_page_size: int) -> PageResult:
    """Decode a collection body into a ``PageResult``.

    Without a pagination block the whole collection is assumed to be on
    the requested page.
    """
    envelope: CollectionEnvelope = _validate(CollectionEnvelope, body, "collection")
    if not envelope.success:
        raise ServerError(error_message(body))

    if envelope.pagination is None:
        return PageResult(
            records=envelope.data,
            total=len(envelope.data),
            page=requested_page,
            page_size=requested_page_size,
        )

    pagination = envelope.pagination
    if len(envelope.data) > pagination.total:
        raise ParseError(
            f"Page holds {len(envelope.data)} records but total is {pagination.total}"
        )
    return PageResult(
        records=envelope.data,
        total=pagination.total,
        page=pagination.page,
        page_size=pagination.limit,
    )


def decode_record(body: Any) -> Record:
    """Decode a single-record body."""
    envelope: RecordEnvelope = _validate(RecordEnvelope, body, "record")
    if not envelope.success:
        raise ServerError(error_message(body))
    if envelope.data is None:
        raise ParseError("Record response is missing data")
    return envelope.data


def decode_delete(body: Any) -> str:
    """Decode a delete body, returning the server message."""
    envelope: DeleteEnvelope = _validate(DeleteEnvelope, body, "delete")
    if not envelope.success:
        raise ServerError(error_message(body))
    return envelope.message or ""

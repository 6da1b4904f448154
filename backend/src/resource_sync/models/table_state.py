"""State machine models for a resource table controller."""

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from resource_sync.core.exceptions import ResourceError, ValidationError
from resource_sync.models.page import PageResult, Record
from resource_sync.models.query_state import QueryState

T = TypeVar("T")


class TableStatus(str, Enum):
    """Controller machine states."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    MUTATING = "mutating"


class ErrorInfo(BaseModel):
    """Display-ready description of the last failure."""

    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    operation: str
    field_errors: Dict[str, List[str]] = Field(default_factory=dict)
    input: Optional[Any] = None  # failing mutation input, kept for resubmission

    @classmethod
    def from_exception(
        cls, error: ResourceError, operation: str, input: Optional[Any] = None
    ) -> "ErrorInfo":
        field_errors = error.field_errors if isinstance(error, ValidationError) else {}
        return cls(
            kind=error.kind,
            message=str(error),
            operation=operation,
            field_errors=field_errors,
            input=input,
        )


class TableState(BaseModel):
    """Snapshot of the controller machine.

    ``result`` is the page on display: the current one in ``READY``, the
    previous one while ``LOADING``, ``MUTATING`` or in ``ERROR``.
    """

    model_config = ConfigDict(frozen=True)

    status: TableStatus = TableStatus.IDLE
    result: Optional[PageResult] = None
    error: Optional[ErrorInfo] = None
    operation: Optional[str] = None  # mutation in progress
    load_error: Optional[ErrorInfo] = None  # load failure seen while mutating


class EventType(str, Enum):
    LOAD_STARTED = "load_started"
    LOAD_SUCCEEDED = "load_succeeded"
    LOAD_FAILED = "load_failed"
    MUTATION_STARTED = "mutation_started"
    MUTATION_SUCCEEDED = "mutation_succeeded"
    MUTATION_FAILED = "mutation_failed"


class TableEvent(BaseModel):
    """Input to the pure table transition function."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    result: Optional[PageResult] = None
    error: Optional[ErrorInfo] = None
    operation: Optional[str] = None


class TableView(BaseModel):
    """Everything a UI needs to render one resource table."""

    model_config = ConfigDict(frozen=True)

    resource: str
    state: TableState
    query: QueryState

    @property
    def status(self) -> TableStatus:
        return self.state.status

    @property
    def records(self) -> List[Record]:
        return list(self.state.result.records) if self.state.result else []

    @property
    def total(self) -> int:
        return self.state.result.total if self.state.result else 0

    @property
    def total_pages(self) -> int:
        return self.state.result.total_pages if self.state.result else 0


class OperationResult(BaseModel, Generic[T]):
    """Tagged result returned by every controller operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    operation: str
    value: Optional[T] = None
    error: Optional[ResourceError] = None
    input: Optional[Any] = None
    superseded: bool = False  # a newer fetch was issued before this one settled

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    @classmethod
    def success(cls, operation: str, value: Optional[T] = None, input: Optional[Any] = None):
        return cls(ok=True, operation=operation, value=value, input=input)

    @classmethod
    def failure(cls, operation: str, error: ResourceError, input: Optional[Any] = None):
        return cls(ok=False, operation=operation, error=error, input=input)

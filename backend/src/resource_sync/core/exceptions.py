"""Error taxonomy shared by the transport, coordinators and controller."""

from typing import Dict, List, Optional, Sequence


class ResourceError(Exception):
    """Base class for every failure surfaced by the synchronization layer."""

    kind = "resource"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or self.kind


class NetworkError(ResourceError):
    """Transport failure or timeout; no response was received."""

    kind = "network"


class ServerError(ResourceError):
    """Non-success response from the remote endpoint."""

    kind = "server"

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(ResourceError):
    """Response body was malformed or did not match the expected envelope."""

    kind = "parse"


class ValidationError(ResourceError):
    """Input rejected by the remote endpoint.

    ``field_errors`` keeps the per-field messages so a form can show them
    next to the offending inputs.
    """

    kind = "validation"

    def __init__(
        self, message: str = "", field_errors: Optional[Dict[str, List[str]]] = None
    ) -> None:
        super().__init__(message)
        self.field_errors = field_errors or {}


class ConflictError(ResourceError):
    """Uniqueness or constraint violation."""

    kind = "conflict"


class NotFoundError(ResourceError):
    """The identifier no longer exists on the remote side."""

    kind = "not_found"


class BusyError(ResourceError):
    """A mutation was attempted while another one is still in flight."""

    kind = "busy"


class BulkDeleteError(ResourceError):
    """A bulk delete stopped part way through.

    ``cause`` is the failure of the record that could not be deleted and
    ``deleted`` lists the ids removed before it.
    """

    def __init__(self, cause: ResourceError, deleted: Sequence[int]) -> None:
        super().__init__(cause.message)
        self.cause = cause
        self.deleted = list(deleted)
        self.kind = cause.kind

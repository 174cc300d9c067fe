"""Error taxonomy of the data-access core.

Every failure leaves the core as a CoreError subclass carrying a stable
``kind`` and a message. The enclosing business operation decides what the
caller sees; ``status_hint`` is only a suggestion for HTTP hosts.
"""

from typing import Any, Dict, Optional


class CoreError(Exception):
    """Base class for all data-access core failures.

    Attributes:
        kind: Stable machine-readable failure kind
        status_hint: Suggested HTTP status for hosts that render responses
    """

    kind = "core_error"
    status_hint = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation (kind + message) for the caller."""
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = {k: str(v) for k, v in self.details.items()}
        return payload

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"


class ConfigurationError(CoreError):
    """An entity type or field is missing from a table, or a sort field is not allowed.

    Indicates a deployment or code defect. Never retried.
    """

    kind = "configuration"
    status_hint = 500


class AccessDeniedError(CoreError):
    """The principal has no visibility into the requested tenant."""

    kind = "access_denied"
    status_hint = 403


class ValidationError(CoreError):
    """Malformed request parameters (pagination, sort direction)."""

    kind = "validation"
    status_hint = 422

    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        if field is not None:
            details["field"] = field
        super().__init__(message, **details)
        self.field = field


class ConcurrencyConflictError(CoreError):
    """Reference allocation kept colliding with concurrent writers.

    Transient: the caller is expected to roll back and retry the whole
    business operation.
    """

    kind = "concurrency_conflict"
    status_hint = 409


class DataAccessError(CoreError):
    """The underlying store failed. The original exception is kept as __cause__."""

    kind = "data_access"
    status_hint = 503


class DataIntegrityError(CoreError):
    """Stored data violates a format the core relies on (e.g. a non-numeric reference)."""

    kind = "data_integrity"
    status_hint = 500

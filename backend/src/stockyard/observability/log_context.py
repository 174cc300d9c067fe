"""Per-request log context.

Request id and resolved tenant of the work in progress, kept in a ContextVar
so every log line of a request (thread or task) carries them without being
passed around.
"""

import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

NO_REQUEST_ID = "no-request-id"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("stockyard_log_context", default={})


def current_context() -> Dict[str, Any]:
    """Copy of the fields bound to the current context."""
    return dict(_log_context.get())


def bind(**fields: Any) -> None:
    """Bind fields for the rest of the current context; None unbinds."""
    context = dict(_log_context.get())
    for key, value in fields.items():
        if value is None:
            context.pop(key, None)
        else:
            context[key] = value
    _log_context.set(context)


def bind_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id, generating a UUID4 when none is given.

    Returns:
        str: The bound request id
    """
    request_id = request_id or str(uuid.uuid4())
    bind(request_id=request_id)
    return request_id


def bind_scope(scope) -> None:
    """Bind the tenant of a resolved Scope, replacing any previous one."""
    bind(**{"company_id": None, "branch_id": None, **scope.log_extra()})


def get_request_id() -> str:
    return _log_context.get().get("request_id", NO_REQUEST_ID)


def clear() -> None:
    _log_context.set({})

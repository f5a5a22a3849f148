"""Request-scoped context for log enrichment.

Values live in contextvars so that concurrent requests served by the same
event loop never see each other's identifiers.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
principal_id_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
principal_role_var: ContextVar[str | None] = ContextVar("principal_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_principal_id() -> str | None:
    """Get the ID of the principal making the current request."""
    return principal_id_var.get()


def set_principal(principal_id: str | UUID | None, role: str | None = None) -> None:
    """Bind the authenticated principal to the current context.

    Args:
        principal_id: Principal identifier (string or UUID), or None to clear.
        role: Principal role name.
    """
    principal_id_var.set(str(principal_id) if principal_id is not None else None)
    principal_role_var.set(role)


def set_trace_id(trace_id: str | None) -> None:
    """Set the distributed trace ID."""
    trace_id_var.set(trace_id)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for tracking related operations."""
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context values as a dictionary."""
    context: dict[str, Any] = {}

    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id

    principal_id = principal_id_var.get()
    if principal_id:
        context["principal_id"] = principal_id

    role = principal_role_var.get()
    if role:
        context["principal_role"] = role

    trace_id = trace_id_var.get()
    if trace_id:
        context["trace_id"] = trace_id

    correlation_id = correlation_id_var.get()
    if correlation_id:
        context["correlation_id"] = correlation_id

    return context


def clear_context() -> None:
    """Clear all context variables at the end of a request."""
    request_id_var.set("")
    principal_id_var.set(None)
    principal_role_var.set(None)
    trace_id_var.set(None)
    correlation_id_var.set(None)

"""Request context management using contextvars.

Every request gets a request ID, and once the caller is authenticated their
ID and role, so that log lines emitted deep inside a service carry them
without being passed around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
caller_id_var: ContextVar[str | None] = ContextVar("caller_id", default=None)
caller_role_var: ContextVar[str | None] = ContextVar("caller_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Incoming request ID. A new one is generated when missing.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_caller_id() -> str | None:
    """Get the authenticated caller ID."""
    return caller_id_var.get()


def set_caller(caller_id: str | UUID | None, role: str | None = None) -> None:
    """Bind the authenticated caller to the current context."""
    caller_id_var.set(str(caller_id) if caller_id is not None else None)
    caller_role_var.set(role)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID taken from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    caller_id = get_caller_id()
    if caller_id:
        context["caller_id"] = caller_id

    caller_role = caller_role_var.get()
    if caller_role:
        context["caller_role"] = caller_role

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    caller_id_var.set(None)
    caller_role_var.set(None)
    trace_id_var.set(None)

"""
Logging context management using contextvars.

Per-request query context (query id, format, source, usage context) is
attached to every log entry emitted while a query is validated, built or
dispatched, without passing it through every function.

contextvars keeps concurrent requests apart: each request sees only its own
context, which matches the rule that no per-request state is shared.
"""

import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


def new_query_id() -> str:
    """Generate a short query identifier (12 hex chars)."""
    return uuid.uuid4().hex[:12]


@dataclass
class LogContext:
    """
    Query context attached to all log entries.

    Identity:
        query_id: Per-request query identifier

    Dispatch:
        format: Result format name
        source: Query source name ("" is reported as "default")
        context: Usage context (inline, special_page, deferred, ...)
        mode: Query mode (instances, count, debug, none)

    Tracing (for nested timing blocks):
        span_id: Current span identifier
        parent_span_id: Parent span for nested operations
        step: Current processing step name
    """

    query_id: str | None = None

    format: str | None = None
    source: str | None = None
    context: str | None = None
    mode: str | None = None

    span_id: str | None = None
    parent_span_id: str | None = None
    step: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None and k in current})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("queryspine_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(
    query_id: str | None = None,
    format: str | None = None,
    source: str | None = None,
    context: str | None = None,
    mode: str | None = None,
    step: str | None = None,
) -> LogContext:
    """
    Set the current log context.

    This replaces the current context. Use bind_context() to add to existing.
    """
    ctx = LogContext(
        query_id=query_id,
        format=format,
        source=source,
        context=context,
        mode=mode,
        step=step,
    )
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs) -> LogContext:
    """Merge values into the current context."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(step="dispatch")
        try:
            do_work()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    token = _log_context.set(updated)
    return _ContextToken(token)


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds query context to every log entry.

    Existing keys in the event are never overridden.
    """
    for key, value in get_context().to_dict().items():
        if key not in event_dict:
            event_dict[key] = value
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)

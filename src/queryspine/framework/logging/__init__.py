"""
Structured, query-aware logging.

Usage:
    from queryspine.framework.logging import get_logger, configure_logging, log_step, set_context

    configure_logging()
    log = get_logger(__name__)

    set_context(query_id="3f2a9c1b0d4e", format="table", context="inline")

    with log_step("query.execute"):
        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
"""

from queryspine.framework.logging.config import configure_logging, is_configured
from queryspine.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    new_query_id,
    push_context,
    set_context,
)
from queryspine.framework.logging.timing import TimingResult, log_step, timed_block

__all__ = [
    "configure_logging",
    "is_configured",
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "push_context",
    "new_query_id",
    "LogContext",
    "TimingResult",
    "log_step",
    "timed_block",
]

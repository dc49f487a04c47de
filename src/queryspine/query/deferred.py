"""
Two-phase (deferred) query execution.

Phase one runs inside the page request and returns something cheap: either
a placeholder that needs nothing from the source, or a skeleton rendered
from a zero-row source call. Phase two is a separate, later request (e.g.
issued by client-side code) that dispatches the same query again with its
real limit. Nothing is kept in memory between the two phases; everything
phase two needs travels in the query options.

Usage:
    bridge = DeferredExecutionBridge()

    # phase one
    kind = bridge.gate(query, printer, QueryContext.DEFERRED_QUERY)
    if kind is DeferralKind.PLACEHOLDER:
        return bridge.build_placeholder(query)

    # phase two
    bridge.restore_limit(query)
    dispatcher.execute(query, params, OutputMode.HTML, QueryContext.SPECIAL_PAGE)
"""

from __future__ import annotations

import html
import json
from collections.abc import Sequence

from queryspine.framework.logging import get_logger
from queryspine.framework.printers import DeferralKind, ResultPrinter
from queryspine.query.models import (
    DEFERRED_CONTROL,
    DEFERRED_LIMIT,
    DEFERRED_PARAMETERS,
    DEFERRED_SHOW_MODE,
    Query,
    QueryContext,
    QueryMode,
)

log = get_logger(__name__)


class DeferredExecutionBridge:
    """Deferral policy and the state handed from phase one to phase two."""

    def gate(self, query: Query, printer: ResultPrinter, context: QueryContext) -> DeferralKind:
        """Decide whether and how to defer ``query``."""
        if context is not QueryContext.DEFERRED_QUERY or query.limit <= 0:
            return DeferralKind.NONE
        return printer.is_deferrable()

    def apply_zero_limit_stub(self, query: Query) -> None:
        """Run as INSTANCES with no rows; keep the real limit for phase two."""
        query.mode = QueryMode.INSTANCES
        query.options.set(DEFERRED_LIMIT, query.limit)
        query.limit = 0

    def record_request(
        self,
        query: Query,
        raw_tokens: Sequence[str],
        show_mode: bool,
        control: str = "",
    ) -> None:
        """Store what a follow-up request needs to rebuild the same query."""
        query.options.set(DEFERRED_PARAMETERS, "|".join(raw_tokens))
        query.options.set(DEFERRED_SHOW_MODE, show_mode)
        query.options.set(DEFERRED_CONTROL, control)

    def restore_limit(self, query: Query) -> bool:
        """
        Prepare a stubbed query for phase two.

        Returns False when the query was never stubbed.
        """
        limit = query.options.get(DEFERRED_LIMIT)
        if limit is None:
            return False
        query.mode = QueryMode.INSTANCES
        query.limit = limit
        return True

    def build_placeholder(self, query: Query) -> str:
        """Markup a client-side loader picks up to issue the phase-two request."""
        payload = {
            "query": query.query_string,
            "limit": query.limit,
            "offset": query.offset,
            "mode": query.mode.name.lower(),
            "parameters": query.options.get(DEFERRED_PARAMETERS, ""),
            "show_mode": query.options.get(DEFERRED_SHOW_MODE, False),
        }
        control = query.options.get(DEFERRED_CONTROL, "")
        log.debug("query.placeholder_built", limit=query.limit, control=control)
        return (
            '<div class="queryspine-deferred-query"'
            f' data-query="{html.escape(json.dumps(payload, sort_keys=True), quote=True)}"'
            f' data-control="{html.escape(control, quote=True)}">'
            '<div class="queryspine-deferred-placeholder"></div>'
            "</div>"
        )

"""
Query dispatcher.

Runs a built query against its source and renders the answer:

    INSTANCES / NONE  -> printer.get_result(...)
    COUNT / DEBUG     -> intro + value + outro + encoded errors

Deferred queries are gated through the ``DeferredExecutionBridge`` first.
Exceptions raised by a source are logged and re-raised; the caller turns
them into user-visible failure text.
"""

from __future__ import annotations

from numbers import Number
from typing import Any

from queryspine.core.settings import QuerySettings, get_settings
from queryspine.framework.formats import FormatRegistry, format_registry
from queryspine.framework.logging import get_logger, log_step, push_context, timed_block
from queryspine.framework.messages import MessageEncoder, encode_messages
from queryspine.framework.params import ParamSet
from queryspine.framework.printers import DeferralKind
from queryspine.framework.sources import QueryResult, QuerySource, SourceRegistry, source_registry
from queryspine.query.deferred import DeferredExecutionBridge
from queryspine.query.models import (
    CALC_RESULT_HASH,
    PROC_PRINT_TIME,
    RESULT_HASH,
    OutputMode,
    Query,
    QueryContext,
    QueryMode,
)

log = get_logger(__name__)


class QueryDispatcher:
    """
    Executes queries and renders their results.

    Usage:
        dispatcher = QueryDispatcher()
        text = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
        query.options.get(PROC_PRINT_TIME)  # seconds spent in source + render
    """

    def __init__(
        self,
        formats: FormatRegistry | None = None,
        sources: SourceRegistry | None = None,
        bridge: DeferredExecutionBridge | None = None,
        message_encoder: MessageEncoder = encode_messages,
        settings: QuerySettings | None = None,
    ):
        self._formats = formats if formats is not None else format_registry
        self._sources = sources if sources is not None else source_registry
        self._bridge = bridge or DeferredExecutionBridge()
        self._encode = message_encoder
        self._settings = settings

    def execute(
        self,
        query: Query,
        params: ParamSet,
        output_mode: OutputMode,
        context: QueryContext,
    ) -> str:
        """
        Execute ``query`` and return the rendered output.

        Raises:
            FormatNotRegisteredError: If the format has no printer
            SourceNotFoundError: If the named source does not exist
            Exception: Anything the source raises, unchanged
        """
        printer = self._formats.resolve(params["format"].value, context).printer
        source_name = params["source"].value

        token = push_context(
            format=printer.format_name,
            source=source_name or "default",
            context=context.value,
            mode=query.mode.name.lower(),
        )
        try:
            deferral = self._bridge.gate(query, printer, context)

            if deferral is DeferralKind.PLACEHOLDER:
                log.info("query.deferred", kind=deferral.value, limit=query.limit)
                with timed_block("query.placeholder") as timer:
                    output = self._bridge.build_placeholder(query)
                query.options.set(PROC_PRINT_TIME, timer.duration_seconds)
                return output

            if deferral is DeferralKind.ZERO_LIMIT_STUB:
                log.info("query.deferred", kind=deferral.value, limit=query.limit)
                self._bridge.apply_zero_limit_stub(query)

            source = self._select_source(source_name, context)

            timer = None
            try:
                with log_step("query.execute", level="debug", mode=query.mode.name.lower()) as timer:
                    result = source.get_query_result(query)

                    if isinstance(result, QueryResult):
                        if result.query is None:
                            result.query = query
                        if query.options.get(CALC_RESULT_HASH):
                            query.options.set(RESULT_HASH, result.quick_hash())

                    if query.mode in (QueryMode.INSTANCES, QueryMode.NONE):
                        output = printer.get_result(result, params, output_mode)
                    else:
                        output = self._render_scalar(query, result, params)
            finally:
                if timer is not None:
                    query.options.set(PROC_PRINT_TIME, timer.duration_seconds)

            log.info(
                "query.executed",
                source=getattr(source, "name", source_name),
                rows=len(result) if isinstance(result, QueryResult) else None,
                errors=len(query.errors),
                duration_ms=round(timer.duration_ms, 2),
            )
            return output
        finally:
            token.restore()

    def _select_source(self, source_name: str, context: QueryContext) -> QuerySource:
        if source_name == "" and context is QueryContext.CURTAILMENT_MODE:
            return self._sources.get_single_entity_lookup()
        settings = self._settings or get_settings()
        return self._sources.get(source_name or settings.default_source)

    def _render_scalar(self, query: Query, result: Any, params: ParamSet) -> str:
        """Count and debug output is just a string or number."""
        if isinstance(result, QueryResult):
            query.add_errors(result.errors)
            result = result.count_value()

        if isinstance(result, Number) and not isinstance(result, bool):
            result = str(result)

        if isinstance(result, str):
            intro = params["intro"].value.replace("_", " ")
            outro = params["outro"].value.replace("_", " ")
            return intro + result + outro + self._encode(query.errors)

        # No usable value: only the errors are left to show.
        return self._encode(query.errors)

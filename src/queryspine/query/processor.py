"""
Query processor: the entry point for answering a parameterised query.

Manifesto:
    Callers hand over untyped input (a token list or a query string with
    ``name -> value`` pairs) and get back rendered text. In between, every
    stage reads the same validated parameter set:

        raw params ──► ParamProcessor ──► QueryBuilder ──► QueryDispatcher
                                                             │
                                   FormatRegistry ◄──────────┤
                                   SourceRegistry ◄──────────┘

    Splitting raw ``key=value`` tokens is not done here; a
    ``ParamListProcessor`` supplied by the host does it.

Architecture:
    ::

        get_result_from_function_params(raw)
          ├─ get_components_from_function_params(raw)   (host parser)
          ├─ add_this_printout(...)                     (unless show mode)
          ├─ get_processed_params(...)
          └─ get_result_from_query_string(...)
               ├─ create_query(...)
               └─ get_result_from_query(...)

Examples:
    >>> processor = QueryProcessor(param_list_processor=MyParser())
    >>> query, params = processor.get_query_and_params_from_function_params(
    ...     ["[[Category:City]]", "format=count"],
    ...     context=QueryContext.INLINE_QUERY,
    ...     show_mode=False,
    ... )
    >>> processor.get_result_from_query(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
    '42'

Tags:
    queryspine, query, processor, facade

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from queryspine.core.errors import ConfigError, categorize_error
from queryspine.core.settings import QuerySettings, get_settings
from queryspine.framework.formats import FormatRegistry, format_registry
from queryspine.framework.logging import bind_context, get_logger, new_query_id
from queryspine.framework.messages import MessageEncoder, encode_messages
from queryspine.framework.params import ParamDef, ParamProcessor, ParamSet
from queryspine.framework.printers import NullResultPrinter, ResultPrinter
from queryspine.framework.sources import SourceRegistry, source_registry
from queryspine.framework.text_processor import RecursiveTextProcessor
from queryspine.query.builder import QueryBuilder, add_this_printout
from queryspine.query.deferred import DeferredExecutionBridge
from queryspine.query.dispatcher import QueryDispatcher
from queryspine.query.models import OutputMode, PrintRequest, Query, QueryContext

log = get_logger(__name__)


@dataclass
class QueryComponents:
    """A query split into its query string, parameters and print requests."""

    query_string: str
    params: dict[str, str] = field(default_factory=dict)
    print_requests: list[PrintRequest] = field(default_factory=list)


@runtime_checkable
class ParamListProcessor(Protocol):
    """Host-supplied parser for raw parameter token lists."""

    def preprocess(self, raw_params: Sequence[str], show_mode: bool) -> Any: ...

    def format(self, preprocessed: Any) -> QueryComponents: ...


class QueryProcessor:
    """
    Validates, builds, executes and renders queries.

    All collaborators are injectable; omitted ones fall back to the
    process-wide registries and settings.
    """

    def __init__(
        self,
        *,
        formats: FormatRegistry | None = None,
        sources: SourceRegistry | None = None,
        settings: QuerySettings | None = None,
        param_list_processor: ParamListProcessor | None = None,
        message_encoder: MessageEncoder = encode_messages,
    ):
        self.formats = formats if formats is not None else format_registry
        self.sources = sources if sources is not None else source_registry
        self.settings = settings or get_settings()
        self.param_list_processor = param_list_processor

        for alias, canonical in self.settings.format_aliases.items():
            self.formats.register_alias(alias, canonical)

        self.bridge = DeferredExecutionBridge()
        self.param_processor = ParamProcessor(self.formats, self.settings)
        self.builder = QueryBuilder(self.formats, self.settings)
        self.dispatcher = QueryDispatcher(
            self.formats,
            self.sources,
            bridge=self.bridge,
            message_encoder=message_encoder,
            settings=self.settings,
        )

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def get_processed_params(
        self,
        params: Mapping[str, Any],
        print_requests: Sequence[PrintRequest] = (),
        unknown_invalid: bool = True,
        context: QueryContext | None = None,
        show_mode: bool = False,
    ) -> ParamSet:
        """Validate raw ``name -> value`` pairs (see ``ParamProcessor.process``)."""
        return self.param_processor.process(params, print_requests, unknown_invalid, context, show_mode)

    def get_parameters(
        self,
        context: QueryContext | None = None,
        printer: ResultPrinter | None = None,
    ) -> dict[str, ParamDef]:
        """Default parameter definitions, extended by ``printer``."""
        return self.param_processor.get_parameters(context, printer)

    def get_format_parameters(self, format_name: str) -> dict[str, ParamDef]:
        """All parameters ``format_name`` supports; empty for unknown or null formats."""
        if not self.formats.is_registered(format_name):
            return {}
        printer = self.get_result_printer(format_name)
        if isinstance(printer, NullResultPrinter):
            return {}
        return self.get_parameters(None, printer)

    # ------------------------------------------------------------------
    # Query construction
    # ------------------------------------------------------------------

    def create_query(
        self,
        query_string: str,
        params: ParamSet,
        context: QueryContext = QueryContext.INLINE_QUERY,
        format_name: str | None = "",
        extra_print_requests: Sequence[PrintRequest] = (),
        context_page: str | None = None,
    ) -> Query:
        return self.builder.build(query_string, params, context, format_name, extra_print_requests, context_page)

    def add_this_printout(
        self,
        print_requests: Sequence[PrintRequest],
        raw_params: Mapping[str, Any],
    ) -> list[PrintRequest]:
        return add_this_printout(print_requests, raw_params)

    def get_components_from_function_params(self, raw_params: Sequence[str], show_mode: bool) -> QueryComponents:
        """
        Split raw tokens with the host's parameter list processor.

        Raises:
            ConfigError: If no parameter list processor was configured
        """
        if self.param_list_processor is None:
            raise ConfigError("No parameter list processor configured")
        preprocessed = self.param_list_processor.preprocess(raw_params, show_mode)
        return self.param_list_processor.format(preprocessed)

    def get_query_and_params_from_function_params(
        self,
        raw_params: Sequence[str],
        context: QueryContext,
        show_mode: bool,
        context_page: str | None = None,
    ) -> tuple[Query, ParamSet]:
        """Turn raw tokens into a query and its validated parameters."""
        components = self.get_components_from_function_params(raw_params, show_mode)
        print_requests = components.print_requests

        if not show_mode:
            print_requests = add_this_printout(print_requests, components.params)

        params = self.get_processed_params(components.params, print_requests, True, context, show_mode)
        query = self.create_query(components.query_string, params, context, "", print_requests, context_page)

        # Keep the request for the follow-up call that completes the query.
        if context is QueryContext.DEFERRED_QUERY:
            control = params["@control"].value if "@control" in params else ""
            self.bridge.record_request(query, raw_params, show_mode, control)
            log.debug("query.deferred_request_recorded", control=control, show_mode=show_mode)

        return query, params

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def get_result_from_function_params(
        self,
        raw_params: Sequence[str],
        output_mode: OutputMode,
        context: QueryContext = QueryContext.INLINE_QUERY,
        show_mode: bool = False,
    ) -> str:
        components = self.get_components_from_function_params(raw_params, show_mode)
        print_requests = components.print_requests

        if not show_mode:
            print_requests = add_this_printout(print_requests, components.params)

        params = self.get_processed_params(components.params, print_requests, True, context, show_mode)
        return self.get_result_from_query_string(
            components.query_string, params, print_requests, output_mode, context
        )

    def get_result_from_query_string(
        self,
        query_string: str,
        params: ParamSet,
        extra_print_requests: Sequence[PrintRequest],
        output_mode: OutputMode,
        context: QueryContext = QueryContext.INLINE_QUERY,
    ) -> str:
        query = self.create_query(query_string, params, context, "", extra_print_requests)
        return self.get_result_from_query(query, params, output_mode, context)

    def get_result_from_query(
        self,
        query: Query,
        params: ParamSet,
        output_mode: OutputMode,
        context: QueryContext,
    ) -> str:
        """Execute ``query`` and render it (see ``QueryDispatcher.execute``)."""
        bind_context(query_id=new_query_id())
        try:
            return self.dispatcher.execute(query, params, output_mode, context)
        except Exception as e:
            log.warning(
                "query.failed",
                error_type=type(e).__name__,
                category=categorize_error(e).value,
                context=context.value,
            )
            raise

    def complete_deferred(
        self,
        query: Query,
        params: ParamSet,
        output_mode: OutputMode,
        context: QueryContext = QueryContext.SPECIAL_PAGE,
    ) -> str:
        """
        Phase two of a deferred query.

        Restores a stubbed limit and dispatches again outside the deferred
        context, so the query is answered with real data.
        """
        if context is QueryContext.DEFERRED_QUERY:
            raise ValueError("Deferred queries must be completed outside the deferred context")
        self.bridge.restore_limit(query)
        return self.get_result_from_query(query, params, output_mode, context)

    # ------------------------------------------------------------------
    # Printers
    # ------------------------------------------------------------------

    def get_result_printer(
        self,
        format_name: str,
        context: QueryContext = QueryContext.SPECIAL_PAGE,
    ) -> ResultPrinter:
        """
        Raises:
            FormatNotRegisteredError: If the format has no printer
        """
        return self.formats.resolve(format_name, context).printer

    def set_text_processor(self, text_processor: RecursiveTextProcessor | None) -> None:
        """Install the registry's text processor, or ``None`` to rebuild it lazily."""
        self.formats.text_processor.set(text_processor)

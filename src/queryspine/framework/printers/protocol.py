"""
Result printer protocol.

A result printer turns a source's answer into output text for one format
name (``table``, ``list``, ``feed``, ...). Printers are registered in the
format registry and instantiated per request.

A printer also tells the pipeline how to run the query: which query mode it
needs in a context, its default sort direction, and whether (and how) it can
be deferred.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from queryspine.framework.messages import encode_messages
from queryspine.framework.sources import QueryResult
from queryspine.framework.text_processor import RecursiveTextProcessor
from queryspine.query.models import OutputMode, QueryContext, QueryMode

if TYPE_CHECKING:
    from queryspine.framework.params import ParamDef, ParamSet


class DeferralKind(str, Enum):
    """How a printer can be deferred."""

    NONE = "none"
    PLACEHOLDER = "placeholder"  # no source call until the follow-up request
    ZERO_LIMIT_STUB = "zero_limit_stub"  # source call with limit 0 for a skeleton


@runtime_checkable
class ResultPrinter(Protocol):
    """Protocol for all result printers."""

    format_name: str
    default_sort: str

    def get_query_mode(self, context: QueryContext) -> QueryMode: ...

    def is_deferrable(self) -> DeferralKind: ...

    def get_param_definitions(self, definitions: dict[str, ParamDef]) -> dict[str, ParamDef]: ...

    def set_text_processor(self, text_processor: RecursiveTextProcessor) -> None: ...

    def get_result(self, result: QueryResult | Any, params: ParamSet, output_mode: OutputMode) -> str: ...


class BaseResultPrinter:
    """
    Base class for printer implementations.

    Provides:
    - INSTANCES query mode, ``ASC`` default sort, no deferral
    - the ``default`` text for empty results
    - the further-results link for NONE-mode queries
    - text post-processing for wiki output and message encoding

    Subclasses implement ``render``.
    """

    deferral: ClassVar[DeferralKind] = DeferralKind.NONE
    default_sort: ClassVar[str] = "ASC"

    def __init__(self, format_name: str, inline: bool = True):
        self.format_name = format_name
        self.inline = inline
        self._text_processor: RecursiveTextProcessor | None = None

    def get_query_mode(self, context: QueryContext) -> QueryMode:
        return QueryMode.INSTANCES

    def is_deferrable(self) -> DeferralKind:
        return self.deferral

    def get_param_definitions(self, definitions: dict[str, ParamDef]) -> dict[str, ParamDef]:
        return definitions

    def set_text_processor(self, text_processor: RecursiveTextProcessor) -> None:
        self._text_processor = text_processor

    @property
    def text_processor(self) -> RecursiveTextProcessor | None:
        return self._text_processor

    def get_result(self, result: QueryResult | Any, params: ParamSet, output_mode: OutputMode) -> str:
        if not isinstance(result, QueryResult):
            result = QueryResult()

        if result.query is not None and result.query.mode is QueryMode.NONE:
            text = self.further_results_link(result, params)
        elif result.rows:
            text = self.render(result, params, output_mode)
        else:
            text = params["default"].value

        messages = list(result.errors)
        if output_mode is OutputMode.WIKI and self._text_processor is not None:
            text = self._text_processor.recursive_parse(text)
            messages.extend(self._text_processor.errors)

        return text + encode_messages(messages)

    def further_results_link(self, result: QueryResult, params: ParamSet) -> str:
        return params["searchlabel"].value

    @abstractmethod
    def render(self, result: QueryResult, params: ParamSet, output_mode: OutputMode) -> str:
        raise NotImplementedError

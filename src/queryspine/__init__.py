"""
queryspine - parameterised query construction and dispatch.

Turns untyped query parameters into validated, typed queries, runs them
against a pluggable storage source and renders the answer with a pluggable
result printer.

Usage:
    from queryspine import QueryProcessor, OutputMode, QueryContext

    processor = QueryProcessor(param_list_processor=parser)
    text = processor.get_result_from_function_params(
        ["[[Category:City]]", "format=count"],
        OutputMode.HTML,
        QueryContext.INLINE_QUERY,
    )
"""

__version__ = "0.1.0"

from queryspine.query.builder import QueryBuilder, add_this_printout
from queryspine.query.deferred import DeferredExecutionBridge
from queryspine.query.dispatcher import QueryDispatcher
from queryspine.query.models import (
    OutputMode,
    PrintMode,
    PrintRequest,
    Query,
    QueryContext,
    QueryMode,
    QueryOptions,
    SortSpec,
)
from queryspine.query.processor import ParamListProcessor, QueryComponents, QueryProcessor

__all__ = [
    "__version__",
    "QueryProcessor",
    "QueryComponents",
    "ParamListProcessor",
    "QueryBuilder",
    "QueryDispatcher",
    "DeferredExecutionBridge",
    "add_this_printout",
    "Query",
    "QueryMode",
    "QueryContext",
    "QueryOptions",
    "OutputMode",
    "PrintMode",
    "PrintRequest",
    "SortSpec",
]

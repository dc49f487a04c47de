"""
Query layer: value types, builder, dispatcher, deferred execution and the
processor facade.

Only the value types are re-exported here; import the builder, dispatcher
and processor from their modules (or from ``queryspine``).
"""

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

__all__ = [
    "Query",
    "QueryMode",
    "QueryContext",
    "QueryOptions",
    "OutputMode",
    "PrintMode",
    "PrintRequest",
    "SortSpec",
]

"""
Query source protocol package.

Provides the interface the dispatcher uses to reach storage backends.
"""

from queryspine.framework.sources.protocol import (
    BaseQuerySource,
    QueryResult,
    QuerySource,
    SourceRegistry,
    register_source,
    source_registry,
)

__all__ = [
    "QueryResult",
    "QuerySource",
    "BaseQuerySource",
    "SourceRegistry",
    "source_registry",
    "register_source",
]

"""
Query source protocol and registry.

A query source is a storage backend that can answer a ``Query``: a SQL
store, a search-index-backed store, a single-entity lookup. The dispatcher
only sees this protocol.

Design Principles:
- Registry-Driven: Sources registered by name, ``""`` means the default
- Protocol over Inheritance: Any object with ``name`` and
  ``get_query_result`` is a source
- Backend errors that are not fatal travel inside ``QueryResult.errors``;
  fatal ones are raised by the source and propagate to the caller

Usage:
    from queryspine.framework.sources import source_registry

    source_registry.register(SqlStore(name="sql"))
    source = source_registry.get("")  # default source
    result = source.get_query_result(query)
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from queryspine.core.errors import SourceNotFoundError
from queryspine.core.hashing import compute_hash, compute_rows_hash
from queryspine.framework.logging import get_logger
from queryspine.query.models import PrintRequest, Query

log = get_logger(__name__)


@dataclass
class QueryResult:
    """
    Typed result of executing a query.

    ``count`` is only set by sources answering COUNT queries; a result without
    a count is an error carrier in the count/debug render path. ``query`` is
    the query that produced the result; the dispatcher fills it in when a
    source leaves it empty.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    count: int | None = None
    errors: list[str] = field(default_factory=list)
    has_further_results: bool = False
    print_requests: tuple[PrintRequest, ...] = ()
    query: Query | None = field(default=None, repr=False, compare=False)

    def count_value(self) -> int | None:
        return self.count

    def quick_hash(self) -> str:
        """Fast content hash for change detection."""
        return compute_hash(self.count, self.has_further_results, compute_rows_hash(self.rows))

    def __len__(self) -> int:
        return len(self.rows)


@runtime_checkable
class QuerySource(Protocol):
    """
    Protocol for all query sources.

    ``get_query_result`` returns a ``QueryResult``, or a bare scalar
    (count or debug text) for sources that answer COUNT/DEBUG queries that
    way. Non-fatal problems may also be appended to ``query.errors``.
    """

    @property
    def name(self) -> str:
        """Unique source name."""
        ...

    def get_query_result(self, query: Query) -> QueryResult | int | str:
        """Execute ``query``."""
        ...


class BaseQuerySource:
    """Base class for source implementations."""

    def __init__(self, name: str, *, config: dict[str, Any] | None = None):
        self._name = name
        self._config = config or {}

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def get_query_result(self, query: Query) -> QueryResult | int | str:
        raise NotImplementedError


# =============================================================================
# SOURCE REGISTRY
# =============================================================================


class SourceRegistry:
    """
    Registry for query sources.

    The first registered source becomes the default unless ``set_default``
    names another one. The single-entity lookup used for curtailed queries is
    kept apart from the named sources.

    Usage:
        registry = SourceRegistry()
        registry.register(SqlStore(name="sql"))
        registry.register_factory("elastic", ElasticStore, {"hosts": ["localhost"]})

        registry.get("elastic")
        registry.get("")  # -> "sql"
    """

    def __init__(self):
        self._sources: dict[str, QuerySource] = {}
        self._factories: dict[str, tuple[type, dict[str, Any]]] = {}
        self._default_name: str | None = None
        self._single_entity_lookup: QuerySource | None = None

    def register(self, source: QuerySource, *, default: bool = False) -> None:
        """Register a source instance."""
        self._sources[source.name] = source
        if default or self._default_name is None:
            self._default_name = source.name
        log.debug("source_registered", name=source.name, default=self._default_name == source.name)

    def register_factory(
        self,
        name: str,
        source_class: type,
        config: dict[str, Any],
        *,
        default: bool = False,
    ) -> None:
        """Register a source class for lazy instantiation."""
        self._factories[name] = (source_class, config)
        if default or self._default_name is None:
            self._default_name = name

    def register_single_entity_lookup(self, source: QuerySource) -> None:
        self._single_entity_lookup = source

    def unregister(self, name: str) -> None:
        self._sources.pop(name, None)
        self._factories.pop(name, None)
        if self._default_name == name:
            remaining = self.list_sources()
            self._default_name = remaining[0] if remaining else None

    def set_default(self, name: str) -> None:
        if name not in self._sources and name not in self._factories:
            raise SourceNotFoundError(name, self.list_sources())
        self._default_name = name

    @property
    def default_name(self) -> str | None:
        return self._default_name

    def get(self, name: str = "") -> QuerySource:
        """
        Get a registered source by name; ``""`` returns the default source.

        Raises:
            SourceNotFoundError: If no such source (or no default) exists
        """
        if name == "":
            if self._default_name is None:
                raise SourceNotFoundError("", self.list_sources())
            name = self._default_name

        if name in self._sources:
            return self._sources[name]

        if name in self._factories:
            source_class, config = self._factories[name]
            source = source_class(name=name, **config)
            self._sources[name] = source
            return source

        raise SourceNotFoundError(name, self.list_sources())

    def get_single_entity_lookup(self) -> QuerySource:
        if self._single_entity_lookup is None:
            raise SourceNotFoundError("single-entity lookup")
        return self._single_entity_lookup

    def list_sources(self) -> list[str]:
        """List all registered source names."""
        return sorted(set(self._sources) | set(self._factories))

    def clear(self) -> None:
        """Clear registry (for testing)."""
        self._sources.clear()
        self._factories.clear()
        self._default_name = None
        self._single_entity_lookup = None


# Global registry instance
source_registry = SourceRegistry()


def register_source(source: QuerySource) -> QuerySource:
    """Register a source with the global registry."""
    source_registry.register(source)
    return source


__all__ = [
    "QueryResult",
    "QuerySource",
    "BaseQuerySource",
    "SourceRegistry",
    "source_registry",
    "register_source",
]

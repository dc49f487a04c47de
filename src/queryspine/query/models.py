"""
Value types of the query pipeline.

``Query`` is the canonical executable unit. It is created once per request
by the query builder and afterwards only touched by the dispatcher and the
deferred-execution bridge (mode downgrade, limit override, option writes)
and by sources appending non-fatal errors. Printers read it, never write it.

``PrintRequest`` instances travel next to the query rather than inside it,
because some consumers need the print requests before a query exists.

Tags:
    query-model, value-objects, queryspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any


class QueryMode(IntEnum):
    """Determines which execution and render path a query takes."""

    INSTANCES = 1
    COUNT = 2
    DEBUG = 3
    NONE = 4  # "further results" link only, no rows rendered


class QueryContext(str, Enum):
    """Usage context of a query."""

    INLINE_QUERY = "inline"
    SPECIAL_PAGE = "special_page"
    CONCEPT_DESC = "concept_desc"
    DEFERRED_QUERY = "deferred"
    CURTAILMENT_MODE = "curtailment"  # single-entity short-circuit

    @property
    def is_inline(self) -> bool:
        """Inline contexts are subject to the inline limit ceiling."""
        return self in (QueryContext.INLINE_QUERY, QueryContext.DEFERRED_QUERY)


class OutputMode(str, Enum):
    """Output target passed through to result printers."""

    WIKI = "wiki"
    HTML = "html"
    FILE = "file"
    RAW = "raw"


class PrintMode(str, Enum):
    """What a print request shows."""

    THIS = "this"  # the result subject itself
    PROP = "prop"
    CATEGORY = "category"
    CCAT = "ccat"  # membership check against one category


@dataclass(frozen=True)
class PrintRequest:
    """
    One output column.

    ``disconnected`` marks requests the pipeline injected on its own (the
    implicit subject column) rather than ones the caller asked for.
    """

    mode: PrintMode
    label: str = ""
    target: str | None = None
    disconnected: bool = False

    def is_mode(self, mode: PrintMode) -> bool:
        return self.mode is mode


@dataclass(frozen=True)
class SortSpec:
    """Sort keys, their directions and the printer's default direction."""

    sort: tuple[str, ...] = ()
    order: tuple[str, ...] = ()
    default_order: str = "ASC"


class QueryOptions:
    """
    Well-known diagnostic values carried on a query between dispatch stages.

    Writers:
        - caller: ``CALC_RESULT_HASH`` (request flag)
        - dispatcher: ``PROC_PRINT_TIME``, ``RESULT_HASH``
        - deferred bridge: ``DEFERRED_*``

    Writing a key outside this set raises ``KeyError``.
    """

    PROC_PRINT_TIME = "proc.print_time"
    CALC_RESULT_HASH = "calc.result_hash"
    RESULT_HASH = "result_hash"
    DEFERRED_LIMIT = "deferred.limit"
    DEFERRED_PARAMETERS = "deferred.parameters"
    DEFERRED_SHOW_MODE = "deferred.show_mode"
    DEFERRED_CONTROL = "deferred.control"

    KNOWN_KEYS = frozenset(
        {
            PROC_PRINT_TIME,
            CALC_RESULT_HASH,
            RESULT_HASH,
            DEFERRED_LIMIT,
            DEFERRED_PARAMETERS,
            DEFERRED_SHOW_MODE,
            DEFERRED_CONTROL,
        }
    )

    def __init__(self, values: dict[str, Any] | None = None):
        self._values: dict[str, Any] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    def set(self, key: str, value: Any) -> None:
        if key not in self.KNOWN_KEYS:
            raise KeyError(f"Unknown query option: {key!r}")
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryOptions):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"QueryOptions({self._values!r})"


PROC_PRINT_TIME = QueryOptions.PROC_PRINT_TIME
CALC_RESULT_HASH = QueryOptions.CALC_RESULT_HASH
RESULT_HASH = QueryOptions.RESULT_HASH
DEFERRED_LIMIT = QueryOptions.DEFERRED_LIMIT
DEFERRED_PARAMETERS = QueryOptions.DEFERRED_PARAMETERS
DEFERRED_SHOW_MODE = QueryOptions.DEFERRED_SHOW_MODE
DEFERRED_CONTROL = QueryOptions.DEFERRED_CONTROL


@dataclass
class Query:
    """
    A fully-specified executable query.

    ``limit`` may be negative: that is the caller's "further results link
    only" signal (mode NONE) and is carried forward for the printer.

    Equality compares construction-time fields only; ``options`` and
    ``errors`` are written during execution and are excluded.
    """

    query_string: str
    mode: QueryMode = QueryMode.INSTANCES
    limit: int = 0
    offset: int = 0
    sort: SortSpec = field(default_factory=SortSpec)
    context: QueryContext = QueryContext.INLINE_QUERY
    context_page: str | None = None
    source: str = ""
    main_label: str = ""
    extra_print_requests: tuple[PrintRequest, ...] = ()

    options: QueryOptions = field(default_factory=QueryOptions, compare=False)
    errors: list[str] = field(default_factory=list, compare=False)

    def add_errors(self, errors: list[str]) -> None:
        """Append non-fatal error messages, skipping duplicates."""
        for error in errors:
            if error not in self.errors:
                self.errors.append(error)

    def snapshot(self) -> dict[str, Any]:
        """Construction-time fields as a plain dict."""
        return {
            "query_string": self.query_string,
            "mode": self.mode.name,
            "limit": self.limit,
            "offset": self.offset,
            "sort": asdict(self.sort),
            "context": self.context.value,
            "context_page": self.context_page,
            "source": self.source,
            "main_label": self.main_label,
            "extra_print_requests": [asdict(pr) for pr in self.extra_print_requests],
        }

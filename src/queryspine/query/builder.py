"""
Query construction.

Combines a query string, validated parameters and the usage context into a
``Query`` with resolved mode, limit, offset and sort. Also owns the rule
that injects the implicit subject column into a print request list.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from queryspine.core.result import Err, Result
from queryspine.core.settings import QuerySettings, get_settings
from queryspine.framework.formats import FormatRegistry, format_registry
from queryspine.framework.logging import get_logger
from queryspine.framework.params import ParamSet, parse_int
from queryspine.query.models import PrintMode, PrintRequest, Query, QueryContext, QueryMode, SortSpec

log = get_logger(__name__)


class QueryBuilder:
    """
    Builds ``Query`` objects from validated parameters.

    Mode:
        ``count`` and ``debug`` formats select COUNT and DEBUG directly; any
        other format asks its printer. A negative limit downgrades the mode to
        NONE and is kept as is.

    Limits:
        A limit or offset that does not parse as an integer counts as absent.
        Non-count queries are capped at ``max_inline_limit`` inline and at
        ``max_limit`` elsewhere; COUNT queries always run with offset 0 and
        ``max_limit``.
    """

    def __init__(
        self,
        formats: FormatRegistry | None = None,
        settings: QuerySettings | None = None,
    ):
        self._formats = formats if formats is not None else format_registry
        self._settings = settings

    @property
    def settings(self) -> QuerySettings:
        return self._settings or get_settings()

    def build(
        self,
        query_string: str,
        params: ParamSet,
        context: QueryContext = QueryContext.INLINE_QUERY,
        format_name: str | None = "",
        extra_print_requests: Sequence[PrintRequest] = (),
        context_page: str | None = None,
    ) -> Query:
        """
        Build a query.

        Raises:
            FormatNotRegisteredError: If the format has no printer
            KeyError: If ``params`` lacks a parameter every query needs
        """
        settings = self.settings

        format_name = self._formats.resolve_alias(format_name or params["format"].value)

        default_sort = "ASC"
        if format_name == "count":
            mode = QueryMode.COUNT
        elif format_name == "debug":
            mode = QueryMode.DEBUG
        else:
            descriptor = self._formats.resolve(format_name, context)
            mode = descriptor.query_mode(context)
            default_sort = descriptor.default_sort

        offset = _int_param(params, "offset").unwrap_or(0)

        limit_result = _int_param(params, "limit")
        if limit_result.is_err() and "limit" in params:
            log.debug("query.limit_ignored", value=params["limit"].value)
        limit = limit_result.unwrap_or(settings.default_limit)

        # limit < 0: show the further results link only
        if limit < 0:
            mode = QueryMode.NONE

        if mode is QueryMode.COUNT:
            offset = 0
            limit = settings.max_limit
        else:
            ceiling = settings.max_inline_limit if context.is_inline else settings.max_limit
            limit = min(limit, ceiling)

        query = Query(
            query_string=query_string,
            mode=mode,
            limit=limit,
            offset=offset,
            sort=SortSpec(
                sort=tuple(params["sort"].value),
                order=tuple(params["order"].value),
                default_order=default_sort,
            ),
            context=context,
            context_page=context_page,
            source=params["source"].value,
            main_label=params["mainlabel"].value,
            extra_print_requests=tuple(extra_print_requests),
        )

        log.debug(
            "query.built",
            format=format_name,
            mode=mode.name,
            limit=limit,
            offset=offset,
            context=context.value,
        )
        return query


def add_this_printout(print_requests: Sequence[PrintRequest], raw_params: Mapping[str, Any]) -> list[PrintRequest]:
    """
    Return ``print_requests`` with the subject column in front.

    Nothing is added when a subject column already exists or when
    ``mainlabel`` is ``-``. The injected request is labelled with the raw
    ``mainlabel`` and marked disconnected.
    """
    print_requests = list(print_requests)

    if any(pr.is_mode(PrintMode.THIS) for pr in print_requests):
        return print_requests

    main_label = raw_params.get("mainlabel")
    if main_label is not None and str(main_label).strip() == "-":
        return print_requests

    subject = PrintRequest(
        mode=PrintMode.THIS,
        label="" if main_label is None else str(main_label),
        disconnected=True,
    )
    return [subject, *print_requests]


def _int_param(params: ParamSet, name: str) -> Result[int]:
    if name not in params:
        return Err(KeyError(name))
    return parse_int(params[name].value)

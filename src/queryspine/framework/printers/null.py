"""Printer registered for formats whose output the dispatcher renders itself."""

from __future__ import annotations

from typing import Any

from queryspine.framework.printers.protocol import BaseResultPrinter
from queryspine.framework.sources import QueryResult
from queryspine.query.models import OutputMode


class NullResultPrinter(BaseResultPrinter):
    """
    Produces no output.

    ``count`` and ``debug`` are registered with this printer: the dispatcher
    short-circuits those modes, so the printer only has to exist for format
    resolution and parameter lookup.
    """

    def get_result(self, result: QueryResult | Any, params: Any, output_mode: OutputMode) -> str:
        return ""

    def render(self, result: QueryResult, params: Any, output_mode: OutputMode) -> str:
        return ""

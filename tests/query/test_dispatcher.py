"""
Tests for queryspine.query.dispatcher.

Tests cover:
- INSTANCES/NONE rendering through the printer
- COUNT/DEBUG scalar rendering with intro/outro and encoded errors
- Deferral (placeholder and zero-limit stub) and phase two
- Source selection (named, default, configured default, curtailment)
- Print time and result hash bookkeeping
- Error propagation and log context restoration
"""

import pytest
from structlog.testing import capture_logs

from queryspine.core.errors import FormatNotRegisteredError, SourceNotFoundError
from queryspine.core.settings import QuerySettings
from queryspine.framework.logging import get_context
from queryspine.framework.messages import encode_messages
from queryspine.framework.params import ParamProcessor
from queryspine.framework.sources import QueryResult, source_registry
from queryspine.query.builder import QueryBuilder
from queryspine.query.deferred import DeferredExecutionBridge
from queryspine.query.dispatcher import QueryDispatcher
from queryspine.query.models import (
    CALC_RESULT_HASH,
    DEFERRED_LIMIT,
    PROC_PRINT_TIME,
    RESULT_HASH,
    OutputMode,
    QueryContext,
    QueryMode,
)
from tests._support.fakes import RecordingSource

QUERY = "[[Category:City]]"


@pytest.fixture
def dispatcher(printers):
    return QueryDispatcher()


def prepare(context=QueryContext.INLINE_QUERY, **raw):
    params = ParamProcessor().process(raw)
    query = QueryBuilder().build(QUERY, params, context)
    return query, params


class TestInstances:
    def test_renders_rows(self, dispatcher, source):
        query, params = prepare(format="list")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert output == "Berlin, Hamburg, Munich"
        assert source.limits == [50]

    def test_limit_reaches_source(self, dispatcher, source):
        query, params = prepare(format="list", limit="2")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "Berlin, Hamburg"

    def test_empty_result_renders_default(self, dispatcher, source):
        source.rows = []
        query, params = prepare(format="table", default="No cities")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "No cities"

    def test_result_errors_are_rendered(self, dispatcher, source):
        source.errors = ["Unknown property"]
        query, params = prepare(format="list")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert output == "Berlin, Hamburg, Munich" + encode_messages(["Unknown property"])

    def test_negative_limit_renders_further_results_link(self, dispatcher, source):
        query, params = prepare(format="table", limit="-1", searchlabel="More cities")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert query.mode is QueryMode.NONE
        assert output == "More cities"
        assert source.call_count == 1

    def test_result_query_is_filled_in(self, dispatcher, source):
        result = QueryResult(rows=[{"name": "Bonn"}])
        source.response = result
        query, params = prepare(format="list")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert result.query is query

    def test_unknown_format(self, dispatcher, source):
        query, params = prepare(format="list")
        params["format"].value = "sparkline"

        with pytest.raises(FormatNotRegisteredError):
            dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert source.call_count == 0


class TestScalar:
    def test_count(self, dispatcher, source):
        query, params = prepare(format="count")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "3"
        assert source.calls[0].mode is QueryMode.COUNT

    def test_intro_outro_underscores_become_spaces(self, dispatcher, source):
        query, params = prepare(format="count", intro="Total:_", outro="_cities")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert output == "Total: 3 cities"

    def test_count_errors_are_encoded(self, dispatcher, source):
        source.errors = ["Query too complex"]
        query, params = prepare(format="count")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert output == "3" + encode_messages(["Query too complex"])
        assert query.errors == ["Query too complex"]

    def test_source_returning_a_number(self, dispatcher, source):
        source.response = 7
        query, params = prepare(format="count")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "7"

    def test_result_without_count_renders_only_errors(self, dispatcher, source):
        source.response = QueryResult(errors=["Backend unavailable"])
        query, params = prepare(format="count", intro="Total: ")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert output == encode_messages(["Backend unavailable"])

    def test_debug(self, dispatcher, source):
        query, params = prepare(format="debug")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == f"debug: {QUERY}"

    def test_custom_message_encoder(self, printers, source):
        dispatcher = QueryDispatcher(message_encoder=lambda messages: "[" + ";".join(messages) + "]")
        source.errors = ["a", "b"]
        query, params = prepare(format="count")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "3[a;b]"

    def test_no_errors_with_custom_encoder(self, printers, source):
        dispatcher = QueryDispatcher(message_encoder=lambda messages: "!" if messages else "")
        query, params = prepare(format="count")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "3"


class TestDeferral:
    def test_placeholder_never_calls_source(self, dispatcher, source):
        query, params = prepare(QueryContext.DEFERRED_QUERY, format="placeholder")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.DEFERRED_QUERY)

        assert source.call_count == 0
        assert "queryspine-deferred-query" in output
        assert query.options.get(PROC_PRINT_TIME) is not None

    def test_placeholder_outside_deferred_context_runs(self, dispatcher, source):
        query, params = prepare(format="placeholder")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert source.call_count == 1

    def test_zero_limit_stub(self, dispatcher, source):
        query, params = prepare(QueryContext.DEFERRED_QUERY, format="skeleton", limit="20", default="")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.DEFERRED_QUERY)

        assert source.limits == [0]
        assert query.options.get(DEFERRED_LIMIT) == 20
        assert output == ""

    def test_zero_limit_stub_then_phase_two(self, printers, source):
        bridge = DeferredExecutionBridge()
        dispatcher = QueryDispatcher(bridge=bridge)
        query, params = prepare(QueryContext.DEFERRED_QUERY, format="skeleton", limit="2")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.DEFERRED_QUERY)
        assert bridge.restore_limit(query)
        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.SPECIAL_PAGE)

        assert source.limits == [0, 2]
        assert output == "Berlin\nHamburg"

    def test_zero_limit_query_is_not_deferred(self, dispatcher, source):
        query, params = prepare(QueryContext.DEFERRED_QUERY, format="placeholder", limit="0")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.DEFERRED_QUERY)

        assert source.call_count == 1


class TestSourceSelection:
    def test_named_source(self, dispatcher, source):
        other = RecordingSource("archive", rows=[{"name": "Bonn"}])
        source_registry.register(other)
        query, params = prepare(format="list", source="archive")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "Bonn"
        assert source.call_count == 0

    def test_unknown_source(self, dispatcher, source):
        query, params = prepare(format="list", source="elastic")

        with pytest.raises(SourceNotFoundError):
            dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

    def test_configured_default_source(self, printers, source):
        other = RecordingSource("archive", rows=[{"name": "Bonn"}])
        source_registry.register(other)
        dispatcher = QueryDispatcher(settings=QuerySettings(default_source="archive"))
        query, params = prepare(format="list")

        assert dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY) == "Bonn"

    def test_curtailment_uses_single_entity_lookup(self, dispatcher, source):
        lookup = RecordingSource("lookup", rows=[{"name": "Berlin"}])
        source_registry.register_single_entity_lookup(lookup)
        query, params = prepare(QueryContext.CURTAILMENT_MODE, format="list")

        output = dispatcher.execute(query, params, OutputMode.HTML, QueryContext.CURTAILMENT_MODE)

        assert output == "Berlin"
        assert lookup.call_count == 1
        assert source.call_count == 0

    def test_curtailment_with_named_source(self, dispatcher, source):
        source_registry.register_single_entity_lookup(RecordingSource("lookup"))
        query, params = prepare(QueryContext.CURTAILMENT_MODE, format="list", source="memory")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.CURTAILMENT_MODE)

        assert source.call_count == 1


class TestBookkeeping:
    def test_print_time_recorded(self, dispatcher, source):
        query, params = prepare(format="list")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert query.options.get(PROC_PRINT_TIME) >= 0

    def test_result_hash_only_on_request(self, dispatcher, source):
        query, params = prepare(format="list")
        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
        assert RESULT_HASH not in query.options

        hashed, params = prepare(format="list")
        hashed.options.set(CALC_RESULT_HASH, True)
        dispatcher.execute(hashed, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
        first = hashed.options.get(RESULT_HASH)

        dispatcher.execute(hashed, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
        assert hashed.options.get(RESULT_HASH) == first

        source.rows = [{"name": "Bonn"}]
        dispatcher.execute(hashed, params, OutputMode.HTML, QueryContext.INLINE_QUERY)
        assert hashed.options.get(RESULT_HASH) != first

    def test_source_exception_propagates(self, dispatcher, source):
        class BrokenSource(RecordingSource):
            def get_query_result(self, query):
                raise RuntimeError("connection refused")

        source_registry.register(BrokenSource("broken"))
        query, params = prepare(format="list", source="broken")

        with pytest.raises(RuntimeError, match="connection refused"):
            dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert query.options.get(PROC_PRINT_TIME) is not None
        assert get_context().format is None

    def test_log_context_restored(self, dispatcher, source):
        query, params = prepare(format="list")

        dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        assert get_context().format is None
        assert get_context().source is None

    def test_logs_execution(self, dispatcher, source):
        query, params = prepare(format="count")

        with capture_logs() as logs:
            dispatcher.execute(query, params, OutputMode.HTML, QueryContext.INLINE_QUERY)

        executed = [entry for entry in logs if entry["event"] == "query.executed"]
        assert len(executed) == 1
        assert executed[0]["source"] == "memory"
        assert executed[0]["errors"] == 0

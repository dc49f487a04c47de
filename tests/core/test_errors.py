"""
Tests for queryspine.core.errors.

Tests cover:
- Category assignment per error family
- Structured context and the fluent ``with_context`` API
- Serialization via ``to_dict``
- Error categorization of foreign exceptions
"""

import pytest

from queryspine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FormatError,
    FormatNotRegisteredError,
    ParameterInvalidError,
    QuerySpineError,
    SourceNotFoundError,
    ValidationError,
    categorize_error,
)


class TestQuerySpineError:
    def test_defaults_to_internal_category(self):
        error = QuerySpineError("boom")

        assert error.category is ErrorCategory.INTERNAL
        assert error.message == "boom"
        assert str(error) == "boom"

    def test_category_override(self):
        error = QuerySpineError("boom", category=ErrorCategory.CONFIG)
        assert error.category is ErrorCategory.CONFIG

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = QuerySpineError("wrapped", cause=cause)

        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_with_context_sets_known_fields_and_metadata(self):
        error = QuerySpineError("boom").with_context(source_name="sql", request_id="r-1")

        assert error.context.source_name == "sql"
        assert error.context.metadata == {"request_id": "r-1"}
        assert error.to_dict()["context"] == {"source_name": "sql", "request_id": "r-1"}

    def test_to_dict_omits_empty_context(self):
        data = QuerySpineError("boom").to_dict()

        assert data == {"error_type": "QuerySpineError", "message": "boom", "category": "INTERNAL"}

    def test_repr(self):
        assert repr(ConfigError("x")) == "ConfigError('x', category=CONFIG)"


class TestParameterInvalidError:
    def test_is_validation_error(self):
        error = ParameterInvalidError("Unknown parameters: foo", unknown_params=["foo"])

        assert isinstance(error, ValidationError)
        assert error.category is ErrorCategory.VALIDATION

    def test_to_dict_lists_offending_params(self):
        error = ParameterInvalidError(
            "invalid",
            unknown_params=["foo", "bar"],
            invalid_params={"limit": "Not an integer: 'x'"},
        )

        data = error.to_dict()
        assert data["unknown_params"] == ["foo", "bar"]
        assert data["invalid_params"] == {"limit": "Not an integer: 'x'"}

    def test_empty_lists_are_not_serialized(self):
        data = ParameterInvalidError("invalid").to_dict()

        assert "unknown_params" not in data
        assert "invalid_params" not in data


class TestFormatNotRegisteredError:
    def test_message_and_context(self):
        error = FormatNotRegisteredError("sparkline")

        assert isinstance(error, FormatError)
        assert error.category is ErrorCategory.FORMAT
        assert error.format_name == "sparkline"
        assert error.message == "There is no result format for 'sparkline'."
        assert error.to_dict()["context"] == {"format_name": "sparkline"}

    def test_custom_message(self):
        assert FormatNotRegisteredError("x", "nope").message == "nope"


class TestSourceNotFoundError:
    def test_message_lists_available_sources(self):
        error = SourceNotFoundError("elastic", ["memory", "sql"])

        assert error.category is ErrorCategory.SOURCE
        assert error.source_name == "elastic"
        assert "'elastic'" in error.message
        assert "Available: memory, sql" in error.message

    def test_message_without_available(self):
        assert SourceNotFoundError("elastic").message == "Query source not found: 'elastic'"


class TestErrorContext:
    def test_to_dict_skips_none(self):
        ctx = ErrorContext(format_name="table", query_context="inline", metadata={"limit": 5})

        assert ctx.to_dict() == {"format_name": "table", "query_context": "inline", "limit": 5}


class TestCategorizeError:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (FormatNotRegisteredError("x"), ErrorCategory.FORMAT),
            (ValueError("x"), ErrorCategory.VALIDATION),
            (TypeError("x"), ErrorCategory.VALIDATION),
            (KeyError("x"), ErrorCategory.CONFIG),
            (RuntimeError("x"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categorize(self, error, expected):
        assert categorize_error(error) is expected

"""
Structured error types for the query pipeline.

Every failure the pipeline raises on purpose is a ``QuerySpineError``. Each
error carries a category for routing, a structured context describing which
format, source or parameter was involved, and an optional chained cause.

Manifesto:
    - **Fail before building:** Validation and format errors are raised
      eagerly so later stages never observe invalid state
    - **Backend errors are not ours:** Exceptions raised by a source
      propagate untouched; non-fatal backend messages travel as data
    - **Rich Context:** Errors carry metadata for logging

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                     QuerySpineError                           │
        │            (category, context, cause)                        │
        ├──────────────────────────────────────────────────────────────┤
        │  ValidationError      FormatError         SourceError        │
        │  (VALIDATION)         (FORMAT)            (SOURCE)           │
        │       │                   │                   │              │
        │  ParameterInvalid     FormatNotRegistered SourceNotFound     │
        │                                                              │
        │  ConfigError                                                 │
        │  (CONFIG)                                                    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = FormatNotRegisteredError("sparkline")
    >>> error.category
    <ErrorCategory.FORMAT: 'FORMAT'>
    >>> error.to_dict()["context"]
    {'format_name': 'sparkline'}

Tags:
    error-handling, exception-hierarchy, error-context, queryspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    VALIDATION = "VALIDATION"  # Parameter values, unknown names
    FORMAT = "FORMAT"  # Result format lookup
    SOURCE = "SOURCE"  # Query source lookup
    CONFIG = "CONFIG"  # Settings, missing collaborators

    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        format_name: Result format involved in the failure
        source_name: Query source involved in the failure
        parameter: Parameter name involved in the failure
        query_context: Usage context of the query (inline, special page, ...)
        metadata: Additional key-value pairs
    """

    format_name: str | None = None
    source_name: str | None = None
    parameter: str | None = None
    query_context: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["format_name", "source_name", "parameter", "query_context"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class QuerySpineError(Exception):
    """
    Base exception for all queryspine errors.

    Subclasses set ``default_category`` to classify themselves.

    Examples:
        >>> error = QuerySpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(source_name="sql").context.source_name
        'sql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> QuerySpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceNotFoundError("elastic").with_context(query_context="inline")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(QuerySpineError):
    """Input validation error. The caller must fix its input."""

    default_category = ErrorCategory.VALIDATION


class ParameterInvalidError(ValidationError):
    """
    Raw query parameters failed strict validation.

    ``unknown_params`` lists names that no definition declares;
    ``invalid_params`` maps a declared name to the reason its value was
    rejected.
    """

    def __init__(
        self,
        message: str,
        *,
        unknown_params: list[str] | None = None,
        invalid_params: dict[str, str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.unknown_params = unknown_params or []
        self.invalid_params = invalid_params or {}

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.unknown_params:
            result["unknown_params"] = list(self.unknown_params)
        if self.invalid_params:
            result["invalid_params"] = dict(self.invalid_params)
        return result


# =============================================================================
# FORMAT ERRORS
# =============================================================================


class FormatError(QuerySpineError):
    """Result format error."""

    default_category = ErrorCategory.FORMAT


class FormatNotRegisteredError(FormatError):
    """No result printer is registered for the (alias-resolved) format name."""

    def __init__(self, format_name: str, message: str | None = None):
        self.format_name = format_name
        super().__init__(
            message or f"There is no result format for '{format_name}'.",
            context=ErrorContext(format_name=format_name),
        )


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(QuerySpineError):
    """Query source error."""

    default_category = ErrorCategory.SOURCE


class SourceNotFoundError(SourceError):
    """No query source is registered under the requested name."""

    def __init__(self, source_name: str, available: list[str] | None = None):
        self.source_name = source_name
        message = f"Query source not found: {source_name!r}"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, context=ErrorContext(source_name=source_name))


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(QuerySpineError):
    """Configuration error (bad settings or a missing collaborator)."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, QuerySpineError):
        return error.category
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, KeyError):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "QuerySpineError",
    "ValidationError",
    "ParameterInvalidError",
    "FormatError",
    "FormatNotRegisteredError",
    "SourceError",
    "SourceNotFoundError",
    "ConfigError",
    "categorize_error",
]

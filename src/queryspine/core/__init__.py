"""
Core primitives shared by every queryspine layer.

- ``errors``: typed error hierarchy
- ``result``: ``Ok``/``Err`` envelopes for total parsers
- ``hashing``: deterministic content hashes
- ``settings``: environment-driven configuration
"""

from queryspine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FormatNotRegisteredError,
    ParameterInvalidError,
    QuerySpineError,
    SourceNotFoundError,
)
from queryspine.core.result import Err, Ok, Result
from queryspine.core.settings import QuerySettings, get_settings, reset_settings

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "QuerySpineError",
    "ParameterInvalidError",
    "FormatNotRegisteredError",
    "SourceNotFoundError",
    "ConfigError",
    "Ok",
    "Err",
    "Result",
    "QuerySettings",
    "get_settings",
    "reset_settings",
]

"""Parameter validation for query requests.

Manifesto:
    Every value a query consumes is declared up front. Raw ``name -> value``
    pairs from the caller are checked against those declarations and turned
    into typed ``ValidatedParam`` objects; defaults fill every gap so later
    stages can index the parameter set without guarding.

Tags:
    queryspine, framework, params, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from queryspine.core.errors import ParameterInvalidError
from queryspine.core.result import Err, Ok, Result
from queryspine.core.settings import QuerySettings, get_settings
from queryspine.framework.formats import FormatRegistry, format_registry
from queryspine.framework.logging import get_logger
from queryspine.query.models import PrintMode, PrintRequest, QueryContext

if TYPE_CHECKING:
    from queryspine.framework.printers import ResultPrinter

log = get_logger(__name__)


class ParamProvenance(str, Enum):
    """Where a validated value came from."""

    EXPLICIT = "explicit"
    DEFAULT = "default"


@dataclass
class ParamDef:
    """
    Definition of a query parameter.

    ``critical`` definitions fail validation on an invalid value; others fall
    back to their default and record a warning.
    """

    name: str
    type: type
    description: str = ""
    default: Any = None
    allowed_values: frozenset[str] | None = None
    critical: bool = False
    aliases: tuple[str, ...] = ()

    def coerce(self, value: Any) -> Result[Any]:
        """Convert a raw value to the declared type and check allowed values."""
        if self.type is int:
            parsed = parse_int(value)
        elif self.type is bool:
            parsed = parse_bool(value)
        elif self.type is list:
            parsed = parse_list(value)
        elif isinstance(value, str):
            parsed = Ok(value.strip())
        elif isinstance(value, self.type):
            parsed = Ok(value)
        else:
            parsed = Err(TypeError(f"Expected type {self.type.__name__}, got {type(value).__name__}"))

        if self.allowed_values is None:
            return parsed
        return parsed.flat_map(self._check_allowed)

    def _check_allowed(self, value: Any) -> Result[Any]:
        for item in value if isinstance(value, list) else [value]:
            if str(item).lower() not in self.allowed_values:
                allowed = ", ".join(sorted(self.allowed_values))
                return Err(ValueError(f"{item!r} is not one of: {allowed}"))
        return Ok(value)

    def default_value(self) -> Any:
        return list(self.default) if isinstance(self.default, list) else self.default


@dataclass
class FormatParamDef(ParamDef):
    """
    The ``format`` parameter.

    Resolves aliases and the ``auto`` format. Which format ``auto`` means
    depends on the print requests and on show mode, so those are bound onto
    a copy of the definition before validation.
    """

    print_requests: tuple[PrintRequest, ...] | None = None
    show_mode: bool = False
    resolve_alias: Callable[[str], str] | None = None

    def bind(self, print_requests: Sequence[PrintRequest], show_mode: bool) -> FormatParamDef:
        return dataclasses.replace(self, print_requests=tuple(print_requests), show_mode=show_mode)

    def auto_format(self) -> str:
        if self.print_requests is None:
            return "table"
        if any(pr.is_mode(PrintMode.PROP) for pr in self.print_requests):
            return "table"
        if self.show_mode:
            return "plainlist"
        return "list"

    def coerce(self, value: Any) -> Result[Any]:
        if not isinstance(value, str):
            return Err(TypeError(f"Expected type str, got {type(value).__name__}"))
        name = value.strip().lower()
        if name in ("", "auto"):
            return Ok(self.auto_format())
        if self.resolve_alias is not None:
            name = self.resolve_alias(name)
        return Ok(name)

    def default_value(self) -> Any:
        return self.coerce(self.default).unwrap_or(self.auto_format())


@dataclass
class ValidatedParam:
    """A typed parameter value with its provenance."""

    name: str
    value: Any
    provenance: ParamProvenance = ParamProvenance.EXPLICIT
    warnings: list[str] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return self.provenance is ParamProvenance.DEFAULT


ParamSet = dict[str, ValidatedParam]


# =============================================================================
# Default definitions
# =============================================================================


ORDER_VALUES = frozenset({"asc", "ascending", "desc", "descending", "reverse", "rand", "random"})


def default_param_definitions(
    settings: QuerySettings | None = None,
    resolve_alias: Callable[[str], str] | None = None,
) -> dict[str, ParamDef]:
    """Parameters every result format accepts."""
    settings = settings or get_settings()
    definitions = [
        FormatParamDef(
            name="format",
            type=str,
            description="Result format",
            default=settings.default_format,
            resolve_alias=resolve_alias,
        ),
        ParamDef(name="source", type=str, description="Query source name", default=""),
        ParamDef(name="limit", type=int, description="Maximum number of results", default=settings.default_limit),
        ParamDef(name="offset", type=int, description="Number of results to skip", default=0),
        ParamDef(name="sort", type=list, description="Sort keys", default=[]),
        ParamDef(
            name="order",
            type=list,
            description="Sort directions",
            default=[],
            allowed_values=ORDER_VALUES,
        ),
        ParamDef(
            name="headers",
            type=str,
            description="Header display",
            default="show",
            allowed_values=frozenset({"show", "hide", "plain"}),
        ),
        ParamDef(name="mainlabel", type=str, description="Label of the subject column", default=""),
        ParamDef(
            name="link",
            type=str,
            description="Which values are linked",
            default="all",
            allowed_values=frozenset({"all", "subject", "none"}),
        ),
        ParamDef(name="intro", type=str, description="Text before the result", default=""),
        ParamDef(name="outro", type=str, description="Text after the result", default=""),
        ParamDef(name="searchlabel", type=str, description="Further-results link text", default="… further results"),
        ParamDef(name="default", type=str, description="Text shown for an empty result", default=""),
        ParamDef(name="@control", type=str, description="Deferred control element id", default=""),
    ]
    return {d.name: d for d in definitions}


# =============================================================================
# Processor
# =============================================================================


class ParamProcessor:
    """
    Validates raw query parameters.

    Usage:
        processor = ParamProcessor(format_registry)
        params = processor.process({"format": "table", "limit": "10"})
        params["limit"].value  # 10
    """

    def __init__(
        self,
        formats: FormatRegistry | None = None,
        settings: QuerySettings | None = None,
    ):
        self._formats = formats if formats is not None else format_registry
        self._settings = settings

    def get_parameters(
        self,
        context: QueryContext | None = None,
        printer: ResultPrinter | None = None,
    ) -> dict[str, ParamDef]:
        """Default definitions, extended by ``printer`` when given."""
        definitions = default_param_definitions(self._settings, self._formats.resolve_alias)
        if printer is not None:
            definitions = printer.get_param_definitions(definitions)
        return definitions

    def process(
        self,
        raw_params: Mapping[str, Any],
        print_requests: Sequence[PrintRequest] = (),
        unknown_invalid: bool = True,
        context: QueryContext | None = None,
        show_mode: bool = False,
    ) -> ParamSet:
        """
        Validate ``raw_params`` and fill defaults.

        Raises:
            ParameterInvalidError: unknown names under ``unknown_invalid``,
                or an invalid value for a critical definition
        """
        raw = {str(name).strip().lower(): value for name, value in raw_params.items()}

        definitions = self.get_parameters(context)
        format_def = definitions["format"].bind(print_requests, show_mode)
        definitions["format"] = format_def

        format_param = self._validate_one(format_def, raw)
        if self._formats.is_registered(format_param.value):
            printer = self._formats.resolve(format_param.value, context or QueryContext.SPECIAL_PAGE).printer
            definitions = printer.get_param_definitions(definitions)
            definitions["format"] = format_def

        names = dict(self._alias_map(definitions))
        unknown = sorted(name for name in raw if name not in names)
        if unknown:
            if unknown_invalid:
                raise ParameterInvalidError(
                    f"Unknown parameters: {', '.join(unknown)}",
                    unknown_params=unknown,
                )
            log.debug("params.unknown_dropped", names=unknown)

        resolved: dict[str, Any] = {}
        for name, value in raw.items():
            if name in names:
                resolved[names[name]] = value

        params: ParamSet = {"format": format_param}
        invalid: dict[str, str] = {}
        for name, definition in definitions.items():
            if name == "format":
                continue
            param = self._validate_one(definition, resolved)
            if param.warnings and definition.critical:
                invalid[name] = param.warnings[0]
            params[name] = param

        if invalid:
            message = ". ".join(f"Invalid parameter '{name}': {error}" for name, error in invalid.items())
            raise ParameterInvalidError(message, invalid_params=invalid)

        # A printer-specific default must not change the numeric type of limit.
        if "limit" in raw and "limit" in params:
            corrected = parse_int(raw["limit"])
            if corrected.is_ok():
                params["limit"].value = corrected.value

        return params

    def _validate_one(self, definition: ParamDef, raw: Mapping[str, Any]) -> ValidatedParam:
        if definition.name not in raw:
            return ValidatedParam(
                name=definition.name,
                value=definition.default_value(),
                provenance=ParamProvenance.DEFAULT,
            )

        result = definition.coerce(raw[definition.name])
        if result.is_ok():
            return ValidatedParam(name=definition.name, value=result.value)

        warning = str(result.error)
        log.debug("params.invalid_value", name=definition.name, error=warning)
        return ValidatedParam(
            name=definition.name,
            value=definition.default_value(),
            provenance=ParamProvenance.DEFAULT,
            warnings=[warning],
        )

    @staticmethod
    def _alias_map(definitions: Mapping[str, ParamDef]):
        for name, definition in definitions.items():
            yield name, name
            for alias in definition.aliases:
                yield alias, name


# =============================================================================
# Total parsers
# =============================================================================


_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_TRUE_VALUES = frozenset({"yes", "true", "on", "1"})
_FALSE_VALUES = frozenset({"no", "false", "off", "0"})


def parse_int(value: Any) -> Result[int]:
    """Parse an integer; anything but optional sign and digits is an error."""
    if isinstance(value, bool):
        return Err(TypeError("Expected an integer, got bool"))
    if isinstance(value, int):
        return Ok(value)
    if isinstance(value, str) and _INT_PATTERN.match(value.strip()):
        return Ok(int(value.strip()))
    return Err(ValueError(f"Not an integer: {value!r}"))


def parse_bool(value: Any) -> Result[bool]:
    """Parse yes/no, true/false, on/off or 1/0 (case-insensitive)."""
    if isinstance(value, bool):
        return Ok(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return Ok(True)
    if text in _FALSE_VALUES:
        return Ok(False)
    return Err(ValueError(f"Not a boolean: {value!r}"))


def parse_list(value: Any, delimiter: str = ",") -> Result[list[str]]:
    """Split a delimited string into stripped, non-empty items."""
    if isinstance(value, (list, tuple)):
        return Ok([str(item).strip() for item in value if str(item).strip()])
    if isinstance(value, str):
        return Ok([item.strip() for item in value.split(delimiter) if item.strip()])
    return Err(TypeError(f"Expected a list or string, got {type(value).__name__}"))

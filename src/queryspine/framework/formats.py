"""Result format registry.

Manifesto:
    Format names map to printer factories through an explicit table that is
    populated at startup, so looking up a format never imports or reflects
    on anything. Legacy names are resolved through a separate alias table
    before the lookup.

Tags:
    queryspine, framework, registry, formats, printers

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from queryspine.core.errors import FormatNotRegisteredError
from queryspine.framework.logging import get_logger
from queryspine.framework.printers import DeferralKind, NullResultPrinter, ResultPrinter
from queryspine.framework.text_processor import LazyTextProcessor, text_processor_cell
from queryspine.query.models import QueryContext, QueryMode

log = get_logger(__name__)

PrinterFactory = Callable[..., ResultPrinter]

DEFAULT_FORMAT_ALIASES: dict[str, str] = {
    "rss": "feed",
    "broadtable": "table",
    "template": "plainlist",
}


@dataclass(frozen=True)
class FormatDescriptor:
    """
    A resolved format: canonical name, printer factory and a bound printer.

    Two descriptors are equal when they name the same format and factory;
    the printer instance is per-resolution and does not take part.
    """

    name: str
    factory: PrinterFactory
    printer: ResultPrinter = field(compare=False, repr=False)

    @property
    def default_sort(self) -> str:
        return self.printer.default_sort

    @property
    def deferral_kind(self) -> DeferralKind:
        return self.printer.is_deferrable()

    def query_mode(self, context: QueryContext) -> QueryMode:
        return self.printer.get_query_mode(context)


class FormatRegistry:
    """
    Registry for result formats.

    Usage:
        registry = FormatRegistry()
        registry.register("table", TablePrinter, aliases=["broadtable"])

        descriptor = registry.resolve("broadtable", QueryContext.INLINE_QUERY)
        descriptor.name  # "table"
    """

    def __init__(
        self,
        text_processor: LazyTextProcessor | None = None,
        aliases: Mapping[str, str] | None = None,
        builtins: bool = True,
    ):
        self._text_processor = text_processor if text_processor is not None else text_processor_cell
        self._factories: dict[str, PrinterFactory] = {}
        self._aliases: dict[str, str] = {}
        self._builtins = builtins
        self.reset(aliases)

    @property
    def text_processor(self) -> LazyTextProcessor:
        """The cell whose processor is bound to every resolved printer."""
        return self._text_processor

    def register(self, name: str, factory: PrinterFactory, aliases: Iterable[str] = ()) -> None:
        """Register a printer factory under ``name``."""
        name = name.strip().lower()
        self._factories[name] = factory
        for alias in aliases:
            self.register_alias(alias, name)
        log.debug("format_registered", name=name, factory=getattr(factory, "__name__", repr(factory)))

    def register_alias(self, alias: str, canonical: str) -> None:
        self._aliases[alias.strip().lower()] = canonical.strip().lower()

    def unregister(self, name: str) -> None:
        self._factories.pop(name.strip().lower(), None)

    def resolve_alias(self, name: str) -> str:
        """Map a legacy format name to its canonical name (pure lookup)."""
        name = name.strip().lower()
        return self._aliases.get(name, name)

    def is_registered(self, name: str) -> bool:
        return self.resolve_alias(name) in self._factories

    def list_formats(self) -> list[str]:
        return sorted(self._factories)

    def resolve(self, name: str, context: QueryContext = QueryContext.SPECIAL_PAGE) -> FormatDescriptor:
        """
        Resolve a format name to a descriptor with a fresh printer.

        The printer is told whether it runs inline (any context but the
        special page) and is bound to the shared text processor.

        Raises:
            FormatNotRegisteredError: If the alias-resolved name is unknown
        """
        canonical = self.resolve_alias(name)
        factory = self._factories.get(canonical)
        if factory is None:
            log.debug("format.resolve_failed", name=name, canonical=canonical)
            raise FormatNotRegisteredError(canonical)

        printer = factory(canonical, inline=context is not QueryContext.SPECIAL_PAGE)
        printer.set_text_processor(self._text_processor.get())
        return FormatDescriptor(name=canonical, factory=factory, printer=printer)

    def reset(self, aliases: Mapping[str, str] | None = None) -> None:
        """Forget all registrations, then restore built-ins and default aliases."""
        self._factories.clear()
        self._aliases = dict(DEFAULT_FORMAT_ALIASES)
        for alias, canonical in (aliases or {}).items():
            self.register_alias(alias, canonical)
        if self._builtins:
            register_builtin_formats(self)


def register_builtin_formats(registry: FormatRegistry) -> None:
    """``count`` and ``debug`` are rendered by the dispatcher itself."""
    registry.register("count", NullResultPrinter)
    registry.register("debug", NullResultPrinter)


# Global registry
format_registry = FormatRegistry()


def register_format(
    name: str,
    *,
    aliases: Iterable[str] = (),
    registry: FormatRegistry | None = None,
) -> Callable[[PrinterFactory], PrinterFactory]:
    """Decorator to register a printer class."""

    def decorator(cls: PrinterFactory) -> PrinterFactory:
        (registry if registry is not None else format_registry).register(name, cls, aliases)
        return cls

    return decorator

"""
Result printer package.

Concrete printers live with the host application; this package provides
the protocol, a base class and the null printer used by ``count``/``debug``.
"""

from queryspine.framework.printers.null import NullResultPrinter
from queryspine.framework.printers.protocol import BaseResultPrinter, DeferralKind, ResultPrinter

__all__ = [
    "DeferralKind",
    "ResultPrinter",
    "BaseResultPrinter",
    "NullResultPrinter",
]

"""Shared text post-processing service for result printers.

Printers hand rendered cell text to a ``RecursiveTextProcessor`` when the
text itself may contain markup that needs another parse pass. One processor
is shared by every printer in the process; it is created on first use by a
``LazyTextProcessor`` cell, which the format registry receives at
construction time.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from queryspine.framework.logging import get_logger

log = get_logger(__name__)


class RecursiveTextProcessor:
    """
    Applies a parse callback to printer output, bounded by a nesting depth.

    ``parse`` defaults to the identity; hosts install their markup parser.
    Text that would nest deeper than ``max_depth`` is returned unparsed and
    an error is recorded.

    One instance serves every thread. Nesting depth and errors are kept per
    thread, and ``errors`` holds only what the calling thread's latest
    outermost ``recursive_parse`` reported.
    """

    def __init__(self, parse: Callable[[str], str] | None = None, max_depth: int = 5):
        self._parse = parse or (lambda text: text)
        self._max_depth = max_depth
        self._local = threading.local()

    @property
    def errors(self) -> list[str]:
        return list(getattr(self._local, "errors", ()))

    def recursive_parse(self, text: str) -> str:
        local = self._local
        depth = getattr(local, "depth", 0)
        if depth == 0:
            local.errors = []

        if depth >= self._max_depth:
            local.errors.append(f"Maximum text processing depth ({self._max_depth}) exceeded")
            log.debug("text_processor.depth_exceeded", max_depth=self._max_depth)
            return text

        local.depth = depth + 1
        try:
            return self._parse(text)
        finally:
            local.depth = depth


class LazyTextProcessor:
    """
    Create-once cell for the shared text processor.

    ``get()`` builds the processor on first use; concurrent first callers
    serialize on a lock and all receive the same instance. ``set()`` injects
    a specific processor and ``reset()`` drops it so the next ``get()``
    builds a fresh one. Printers already holding the old instance keep it.
    """

    def __init__(self, factory: Callable[[], RecursiveTextProcessor] = RecursiveTextProcessor):
        self._factory = factory
        self._instance: RecursiveTextProcessor | None = None
        self._lock = threading.Lock()

    def get(self) -> RecursiveTextProcessor:
        instance = self._instance
        if instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self._factory()
                    log.debug("text_processor.created", factory=getattr(self._factory, "__name__", repr(self._factory)))
                instance = self._instance
        return instance

    def set(self, instance: RecursiveTextProcessor | None) -> None:
        with self._lock:
            self._instance = instance

    def reset(self) -> None:
        self.set(None)

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None


# Process-wide cell
text_processor_cell = LazyTextProcessor()

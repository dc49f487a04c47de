"""
Shared pytest fixtures and configuration for queryspine tests.

This module provides:
- Registry, settings and logging-context cleanup for test isolation
- Fixtures wrapping the fakes in ``tests/_support/fakes.py``

Usage:
    Fixtures are auto-discovered by pytest:

    def test_count(printers, source, parser):
        ...
"""

from pathlib import Path

import pytest

from queryspine.core.settings import reset_settings
from queryspine.framework.formats import format_registry
from queryspine.framework.logging import clear_context
from queryspine.framework.sources import source_registry
from queryspine.framework.text_processor import text_processor_cell
from tests._support.fakes import RecordingSource, TokenListProcessor, register_fake_printers


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark processor end-to-end tests as integration, everything else as unit."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration"}):
            continue
        if Path(str(item.fspath)).name == "test_processor.py":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Reset registries, settings, the text processor and log context."""
    for key in ("DEFAULT_LIMIT", "MAX_LIMIT", "MAX_INLINE_LIMIT", "DEFAULT_FORMAT", "DEFAULT_SOURCE", "FORMAT_ALIASES"):
        monkeypatch.delenv(f"QUERYSPINE_{key}", raising=False)

    format_registry.reset()
    source_registry.clear()
    reset_settings()
    text_processor_cell.reset()
    clear_context()
    yield
    format_registry.reset()
    source_registry.clear()
    reset_settings()
    text_processor_cell.reset()
    clear_context()


@pytest.fixture
def printers():
    """Register the fake printers with the global format registry."""
    register_fake_printers()
    return format_registry


@pytest.fixture
def source():
    """A recording source registered as the default."""
    recording = RecordingSource()
    source_registry.register(recording)
    return recording


@pytest.fixture
def parser():
    return TokenListProcessor()

"""Tests for the shared text processor and its lazy cell."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from queryspine.framework.text_processor import LazyTextProcessor, RecursiveTextProcessor


class TestRecursiveTextProcessor:
    def test_identity_by_default(self):
        assert RecursiveTextProcessor().recursive_parse("''Berlin''") == "''Berlin''"

    def test_applies_parse_callback(self):
        processor = RecursiveTextProcessor(parse=str.upper)

        assert processor.recursive_parse("berlin") == "BERLIN"
        assert processor.errors == []

    def test_depth_limit(self):
        processor = RecursiveTextProcessor(parse=lambda text: processor.recursive_parse(text + "x"), max_depth=2)

        assert processor.recursive_parse("a") == "axx"
        assert len(processor.errors) == 1
        assert "depth (2)" in processor.errors[0]

    def test_depth_resets_after_error(self):
        def explode(text):
            raise RuntimeError("parser failed")

        processor = RecursiveTextProcessor(parse=explode, max_depth=1)
        for _ in range(3):
            with pytest.raises(RuntimeError):
                processor.recursive_parse("a")

        assert processor.errors == []

    def test_errors_cleared_on_each_outermost_call(self):
        processor = RecursiveTextProcessor(max_depth=0)

        for _ in range(1000):
            assert processor.recursive_parse("a") == "a"

        assert len(processor.errors) == 1

        processor = RecursiveTextProcessor(parse=lambda text: processor.recursive_parse(text + "x"), max_depth=1)
        processor.recursive_parse("a")
        assert len(processor.errors) == 1

    def test_errors_are_per_thread(self):
        processor = RecursiveTextProcessor(max_depth=0)
        processor.recursive_parse("a")

        with ThreadPoolExecutor(max_workers=1) as pool:
            assert pool.submit(lambda: processor.errors).result() == []

        assert len(processor.errors) == 1

    def test_parse_runs_concurrently(self):
        barrier = threading.Barrier(4, timeout=5)

        def parse(text):
            barrier.wait()
            return text.upper()

        processor = RecursiveTextProcessor(parse=parse)
        with ThreadPoolExecutor(max_workers=4) as pool:
            outputs = list(pool.map(processor.recursive_parse, ["a", "b", "c", "d"]))

        assert outputs == ["A", "B", "C", "D"]
        assert processor.errors == []

    def test_depth_is_per_thread(self):
        barrier = threading.Barrier(2, timeout=5)

        def parse(text):
            barrier.wait()
            return text

        processor = RecursiveTextProcessor(parse=parse, max_depth=1)
        with ThreadPoolExecutor(max_workers=2) as pool:
            outputs = list(pool.map(processor.recursive_parse, ["a", "b"]))

        assert outputs == ["a", "b"]


class TestLazyTextProcessor:
    def test_created_once(self):
        created = []

        def factory():
            created.append(1)
            return RecursiveTextProcessor()

        cell = LazyTextProcessor(factory)

        assert not cell.is_initialized
        assert cell.get() is cell.get()
        assert len(created) == 1
        assert cell.is_initialized

    def test_set_and_reset(self):
        cell = LazyTextProcessor()
        injected = RecursiveTextProcessor(parse=str.lower)

        cell.set(injected)
        assert cell.get() is injected

        cell.reset()
        assert not cell.is_initialized
        assert cell.get() is not injected

    def test_concurrent_first_use_builds_one_instance(self):
        created = []
        lock = threading.Lock()

        def slow_factory():
            time.sleep(0.01)
            with lock:
                created.append(1)
            return RecursiveTextProcessor()

        cell = LazyTextProcessor(slow_factory)
        with ThreadPoolExecutor(max_workers=8) as pool:
            instances = list(pool.map(lambda _: cell.get(), range(16)))

        assert len(created) == 1
        assert all(instance is instances[0] for instance in instances)

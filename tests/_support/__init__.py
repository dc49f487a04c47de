"""
Test support utilities for queryspine tests.

Fakes that tests construct directly live here; fixtures that wrap them are
in ``tests/conftest.py``.
"""

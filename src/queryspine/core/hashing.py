"""
Deterministic hashing utilities for result change detection.

Callers that ask for a result hash (``calc.result_hash``) compare the value
stored on the query between two executions to find out whether a result set
changed. The hash therefore has to be stable across processes: same rows in
the same order always produce the same digest.

Examples:
    >>> compute_hash("Berlin", 3_645_000) == compute_hash("Berlin", 3_645_000)
    True
    >>> compute_hash("a", "b") != compute_hash("b", "a")
    True
    >>> len(compute_hash("test", length=16))
    16

Tags:
    hashing, change-detection, queryspine
"""

import hashlib
import json
from typing import Any


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Values are joined by ``|`` after string conversion and hashed with
    SHA-256. The hex digest is truncated to ``length`` characters.
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]


def compute_rows_hash(rows: list[dict[str, Any]], length: int = 32) -> str:
    """
    Compute a quick content hash over result rows.

    Each row is serialized with sorted keys so that dict ordering does not
    leak into the digest; row order does.
    """
    serialized = [json.dumps(row, sort_keys=True, default=str) for row in rows]
    return compute_hash(len(rows), *serialized, length=length)

"""JSON serialization and payload checksums."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def dumps_compact(value: Any, *, sort_keys: bool = False) -> str:
    """Serialize *value* the way the receiving services do.

    Compact separators, non-ASCII kept as-is. Key order is insertion
    order unless *sort_keys* is set.
    """
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=sort_keys)


def payload_checksum(payload: Any, *, sort_keys: bool = False) -> str:
    """SHA-256 hex digest of the compact JSON serialization of *payload*.

    Two equal mappings with different insertion order produce different
    checksums unless *sort_keys* is set.
    """
    return hashlib.sha256(dumps_compact(payload, sort_keys=sort_keys).encode("utf-8")).hexdigest()

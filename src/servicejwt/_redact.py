"""Helpers for safe error logging.

Requests carry signed access tokens and encrypted identity pairs. This
module redacts those fields before they are attached to log records.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "x-access-token",
        "authorization",
        "cookie",
        "service_secret",
        "servicesecret",
        "service_token",
        "servicetoken",
        "usertoken",
        "user_token",
        "password",
    }
)


def _is_sensitive(key: Any) -> bool:
    return str(key).lower() in _SENSITIVE_VALUE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* safe to attach to a log record.

    Handles what the client logs: header mappings, flattened errors and
    decoded response bodies. Sensitive keys are masked at any depth, long
    strings are cut at *max_string* characters and anything that is not
    JSON-like is replaced by its ``repr``.
    """
    if isinstance(value, Mapping):
        return {
            str(k): REDACTED if _is_sensitive(k) else redact_for_log(v, max_string=max_string)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(v, max_string=max_string) for v in value]
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return repr(value)


def describe_error(error: Any) -> dict[str, Any]:
    """Flatten an error into a redacted dict for the ``extra`` of a log record."""
    if isinstance(error, Mapping):
        fields = dict(error)
    else:
        fields = {
            "type": type(error).__name__,
            "message": str(error),
            **{k: v for k, v in getattr(error, "__dict__", {}).items() if not k.startswith("_")},
        }
    return redact_for_log(fields)

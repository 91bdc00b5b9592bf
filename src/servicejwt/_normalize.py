"""Classification of arbitrary transport/application errors.

Accepts exceptions or plain mappings. Precedence, applied in order:

1. a 4xx ``status_code`` is used as both status and code;
2. a nested body/error mapping supplies ``name``, then ``code``, else
   ``EUNSPECIFIED``;
3. otherwise the bare ``code``, else ``ENOERROR``.

When no status code is present one is derived from the chosen code.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_DEFAULT_STATUS = 500
_CODE_STATUS: dict[str, int] = {
    "ENOTFOUND": 502,  # no dns resolution
    "ECONNREFUSED": 503,
}

# Python attribute name first, then the JSON spelling used by services.
_ALIASES: dict[str, tuple[str, ...]] = {
    "status_code": ("status_code", "statusCode"),
    "status_message": ("status_message", "statusMessage"),
    "status": ("status",),
    "code": ("code",),
    "name": ("name",),
    "body": ("body",),
    "error": ("error",),
}


def get_field(error: Any, field: str) -> Any:
    """Read *field* from an exception attribute or a mapping key."""
    for name in _ALIASES.get(field, (field,)):
        if isinstance(error, Mapping):
            value = error.get(name)
        else:
            value = getattr(error, name, None)
        if value is not None:
            return value
    return None


def status_for_code(code: Any) -> int:
    return _CODE_STATUS.get(str(code), _DEFAULT_STATUS)


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def nested_error(error: Any) -> Mapping[str, Any] | None:
    """Return the error's nested body/error object, if it has one."""
    for field in ("body", "error"):
        value = get_field(error, field)
        if isinstance(value, Mapping):
            return value
    return None


def normalize_error(error: Any) -> tuple[int, str | int]:
    """Return ``(status_code, code)`` for *error*."""
    status = _as_status(get_field(error, "status_code"))

    if status is not None and 400 <= status < 500:
        return status, status

    nested = nested_error(error)
    if nested is not None:
        code = nested.get("name") or nested.get("code") or "EUNSPECIFIED"
    else:
        code = get_field(error, "code") or "ENOERROR"

    if status is None:
        status = status_for_code(code)
    return status, code


def response_labels(source: Any) -> dict[str, Any]:
    """Timer labels describing a response or error outcome."""
    labels: dict[str, Any] = {}
    status = get_field(source, "status")
    if status:
        labels["status"] = status
    status_code = get_field(source, "status_code")
    if status_code:
        labels["status_code"] = status_code
    status_message = get_field(source, "status_message")
    if status_message:
        labels["status_message"] = status_message
    return labels

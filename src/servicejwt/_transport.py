"""HTTP transport with explicit request lifecycle hooks."""

from __future__ import annotations

import asyncio
import errno
import json
import logging
import socket
from typing import Any, Protocol

import aiohttp

from servicejwt._redact import redact_for_log
from servicejwt.exceptions import TransportError
from servicejwt.models import RequestOptions, TransportResponse

_logger = logging.getLogger(__name__)


class RequestHooks(Protocol):
    """Lifecycle stages a transport reports to the dispatcher.

    ``before_request`` fires once per attempt. An attempt then ends with
    exactly one of ``before_retry`` (another attempt follows),
    ``after_response`` or ``before_error``; ``after_response`` may be
    followed by ``before_error`` for an HTTP error status.
    """

    def before_request(self) -> None: ...

    def before_retry(self, error: TransportError, retry_count: int) -> None: ...

    def after_response(self, response: TransportResponse) -> None: ...

    def before_error(self, error: TransportError) -> None: ...


class Transport(Protocol):
    """Structural transport interface used by :class:`ServiceClient`.

    Implementations that retry must report every attempt through *hooks*;
    the client itself never retries.
    """

    async def request(
        self,
        method: str,
        options: RequestOptions,
        hooks: RequestHooks,
    ) -> TransportResponse: ...


def _connection_error_code(exc: BaseException) -> str | None:
    """Map a low-level connection failure to its errno-style code."""
    if isinstance(exc, asyncio.TimeoutError):
        return "ETIMEDOUT"
    if isinstance(exc, aiohttp.ClientConnectorDNSError):
        return "ENOTFOUND"
    os_error = getattr(exc, "os_error", None)
    if isinstance(os_error, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(os_error, ConnectionRefusedError):
        return "ECONNREFUSED"
    err_no = getattr(os_error, "errno", None)
    if err_no is not None:
        return errno.errorcode.get(err_no)
    return None


def _parse_body(text: str) -> Any:
    if not text.strip():
        return text
    return json.loads(text)


class AiohttpTransport:
    """Single-attempt transport backed by an :class:`aiohttp.ClientSession`.

    Parameters
    ----------
    http_session : aiohttp.ClientSession
        Session owned by the caller.
    timeout : float, optional
        Total request timeout in seconds, unless the request's own
        options carry a ``timeout``.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float | None = None) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else None

    async def request(
        self,
        method: str,
        options: RequestOptions,
        hooks: RequestHooks,
    ) -> TransportResponse:
        kwargs: dict[str, Any] = dict(options.extra)
        if self._timeout is not None:
            kwargs.setdefault("timeout", self._timeout)
        headers = {**kwargs.pop("headers", {}), **options.headers}
        if options.json_body is not None:
            headers.setdefault("content-type", "application/json")
            kwargs["data"] = options.json_body.encode("utf-8")
        if options.params:
            kwargs["params"] = options.params

        _logger.debug("%s %s headers=%s", method.upper(), options.url, redact_for_log(headers))

        hooks.before_request()
        try:
            async with self._http.request(method.upper(), options.url, headers=headers, **kwargs) as resp:
                text = await resp.text()
                status = resp.status
                reason = resp.reason
                resp_headers = dict(resp.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            error = TransportError(
                f"{method.upper()} {options.url} failed: {exc!r}",
                name=type(exc).__name__,
                code=_connection_error_code(exc),
                request_headers=headers,
            )
            hooks.before_error(error)
            raise error from exc

        if status >= 400:
            try:
                body: Any = _parse_body(text)
            except json.JSONDecodeError:
                body = text
            response = TransportResponse(status_code=status, status_message=reason, body=body, headers=resp_headers)
            hooks.after_response(response)
            error = TransportError(
                f"Response code {status} ({reason})",
                name="HTTPError",
                status_code=status,
                status_message=reason,
                body=body,
                request_headers=headers,
            )
            hooks.before_error(error)
            raise error

        try:
            body = _parse_body(text)
        except json.JSONDecodeError as exc:
            error = TransportError(
                f"Invalid JSON from {options.url}: {text[:200]}",
                name="ParseError",
                code="EINVALIDJSON",
                request_headers=headers,
            )
            hooks.before_error(error)
            raise error from exc

        response = TransportResponse(status_code=status, status_message=reason, body=body, headers=resp_headers)
        hooks.after_response(response)
        return response

"""Async client for JWT-authenticated service-to-service calls."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Callable, Mapping
from typing import Any, NoReturn

import aiohttp

from servicejwt._crypto.codec import IdentityPairCipher, decrypt_value, encrypt_value
from servicejwt._crypto.hashing import dumps_compact
from servicejwt._normalize import get_field, nested_error, normalize_error, response_labels
from servicejwt._redact import describe_error
from servicejwt._template import EndpointTemplater
from servicejwt._token import TokenIssuer
from servicejwt._transport import AiohttpTransport, Transport
from servicejwt.config import ClientOptions, ServiceIdentity
from servicejwt.exceptions import ErrorKind, ServiceClientError, TransportError
from servicejwt.metrics import NOOP_TIMER, StopTimer, Timer
from servicejwt.models import RequestDescriptor, RequestOptions, TransportResponse

_logger = logging.getLogger(__name__)

_METHODS = frozenset({"get", "post"})

ErrorMapper = Callable[[ServiceClientError], BaseException]
LoggerLike = logging.Logger | logging.LoggerAdapter


def coerce_body(body: Any) -> Any:
    """Empty or whitespace-only bodies become ``{}``; anything else is kept."""
    if body is None:
        return {}
    if isinstance(body, (str, bytes)) and not body.strip():
        return {}
    return body


def _has_data(payload: Any) -> bool:
    if payload is None:
        return False
    if isinstance(payload, (Mapping, list, tuple, str)):
        return len(payload) > 0
    return True


def format_error_message(type_: str, error: Any, labels: Mapping[str, Any]) -> str:
    """Single-line description of a failed request.

    Segments are always present, empty when unknown, so the layout stays
    stable for log parsing::

        JWT API request error: Client: GET https://svc/user/:id - name - code - status - message - {body}
    """
    name = get_field(error, "name")
    if name is None and isinstance(error, BaseException):
        name = type(error).__name__
    segments = [
        f"{labels['base_url']}{labels['url']}",
        name,
        get_field(error, "code"),
        get_field(error, "status_code"),
        get_field(error, "status_message"),
    ]
    body = nested_error(error)
    return (
        f"JWT {type_} request error: {labels['client_name']}: {str(labels['method']).upper()} "
        + " - ".join("" if segment is None else str(segment) for segment in segments)
        + " - "
        + (dumps_compact(dict(body)) if body else "")
    )


class _RequestTracker:
    """Per-call implementation of the transport hooks.

    Keeps the request-level timer paired: every start is matched by
    exactly one stop.
    """

    def __init__(
        self,
        client: ServiceClient,
        labels: dict[str, Any],
        logger: LoggerLike | None,
    ) -> None:
        self._client = client
        self._labels = labels
        self._logger = logger
        self._stop: StopTimer | None = None
        self.retry_count = 0

    def _stop_timer(self, source: Any) -> None:
        stop, self._stop = self._stop, None
        if stop is not None:
            stop(response_labels(source) if source is not None else {})

    def before_request(self) -> None:
        self._stop_timer(None)
        self._stop = self._client.request_metrics.start_timer(self._labels)

    def before_retry(self, error: TransportError, retry_count: int) -> None:
        self.retry_count = retry_count
        error.retry_count = retry_count
        self._client._log_error("client", error, self._labels, self._logger)
        self._stop_timer(error)

    def after_response(self, response: TransportResponse) -> None:
        if response.status_code >= 400:
            error = {
                "status_code": response.status_code,
                "status_message": response.status_message,
                "body": response.body,
                "retry_count": self.retry_count,
            }
            self._client._log_error("client", error, self._labels, self._logger)
        self._stop_timer(response)

    def before_error(self, error: TransportError) -> None:
        error.retry_count = self.retry_count
        self._stop_timer(error)

    def finish(self, source: Any) -> None:
        """Stop a timer the transport left running."""
        self._stop_timer(source)


class ServiceClient:
    """Client for a microservice that authenticates with JWT access tokens.

    Every request carries an ``x-access-token`` header: a JWT signed with
    the service token whose ``checksum`` claim binds the payload. The
    service secret additionally encrypts user identity pairs.

    Usage::

        async with ServiceClient(secret, token, "my-service", "https://svc") as client:
            user = await client.send_get({"url": "/user/:userId", "context": {"userId": "u1"}})

    Parameters
    ----------
    service_secret, service_token, service_slug, base_url : str
        Service identity; see :class:`~servicejwt.config.ServiceIdentity`.
        Missing values fail in that order.
    options : ClientOptions, optional
        Behavioural options.
    transport : Transport, optional
        Transport to use instead of the default aiohttp one.
    session : aiohttp.ClientSession, optional
        Session for the default transport. Not closed by the client.
    error_mapper : callable, optional
        Turns each :class:`ServiceClientError` into the exception actually
        raised. The mapped exception is chained from the original.
    """

    def __init__(
        self,
        service_secret: str | None = None,
        service_token: str | None = None,
        service_slug: str | None = None,
        base_url: str | None = None,
        *,
        options: ClientOptions | None = None,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
        error_mapper: ErrorMapper | None = None,
    ) -> None:
        self._error_mapper = error_mapper
        try:
            identity = ServiceIdentity(service_secret, service_token, service_slug, base_url)
        except ServiceClientError as exc:
            self._throw(exc)

        self._identity = identity
        self._options = options or ClientOptions()
        self._token_issuer = TokenIssuer(
            identity.service_token,
            algorithm=self._options.token_algorithm,
            sort_keys=self._options.sort_payload_keys,
        )
        self._templater = EndpointTemplater(identity.base_url)
        self._identity_pair = IdentityPairCipher(identity.service_secret)
        self._transport = transport
        self._http_session = session
        self._owns_session = False
        self.api_metrics: Timer = NOOP_TIMER
        self.request_metrics: Timer = NOOP_TIMER

    @classmethod
    def from_env(cls, *, error_mapper: ErrorMapper | None = None, **kwargs: Any) -> ServiceClient:
        """Create a client from ``SERVICE_*`` / ``SERVICEJWT_*`` variables."""
        try:
            identity = ServiceIdentity.from_env()
        except ServiceClientError as exc:
            if error_mapper is not None:
                raise error_mapper(exc) from exc
            raise
        kwargs.setdefault("options", ClientOptions.from_env())
        return cls(
            identity.service_secret,
            identity.service_token,
            identity.service_slug,
            identity.base_url,
            error_mapper=error_mapper,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ServiceClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._transport = AiohttpTransport(self._http_session, timeout=self._options.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
        self._owns_session = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def identity(self) -> ServiceIdentity:
        return self._identity

    @property
    def client_name(self) -> str:
        return self._options.client_name or type(self).__name__

    def set_metrics_instrumentation(
        self,
        api_metrics: Timer | None = None,
        request_metrics: Timer | None = None,
    ) -> None:
        """Install timers for whole API calls and for individual attempts."""
        self.api_metrics = api_metrics or NOOP_TIMER
        self.request_metrics = request_metrics or NOOP_TIMER

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _throw(self, error: ServiceClientError) -> NoReturn:
        if self._error_mapper is not None:
            raise self._error_mapper(error) from error
        raise error

    def _is_client_error(self, exc: BaseException) -> bool:
        if isinstance(exc, ServiceClientError):
            return True
        return self._error_mapper is not None and isinstance(exc.__cause__, ServiceClientError)

    def _log_error(
        self,
        type_: str,
        error: Any,
        labels: Mapping[str, Any],
        logger: LoggerLike | None,
        normalized: Mapping[str, Any] | None = None,
    ) -> None:
        if logger is None:
            return
        record_labels = {**labels, **(normalized or {}), "name": f"jwt_{type_.lower()}_request_error"}
        logger.error(
            format_error_message(type_, error, labels),
            extra={"labels": record_labels, "error": describe_error(error)},
        )

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, key: str, data: Any, iv_seed: str | None = None) -> str:
        """Encrypt *data* with *key*; random IV unless *iv_seed* is given."""
        try:
            return encrypt_value(key, data, iv_seed)
        except ServiceClientError as exc:
            self._throw(exc)

    def decrypt(self, key: str, data: str) -> Any:
        """Decrypt *data* produced by :meth:`encrypt` with the same key."""
        try:
            return decrypt_value(key, data)
        except ServiceClientError as exc:
            self._throw(exc)

    def encrypt_user_id_and_token(self, user_id: str, user_token: str) -> str:
        """Encrypt a user identity pair with the service secret.

        Always returns the same value for the same pair.
        """
        try:
            return self._identity_pair.encrypt(user_id, user_token)
        except ServiceClientError as exc:
            self._throw(exc)

    def decrypt_user_id_and_token(self, data: str) -> dict[str, Any]:
        try:
            return self._identity_pair.decrypt(data)
        except ServiceClientError as exc:
            self._throw(exc)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def generate_access_token(self, payload: Any) -> str:
        return self._token_issuer.issue(payload)

    def create_endpoint_url(self, url_pattern: str, substitutions: Mapping[str, Any] | None = None) -> str:
        try:
            return self._templater.build(url_pattern, substitutions)
        except ServiceClientError as exc:
            self._throw(exc)

    def create_request_options(
        self,
        url_pattern: str,
        substitutions: Mapping[str, Any] | None = None,
        payload: Any = None,
        is_get: bool = False,
    ) -> RequestOptions:
        """Build url, headers and payload placement for one request.

        A GET sends a non-empty payload as base64 JSON in the ``payload``
        query parameter and never has a body. A POST sends the payload,
        ``{}`` when absent, as the JSON body.
        """
        data = {} if payload is None else payload
        access_token = self.generate_access_token(data)
        url = self.create_endpoint_url(url_pattern, substitutions)
        headers = {"x-access-token": access_token}

        if is_get:
            params = None
            if _has_data(data):
                serialized = dumps_compact(data, sort_keys=self._token_issuer.sort_keys)
                encoded = base64.b64encode(serialized.encode("utf-8")).decode("ascii")
                params = {"payload": encoded}
            return RequestOptions(url=url, headers=headers, params=params)

        body = dumps_compact(data, sort_keys=self._token_issuer.sort_keys)
        return RequestOptions(url=url, headers=headers, json_body=body)

    def _require_transport(self) -> Transport:
        if self._transport is None:
            self._throw(
                ServiceClientError(
                    "Client not initialized. Use 'async with ServiceClient(...) as client:'",
                    kind=ErrorKind.CONFIG,
                    code="ENOTRANSPORT",
                )
            )
        return self._transport

    async def send(
        self,
        method: str,
        descriptor: RequestDescriptor | Mapping[str, Any],
        logger: LoggerLike | None = None,
    ) -> Any:
        """Send a request and return the decoded response body.

        Parameters
        ----------
        method : str
            ``"get"`` or ``"post"``.
        descriptor : RequestDescriptor or mapping
            What to call. Mappings are validated into a
            :class:`RequestDescriptor` (``url``/``context``/``payload``/
            ``send_options`` keys are accepted).
        logger : logging.Logger, optional
            Receives an error record for every failed attempt and for the
            final failure.

        Returns
        -------
        any
            The JSON body; ``{}`` for an empty body.

        Raises
        ------
        ServiceClientError
            Normalized failure (or whatever ``error_mapper`` returns).
        """
        method = method.lower()
        if method not in _METHODS:
            raise ValueError(f"Unsupported method {method!r}; expected one of {sorted(_METHODS)}")

        request = (
            descriptor if isinstance(descriptor, RequestDescriptor) else RequestDescriptor.model_validate(descriptor)
        )
        transport = self._require_transport()
        options = self.create_request_options(
            request.url_pattern,
            request.substitutions,
            request.payload,
            is_get=method == "get",
        )
        options.extra = dict(request.transport_options)

        labels: dict[str, Any] = {
            "client_name": self.client_name,
            "base_url": self._identity.base_url,
            "url": request.url_pattern,
            "method": method,
        }
        tracker = _RequestTracker(self, labels, logger)

        _logger.debug("%s %s", method.upper(), options.url)
        api_stop = self.api_metrics.start_timer(labels)
        try:
            response = await transport.request(method, options, tracker)
        except asyncio.CancelledError:
            tracker.finish(None)
            api_stop({})
            raise
        except Exception as exc:
            tracker.finish(exc)
            if self._is_client_error(exc):
                api_stop(response_labels(exc))
                raise

            status_code, code = normalize_error(exc)
            normalized = {"status_code": status_code, "code": code}
            stop_labels = {**response_labels(exc), "status_code": status_code}
            api_stop(stop_labels)
            self._log_error("API", exc, labels, logger, normalized)

            error = ServiceClientError(kind=ErrorKind.TRANSPORT, code=code, status_code=status_code)
            error.__cause__ = exc
            self._throw(error)

        tracker.finish(response)
        api_stop(response_labels(response))
        return coerce_body(response.body)

    async def send_get(self, descriptor: RequestDescriptor | Mapping[str, Any], logger: LoggerLike | None = None) -> Any:
        return await self.send("get", descriptor, logger)

    async def send_post(
        self, descriptor: RequestDescriptor | Mapping[str, Any], logger: LoggerLike | None = None
    ) -> Any:
        return await self.send("post", descriptor, logger)

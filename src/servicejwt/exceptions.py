"""Exception types for servicejwt."""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(enum.Enum):
    """Discriminant carried by every :class:`ServiceClientError`."""

    CONFIG = "config"
    PAYLOAD = "payload"
    TRANSPORT = "transport"


class ServiceClientError(Exception):
    """The only error type raised across the client boundary.

    Callers discriminate on ``kind``, ``code`` and ``status_code`` rather
    than on subclasses.

    Parameters
    ----------
    message : str
        Human-readable message. Defaults to ``str(code)``.
    kind : ErrorKind
        Broad category of the failure.
    code : str or int
        Machine-readable code, e.g. ``"ENOSERVICETOKEN"`` or ``404``.
    status_code : int
        HTTP-style status associated with the failure.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: ErrorKind,
        code: str | int,
        status_code: int = 500,
    ) -> None:
        self.kind = kind
        self.code = code
        self.status_code = status_code
        self.message = message if message is not None else str(code)
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, code={self.code!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )


class TransportError(Exception):
    """Raw failure raised by a transport before normalization.

    Only the fields the transport actually knows are set; the rest stay
    ``None``. Instances never leave :meth:`ServiceClient.send`.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str = "RequestError",
        code: str | None = None,
        status_code: int | None = None,
        status_message: str | None = None,
        body: Any = None,
        retry_count: int = 0,
        request_headers: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self.code = code
        self.status_code = status_code
        self.status_message = status_message
        self.body = body
        self.retry_count = retry_count
        self.request_headers = request_headers
        super().__init__(message)

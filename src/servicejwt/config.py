"""Client configuration for servicejwt."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from servicejwt.exceptions import ErrorKind, ServiceClientError

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "false", "no", "n", "off"})


def _env_flag(name: str) -> bool | None:
    """Read a boolean environment variable; unset or unrecognized gives ``None``."""
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return None


# Checked in this order; the first missing field wins.
_REQUIRED_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("service_secret", "ENOSERVICESECRET", "No service secret passed to client"),
    ("service_token", "ENOSERVICETOKEN", "No service token passed to client"),
    ("service_slug", "ENOSERVICESLUG", "No service slug passed to client"),
    ("base_url", "ENOMICROSERVICEURL", "No microservice url passed to client"),
)


@dataclasses.dataclass(frozen=True)
class ServiceIdentity:
    """Identity shared by every request a client issues.

    Parameters
    ----------
    service_secret : str
        Symmetric key for identity-pair encryption.
    service_token : str
        Symmetric key used to sign access tokens.
    service_slug : str
        Name of the calling service.
    base_url : str
        URL of the microservice to communicate with. Patterns are appended
        to it verbatim.

    Raises
    ------
    ServiceClientError
        Configuration error for the first missing field.
    """

    service_secret: str | None = None
    service_token: str | None = None
    service_slug: str | None = None
    base_url: str | None = None

    def __post_init__(self) -> None:
        for field_name, code, message in _REQUIRED_FIELDS:
            if not getattr(self, field_name):
                raise ServiceClientError(message, kind=ErrorKind.CONFIG, code=code, status_code=500)

    def __repr__(self) -> str:
        return (
            f"ServiceIdentity(service_slug={self.service_slug!r}, base_url={self.base_url!r}, "
            "service_secret=<redacted>, service_token=<redacted>)"
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> ServiceIdentity:
        """Create an identity from ``SERVICE_*`` environment variables.

        Reads ``SERVICE_SECRET``, ``SERVICE_TOKEN``, ``SERVICE_SLUG`` and
        ``SERVICE_URL``. Explicit keyword arguments override them.
        """
        env = os.environ
        _ENV_MAP = {
            "SERVICE_SECRET": "service_secret",
            "SERVICE_TOKEN": "service_token",
            "SERVICE_SLUG": "service_slug",
            "SERVICE_URL": "base_url",
        }
        kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kwargs[field_name] = val
        kwargs.update(overrides)
        return cls(**kwargs)


@dataclasses.dataclass(frozen=True)
class ClientOptions:
    """Behavioural options that are not part of the service identity.

    Parameters
    ----------
    client_name : str or None
        Name used in log messages and timer labels. Defaults to the
        client's class name.
    sort_payload_keys : bool
        Hash payloads with sorted keys when computing the access token
        checksum. Receivers must do the same.
    token_algorithm : str
        JWT algorithm for access tokens.
    request_timeout : float or None
        Total timeout in seconds applied by the default aiohttp transport.
        ``None`` keeps aiohttp's default.
    """

    client_name: str | None = None
    sort_payload_keys: bool = False
    token_algorithm: str = "HS256"
    request_timeout: float | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientOptions:
        """Create options from ``SERVICEJWT_*`` environment variables."""
        env = os.environ
        kwargs: dict[str, Any] = {}

        name = env.get("SERVICEJWT_CLIENT_NAME")
        if name is not None:
            kwargs["client_name"] = name

        algorithm = env.get("SERVICEJWT_TOKEN_ALGORITHM")
        if algorithm is not None:
            kwargs["token_algorithm"] = algorithm

        sort_keys = _env_flag("SERVICEJWT_SORT_PAYLOAD_KEYS")
        if sort_keys is not None:
            kwargs["sort_payload_keys"] = sort_keys

        timeout_env = env.get("SERVICEJWT_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            kwargs["request_timeout"] = float(timeout_env)

        kwargs.update(overrides)
        return cls(**kwargs)

"""Access tokens for the ``x-access-token`` header.

The token is a JWT whose claims bind the request payload through a SHA-256
checksum. It proves integrity and origin, not confidentiality.
"""

from __future__ import annotations

import hmac
import time
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict, ValidationError

from servicejwt._crypto.hashing import payload_checksum
from servicejwt.exceptions import ErrorKind, ServiceClientError

DEFAULT_ALGORITHM = "HS256"


class AccessTokenClaims(BaseModel):
    """Decoded access token claims."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    checksum: str
    iat: int


class TokenIssuer:
    """Signs per-request access tokens with the service token.

    Parameters
    ----------
    service_token : str
        Shared signing key.
    algorithm : str
        JWT signing algorithm.
    sort_keys : bool
        Serialize payloads with sorted keys before hashing. Off by default,
        which keeps checksums compatible with receivers that hash the body
        in received order.
    """

    def __init__(
        self,
        service_token: str,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        sort_keys: bool = False,
    ) -> None:
        self._service_token = service_token
        self._algorithm = algorithm
        self._sort_keys = sort_keys

    @property
    def sort_keys(self) -> bool:
        return self._sort_keys

    def checksum(self, payload: Any) -> str:
        return payload_checksum(payload, sort_keys=self._sort_keys)

    def issue(self, payload: Any) -> str:
        """Return a signed token for *payload*, issued now."""
        claims = {"checksum": self.checksum(payload), "iat": int(time.time())}
        return jwt.encode(claims, self._service_token, algorithm=self._algorithm)


def _invalid_token(message: str) -> ServiceClientError:
    return ServiceClientError(message, kind=ErrorKind.PAYLOAD, code="EINVALIDTOKEN", status_code=401)


def verify_access_token(
    token: str,
    service_token: str,
    payload: Any,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    sort_keys: bool = False,
) -> AccessTokenClaims:
    """Check *token* the way a receiving service does.

    Raises
    ------
    ServiceClientError
        ``EINVALIDTOKEN`` (401) if the signature does not verify with
        *service_token* or the checksum does not match *payload*.
    """
    try:
        decoded = jwt.decode(token, service_token, algorithms=[algorithm])
    except jwt.InvalidTokenError as exc:
        raise _invalid_token(f"Access token rejected: {exc}") from exc

    try:
        claims = AccessTokenClaims.model_validate(decoded)
    except ValidationError as exc:
        raise _invalid_token("Access token claims are malformed") from exc

    expected = payload_checksum(payload, sort_keys=sort_keys)
    if not hmac.compare_digest(claims.checksum, expected):
        raise _invalid_token("Access token checksum does not match payload")
    return claims

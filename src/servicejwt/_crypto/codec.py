"""JSON value encryption on top of the AES layer."""

from __future__ import annotations

import json
from typing import Any

from servicejwt._crypto.aes import aes_decrypt, aes_encrypt, invalid_payload
from servicejwt._crypto.hashing import dumps_compact


def encrypt_value(key: str, value: Any, iv_seed: str | None = None) -> str:
    """JSON-encode *value* and encrypt it with *key*."""
    return aes_encrypt(key, dumps_compact(value), iv_seed)


def decrypt_value(key: str, encrypted: str) -> Any:
    """Decrypt *encrypted* and JSON-decode the result.

    A plaintext that is not valid JSON is reported as ``EINVALIDPAYLOAD``,
    the same as a payload that failed to decrypt.
    """
    plaintext = aes_decrypt(key, encrypted)
    try:
        return json.loads(plaintext)
    except json.JSONDecodeError as exc:
        raise invalid_payload() from exc


class IdentityPairCipher:
    """Encrypts ``(user_id, user_token)`` pairs with the service secret.

    The IV is seeded with ``user_id + user_token`` so encrypting the same
    pair twice gives the same string.
    """

    def __init__(self, service_secret: str) -> None:
        self._secret = service_secret

    def encrypt(self, user_id: str, user_token: str) -> str:
        return encrypt_value(
            self._secret,
            {"userId": user_id, "userToken": user_token},
            f"{user_id}{user_token}",
        )

    def decrypt(self, encrypted: str) -> dict[str, Any]:
        return decrypt_value(self._secret, encrypted)

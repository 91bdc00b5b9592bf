"""Authenticated AES-256-CTR encryption of strings keyed by an arbitrary secret.

The AES key is the SHA-256 digest of the secret. The result is
``base64(iv || ciphertext || tag)`` where ``tag`` is an HMAC-SHA256 over
``iv || ciphertext`` under a second key derived from the same secret.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from servicejwt.exceptions import ErrorKind, ServiceClientError

IV_LENGTH = 16
TAG_LENGTH = 32
_MAC_KEY_PREFIX = b"servicejwt-mac:"


def _config_error(code: str, message: str) -> ServiceClientError:
    return ServiceClientError(message, kind=ErrorKind.CONFIG, code=code, status_code=500)


def invalid_payload() -> ServiceClientError:
    """Error raised for anything that cannot be decrypted.

    Deliberately identical for a wrong key, a tampered and a malformed payload.
    """
    return ServiceClientError(kind=ErrorKind.PAYLOAD, code="EINVALIDPAYLOAD", status_code=500)


def _derive_key(key: str) -> bytes:
    return hashlib.sha256(key.encode("utf-8")).digest()


def _derive_mac_key(key: str) -> bytes:
    return hashlib.sha256(_MAC_KEY_PREFIX + key.encode("utf-8")).digest()


def _tag(key: str, data: bytes) -> hmac.HMAC:
    h = hmac.HMAC(_derive_mac_key(key), hashes.SHA256())
    h.update(data)
    return h


def derive_iv(iv_seed: str | None) -> bytes:
    """Return a 16-byte IV, deterministic when *iv_seed* is given."""
    if iv_seed is None:
        return secrets.token_bytes(IV_LENGTH)
    return hashlib.sha256(iv_seed.encode("utf-8")).digest()[:IV_LENGTH]


def aes_encrypt(key: str, plaintext: str, iv_seed: str | None = None) -> str:
    """Encrypt and authenticate *plaintext*.

    Parameters
    ----------
    key : str
        Shared secret; hashed to a 32-byte AES key and a separate MAC key.
    plaintext : str
        UTF-8 string to encrypt.
    iv_seed : str, optional
        Seed for a deterministic IV. Without it the IV is random.

    Returns
    -------
    str
        Base64 of IV, ciphertext and HMAC-SHA256 tag.

    Raises
    ------
    ServiceClientError
        ``ENOENCRYPTKEY`` / ``ENOENCRYPTVALUE`` for empty inputs.
    """
    if not isinstance(key, str) or not key:
        raise _config_error("ENOENCRYPTKEY", "Key must be a non-empty string")
    if not isinstance(plaintext, str) or not plaintext:
        raise _config_error("ENOENCRYPTVALUE", "Plaintext value must be a non-empty string")

    iv = derive_iv(iv_seed)
    encryptor = Cipher(algorithms.AES(_derive_key(key)), modes.CTR(iv)).encryptor()
    ct = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
    tag = _tag(key, iv + ct).finalize()
    return base64.b64encode(iv + ct + tag).decode("ascii")


def aes_decrypt(key: str, encrypted: str) -> str:
    """Inverse of :func:`aes_encrypt`.

    The tag is verified before anything is decrypted.

    Raises
    ------
    ServiceClientError
        ``ENODECRYPTKEY`` / ``ENODECRYPTVALUE`` for empty inputs,
        ``EINVALIDPAYLOAD`` when the payload is malformed, was altered or
        was encrypted under another key.
    """
    if not isinstance(key, str) or not key:
        raise _config_error("ENODECRYPTKEY", "Key must be a non-empty string")
    if not isinstance(encrypted, str) or not encrypted:
        raise _config_error("ENODECRYPTVALUE", "Encrypted value must be a non-empty string")

    try:
        raw = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise invalid_payload() from exc
    if len(raw) <= IV_LENGTH + TAG_LENGTH:
        raise invalid_payload()

    signed, tag = raw[:-TAG_LENGTH], raw[-TAG_LENGTH:]
    try:
        _tag(key, signed).verify(tag)
    except InvalidSignature as exc:
        raise invalid_payload() from exc

    iv, ct = signed[:IV_LENGTH], signed[IV_LENGTH:]
    decryptor = Cipher(algorithms.AES(_derive_key(key)), modes.CTR(iv)).decryptor()
    plaintext = decryptor.update(ct) + decryptor.finalize()
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise invalid_payload() from exc

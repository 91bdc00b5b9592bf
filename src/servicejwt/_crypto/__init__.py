"""Cryptographic primitives for service-to-service payloads."""

from __future__ import annotations

from servicejwt._crypto.aes import aes_decrypt, aes_encrypt
from servicejwt._crypto.codec import IdentityPairCipher, decrypt_value, encrypt_value
from servicejwt._crypto.hashing import dumps_compact, payload_checksum

__all__ = [
    "IdentityPairCipher",
    "aes_decrypt",
    "aes_encrypt",
    "decrypt_value",
    "dumps_compact",
    "encrypt_value",
    "payload_checksum",
]

"""PBKDF2 helpers for hashing and verifying client secrets."""

import base64
import hashlib
import hmac
import os
from typing import Tuple

PBKDF2_ALGO = "sha256"
PBKDF2_ITERATIONS = 100_000


def _b64url_nopad(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64url_decode_padded(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "===")


def hash_client_secret(
    secret: str,
    *,
    iterations: int = PBKDF2_ITERATIONS,
    salt_len: int = 16,
    dklen: int = 32,
) -> str:
    """Hash a client secret as pbkdf2:<algo>:<iterations>$<salt>$<hash>."""
    if not isinstance(secret, str) or secret == "":
        raise ValueError("secret must be a non-empty string")
    salt = os.urandom(salt_len)
    dk = hashlib.pbkdf2_hmac(
        PBKDF2_ALGO, secret.encode("utf-8"), salt, iterations, dklen
    )
    return f"pbkdf2:{PBKDF2_ALGO}:{iterations}${_b64url_nopad(salt)}${_b64url_nopad(dk)}"


def _parse_pbkdf2(encoded: str) -> Tuple[str, int, bytes, bytes]:
    try:
        prefix, rest = encoded.split(":", 1)
        if prefix != "pbkdf2":
            raise ValueError(prefix)
        algo, params = rest.split(":", 1)
        iter_s, salt_b64, hash_b64 = params.split("$")
        return (
            algo,
            int(iter_s),
            _b64url_decode_padded(salt_b64),
            _b64url_decode_padded(hash_b64),
        )
    except ValueError as ex:
        raise ValueError("invalid pbkdf2 format") from ex


def verify_client_secret(secret: str, encoded: str | None) -> bool:
    """Constant-time check of a presented secret against its stored hash."""
    if not secret or not encoded:
        return False
    try:
        algo, iterations, salt, expected = _parse_pbkdf2(encoded)
    except ValueError:
        return False
    actual = hashlib.pbkdf2_hmac(
        algo, secret.encode("utf-8"), salt, iterations, len(expected)
    )
    return hmac.compare_digest(actual, expected)

"""Security helpers."""

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from core.utils.json import safe_json_loads


def utcnow() -> datetime:
    """UTC now."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def expires_after(seconds: int, now: datetime | None = None) -> datetime:
    """Compute an expiry `seconds` from now."""
    return (now or utcnow()) + timedelta(seconds=seconds)


def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    """True once `expires_at` is reached."""
    return (now or utcnow()) >= as_utc(expires_at)


def random_token(nbytes: int) -> str:
    """Random base64url value without padding."""
    return secrets.token_urlsafe(nbytes)


def hash_token(value: str) -> str:
    """Hash a token value."""
    d = hashlib.sha256(value.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(d).decode("ascii").rstrip("=")


def s256_challenge(verifier: str) -> str:
    """PKCE S256 transform of a code verifier."""
    return hash_token(verifier)


def verify_pkce_s256(verifier: str, challenge: str) -> bool:
    """Constant-time PKCE S256 check."""
    if not verifier or not challenge:
        return False
    return hmac.compare_digest(s256_challenge(verifier), challenge)


def b64url_decode(data: str) -> bytes:
    """Decode base64url without verification (for JWT header/payload)."""
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + pad)


def jwt_header_unverified(jwt_str: str) -> dict[str, Any]:
    """Return unverified JWT header as dict (no signature check)."""
    parts = jwt_str.split(".")
    if len(parts) != 3 or not parts[0]:
        return {}
    try:
        return safe_json_loads(b64url_decode(parts[0]))
    except ValueError:
        return {}

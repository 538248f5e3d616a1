from datetime import datetime, timedelta, timezone

from core.crypto.crypto import hash_client_secret, verify_client_secret
from core.security.utils import (
    as_utc,
    hash_token,
    is_expired,
    jwt_header_unverified,
    random_token,
    s256_challenge,
    verify_pkce_s256,
)


def test_s256_matches_rfc7636_appendix_b():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert s256_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_verify_pkce():
    challenge = s256_challenge("verifier-1")
    assert verify_pkce_s256("verifier-1", challenge)
    assert not verify_pkce_s256("verifier-2", challenge)
    assert not verify_pkce_s256("", challenge)


def test_hash_token_is_deterministic_and_opaque():
    assert hash_token("abc") == hash_token("abc")
    assert hash_token("abc") != "abc"
    assert "=" not in hash_token("abc")


def test_random_token_length():
    assert len(random_token(32)) == 43
    assert random_token(32) != random_token(32)


def test_expiry_handles_naive_datetimes():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    naive = datetime(2026, 1, 1, 0, 5)
    assert as_utc(naive).tzinfo is timezone.utc
    assert not is_expired(naive, now)
    assert is_expired(now - timedelta(seconds=1), now)
    assert is_expired(now, now)


def test_jwt_header_unverified_malformed():
    assert jwt_header_unverified("not-a-jwt") == {}
    assert jwt_header_unverified("!!!.b.c") == {}


def test_client_secret_hash_roundtrip():
    encoded = hash_client_secret("s3cret")
    assert encoded.startswith("pbkdf2:sha256:100000$")
    assert verify_client_secret("s3cret", encoded)
    assert not verify_client_secret("wrong", encoded)
    assert not verify_client_secret("s3cret", None)
    assert not verify_client_secret("s3cret", "garbage")

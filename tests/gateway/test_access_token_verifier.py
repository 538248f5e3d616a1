from datetime import timedelta

import pytest
from authlib.jose import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from core.crypto.keys import KeyManager
from core.security.utils import utcnow
from gateway.security.access_token import AccessTokenError, AccessTokenVerifier
from gateway.services.token_service import TokenService


def _verifier(key_manager, store, settings, **kwargs) -> AccessTokenVerifier:
    return AccessTokenVerifier(
        key_manager,
        store,
        issuer=settings.ISSUER,
        audience=settings.AUDIENCE,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_verify_issued_token(key_manager, sql_store, settings):
    issued = TokenService.mint(
        key_manager, settings, client_id="client_abc", user_id="user_1", scope="tools"
    )
    await sql_store.save_token_pair(issued)

    claims = await _verifier(key_manager, sql_store, settings).verify(
        issued.access_token
    )

    assert claims["sub"] == "user_1"
    assert claims["client_id"] == "client_abc"
    assert claims["iss"] == "https://gw.example.com"


@pytest.mark.asyncio
async def test_revoked_token_rejected(key_manager, sql_store, settings):
    issued = TokenService.mint(
        key_manager, settings, client_id="client_abc", user_id="user_1", scope=""
    )
    await sql_store.save_token_pair(issued)
    assert await sql_store.revoke_access_token(issued.access_record.jti)

    with pytest.raises(AccessTokenError, match="revoked"):
        await _verifier(key_manager, sql_store, settings).verify(issued.access_token)


@pytest.mark.asyncio
async def test_expired_token_rejected(key_manager, sql_store, settings):
    issued = TokenService.mint(
        key_manager,
        settings,
        client_id="client_abc",
        user_id="user_1",
        scope="",
        now=utcnow() - timedelta(hours=2),
    )

    with pytest.raises(AccessTokenError):
        await _verifier(key_manager, sql_store, settings).verify(issued.access_token)


@pytest.mark.asyncio
async def test_wrong_audience_rejected(key_manager, sql_store, settings):
    issued = TokenService.mint(
        key_manager, settings, client_id="client_abc", user_id="user_1", scope=""
    )
    verifier = AccessTokenVerifier(
        key_manager, sql_store, issuer=settings.ISSUER, audience="other-api"
    )

    with pytest.raises(AccessTokenError):
        await verifier.verify(issued.access_token)


@pytest.mark.asyncio
async def test_foreign_key_rejected(key_manager, sql_store, settings):
    other = KeyManager(rsa.generate_private_key(public_exponent=65537, key_size=2048))
    issued = TokenService.mint(
        other, settings, client_id="client_abc", user_id="user_1", scope=""
    )

    with pytest.raises(AccessTokenError, match="signing key"):
        await _verifier(key_manager, sql_store, settings).verify(issued.access_token)


@pytest.mark.asyncio
async def test_missing_subject_rejected(key_manager, sql_store, settings):
    now = int(utcnow().timestamp())
    token = key_manager.sign_jwt(
        {
            "iss": settings.ISSUER,
            "aud": settings.AUDIENCE,
            "iat": now,
            "exp": now + 60,
            "jti": "j-1",
        }
    )

    with pytest.raises(AccessTokenError, match="subject"):
        await _verifier(key_manager, sql_store, settings).verify(token)


@pytest.mark.asyncio
async def test_unsigned_token_rejected(key_manager, sql_store, settings):
    token = jwt.encode({"alg": "HS256"}, {"sub": "x"}, "secret").decode()

    with pytest.raises(AccessTokenError):
        await _verifier(key_manager, sql_store, settings).verify(token)

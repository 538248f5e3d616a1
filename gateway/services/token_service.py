"""Token issuance, code exchange and refresh rotation."""

from datetime import datetime
from uuid import uuid4

from authlib.oauth2.rfc6749.errors import (
    InvalidGrantError,
    InvalidRequestError,
    UnauthorizedClientError,
)

from core.consts import REFRESH_TOKEN_BYTES, CodeChallengeMethod, OAuth2GrantType
from core.crypto.keys import KeyManager
from core.models import AccessToken, OAuthClient, RefreshToken
from core.security.issued import IssuedTokens
from core.security.utils import (
    expires_after,
    hash_token,
    is_expired,
    random_token,
    utcnow,
    verify_pkce_s256,
)
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger
from gateway.config import Settings
from gateway.security.client_auth import authenticate_client

logger = get_logger(__name__)

INVALID_CODE = "invalid authorization code"
INVALID_REFRESH = "invalid refresh token"


def _require_grant_type(client: OAuthClient, grant_type: str) -> None:
    if grant_type not in (client.grant_types or []):
        raise UnauthorizedClientError(
            description=f"client is not allowed to use {grant_type}"
        )


class TokenService:
    """Token endpoint business logic."""

    @staticmethod
    def mint(
        keys: KeyManager,
        settings: Settings,
        *,
        client_id: str,
        user_id: str,
        scope: str,
        now: datetime | None = None,
    ) -> IssuedTokens:
        """Sign an access token and create a refresh token, unpersisted."""
        now = now or utcnow()
        access_exp = expires_after(settings.ACCESS_TOKEN_TTL, now)
        jti = str(uuid4())
        claims = {
            "iss": settings.ISSUER,
            "sub": user_id,
            "aud": settings.AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int(access_exp.timestamp()),
            "jti": jti,
            "scope": scope,
            "client_id": client_id,
        }
        access_token = keys.sign_jwt(claims)
        refresh_token = random_token(REFRESH_TOKEN_BYTES)

        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_TTL,
            scope=scope,
            access_record=AccessToken(
                jti=jti,
                client_id=client_id,
                user_id=user_id,
                scope=scope,
                created_at=now,
                expires_at=access_exp,
            ),
            refresh_record=RefreshToken(
                token_hash=hash_token(refresh_token),
                client_id=client_id,
                user_id=user_id,
                scope=scope,
                created_at=now,
                expires_at=expires_after(settings.REFRESH_TOKEN_TTL, now),
            ),
        )

    @staticmethod
    async def exchange_authorization_code(
        store: OAuthStore,
        keys: KeyManager,
        settings: Settings,
        *,
        client_id: str,
        client_secret: str = "",
        code: str,
        redirect_uri: str = "",
        code_verifier: str = "",
    ) -> IssuedTokens:
        """Consume a code exactly once and issue a token pair."""
        if not code:
            raise InvalidRequestError(description="missing code")
        client = await authenticate_client(store, client_id, client_secret)
        _require_grant_type(client, OAuth2GrantType.AUTHORIZATION_CODE)

        auth_code = await store.consume_auth_code(hash_token(code))
        if auth_code is None:
            logger.info("oauth.token.code_unknown", client_id=client.client_id)
            raise InvalidGrantError(description=INVALID_CODE)

        reason = None
        if is_expired(auth_code.expires_at):
            reason = "expired"
        elif auth_code.client_id != client.client_id:
            reason = "client_mismatch"
        elif auth_code.redirect_uri != redirect_uri:
            reason = "redirect_uri_mismatch"
        elif auth_code.code_challenge_method != CodeChallengeMethod.NONE and (
            not verify_pkce_s256(code_verifier, auth_code.code_challenge)
        ):
            reason = "pkce_failed"
        if reason is not None:
            logger.info(
                "oauth.token.code_rejected", client_id=client.client_id, reason=reason
            )
            raise InvalidGrantError(description=INVALID_CODE)

        issued = TokenService.mint(
            keys,
            settings,
            client_id=client.client_id,
            user_id=auth_code.user_id,
            scope=auth_code.scope,
        )
        await store.save_token_pair(issued)
        logger.info(
            "oauth.token.issued",
            grant_type=OAuth2GrantType.AUTHORIZATION_CODE,
            client_id=client.client_id,
            jti=issued.access_record.jti,
        )
        return issued

    @staticmethod
    async def rotate_by_refresh_token(
        store: OAuthStore,
        keys: KeyManager,
        settings: Settings,
        *,
        client_id: str,
        client_secret: str = "",
        refresh_token: str,
    ) -> IssuedTokens:
        """Revoke the presented refresh token and issue its successor."""
        if not refresh_token:
            raise InvalidRequestError(description="missing refresh_token")
        client = await authenticate_client(store, client_id, client_secret)
        _require_grant_type(client, OAuth2GrantType.REFRESH_TOKEN)

        def _mint(old: RefreshToken) -> IssuedTokens:
            return TokenService.mint(
                keys,
                settings,
                client_id=old.client_id,
                user_id=old.user_id,
                scope=old.scope,
            )

        issued = await store.rotate_refresh_token(
            hash_token(refresh_token), client.client_id, _mint
        )
        if issued is None:
            logger.info("oauth.token.refresh_rejected", client_id=client.client_id)
            raise InvalidGrantError(description=INVALID_REFRESH)

        logger.info(
            "oauth.token.issued",
            grant_type=OAuth2GrantType.REFRESH_TOKEN,
            client_id=client.client_id,
            jti=issued.access_record.jti,
        )
        return issued

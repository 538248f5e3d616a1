"""Verification of access tokens issued by this server."""

from typing import Any

from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import JoseError
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.consts import JWT_ALG
from core.crypto.keys import KeyManager
from core.security.utils import jwt_header_unverified
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger

logger = get_logger(__name__)

_security = HTTPBearer(auto_error=False)


class AccessTokenError(Exception):
    """Access token rejected."""


class AccessTokenVerifier:
    """Checks signature, issuer, audience, expiry, subject and revocation."""

    def __init__(
        self,
        keys: KeyManager,
        store: OAuthStore,
        *,
        issuer: str,
        audience: str,
        leeway: int = 0,
    ) -> None:
        """Constructor."""
        self.keys = keys
        self.store = store
        self.leeway = leeway
        self._public_key = JsonWebKey.import_key(keys.public_jwk())
        self._claims_options = {
            "iss": {"essential": True, "value": issuer},
            "aud": {"essential": True, "value": audience},
            "exp": {"essential": True},
            "jti": {"essential": True},
        }

    async def verify(self, token: str) -> dict[str, Any]:
        """Return the validated claims or raise AccessTokenError."""
        header = jwt_header_unverified(token)
        if header.get("alg") != JWT_ALG or header.get("kid") != self.keys.kid:
            raise AccessTokenError("unexpected signing key")
        try:
            claims = jwt.decode(
                token, self._public_key, claims_options=self._claims_options
            )
            claims.validate(leeway=self.leeway)
        except (JoseError, ValueError) as ex:
            raise AccessTokenError(f"invalid token: {ex}") from ex
        if not claims.get("sub"):
            raise AccessTokenError("token has no subject")
        if await self.store.is_access_token_revoked(str(claims["jti"])):
            raise AccessTokenError("token revoked")
        return dict(claims)


async def require_access_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict[str, Any]:
    """Dependency for gateway routes that need a valid access token."""
    token = credentials.credentials if credentials else ""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    verifier: AccessTokenVerifier = request.app.state.access_token_verifier
    try:
        claims = await verifier.verify(token)
    except AccessTokenError as ex:
        logger.info("oauth.access_token.rejected", reason=str(ex))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token"'},
        ) from ex
    request.state.client_id = claims.get("client_id")
    return claims

"""Identity delegate backed by Clerk session tokens."""

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import JoseError

from core.observability.observability import current_request_id
from core.security.utils import jwt_header_unverified
from core.utils.logging import get_logger
from core.utils.retry import with_retries

logger = get_logger(__name__)

CLAIMS_LEEWAY = 10


@dataclass(frozen=True)
class Identity:
    """End user vouched for by the identity provider."""

    user_id: str
    email: str = ""
    session_id: str = ""


class IdentityVerificationError(Exception):
    """Identity provider token rejected."""


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.RequestError):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


@with_retries(
    max_attempts=3,
    base_delay=0.2,
    max_delay=2.0,
    retry_on=(httpx.RequestError, httpx.HTTPStatusError),
    should_retry=_is_transient,
)
async def _get_jwks(client: httpx.AsyncClient, url: str, headers: dict) -> dict:
    """GET the provider JWKS with retries on transient errors."""
    res = await client.get(url, headers=headers)
    res.raise_for_status()
    return res.json()


class ClerkIdentityDelegate:
    """Verifies Clerk session JWTs against the Clerk JWKS.

    Keys are cached by kid and the set is refetched when a token names an
    unknown kid, which covers provider-side rotation.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        secret_key: str,
        jwks_url: str,
        timeout: float = 10.0,
    ) -> None:
        """Constructor."""
        self.http = http
        self.secret_key = secret_key
        self.jwks_url = jwks_url
        self.timeout = timeout
        self._keys: dict[str, dict[str, Any]] = {}
        self._refresh_lock = asyncio.Lock()

    async def _refresh_keys(self) -> None:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        if rid := current_request_id():
            headers["X-Request-ID"] = rid
        try:
            data = await asyncio.wait_for(
                _get_jwks(self.http, self.jwks_url, headers), self.timeout
            )
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as ex:
            logger.error("identity.jwks_fetch_failed", error=str(ex))
            raise IdentityVerificationError("identity provider keys unavailable") from ex
        keys = data.get("keys") if isinstance(data, dict) else None
        self._keys = {
            k["kid"]: k
            for k in keys or []
            if isinstance(k, dict) and k.get("kid") and k.get("kty") == "RSA"
        }
        logger.info("identity.jwks_refreshed", key_count=len(self._keys))

    async def _key_for(self, kid: str) -> dict[str, Any]:
        if kid not in self._keys:
            async with self._refresh_lock:
                if kid not in self._keys:
                    await self._refresh_keys()
        key = self._keys.get(kid)
        if key is None:
            raise IdentityVerificationError("unknown signing key")
        return key

    async def verify(self, token: str) -> Identity:
        """Return the identity behind a provider token or raise."""
        if not token:
            raise IdentityVerificationError("missing token")
        header = jwt_header_unverified(token)
        if header.get("alg") != "RS256":
            raise IdentityVerificationError("unexpected signing algorithm")
        kid = header.get("kid")
        if not kid:
            raise IdentityVerificationError("token has no kid")

        jwk = await self._key_for(kid)
        try:
            key = JsonWebKey.import_key(jwk)
            claims = jwt.decode(token, key)
            claims.validate(leeway=CLAIMS_LEEWAY)
        except (JoseError, ValueError) as ex:
            raise IdentityVerificationError(f"invalid token: {ex}") from ex

        user_id = claims.get("sub")
        if not user_id:
            raise IdentityVerificationError("token has no subject")
        return Identity(
            user_id=str(user_id),
            email=str(claims.get("email") or ""),
            session_id=str(claims.get("sid") or ""),
        )

"""Authorization endpoint logic: request validation, code issuance, completion."""

from typing import Mapping
from uuid import uuid4

from fastapi import HTTPException, status

from core.consts import (
    CODE_BYTES,
    ClientAuthMethod,
    CodeChallengeMethod,
    ResponseType,
)
from core.models import AuthCode, AuthRequest
from core.security.redirects import build_redirect, is_redirect_allowed
from core.security.utils import expires_after, hash_token, random_token, utcnow
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger
from gateway.config import Settings
from gateway.identity.clerk import (
    ClerkIdentityDelegate,
    Identity,
    IdentityVerificationError,
)

logger = get_logger(__name__)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _resolve_pkce(method_in: str, challenge: str, auth_method: str) -> str:
    """Return the stored challenge method or raise for a PKCE violation."""
    method = method_in.strip()
    if method and method.upper() != CodeChallengeMethod.S256:
        raise _bad_request("code_challenge_method must be S256")
    if challenge:
        if not method:
            raise _bad_request("code_challenge_method must be S256")
        return CodeChallengeMethod.S256
    if auth_method == ClientAuthMethod.NONE:
        raise _bad_request("PKCE S256 is required for public clients")
    return CodeChallengeMethod.NONE


class AuthorizeService:
    """Authorization endpoint business logic."""

    @staticmethod
    async def build_auth_request(
        store: OAuthStore, settings: Settings, params: Mapping[str, str]
    ) -> AuthRequest:
        """Validate an authorization request in a fixed order.

        Errors are returned to the caller directly, never redirected,
        because the redirect target is not trusted until it is checked.
        """
        if params.get("response_type") != ResponseType.CODE:
            raise _bad_request("unsupported response_type")

        client_id = params.get("client_id") or ""
        if not client_id:
            raise _bad_request("client_id is required")
        client = await store.get_client(client_id)
        if client is None:
            raise _bad_request("unknown client_id")

        redirect_uri = params.get("redirect_uri") or ""
        if not redirect_uri:
            raise _bad_request("redirect_uri is required")
        if not is_redirect_allowed(client.redirect_uris or [], redirect_uri):
            raise _bad_request("redirect_uri is not registered for this client")

        code_challenge = params.get("code_challenge") or ""
        challenge_method = _resolve_pkce(
            params.get("code_challenge_method") or "",
            code_challenge,
            client.token_endpoint_auth_method,
        )

        now = utcnow()
        return AuthRequest(
            request_id=str(uuid4()),
            client_id=client.client_id,
            redirect_uri=redirect_uri,
            scope=(params.get("scope") or "").strip(),
            state=params.get("state") or "",
            response_type=ResponseType.CODE,
            code_challenge=code_challenge,
            code_challenge_method=challenge_method,
            created_at=now,
            expires_at=expires_after(settings.AUTH_REQUEST_TTL, now),
        )

    @staticmethod
    async def issue_code(
        store: OAuthStore,
        settings: Settings,
        auth_request: AuthRequest,
        identity: Identity,
    ) -> str:
        """Persist a new code for `identity` and return the client redirect."""
        code = random_token(CODE_BYTES)
        now = utcnow()
        await store.save_auth_code(
            AuthCode(
                code_hash=hash_token(code),
                client_id=auth_request.client_id,
                redirect_uri=auth_request.redirect_uri,
                user_id=identity.user_id,
                scope=auth_request.scope,
                code_challenge=auth_request.code_challenge,
                code_challenge_method=auth_request.code_challenge_method,
                created_at=now,
                expires_at=expires_after(settings.AUTH_CODE_TTL, now),
            )
        )
        logger.info(
            "oauth.authorize.code_issued",
            client_id=auth_request.client_id,
            user_id=identity.user_id,
        )
        return build_redirect(
            auth_request.redirect_uri, code=code, state=auth_request.state or None
        )

    @staticmethod
    async def verify_identity(
        delegate: ClerkIdentityDelegate | None, token: str
    ) -> Identity:
        """Map identity provider failures to HTTP errors."""
        if delegate is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="identity provider is not configured",
            )
        try:
            return await delegate.verify(token)
        except IdentityVerificationError as ex:
            logger.info("oauth.authorize.identity_rejected", reason=str(ex))
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="invalid identity token",
            ) from ex

    @staticmethod
    async def complete(
        store: OAuthStore,
        settings: Settings,
        delegate: ClerkIdentityDelegate | None,
        *,
        request_id: str,
        identity_token: str,
    ) -> str:
        """Finish a pending request after login and return the client redirect."""
        if not request_id or not identity_token:
            raise _bad_request("request_id and clerk_token are required")

        auth_request = await store.pop_auth_request(request_id)
        if auth_request is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="authorization request not found or expired",
            )

        identity = await AuthorizeService.verify_identity(delegate, identity_token)
        return await AuthorizeService.issue_code(store, settings, auth_request, identity)

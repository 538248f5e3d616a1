"""Authlib AuthorizationServer wiring with custom grants."""

from typing import Any

from authlib.oauth2.rfc6749 import AuthorizationServer
from authlib.oauth2.rfc6749.errors import InvalidRequestError

from core.consts import OAuth2GrantType
from gateway.oauth.grants import AuthorizationCodeGrant, RotatingRefreshTokenGrant
from gateway.oauth.integration.context import get_context
from gateway.oauth.integration.server import CoreAuthorizationServer
from gateway.services.token_service import TokenService

_server: AuthorizationServer | None = None


async def _save_token(token: dict[str, Any], request: Any) -> None:
    """Run the grant named in the request context and fill the payload."""
    extra = get_context(request)
    ctx = dict(getattr(extra, "token_ctx", None) or {})
    store = getattr(extra, "store", None)
    keys = getattr(extra, "keys", None)
    settings = getattr(extra, "settings", None)
    if store is None or keys is None or settings is None:
        raise InvalidRequestError(description="server_error")

    grant_type = ctx.pop("grant_type", None)
    if grant_type == OAuth2GrantType.AUTHORIZATION_CODE:
        issued = await TokenService.exchange_authorization_code(
            store, keys, settings, **ctx
        )
    elif grant_type == OAuth2GrantType.REFRESH_TOKEN:
        issued = await TokenService.rotate_by_refresh_token(store, keys, settings, **ctx)
    else:
        raise InvalidRequestError(description="unsupported grant_type")
    token.update(issued.as_response())


def get_authorization_server() -> AuthorizationServer:
    """Return singleton AuthorizationServer with the gateway grants."""
    global _server
    if _server is not None:
        return _server

    _server = CoreAuthorizationServer()
    _server.save_token = _save_token  # type: ignore[method-assign]
    _server.register_grant(AuthorizationCodeGrant)
    _server.register_grant(RotatingRefreshTokenGrant)
    return _server

"""Custom grant classes for the AuthorizationServer."""

from typing import Any

from authlib.oauth2.rfc6749 import grants
from authlib.oauth2.rfc6749.errors import InvalidRequestError

from core.consts import OAuth2GrantType
from gateway.oauth.integration.context import update_context


def _payload_data(request) -> dict[str, Any]:
    payload = getattr(request, "payload", None)
    data = getattr(payload, "data", None) if payload is not None else None
    return data or {}


class _BaseGatewayGrant(grants.BaseGrant):
    """Base grant; client authentication happens in the token service."""

    GRANT_TYPE = ""
    TOKEN_ENDPOINT_AUTH_METHODS = ["none", "client_secret_post"]

    _params: dict[str, Any]

    async def authenticate_token_endpoint_client(self):  # type: ignore[override]
        """Defer to the token service, which knows both auth methods."""
        return None

    def _client_params(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "client_id": data.get("client_id") or "",
            "client_secret": data.get("client_secret") or "",
        }

    async def create_token_response(self):  # type: ignore[override]
        """Hand the validated parameters to save_token and return its payload."""
        token_ctx = {"grant_type": self.GRANT_TYPE, **self._params}
        update_context(self.request, token_ctx=token_ctx)
        token_data: dict[str, Any] = {}
        await self.server.save_token(token_data, self.request)
        # Core server appends no-store headers
        return 200, token_data, []

    @classmethod
    def check_token_endpoint(cls, request) -> bool:  # type: ignore[override]
        """Return True when the payload grant_type matches this grant."""
        payload = getattr(request, "payload", None)
        return getattr(payload, "grant_type", None) == cls.GRANT_TYPE


class AuthorizationCodeGrant(_BaseGatewayGrant):
    """authorization_code grant with PKCE."""

    GRANT_TYPE = OAuth2GrantType.AUTHORIZATION_CODE

    async def validate_token_request(self):  # type: ignore[override]
        """Validate authorization_code request."""
        data = _payload_data(self.request)
        code = data.get("code")
        if not code:
            raise InvalidRequestError(description="missing code")
        self._params = {
            **self._client_params(data),
            "code": str(code),
            "redirect_uri": data.get("redirect_uri") or "",
            "code_verifier": data.get("code_verifier") or "",
        }


class RotatingRefreshTokenGrant(_BaseGatewayGrant):
    """Refresh token grant with rotation."""

    GRANT_TYPE = OAuth2GrantType.REFRESH_TOKEN

    async def validate_token_request(self):  # type: ignore[override]
        """Validate refresh_token request."""
        data = _payload_data(self.request)
        refresh_token = data.get("refresh_token")
        if not refresh_token:
            raise InvalidRequestError(description="missing refresh_token")
        self._params = {
            **self._client_params(data),
            "refresh_token": str(refresh_token),
        }

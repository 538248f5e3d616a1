"""Value types carrying raw secrets back to the caller exactly once."""

from dataclasses import dataclass

from core.models import AccessToken, OAuthClient, RefreshToken


@dataclass(frozen=True)
class IssuedTokens:
    """Signed access token and raw refresh token plus the records to persist."""

    access_token: str
    refresh_token: str
    expires_in: int
    scope: str
    access_record: AccessToken
    refresh_record: RefreshToken

    def as_response(self) -> dict:
        """Token endpoint response body."""
        return {
            "access_token": self.access_token,
            "token_type": "Bearer",
            "expires_in": self.expires_in,
            "refresh_token": self.refresh_token,
            "scope": self.scope,
        }


@dataclass(frozen=True)
class RegisteredClient:
    """Newly registered client and its raw secret, if one was issued."""

    client: OAuthClient
    client_secret: str | None = None

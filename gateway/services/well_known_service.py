"""Authorization server metadata (RFC 8414)."""

from core.consts import (
    CLIENT_AUTH_METHODS,
    CODE_CHALLENGE_METHODS,
    GRANT_TYPES,
    RESPONSE_TYPES,
)
from gateway.config import Settings


def build_authorization_server_metadata(settings: Settings) -> dict:
    """Build the discovery document from the configured issuer."""
    base_url = settings.ISSUER
    return {
        "issuer": base_url,
        "authorization_endpoint": f"{base_url}/oauth/authorize",
        "token_endpoint": f"{base_url}/oauth/token",
        "jwks_uri": f"{base_url}/oauth/jwks",
        "registration_endpoint": f"{base_url}/oauth/register",
        "response_types_supported": list(RESPONSE_TYPES),
        "grant_types_supported": list(GRANT_TYPES),
        "code_challenge_methods_supported": list(CODE_CHALLENGE_METHODS),
        "token_endpoint_auth_methods_supported": list(CLIENT_AUTH_METHODS),
    }

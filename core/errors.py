"""Error types shared by the store, key manager and protocol layers."""

from authlib.oauth2.rfc6749.errors import OAuth2Error


class KeyLoadError(Exception):
    """Signing key missing, unreadable or not RSA."""


class StoreError(Exception):
    """Persistence backend failed or timed out."""


class ServerError(OAuth2Error):
    """Token endpoint failure not caused by the client."""

    error = "server_error"
    status_code = 500

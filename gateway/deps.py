"""Request dependencies resolved from collaborators built in the app lifespan."""

from fastapi import Request

from core.crypto.keys import KeyManager
from core.store.oauth_store import OAuthStore
from gateway.config import Settings
from gateway.identity.clerk import ClerkIdentityDelegate


def get_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


def get_store(request: Request) -> OAuthStore:
    """Persistence facade."""
    return request.app.state.store


def get_key_manager(request: Request) -> KeyManager:
    """Signing key holder."""
    return request.app.state.keys


def get_identity_delegate(request: Request) -> ClerkIdentityDelegate | None:
    """Identity delegate, or None when no identity provider is configured."""
    return request.app.state.identity

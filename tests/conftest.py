from types import SimpleNamespace

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from core.crypto.keys import KeyManager
from core.db.session import DatabaseSessionManager
from core.store.oauth_store import OAuthStore
from gateway.config import Settings
from gateway.identity.clerk import Identity, IdentityVerificationError


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_pem_pkcs8(rsa_key) -> bytes:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def key_manager(rsa_key) -> KeyManager:
    return KeyManager(rsa_key)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ISSUER="https://gw.example.com/",
        AUDIENCE="gateway-tools",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'oauth.db'}",
        REDIS_URL="",
        DCR_MODE="protected",
        DCR_ACCESS_TOKEN="dcr-secret",
        CLERK_SECRET_KEY="",
        CLERK_PUBLISHABLE_KEY="pk_test_123",
        CLEANUP_INTERVAL=0,
    )


@pytest_asyncio.fixture
async def sql_store(settings):
    manager = DatabaseSessionManager()
    manager.init(settings.DATABASE_URL)
    store = OAuthStore(manager, timeout=5.0)
    await store.init_schema()
    yield store
    await store.close()


class StubIdentityDelegate:
    """Accepts tokens of the form "good:<user_id>"."""

    def __init__(self):
        self.seen: list[str] = []

    async def verify(self, token: str) -> Identity:
        self.seen.append(token)
        if not token.startswith("good:"):
            raise IdentityVerificationError("bad token")
        return Identity(user_id=token.split(":", 1)[1], email="u@example.com")


@pytest.fixture
def identity_delegate() -> StubIdentityDelegate:
    return StubIdentityDelegate()


@pytest.fixture
def fake_client():
    def _make(**overrides):
        values = dict(
            client_id="client_abc",
            client_secret_hash=None,
            redirect_uris=["https://app.example.com/cb"],
            grant_types=["authorization_code", "refresh_token"],
            response_types=["code"],
            scope="tools",
            token_endpoint_auth_method="none",
        )
        values.update(overrides)
        return SimpleNamespace(**values)

    return _make

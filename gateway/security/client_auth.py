"""Token endpoint client authentication."""

from authlib.oauth2.rfc6749.errors import InvalidClientError

from core.consts import ClientAuthMethod
from core.crypto.crypto import verify_client_secret
from core.models import OAuthClient
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger

logger = get_logger(__name__)


def _invalid_client() -> InvalidClientError:
    return InvalidClientError(
        description="client authentication failed", status_code=401
    )


async def authenticate_client(
    store: OAuthStore, client_id: str, client_secret: str = ""
) -> OAuthClient:
    """Resolve the calling client per its registered auth method."""
    if not client_id:
        raise _invalid_client()
    client = await store.get_client(client_id)
    if client is None:
        logger.info("oauth.client_auth.unknown_client", client_id=client_id)
        raise _invalid_client()

    method = client.token_endpoint_auth_method
    if method == ClientAuthMethod.NONE:
        return client
    if method == ClientAuthMethod.CLIENT_SECRET_POST and verify_client_secret(
        client_secret, client.client_secret_hash
    ):
        return client

    logger.info("oauth.client_auth.failed", client_id=client_id, method=method)
    raise _invalid_client()

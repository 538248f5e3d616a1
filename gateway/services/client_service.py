"""Dynamic client registration."""

from fastapi import HTTPException, status

from core.consts import (
    CLIENT_AUTH_METHODS,
    CLIENT_ID_BYTES,
    CLIENT_ID_PREFIX,
    CLIENT_SECRET_BYTES,
    GRANT_TYPES,
    RESPONSE_TYPES,
    ClientAuthMethod,
)
from core.crypto.crypto import hash_client_secret
from core.models import OAuthClient
from core.security.issued import RegisteredClient
from core.security.redirects import RedirectUriError, validate_redirect_uri
from core.security.utils import random_token, utcnow
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger
from gateway.schemas.client import ClientRegistrationIn, ClientRegistrationOut

logger = get_logger(__name__)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _check_subset(name: str, values: list[str], supported: tuple[str, ...]) -> None:
    unsupported = [v for v in values if v not in supported]
    if unsupported:
        raise _bad_request(f"unsupported {name}: {', '.join(unsupported)}")


async def register_client(
    store: OAuthStore, body: ClientRegistrationIn
) -> RegisteredClient:
    """Validate metadata, mint credentials and persist the client."""
    if not body.redirect_uris:
        raise _bad_request("redirect_uris is required")
    for uri in body.redirect_uris:
        try:
            validate_redirect_uri(uri)
        except RedirectUriError as ex:
            raise _bad_request(str(ex)) from ex

    auth_method = body.token_endpoint_auth_method or ClientAuthMethod.NONE
    if auth_method not in CLIENT_AUTH_METHODS:
        raise _bad_request(f"unsupported token_endpoint_auth_method: {auth_method}")
    grant_types = body.grant_types or list(GRANT_TYPES)
    _check_subset("grant_types", grant_types, GRANT_TYPES)
    response_types = body.response_types or list(RESPONSE_TYPES)
    _check_subset("response_types", response_types, RESPONSE_TYPES)

    client_secret = None
    if auth_method != ClientAuthMethod.NONE:
        client_secret = random_token(CLIENT_SECRET_BYTES)

    client = OAuthClient(
        client_id=CLIENT_ID_PREFIX + random_token(CLIENT_ID_BYTES),
        client_secret_hash=hash_client_secret(client_secret) if client_secret else None,
        client_name=body.client_name,
        redirect_uris=list(body.redirect_uris),
        grant_types=grant_types,
        response_types=response_types,
        scope=body.scope or "",
        token_endpoint_auth_method=auth_method,
        created_at=utcnow(),
    )
    await store.save_client(client)
    logger.info(
        "oauth.client.registered",
        client_id=client.client_id,
        auth_method=auth_method,
        redirect_uri_count=len(client.redirect_uris),
    )
    return RegisteredClient(client=client, client_secret=client_secret)


def registration_response(registered: RegisteredClient) -> ClientRegistrationOut:
    """RFC 7591 response body for a freshly registered client."""
    client = registered.client
    return ClientRegistrationOut(
        client_id=client.client_id,
        client_id_issued_at=int(client.created_at.timestamp()),
        client_secret=registered.client_secret,
        client_name=client.client_name,
        redirect_uris=client.redirect_uris,
        grant_types=client.grant_types,
        response_types=client.response_types,
        token_endpoint_auth_method=client.token_endpoint_auth_method,
        scope=client.scope or None,
    )

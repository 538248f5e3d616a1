"""Token endpoint backed by the Authlib AuthorizationServer."""

from authlib.oauth2.rfc6749.errors import InsecureTransportError
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import ORJSONResponse

from core.crypto.keys import KeyManager
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger
from gateway.config import Settings
from gateway.deps import get_key_manager, get_settings, get_store
from gateway.oauth.integration.request import to_oauth2_request
from gateway.oauth.server import get_authorization_server

logger = get_logger(__name__)

router = APIRouter(prefix="/oauth")


@router.post("/token", tags=["public"])
async def token_endpoint(
    request: Request,
    grant_type: str | None = Form(
        None,
        description="Grant type",
        json_schema_extra={"enum": ["authorization_code", "refresh_token"]},
    ),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    code_verifier: str | None = Form(None),
    refresh_token: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    scope: str | None = Form(None),
    store: OAuthStore = Depends(get_store),
    keys: KeyManager = Depends(get_key_manager),
    settings: Settings = Depends(get_settings),
):
    """Delegate token issuance to the AuthorizationServer grants."""
    request.state.client_id = client_id
    form_data = {
        "grant_type": grant_type,
        "code": code,
        "redirect_uri": redirect_uri,
        "code_verifier": code_verifier,
        "refresh_token": refresh_token,
        "client_id": client_id,
        "client_secret": client_secret,
        "scope": scope,
    }
    try:
        oauth2_req = to_oauth2_request(
            request,
            base_url=settings.ISSUER,
            form_data=form_data,
            store=store,
            keys=keys,
            settings=settings,
        )
    except InsecureTransportError as error:
        logger.error("oauth.token.insecure_issuer", issuer=settings.ISSUER)
        status_code, body, headers = error()
        return ORJSONResponse(body, status_code=status_code, headers=dict(headers))
    server = get_authorization_server()
    status_code, body, headers = await server.create_token_response_async(oauth2_req)  # type: ignore[attr-defined]

    return ORJSONResponse(body, status_code=status_code, headers=dict(headers))

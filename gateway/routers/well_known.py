"""Discovery and JWKS endpoints (thin router)."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import ORJSONResponse

from core.crypto.keys import KeyManager
from gateway.config import Settings
from gateway.deps import get_key_manager, get_settings
from gateway.services.well_known_service import build_authorization_server_metadata

router = APIRouter()

_METADATA_PATHS = (
    "/.well-known/oauth-authorization-server",
    "/oauth/.well-known/oauth-authorization-server",
)


async def authorization_server_metadata(
    response: Response, settings: Settings = Depends(get_settings)
):
    """Return RFC 8414 authorization server metadata."""
    response.headers["Cache-Control"] = f"public, max-age={settings.WELL_KNOWN_CACHE_TTL}"
    return build_authorization_server_metadata(settings)


for _path in _METADATA_PATHS:
    router.add_api_route(
        _path,
        authorization_server_metadata,
        methods=["GET"],
        response_class=ORJSONResponse,
        tags=["public"],
    )


@router.get("/oauth/jwks", response_class=ORJSONResponse, tags=["public"])
async def jwks(
    response: Response,
    keys: KeyManager = Depends(get_key_manager),
    settings: Settings = Depends(get_settings),
):
    """Return the JWKS (RFC 7517) holding the signing key."""
    response.headers["Cache-Control"] = f"public, max-age={settings.WELL_KNOWN_CACHE_TTL}"
    return keys.jwks()

"""Dynamic client registration endpoint (RFC 7591 subset)."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import ORJSONResponse

from core.store.oauth_store import OAuthStore
from gateway.deps import get_store
from gateway.schemas.client import ClientRegistrationIn, ClientRegistrationOut
from gateway.security.dcr_bearer import require_dcr_access
from gateway.services.client_service import register_client, registration_response

router = APIRouter(prefix="/oauth", dependencies=[Depends(require_dcr_access)])


@router.post(
    "/register",
    response_model=ClientRegistrationOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    response_class=ORJSONResponse,
    tags=["public"],
)
async def register(
    body: ClientRegistrationIn,
    store: OAuthStore = Depends(get_store),
):
    """Register a client; any client_secret is shown only in this response."""
    registered = await register_client(store, body)
    return registration_response(registered)

"""Authorization endpoint and login completion."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, ORJSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.store.oauth_store import OAuthStore
from gateway.config import Settings
from gateway.deps import get_identity_delegate, get_settings, get_store
from gateway.identity.clerk import ClerkIdentityDelegate
from gateway.schemas.authorize import AuthorizeCompleteIn, AuthorizeCompleteOut
from gateway.services.authorize_service import AuthorizeService
from gateway.services.login_page import render_login_page

router = APIRouter(prefix="/oauth")

_security = HTTPBearer(auto_error=False)


@router.get("/authorize", tags=["public"])
async def authorize(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    store: OAuthStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    delegate: ClerkIdentityDelegate | None = Depends(get_identity_delegate),
):
    """Validate the request, then issue a code or show the login page."""
    params = request.query_params
    auth_request = await AuthorizeService.build_auth_request(store, settings, params)
    request.state.client_id = auth_request.client_id

    identity_token = (credentials.credentials if credentials else "") or params.get(
        "clerk_token", ""
    )
    if identity_token:
        identity = await AuthorizeService.verify_identity(delegate, identity_token)
        redirect_to = await AuthorizeService.issue_code(
            store, settings, auth_request, identity
        )
        return RedirectResponse(redirect_to, status_code=status.HTTP_302_FOUND)

    if delegate is None or not settings.CLERK_PUBLISHABLE_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="identity provider login is not configured",
        )
    await store.save_auth_request(auth_request)
    page = render_login_page(
        request_id=auth_request.request_id,
        complete_url=f"{request.scope.get('root_path', '')}/oauth/authorize/complete",
        clerk_js_url=settings.CLERK_JS_URL,
        publishable_key=settings.CLERK_PUBLISHABLE_KEY,
    )
    return HTMLResponse(page, headers={"Cache-Control": "no-store"})


@router.post(
    "/authorize/complete",
    response_model=AuthorizeCompleteOut,
    response_class=ORJSONResponse,
    tags=["public"],
)
async def authorize_complete(
    body: AuthorizeCompleteIn,
    store: OAuthStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    delegate: ClerkIdentityDelegate | None = Depends(get_identity_delegate),
):
    """Finish a pending authorization after the user signed in."""
    redirect_to = await AuthorizeService.complete(
        store,
        settings,
        delegate,
        request_id=body.request_id,
        identity_token=body.clerk_token,
    )
    return AuthorizeCompleteOut(redirect_to=redirect_to)

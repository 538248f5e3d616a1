"""Build OAuth2Request from FastAPI Request for the Authlib core server."""

from typing import Any

from authlib.oauth2.rfc6749.requests import BasicOAuth2Payload, OAuth2Request
from starlette.requests import Request

from gateway.oauth.integration.context import set_context


def public_uri(request: Request, base_url: str) -> str:
    """Address of the request as published under `base_url`.

    TLS usually ends at a proxy, so the socket URL may read http:// while
    clients reach the issuer over https.
    """
    path = request.scope["path"]
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path) :]
    return base_url.rstrip("/") + path


def to_oauth2_request(
    request: Request,
    *,
    base_url: str,
    form_data: dict[str, str | None] | None = None,
    **context: Any,
) -> OAuth2Request:
    """Convert a FastAPI Request to an OAuth2Request and attach context.

    Raises InsecureTransportError when `base_url` is not https or loopback.
    """
    oauth2_req = OAuth2Request(
        method=request.method,
        uri=public_uri(request, base_url),
        headers=dict(request.headers),
    )
    data = {k: v for k, v in (form_data or {}).items() if v is not None}
    oauth2_req.payload = BasicOAuth2Payload(data)

    set_context(oauth2_req, **context)
    return oauth2_req

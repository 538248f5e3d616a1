from starlette.requests import Request

from gateway.oauth.integration.context import get_context
from gateway.oauth.integration.request import public_uri, to_oauth2_request


def _request(path: str, root_path: str = "") -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("10.0.0.5", 8080),
            "path": path,
            "root_path": root_path,
            "query_string": b"",
            "headers": [(b"content-type", b"application/x-www-form-urlencoded")],
        }
    )


def test_public_uri_uses_issuer_origin():
    uri = public_uri(_request("/oauth/token"), "https://gw.example.com")
    assert uri == "https://gw.example.com/oauth/token"


def test_public_uri_strips_root_path():
    uri = public_uri(_request("/auth/oauth/token", "/auth"), "https://gw.example.com/")
    assert uri == "https://gw.example.com/oauth/token"


def test_to_oauth2_request_drops_empty_fields():
    req = to_oauth2_request(
        _request("/oauth/token"),
        base_url="https://gw.example.com",
        form_data={"grant_type": "refresh_token", "refresh_token": "rt", "scope": None},
        store="store",
    )

    assert req.uri == "https://gw.example.com/oauth/token"
    assert req.payload.data == {"grant_type": "refresh_token", "refresh_token": "rt"}
    assert get_context(req).store == "store"

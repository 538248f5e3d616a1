from types import SimpleNamespace
from typing import Any, cast
from unittest.mock import AsyncMock

import pytest
from authlib.oauth2.rfc6749 import AuthorizationServer, OAuth2Request
from authlib.oauth2.rfc6749.errors import InvalidGrantError, InvalidRequestError

import gateway.oauth.server as oauth_server
from core.consts import OAuth2GrantType
from core.errors import StoreError
from gateway.oauth.grants import AuthorizationCodeGrant, RotatingRefreshTokenGrant
from gateway.oauth.integration.context import get_context, set_context


class DummyServer(AuthorizationServer):
    def __init__(self):
        super().__init__()
        self.saved = None

    async def save_token(self, token, request):  # type: ignore[override]
        self.saved = (token, request)


def make_request(data: dict) -> OAuth2Request:
    req = OAuth2Request(method="POST", uri="https://gw.example.com/oauth/token")
    payload = SimpleNamespace(data=data, grant_type=data.get("grant_type"))
    cast(Any, req).payload = payload
    return req


@pytest.mark.asyncio
async def test_code_grant_passes_params_to_save_token():
    server = DummyServer()
    request = make_request(
        {
            "grant_type": "authorization_code",
            "code": "abc",
            "redirect_uri": "https://app.example.com/cb",
            "code_verifier": "v",
            "client_id": "client_abc",
        }
    )
    set_context(request)

    grant = AuthorizationCodeGrant(request, server)
    await grant.validate_token_request()
    status, body, headers = await grant.create_token_response()

    assert (status, body, headers) == (200, {}, [])
    assert server.saved is not None
    assert get_context(request).token_ctx == {
        "grant_type": OAuth2GrantType.AUTHORIZATION_CODE,
        "client_id": "client_abc",
        "client_secret": "",
        "code": "abc",
        "redirect_uri": "https://app.example.com/cb",
        "code_verifier": "v",
    }


@pytest.mark.asyncio
async def test_code_grant_requires_code():
    grant = AuthorizationCodeGrant(make_request({"client_id": "c"}), DummyServer())
    with pytest.raises(InvalidRequestError):
        await grant.validate_token_request()


@pytest.mark.asyncio
async def test_refresh_grant_requires_token():
    grant = RotatingRefreshTokenGrant(make_request({"client_id": "c"}), DummyServer())
    with pytest.raises(InvalidRequestError):
        await grant.validate_token_request()


def test_check_token_endpoint():
    code_req = make_request({"grant_type": "authorization_code"})
    refresh_req = make_request({"grant_type": "refresh_token"})

    assert AuthorizationCodeGrant.check_token_endpoint(code_req)
    assert not AuthorizationCodeGrant.check_token_endpoint(refresh_req)
    assert RotatingRefreshTokenGrant.check_token_endpoint(refresh_req)


def _server_request(data: dict, **context) -> OAuth2Request:
    req = make_request(data)
    set_context(
        req,
        store=object(),
        keys=object(),
        settings=object(),
        **context,
    )
    return req


async def _respond(server, req):
    return await server.create_token_response_async(req)  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_server_unsupported_grant_type(monkeypatch):
    monkeypatch.setattr(oauth_server, "_server", None)
    server = oauth_server.get_authorization_server()

    req = _server_request({"grant_type": "password"})
    status, body, headers = await _respond(server, req)

    assert status == 400
    assert body["error"] == "unsupported_grant_type"
    assert ("Cache-Control", "no-store") in headers


@pytest.mark.asyncio
async def test_server_code_flow_fills_payload(monkeypatch):
    monkeypatch.setattr(oauth_server, "_server", None)
    server = oauth_server.get_authorization_server()
    response = {"access_token": "at", "token_type": "Bearer"}
    issued = SimpleNamespace(as_response=lambda: response)
    exchange = AsyncMock(return_value=issued)
    monkeypatch.setattr(
        oauth_server.TokenService, "exchange_authorization_code", exchange
    )

    req = _server_request(
        {"grant_type": "authorization_code", "code": "abc", "client_id": "c"}
    )
    status, body, headers = await _respond(server, req)

    assert status == 200
    assert body == response
    assert ("Pragma", "no-cache") in headers
    assert exchange.await_args.kwargs["code"] == "abc"
    assert exchange.await_args.kwargs["client_id"] == "c"


@pytest.mark.asyncio
async def test_server_maps_oauth_errors(monkeypatch):
    monkeypatch.setattr(oauth_server, "_server", None)
    server = oauth_server.get_authorization_server()
    monkeypatch.setattr(
        oauth_server.TokenService,
        "rotate_by_refresh_token",
        AsyncMock(side_effect=InvalidGrantError(description="invalid refresh token")),
    )

    req = _server_request({"grant_type": "refresh_token", "refresh_token": "rt"})
    status, body, _ = await _respond(server, req)

    assert status == 400
    assert body["error"] == "invalid_grant"


@pytest.mark.asyncio
async def test_server_maps_store_errors_to_500(monkeypatch):
    monkeypatch.setattr(oauth_server, "_server", None)
    server = oauth_server.get_authorization_server()
    monkeypatch.setattr(
        oauth_server.TokenService,
        "rotate_by_refresh_token",
        AsyncMock(side_effect=StoreError("db down")),
    )

    req = _server_request({"grant_type": "refresh_token", "refresh_token": "rt"})
    status, body, _ = await _respond(server, req)

    assert status == 500
    assert body["error"] == "server_error"

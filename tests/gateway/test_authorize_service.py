from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi import HTTPException

from core.security.utils import hash_token, s256_challenge
from gateway.services.authorize_service import AuthorizeService

CHALLENGE = s256_challenge("verifier-123")


class StubStore:
    def __init__(self, clients=()):
        self.clients = {c.client_id: c for c in clients}
        self.codes = {}
        self.requests = {}

    async def get_client(self, client_id):
        return self.clients.get(client_id)

    async def save_auth_code(self, auth_code):
        self.codes[auth_code.code_hash] = auth_code

    async def save_auth_request(self, auth_request):
        self.requests[auth_request.request_id] = auth_request

    async def pop_auth_request(self, request_id):
        return self.requests.pop(request_id, None)


def _params(**overrides):
    params = {
        "response_type": "code",
        "client_id": "client_abc",
        "redirect_uri": "https://app.example.com/cb",
        "code_challenge": CHALLENGE,
        "code_challenge_method": "S256",
        "state": "st-1",
    }
    params.update(overrides)
    return {k: v for k, v in params.items() if v is not None}


async def _build(store, settings, **overrides):
    return await AuthorizeService.build_auth_request(store, settings, _params(**overrides))


@pytest.mark.asyncio
async def test_build_auth_request_public_client(settings, fake_client):
    store = StubStore([fake_client()])

    req = await _build(store, settings)

    assert req.client_id == "client_abc"
    assert req.code_challenge == CHALLENGE
    assert req.code_challenge_method == "S256"
    assert req.state == "st-1"
    assert req.scope == ""
    assert req.expires_at > req.created_at


@pytest.mark.asyncio
async def test_build_auth_request_keeps_requested_scope_only(settings, fake_client):
    store = StubStore([fake_client(scope="tools admin")])

    req = await _build(store, settings, scope="  tools read ")

    assert req.scope == "tools read"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,detail",
    [
        ({"response_type": "token"}, "response_type"),
        ({"client_id": None}, "client_id"),
        ({"client_id": "nope"}, "unknown client_id"),
        ({"redirect_uri": None}, "redirect_uri"),
        ({"redirect_uri": "https://evil.example.com/cb"}, "not registered"),
        ({"code_challenge": None, "code_challenge_method": None}, "PKCE"),
        ({"code_challenge_method": "plain"}, "S256"),
        ({"code_challenge_method": None}, "S256"),
    ],
)
async def test_build_auth_request_rejections(settings, fake_client, overrides, detail):
    store = StubStore([fake_client()])

    with pytest.raises(HTTPException) as exc:
        await _build(store, settings, **overrides)

    assert exc.value.status_code == 400
    assert detail in exc.value.detail


@pytest.mark.asyncio
async def test_response_type_checked_before_client(settings):
    with pytest.raises(HTTPException) as exc:
        await _build(StubStore(), settings, response_type="token", client_id="nope")
    assert "response_type" in exc.value.detail


@pytest.mark.asyncio
async def test_s256_method_case_insensitive(settings, fake_client):
    req = await _build(StubStore([fake_client()]), settings, code_challenge_method="s256")
    assert req.code_challenge_method == "S256"


@pytest.mark.asyncio
async def test_confidential_client_without_pkce_gets_sentinel(settings, fake_client):
    client = fake_client(token_endpoint_auth_method="client_secret_post")
    req = await _build(
        StubStore([client]), settings, code_challenge=None, code_challenge_method=None
    )
    assert req.code_challenge_method == "NONE"
    assert req.code_challenge == ""


@pytest.mark.asyncio
async def test_wildcard_redirect_accepted(settings, fake_client):
    client = fake_client(redirect_uris=["https://chatgpt.com/aip/g-*/oauth/callback"])
    req = await _build(
        StubStore([client]),
        settings,
        redirect_uri="https://chatgpt.com/aip/g-123/oauth/callback",
    )
    assert req.redirect_uri == "https://chatgpt.com/aip/g-123/oauth/callback"


@pytest.mark.asyncio
async def test_issue_code_stores_hash_only(settings, fake_client, identity_delegate):
    store = StubStore([fake_client()])
    req = await _build(store, settings)
    identity = await identity_delegate.verify("good:user-7")

    redirect = await AuthorizeService.issue_code(store, settings, req, identity)

    query = parse_qs(urlsplit(redirect).query)
    code = query["code"][0]
    assert query["state"] == ["st-1"]
    assert list(store.codes) == [hash_token(code)]
    stored = store.codes[hash_token(code)]
    assert stored.user_id == "user-7"
    assert stored.code_challenge == CHALLENGE
    assert (stored.expires_at - stored.created_at).total_seconds() == settings.AUTH_CODE_TTL


@pytest.mark.asyncio
async def test_complete_issues_code(settings, fake_client, identity_delegate):
    store = StubStore([fake_client()])
    req = await _build(store, settings)
    await store.save_auth_request(req)

    redirect = await AuthorizeService.complete(
        store,
        settings,
        identity_delegate,
        request_id=req.request_id,
        identity_token="good:user-9",
    )

    assert redirect.startswith("https://app.example.com/cb?")
    assert len(store.codes) == 1


@pytest.mark.asyncio
async def test_complete_unknown_request_is_404(settings, identity_delegate):
    with pytest.raises(HTTPException) as exc:
        await AuthorizeService.complete(
            StubStore(),
            settings,
            identity_delegate,
            request_id="missing",
            identity_token="good:u",
        )
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_complete_requires_fields(settings, identity_delegate):
    with pytest.raises(HTTPException) as exc:
        await AuthorizeService.complete(
            StubStore(), settings, identity_delegate, request_id="", identity_token="x"
        )
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_complete_bad_identity_consumes_request(
    settings, fake_client, identity_delegate
):
    store = StubStore([fake_client()])
    req = await _build(store, settings)
    await store.save_auth_request(req)

    with pytest.raises(HTTPException) as exc:
        await AuthorizeService.complete(
            store,
            settings,
            identity_delegate,
            request_id=req.request_id,
            identity_token="bad",
        )

    assert exc.value.status_code == 401
    assert store.requests == {}
    assert store.codes == {}


@pytest.mark.asyncio
async def test_verify_identity_without_provider_is_500():
    with pytest.raises(HTTPException) as exc:
        await AuthorizeService.verify_identity(None, "good:u")
    assert exc.value.status_code == 500

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.observability.observability import (
    REDACTED,
    RequestContextMiddleware,
    current_request_id,
    redact_secrets,
)


def test_redact_secrets_masks_credentials():
    event = redact_secrets(
        None,
        "info",
        {
            "event": "oauth.token.issued",
            "client_id": "client_abc",
            "refresh_token": "rt-raw",
            "client_secret": "s3cret",
            "code": "",
        },
    )

    assert event["client_id"] == "client_abc"
    assert event["refresh_token"] == REDACTED
    assert event["client_secret"] == REDACTED
    assert event["code"] == ""


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/rid")
    async def rid():
        return {"request_id": current_request_id()}

    return app


def test_request_id_is_echoed():
    client = TestClient(_app())

    res = client.get("/rid", headers={"X-Request-ID": "req-1"})

    assert res.headers["X-Request-ID"] == "req-1"
    assert res.json() == {"request_id": "req-1"}


def test_request_id_is_generated():
    client = TestClient(_app())

    res = client.get("/rid")

    assert res.headers["X-Request-ID"]
    assert res.json()["request_id"] == res.headers["X-Request-ID"]
    assert current_request_id("none") == "none"

import logging

import httpx
import pytest
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from relay.main import create_app
from relay.middleware.request_logging import format_body, redact_query

RETOOL_URL = "https://retool.test/workflows/wf_123/startTrigger"


def relay_messages(caplog) -> str:
    return "\n".join(r.getMessage() for r in caplog.records if r.name.startswith("relay"))


@pytest.fixture(autouse=True)
def info_logs(caplog):
    caplog.set_level(logging.INFO)


def test_logs_request_and_response(client, respx_mock, caplog):
    respx_mock.post(RETOOL_URL).mock(return_value=httpx.Response(200))

    response = client.post(
        "/api/webhook", json={"object": "page", "entry": []}, headers={"X-Trace": "t-1"}
    )

    assert response.status_code == 200
    log = relay_messages(caplog)
    assert "REQUEST" in log and "START =====" in log and "END =====" in log
    assert "POST /api/webhook from testclient" in log
    assert '"x-trace": "t-1"' in log
    assert '"object": "page"' in log
    assert "status: 200" in log
    assert "body: EVENT_RECEIVED" in log


def test_verify_token_redacted(client, caplog):
    response = client.get(
        "/api/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "test-verify-token", "hub.challenge": "99"},
    )

    assert response.status_code == 200
    assert response.text == "99"
    log = relay_messages(caplog)
    assert "test-verify-token" not in log
    assert "hub.verify_token=**redacted**" in log
    assert '"hub.challenge": "99"' in log


def test_error_responses_logged(client, caplog):
    response = client.get("/api/webhook")

    assert response.status_code == 404
    log = relay_messages(caplog)
    assert "status: 404" in log
    assert "body: Missing verification parameters" in log


def test_response_passes_through_unchanged(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert int(response.headers["content-length"]) == len(response.content)


def test_redact_query():
    items = [("hub.mode", "subscribe"), ("hub.verify_token", "secret")]
    assert redact_query(items) == [("hub.mode", "subscribe"), ("hub.verify_token", "**redacted**")]


@pytest.mark.parametrize(
    "raw,expected",
    [
        (b"", "Body: Empty or not parsed"),
        (b"plain words", "Body (non-JSON): plain words"),
        (b'{"a":1}', 'Body: {\n  "a": 1\n}'),
    ],
)
def test_format_body(raw, expected):
    assert format_body(raw) == expected


def test_repeated_headers_kept(make_settings):
    app = create_app(make_settings())

    @app.get("/cookies")
    async def cookies():
        response = PlainTextResponse("ok")
        response.set_cookie("a", "1")
        response.set_cookie("b", "2")
        return response

    with TestClient(app) as client:
        response = client.get("/cookies")

    assert response.text == "ok"
    assert len(response.headers.get_list("set-cookie")) == 2


def test_deeply_nested_body_logged_as_text():
    raw = b"[" * 100000 + b"]" * 100000
    assert format_body(raw).startswith("Body (non-JSON): [[[")

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from gridscape.adapters.openrouter import router as upgrade_router
from gridscape.adapters.openrouter.upstream import GatewayClient
from gridscape.config.settings import settings
from gridscape.core.gateway import app

API_KEY = "sk-or-test-0123456789"
HUNGRY_REPLY = '{"text":"I am famished.","reason":"Upgraded generic adjective to precise vocabulary."}'


def _envelope(content):
    return {"id": "gen-1", "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class StubGateway:
    """Answers per model id; records every upstream request."""

    def __init__(self, replies) -> None:
        self.replies = replies
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append((request, body))
        status, payload = self.replies[body["model"]]
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    @property
    def models_called(self):
        return [body["model"] for _, body in self.requests]


@pytest.fixture
def gateway_env(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", API_KEY)
    monkeypatch.setattr(settings, "model_cascade", "m1,m2,m3")
    monkeypatch.setattr(settings, "attempt_timeout_seconds", 2.0)

    def install(replies):
        stub = StubGateway(replies)

        def factory(api_key):
            return GatewayClient(api_key, "https://gateway.test/api/v1", transport=httpx.MockTransport(stub.handler))

        monkeypatch.setattr(upgrade_router, "GatewayClient", factory)
        return stub

    return install


def test_sophisticate_scenario_returns_cleaned_envelope_after_one_call(gateway_env):
    stub = gateway_env({"m1": (200, _envelope(HUNGRY_REPLY))})
    client = TestClient(app)

    response = client.post("/upgrade", json={"text": "I am really hungry", "mode": "sophisticate", "level": 1})

    assert response.status_code == 200
    content = response.json()["choices"][0]["message"]["content"]
    assert json.loads(content) == {
        "text": "I am famished.",
        "reason": "Upgraded generic adjective to precise vocabulary.",
    }
    assert stub.models_called == ["m1"]


def test_upstream_request_carries_auth_identity_and_body(gateway_env):
    stub = gateway_env({"m1": (200, _envelope(HUNGRY_REPLY))})
    TestClient(app).post("/upgrade", json={"text": "I am really hungry", "mode": "simplify"})

    request, body = stub.requests[0]
    assert request.url.path == "/api/v1/chat/completions"
    assert request.headers["authorization"] == f"Bearer {API_KEY}"
    assert request.headers["http-referer"] == settings.upstream_referer
    assert request.headers["x-title"] == settings.upstream_title
    assert request.headers["content-type"] == "application/json"
    assert body["response_format"] == {"type": "json_object"}
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert '"I am really hungry"' in body["messages"][1]["content"]


def test_fenced_reply_is_cleaned_before_returning(gateway_env):
    gateway_env({"m1": (200, _envelope(f"```json\n{HUNGRY_REPLY}\n```"))})
    response = TestClient(app).post("/upgrade", json={"text": "I am really hungry", "mode": "sophisticate"})
    assert response.json()["choices"][0]["message"]["content"] == HUNGRY_REPLY


def test_define_task_on_legacy_function_path(gateway_env):
    define_reply = '{"definition":"extremely hungry","nuance":"informal, emphatic"}'
    stub = gateway_env({"m1": (200, _envelope(define_reply))})

    response = TestClient(app).post(
        "/.netlify/functions/upgrade",
        json={"text": "famished", "context": "I am famished.", "task": "define"},
    )

    assert response.status_code == 200
    assert response.json()["choices"][0]["message"]["content"] == define_reply
    user_message = stub.requests[0][1]["messages"][1]["content"]
    assert "famished" in user_message and "I am famished." in user_message


def test_falls_through_to_next_model(gateway_env):
    stub = gateway_env(
        {
            "m1": (500, {"error": {"message": "boom"}}),
            "m2": (200, _envelope("no json here")),
            "m3": (200, _envelope(HUNGRY_REPLY)),
        }
    )
    response = TestClient(app).post("/upgrade", json={"text": "I am really hungry", "mode": "emotional"})
    assert response.status_code == 200
    assert stub.models_called == ["m1", "m2", "m3"]


def test_exhaustion_returns_502_with_last_error(gateway_env):
    gateway_env(
        {
            "m1": (500, "down"),
            "m2": (502, "bad gateway"),
            "m3": (503, {"error": {"message": "overloaded"}}),
        }
    )
    response = TestClient(app).post("/upgrade", json={"text": "I am really hungry", "mode": "sophisticate"})

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "All models failed"
    assert "m3" in body["details"]
    assert "503" in body["details"]
    assert "overloaded" in body["details"]


def test_api_key_is_never_echoed_in_error_details(gateway_env):
    gateway_env({name: (401, {"error": {"message": f"invalid key {API_KEY}"}}) for name in ("m1", "m2", "m3")})
    response = TestClient(app).post("/upgrade", json={"text": "hi", "mode": "simplify"})
    assert response.status_code == 502
    assert API_KEY not in response.text


def test_missing_api_key_fails_before_any_upstream_call(gateway_env, monkeypatch):
    stub = gateway_env({"m1": (200, _envelope(HUNGRY_REPLY))})
    monkeypatch.setattr(settings, "openrouter_api_key", "")

    response = TestClient(app).post("/upgrade", json={"text": "I am really hungry", "mode": "sophisticate"})

    assert response.status_code == 500
    assert response.json() == {"error": "Server API Key missing"}
    assert stub.requests == []


@pytest.mark.parametrize(
    "body",
    [
        {"text": "", "mode": "sophisticate"},
        {"text": "hi", "mode": "levitate"},
        ["not", "an", "object"],
    ],
)
def test_invalid_request_is_rejected_without_upstream_call(gateway_env, body):
    stub = gateway_env({"m1": (200, _envelope(HUNGRY_REPLY))})
    response = TestClient(app).post("/upgrade", json=body)
    assert response.status_code == 400
    assert "error" in response.json()
    assert stub.requests == []


def test_non_json_body_is_rejected(gateway_env):
    gateway_env({})
    response = TestClient(app).post("/upgrade", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400


def test_non_post_methods_are_not_allowed():
    client = TestClient(app)
    assert client.get("/upgrade").status_code == 405
    assert client.put("/upgrade", json={}).status_code == 405


def test_unhandled_exception_becomes_500_with_message(gateway_env, monkeypatch):
    gateway_env({})

    def explode(request):
        raise RuntimeError("ladder table corrupted")

    monkeypatch.setattr(upgrade_router, "compose", explode)
    response = TestClient(app).post("/upgrade", json={"text": "hi", "mode": "simplify"})
    assert response.status_code == 500
    assert response.json() == {"error": "ladder table corrupted"}


def test_oversize_body_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "max_request_body_bytes", 100)
    response = TestClient(app).post("/upgrade", json={"text": "x" * 500, "mode": "simplify"})
    assert response.status_code == 413


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}


class HangingGateway:
    """Never answers; records whether the in-flight call was cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def post_chat(self, payload):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


def _disconnecting_request(body: bytes) -> Request:
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/upgrade",
        "raw_path": b"/upgrade",
        "root_path": "",
        "scheme": "http",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json"), (b"content-length", str(len(body)).encode())],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }
    return Request(scope, receive)


@pytest.mark.asyncio
async def test_caller_disconnect_cancels_cascade_and_returns_499(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", API_KEY)
    monkeypatch.setattr(settings, "model_cascade", "m1,m2")
    monkeypatch.setattr(settings, "attempt_timeout_seconds", 30.0)
    gateway = HangingGateway()
    monkeypatch.setattr(upgrade_router, "GatewayClient", lambda api_key: gateway)

    body = json.dumps({"text": "I am really hungry", "mode": "sophisticate"}).encode()
    response = await asyncio.wait_for(upgrade_router.upgrade(_disconnecting_request(body)), timeout=5)

    assert response.status_code == upgrade_router.CLIENT_CLOSED_STATUS_CODE == 499
    assert json.loads(response.body) == {"error": "client disconnected"}
    assert gateway.started.is_set()
    assert gateway.cancelled is True

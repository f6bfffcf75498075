"""Unit tests for the relay server."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from settlescan.config import AppConfig
from settlescan.relay import create_app

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("GEMINI_API_KEY", "OPENAI_API_KEY", "UPSTAGE_API_KEY", "CLAUDE_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def upstream():
    """Records upstream requests; tests set ``upstream.response``."""

    class Upstream:
        def __init__(self):
            self.requests: list[httpx.Request] = []
            self.response = httpx.Response(200, json={"ok": True})

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if isinstance(self.response, Exception):
                raise self.response
            return self.response

    return Upstream()


@pytest.fixture
def client(upstream):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    app = create_app(AppConfig(), client=http_client)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert "timestamp" in body


def test_unknown_provider(client):
    response = client.post("/api/ollama", json={})

    assert response.status_code == 404


class TestCredentials:
    """Test cases for API key resolution."""

    def test_missing_key(self, client, upstream):
        response = client.post("/api/openai", json={"model": "gpt-4o"})

        assert response.status_code == 400
        assert response.json() == {"error": "OpenAI API key not configured"}
        assert upstream.requests == []

    def test_placeholder_key_counts_as_missing(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "input_your_api_key")

        response = client.post("/api/openai", json={"model": "gpt-4o"})

        assert response.status_code == 400

    def test_body_key_wins(self, client, upstream, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")

        client.post(
            "/api/openai",
            json={"model": "gpt-4o", "apiKey": "body-key"},
            headers={"x-api-key": "header-key"},
        )

        request = upstream.requests[0]
        assert request.headers["Authorization"] == "Bearer body-key"
        assert "apiKey" not in json.loads(request.content)

    def test_header_before_env(self, client, upstream, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")

        client.post("/api/openai", json={"model": "gpt-4o"}, headers={"x-api-key": "header-key"})

        assert upstream.requests[0].headers["Authorization"] == "Bearer header-key"

    def test_env_key(self, client, upstream, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "env-key")

        client.post("/api/claude", json={"model": "claude-opus-4-20250514", "messages": []})

        request = upstream.requests[0]
        assert request.headers["x-api-key"] == "env-key"
        assert request.headers["anthropic-version"] == "2023-06-01"


class TestForwarding:
    """Test cases for upstream forwarding."""

    def test_gemini_model_moves_into_url(self, client, upstream):
        response = client.post(
            "/api/gemini",
            json={"model": "gemini-2.5-pro", "contents": {"parts": []}, "apiKey": "g"},
        )

        request = upstream.requests[0]
        assert response.json() == {"ok": True}
        assert request.url.path.endswith("/models/gemini-2.5-pro:generateContent")
        assert request.url.params["key"] == "g"
        assert json.loads(request.content) == {"contents": {"parts": []}}

    def test_gemini_default_model(self, client, upstream):
        client.post("/api/gemini", json={"contents": {}, "apiKey": "g"})

        assert "gemini-2.5-flash:generateContent" in upstream.requests[0].url.path

    def test_upstage_multipart_goes_to_document_parse(self, client, upstream):
        response = client.post(
            "/api/upstage",
            data={"model": "document-parse", "ocr": "auto", "apiKey": "u"},
            files={"document": ("document.png", b"PNG-BYTES", "image/png")},
        )

        request = upstream.requests[0]
        assert response.status_code == 200
        assert str(request.url) == "https://api.upstage.ai/v1/document-digitization"
        assert request.headers["Authorization"] == "Bearer u"
        assert b"PNG-BYTES" in request.content
        assert b'name="apiKey"' not in request.content

    def test_upstage_docvision_goes_to_chat(self, client, upstream):
        client.post(
            "/api/upstage",
            json={"model": "solar-docvision-preview", "messages": [], "apiKey": "u"},
        )

        assert str(upstream.requests[0].url) == "https://api.upstage.ai/v1/solar/chat/completions"

    def test_upstream_error_status_is_mirrored(self, client, upstream):
        upstream.response = httpx.Response(403, json={"error": {"message": "denied"}})

        response = client.post("/api/openai", json={"model": "gpt-4o", "apiKey": "o"})

        assert response.status_code == 403
        assert response.json() == {"error": "OpenAI API error: 403", "details": "denied"}

    def test_unreachable_upstream(self, client, upstream):
        upstream.response = httpx.ConnectError("refused")

        response = client.post("/api/openai", json={"model": "gpt-4o", "apiKey": "o"})

        assert response.status_code == 500
        assert response.json()["error"] == "OpenAI API error: 500"

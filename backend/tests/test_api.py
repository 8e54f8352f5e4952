import json

import httpx
import pytest
import pytest_asyncio

from emailwriter.config import get_settings
from emailwriter.main import create_app, init_state
from emailwriter.services.http_client import OutboundHttpClient

OLLAMA_URL = "http://localhost:11434/api/generate"


def upstream(request: httpx.Request) -> httpx.Response:
    """Stand-in for the LLM providers the app calls out to."""
    if str(request.url) == OLLAMA_URL:
        return httpx.Response(200, json={"model": "llama3", "response": "  Dear team,\n\nSee you Monday.  "})
    if request.url.host == "api.openai.com":
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})
    return httpx.Response(404, text="unknown upstream")


@pytest_asyncio.fixture
async def client(config, database):
    app = create_app(config)
    app.dependency_overrides[get_settings] = lambda: config
    http_client = OutboundHttpClient(transport=httpx.MockTransport(upstream))
    init_state(app, config, database, http_client=http_client)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await http_client.close()


async def register(client, email="writer@example.org", password="correct-horse") -> dict:
    response = await client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201
    return response.json()


@pytest_asyncio.fixture
async def auth_headers(client) -> dict:
    token = (await register(client))["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}


class TestAuth:
    @pytest.mark.asyncio
    async def test_register_then_login(self, client):
        body = await register(client)
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "writer@example.org"

        response = await client.post(
            "/api/auth/login",
            data={"username": "writer@example.org", "password": "correct-horse"},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = await client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == body["user"]["id"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        await register(client)
        response = await client.post(
            "/api/auth/register", json={"email": "writer@example.org", "password": "another-pass"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await register(client)
        response = await client.post(
            "/api/auth/login", data={"username": "writer@example.org", "password": "wrong-pass"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_protected_routes_need_token(self, client):
        assert (await client.get("/api/settings/llm")).status_code == 401
        assert (await client.post("/api/email/generate", json={"rawThoughts": "x", "tone": "y"})).status_code == 401
        assert (await client.get("/api/user/me", headers={"Authorization": "Bearer junk"})).status_code == 401


class TestSettingsApi:
    @pytest.mark.asyncio
    async def test_defaults_created_on_register(self, client, auth_headers):
        response = await client.get("/api/settings/llm", headers=auth_headers)

        assert response.status_code == 200
        settings = response.json()["settings"]
        assert settings["preferred_llm"] == "ollama"
        assert settings["ollama_endpoint"] == "http://localhost:11434"
        assert settings["openai_api_key_set"] is False

    @pytest.mark.asyncio
    async def test_keys_are_never_returned(self, client, auth_headers):
        response = await client.post(
            "/api/settings/llm",
            json={"preferred_llm": "openai", "openai_api_key": "sk-secret-value"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        settings = response.json()["settings"]
        assert settings["preferred_llm"] == "openai"
        assert settings["openai_api_key_set"] is True
        assert settings["claude_api_key_set"] is False
        assert "sk-secret-value" not in response.text
        assert "openai_api_key" not in settings

    @pytest.mark.asyncio
    async def test_clearing_a_key(self, client, auth_headers):
        await client.post("/api/settings/llm", json={"openai_api_key": "sk-1"}, headers=auth_headers)
        response = await client.post("/api/settings/llm", json={"openai_api_key": ""}, headers=auth_headers)

        assert response.json()["settings"]["openai_api_key_set"] is False

    @pytest.mark.asyncio
    async def test_invalid_provider_rejected(self, client, auth_headers):
        response = await client.post("/api/settings/llm", json={"preferred_llm": "mistral"}, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_malformed_endpoint_rejected(self, client, auth_headers):
        response = await client.post(
            "/api/settings/llm", json={"ollama_endpoint": "http://localhost:abc"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "ollama_endpoint"}

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, client, auth_headers):
        response = await client.post("/api/settings/llm", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_provider_options(self, client, auth_headers):
        await client.post("/api/settings/llm", json={"groq_api_key": "gsk-1"}, headers=auth_headers)
        response = await client.get("/api/settings/llm/providers", headers=auth_headers)

        options = {option["id"]: option for option in response.json()}
        assert set(options) == {"ollama", "openai", "claude", "gemini", "groq", "cohere"}
        assert options["ollama"] == {"id": "ollama", "implemented": True, "configured": True}
        assert options["openai"]["configured"] is False
        assert options["groq"] == {"id": "groq", "implemented": False, "configured": True}


class TestEmailApi:
    @pytest.mark.asyncio
    async def test_generate_with_defaults(self, client, auth_headers):
        response = await client.post(
            "/api/email/generate",
            json={"rawThoughts": "  remind team about standup ", "tone": "friendly", "contextEmail": "  "},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["generatedEmail"] == "Dear team,\n\nSee you Monday."
        assert body["llmUsed"] == "ollama_llama3"

        history = (await client.get("/api/email/history", headers=auth_headers)).json()
        assert history["total"] == 1
        item = history["items"][0]
        assert item["raw_thoughts"] == "remind team about standup"
        assert item["context_email"] is None
        assert item["llm_used"] == "ollama_llama3"

    @pytest.mark.asyncio
    async def test_empty_input(self, client, auth_headers):
        response = await client.post(
            "/api/email/generate", json={"rawThoughts": "   ", "tone": "formal"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Raw thoughts input cannot be empty."

        response = await client.post(
            "/api/email/generate", json={"rawThoughts": "notes", "tone": ""}, headers=auth_headers
        )
        assert response.status_code == 400

        history = (await client.get("/api/email/history", headers=auth_headers)).json()
        assert history["total"] == 0

    @pytest.mark.asyncio
    async def test_upstream_rejection_maps_to_bad_gateway(self, client, auth_headers):
        await client.post(
            "/api/settings/llm", json={"preferred_llm": "openai", "openai_api_key": "sk-bad"}, headers=auth_headers
        )
        response = await client.post(
            "/api/email/generate", json={"rawThoughts": "notes", "tone": "formal"}, headers=auth_headers
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "LLM_GATEWAY_ERROR"
        assert "Incorrect API key provided" in error["message"]
        assert "sk-bad" not in json.dumps(error)

        history = (await client.get("/api/email/history", headers=auth_headers)).json()
        assert history["items"][0]["llm_used"] == "openai_gpt-3.5-turbo_error"
        assert history["items"][0]["generated_email"] is None

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, client, auth_headers):
        await client.post("/api/settings/llm", json={"preferred_llm": "openai"}, headers=auth_headers)
        response = await client.post(
            "/api/email/generate", json={"rawThoughts": "notes", "tone": "formal"}, headers=auth_headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "LLM_MISCONFIGURED"

    @pytest.mark.asyncio
    async def test_history_paging(self, client, auth_headers):
        for n in range(3):
            await client.post(
                "/api/email/generate", json={"rawThoughts": f"note {n}", "tone": "formal"}, headers=auth_headers
            )

        page = (await client.get("/api/email/history?limit=2&offset=0", headers=auth_headers)).json()
        assert page["total"] == 3
        assert [item["raw_thoughts"] for item in page["items"]] == ["note 2", "note 1"]

        rest = (await client.get("/api/email/history?limit=2&offset=2", headers=auth_headers)).json()
        assert [item["raw_thoughts"] for item in rest["items"]] == ["note 0"]

        assert (await client.get("/api/email/history?limit=0", headers=auth_headers)).status_code == 422

    @pytest.mark.asyncio
    async def test_history_is_per_user(self, client, auth_headers):
        await client.post(
            "/api/email/generate", json={"rawThoughts": "mine", "tone": "formal"}, headers=auth_headers
        )
        other = (await register(client, email="other@example.org"))["access_token"]

        page = (await client.get("/api/email/history", headers={"Authorization": f"Bearer {other}"})).json()
        assert page == {"items": [], "total": 0, "limit": 20, "offset": 0}

"""Integration tests for the HTTP boundary.

The app runs in-process over httpx's ASGI transport with the session store
swapped for one built on fake clients.
"""

import json

import pytest
from httpx import AsyncClient, ASGITransport

from conftest import candidate, interview_reply, match_reply, summary_reply
from matchmaker.api.dependencies import get_session_store
from matchmaker.core.config import settings
from matchmaker.core.exceptions import LLMTimeoutError
from matchmaker.main import app


@pytest.fixture
def client_app(store):
    app.dependency_overrides[get_session_store] = lambda: store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(client_app):
    transport = ASGITransport(app=client_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def post_action(client, **body):
    return await client.post("/api/generate", json=body)


@pytest.mark.asyncio
async def test_root_endpoint(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "Matchmaker"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health/live", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_conversation_flow(client, llm, search):
    llm.queue(
        interview_reply("Hi! Tell me about your dream partner."),
        interview_reply("Lovely, I think I have it.", ready=True),
        summary_reply(),
        match_reply(),
    )
    search.candidates.append(candidate())

    response = await post_action(client, action="init", sessionId="s1")
    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"] == "s1"
    assert data["phase"] == "collecting"
    assert data["agentReply"] == "Hi! Tell me about your dream partner."
    assert data["softCap"] is False

    response = await post_action(
        client,
        sessionId="s1",
        message="Kind, outdoorsy, no smokers.",
        dropdowns={"location": "Munich"},
    )
    data = response.json()
    assert response.status_code == 200
    assert data["phase"] == "awaiting_confirmation"
    assert data["summary"]["searchPayload"]["searchVectorPrompt"]
    assert data["filters"]["location"] == "Munich"
    assert data["turnCount"] == 1

    response = await post_action(client, action="confirm_summary", sessionId="s1")
    data = response.json()
    assert response.status_code == 200
    assert data["phase"] == "feedback"
    assert data["match"]["id"] == "cand-1"
    assert data["match"]["narrative"]["compatibilityReasons"]
    assert search.queries[0]["filters"]["location"] == "Munich"


@pytest.mark.asyncio
async def test_new_session_gets_generated_id(client, llm):
    llm.queue(interview_reply("Hello!"))

    response = await post_action(client, action="init")

    assert response.status_code == 200
    assert len(response.json()["sessionId"]) == 36


@pytest.mark.asyncio
async def test_multipart_with_audio(client, llm, transcriber):
    llm.queue(interview_reply("Rivers are lovely."))

    response = await client.post(
        "/api/generate",
        data={"payload": json.dumps({"sessionId": "voice", "action": "send_message"})},
        files={"audio": ("clip.webm", b"\x00\x01\x02", "audio/webm")},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["transcript"] == "I love long walks by the river"
    assert transcriber.clips == [b"\x00\x01\x02"]


@pytest.mark.asyncio
async def test_multipart_without_payload(client):
    response = await client.post(
        "/api/generate", files={"audio": ("clip.webm", b"\x00", "audio/webm")}
    )

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "InvalidRequestError"


@pytest.mark.asyncio
async def test_invalid_json_body(client):
    response = await client.post(
        "/api/generate", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "The request body is not valid JSON."


@pytest.mark.asyncio
async def test_unsupported_action(client):
    response = await post_action(client, action="dance", sessionId="s1")

    assert response.status_code == 400
    assert response.json() == {
        "error": {"type": "UnsupportedActionError", "message": 'Unsupported action "dance".'}
    }


@pytest.mark.asyncio
async def test_illegal_action_is_conflict(client):
    response = await post_action(client, action="confirm_summary", sessionId="s1")

    assert response.status_code == 409
    assert response.json()["error"]["type"] == "IllegalActionError"


@pytest.mark.asyncio
async def test_missing_message(client):
    response = await post_action(client, action="send_message", sessionId="s1", message="")

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "MissingInputError"


@pytest.mark.asyncio
async def test_stage_failure_maps_to_bad_gateway(client, llm):
    llm.queue("this is not json")

    response = await post_action(client, action="init", sessionId="s1")

    assert response.status_code == 502
    assert response.json()["error"]["type"] == "StageOutputError"


@pytest.mark.asyncio
async def test_stage_timeout_maps_to_gateway_timeout(client, llm):
    llm.queue(LLMTimeoutError("The model did not answer in time."))

    response = await post_action(client, action="init", sessionId="s1")

    assert response.status_code == 504
    assert response.json()["error"]["message"] == "The model did not answer in time."


@pytest.mark.asyncio
async def test_health_reports_missing_configuration(client, monkeypatch):
    monkeypatch.setattr(settings, "milvus_uri", None)

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert "MILVUS_URI is required for matching." in data["problems"]
    assert data["components"]["search"]["configured"] is False


@pytest.mark.asyncio
async def test_ready_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "llm_provider", "openai")
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "embedding_backend", "openai")
    monkeypatch.setattr(settings, "milvus_uri", "http://localhost:19530")
    monkeypatch.setattr(settings, "milvus_collection", "partners")

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_not_ready_without_search(client, monkeypatch):
    monkeypatch.setattr(settings, "milvus_collection", None)

    response = await client.get("/health/ready")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_non_string_filters_are_kept_but_not_searched(client, llm, search):
    llm.queue(
        interview_reply("Hi!"),
        interview_reply("Got it.", ready=True),
        summary_reply(),
        match_reply(),
    )
    search.candidates.append(candidate())

    response = await post_action(
        client,
        action="init",
        sessionId="tall",
        filters={"location": "Berlin", "minHeight": 170},
    )
    assert response.status_code == 200
    assert response.json()["filters"]["minHeight"] == 170

    await post_action(client, sessionId="tall", message="Tall and kind.")
    response = await post_action(client, action="confirm_summary", sessionId="tall")

    assert response.status_code == 200
    search_filters = search.queries[0]["filters"]
    assert "minHeight" not in search_filters
    assert search_filters["location"] == "Berlin"


@pytest.mark.asyncio
async def test_rejected_first_action_does_not_seed_filters(client, store):
    response = await post_action(
        client, action="confirm_summary", sessionId="fresh", filters={"location": "Paris"}
    )

    assert response.status_code == 409
    machine = await store.get_or_create("fresh")
    assert machine.session.filters["location"] == "Berlin"

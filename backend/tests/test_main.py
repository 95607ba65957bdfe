"""Tests for the HTTP surface: POST /api/commentator, GET /api/commentators, GET /health."""

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from app.main import create_app
from services.embedding_index import IndexHandle
from services.persona_registry import PersonaRegistry

from conftest import FakeGenerator, build_test_pipeline

CONTEXT = {
    "eventId": "evt-1",
    "homeTeam": "Argentina",
    "awayTeam": "France",
    "competition": "FIFA World Cup 2022",
    "eventType": "goal",
    "player": "Lionel Messi",
    "minute": 23,
}


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator(reply="Messi, the little boy from Rosario, has done it!")


@pytest_asyncio.fixture
async def client(
    index_handle: IndexHandle, registry: PersonaRegistry, generator: FakeGenerator
) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(build_test_pipeline(registry, index_handle, generator))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.mark.asyncio
async def test_health(client: httpx.AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_post_nested_body(client: httpx.AsyncClient) -> None:
    response = await client.post("/api/commentator", json={"commentatorId": "peter-drury", "context": CONTEXT})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["commentary"] == "Messi, the little boy from Rosario, has done it!"
    assert body["commentator"] == {
        "id": "peter-drury",
        "name": "Peter Drury",
        "displayName": body["commentator"]["displayName"],
        "style": body["commentator"]["style"],
    }
    assert body["context"]["player"] == "Lionel Messi"
    assert body["context"]["minute"] == 23
    assert body["timestamp"]
    assert "trace" not in body


@pytest.mark.asyncio
async def test_post_flat_body(client: httpx.AsyncClient) -> None:
    response = await client.post("/api/commentator", json={"commentatorId": "ray-hudson", **CONTEXT})

    assert response.status_code == 200
    assert response.json()["commentator"]["id"] == "ray-hudson"
    assert response.json()["context"]["eventType"] == "goal"


@pytest.mark.asyncio
async def test_post_with_live_channels(client: httpx.AsyncClient, generator: FakeGenerator) -> None:
    context = {
        **CONTEXT,
        "eventType": "chat_commentary",
        "chatHistory": "alice: what a goal\nbob: unbelievable",
        "currentScore": "1-0",
        "matchEvents": [
            {"type": {"text": "Goal"}, "athletesInvolved": [{"displayName": "Lionel Messi"}], "clock": {"displayValue": "23'"}},
        ],
        "fplContext": {
            "users": 2,
            "captainChoices": ["Messi"],
            "managers": [{"username": "alice", "picks": [{"player": {"web_name": "Messi"}, "isCaptain": True}]}],
        },
    }
    response = await client.post("/api/commentator", json={"commentatorId": "peter-drury", "context": context})

    assert response.status_code == 200
    prompt = generator.calls[0]["prompt"]
    assert "alice: what a goal" in prompt
    assert "Lionel Messi" in prompt
    assert response.json()["context"]["matchEvents"][0]["playerName"] == "Lionel Messi"


@pytest.mark.asyncio
async def test_unknown_commentator_is_400(client: httpx.AsyncClient, generator: FakeGenerator) -> None:
    response = await client.post("/api/commentator", json={"commentatorId": "nobody", "context": CONTEXT})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid commentary request"
    assert "nobody" in body["details"]
    assert generator.calls == []


@pytest.mark.asyncio
async def test_missing_field_is_400(client: httpx.AsyncClient) -> None:
    context = {k: v for k, v in CONTEXT.items() if k != "homeTeam"}
    response = await client.post("/api/commentator", json={"commentatorId": "peter-drury", "context": context})

    assert response.status_code == 400
    assert "home_team" in response.json()["details"]


@pytest.mark.asyncio
async def test_null_core_field_is_400(client: httpx.AsyncClient, generator: FakeGenerator) -> None:
    response = await client.post(
        "/api/commentator", json={"commentatorId": "peter-drury", "context": {**CONTEXT, "homeTeam": None}}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid commentary request"
    assert "home_team" in response.json()["details"]
    assert generator.calls == []


@pytest.mark.asyncio
async def test_null_commentator_is_400(client: httpx.AsyncClient) -> None:
    response = await client.post("/api/commentator", json={"commentatorId": None, **CONTEXT})
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "match_events",
    [
        [{"type": "Goal", "playerName": "Messi", "time": "23'"}],
        [{"athletesInvolved": ["Messi"], "action": "Goal"}],
    ],
)
async def test_irregular_timeline_entries_are_accepted(
    client: httpx.AsyncClient, generator: FakeGenerator, match_events: list
) -> None:
    context = {**CONTEXT, "matchEvents": match_events}
    response = await client.post("/api/commentator", json={"commentatorId": "peter-drury", "context": context})

    assert response.status_code == 200
    echoed = response.json()["context"]["matchEvents"][0]
    assert (echoed["action"], echoed["playerName"]) == ("Goal", "Messi")
    assert "Messi scored" in generator.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_generation_failure_still_200(index_handle: IndexHandle, registry: PersonaRegistry) -> None:
    app = create_app(build_test_pipeline(registry, index_handle, FakeGenerator(error=RuntimeError("down"))))
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        response = await http.post("/api/commentator", json={"commentatorId": "peter-drury", "context": CONTEXT})

    assert response.status_code == 200
    assert response.json()["commentary"] == "Goal drama unfolds between Argentina and France"


@pytest.mark.asyncio
async def test_list_commentators(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/commentators")

    assert response.status_code == 200
    ids = [c["id"] for c in response.json()]
    assert "peter-drury" in ids and "ray-hudson" in ids
    assert set(response.json()[0]) == {"id", "name", "displayName", "style", "description"}

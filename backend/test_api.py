"""
API tests: FastAPI app wired to an engine that talks to a fake site
"""
import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import build_engine
from main import create_app


class FakeChatClient:
    def __init__(self):
        self.calls = []

    async def chat_with_tools(self, user_message, tools_schema, tool_registry, history=None):
        self.calls.append(user_message)
        result = await tool_registry.call_tool("get_schedule", {"branch": "Дыбенко"})
        return {
            "reply": "Hip-Hop для новичков по понедельникам",
            "sources": [result["meta"]["source"]],
            "tool_calls": [{"name": "get_schedule", "arguments": {"branch": "Дыбенко"}}],
            "suggested_questions": ["Сколько стоит абонемент?"],
        }


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def client(engine, chat_client):
    app = create_app(engine=engine, chat_client=chat_client, prefetch_on_startup=False)
    return TestClient(app)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_schedule_all_branches(client):
    data = client.get("/api/schedule").json()
    assert data["kind"] == "schedule"
    assert data["meta"]["origin"] == "live"
    assert data["entries"]["Дыбенко"] == ["Пн, Ср Hip-Hop (новички)"]


def test_schedule_branch_filter(client):
    data = client.get("/api/schedule", params={"branch": "купчино"}).json()
    assert list(data["entries"]) == ["Купчино"]


def test_schedule_unknown_branch(client):
    data = client.get("/api/schedule", params={"branch": "Марс"}).json()
    assert data["entries"] == {}


def test_prices(client):
    data = client.get("/api/prices").json()
    assert data["kind"] == "prices"
    assert data["entries"]["Абонементы"] == ["8 занятий 6000 ₽", "4 занятия 3500 ₽"]


def test_branches(client):
    assert client.get("/api/branches").json() == {"branches": ["Дыбенко", "Купчино", "Звёздная", "Озерки"]}


def test_stats_and_clear_cache(client, site):
    client.get("/api/schedule")
    client.get("/api/schedule")
    stats = client.get("/api/stats").json()
    assert stats["requests"] == 2
    assert stats["cache_hits"] == 1
    assert stats["cache"]["schedule"]["cached"] is True

    response = client.post("/api/clear-cache")
    assert response.json()["status"] == "success"
    assert client.get("/api/stats").json()["cache"]["schedule"]["cached"] is False

    client.get("/api/schedule")
    assert len(site.requests) == 2


def test_health_reports_degraded_on_fallback():
    engine = build_engine(lambda request: httpx.Response(500))
    client = TestClient(create_app(engine=engine, prefetch_on_startup=False))

    client.get("/api/schedule")
    data = client.get("/api/health").json()
    assert data["status"] == "degraded"
    assert data["origins"] == {"schedule": "fallback"}


def test_health_ok_on_live_data(client):
    client.get("/api/prices")
    assert client.get("/api/health").json()["status"] == "ok"


def test_chat_rejects_empty_message(client, chat_client):
    response = client.post("/api/chat", json={"message": "   "})
    assert response.status_code == 400
    assert chat_client.calls == []


def test_chat(client, chat_client):
    response = client.post("/api/chat", json={"message": "Когда занятия на Дыбенко?"})
    assert response.status_code == 200
    data = response.json()
    assert data["reply"].startswith("Hip-Hop")
    assert data["sources"] == ["https://studio.test/raspisanie/"]
    assert chat_client.calls == ["Когда занятия на Дыбенко?"]


def test_chat_without_api_key_is_unavailable(engine, monkeypatch):
    from config import get_config

    monkeypatch.setattr(get_config().api, "openai_api_key", "")
    client = TestClient(create_app(engine=engine, prefetch_on_startup=False))
    response = client.post("/api/chat", json={"message": "Привет"})
    assert response.status_code == 503


def test_startup_prefetch_runs_in_background():
    async def slow_site(request):
        await asyncio.sleep(2)
        return httpx.Response(200, text="")

    app = create_app(engine=build_engine(slow_site, timeout=5), prefetch_on_startup=True)
    started = time.monotonic()
    with TestClient(app) as client:
        assert time.monotonic() - started < 1
        assert client.get("/api/stats").json()["cache"]["schedule"]["cached"] is False
        task = app.state.prefetch_task
    assert task.cancelled()

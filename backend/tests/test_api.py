"""
Tests for the HTTP API.
"""
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from plancoach.api.dependencies import (
    get_agent_factory,
    get_generation_manager,
    get_model_catalog,
)
from plancoach.core.config import settings
from plancoach.main import app
from plancoach.services.adapter import ModelCatalog
from plancoach.services.agent import CoachAgent, GenerationManager

from conftest import ScriptedAdapter, text_response

PLAN_REQUEST = {
    "goal_description": "Run a sub-50 10K",
    "start_date": "2024-01-07",
    "end_date": "2024-02-03",
}
PROFILE = {"current_weekly_volume": 35, "peak_weekly_volume": 50, "vdot": 45.0}
SCHEDULE = {"windows": {"2": [{"start_minutes": 360, "end_minutes": 420}]}}


class ScriptedFactory:
    """Agent factory handing out agents with scripted adapters."""

    def __init__(self, *script):
        self.script = list(script)
        self.adapters = []

    def __call__(self, provider, api_key, model):
        adapter = ScriptedAdapter(self.script)
        self.adapters.append(adapter)
        return CoachAgent(adapter)


@pytest.fixture
def manager():
    return GenerationManager()


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_generation_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def use_factory(factory: ScriptedFactory) -> None:
    app.dependency_overrides[get_agent_factory] = lambda: factory


def poll(client: TestClient, generation_id: str, predicate, timeout: float = 2.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        data = client.get(f"/api/generations/{generation_id}").json()
        if predicate(data):
            return data
        if time.monotonic() > deadline:
            raise AssertionError(f"generation never reached expected state: {data}")
        time.sleep(0.01)


def status_is(kind: str):
    return lambda data: data["status"]["kind"] == kind


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "plancoach-backend"}


class TestToolsAPI:
    """Direct access to the deterministic tools."""

    def test_list_native(self, client):
        tools = client.get("/api/tools").json()["tools"]
        assert tools[0]["name"] == "calculate_vdot"
        assert "input_schema" in tools[0]

    def test_list_openai(self, client):
        tools = client.get("/api/tools", params={"format": "openai"}).json()["tools"]
        assert tools[0]["type"] == "function"

    def test_unknown_format(self, client):
        assert client.get("/api/tools", params={"format": "xml"}).status_code == 400

    def test_execute(self, client):
        response = client.post("/api/tools/calculate_hr_zones", json={"max_hr": 190})
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "calculate_hr_zones"
        assert body["result"]["zone1"] == {"min": 95, "max": 113, "name": "Recovery"}

    def test_invalid_arguments_stay_in_result(self, client):
        response = client.post("/api/tools/get_training_paces", json={})
        assert response.status_code == 200
        assert "error" in response.json()["result"]

    def test_unknown_tool(self, client):
        assert client.post("/api/tools/teleport", json={}).status_code == 404


class TestGenerationsAPI:
    """Background generations with polling, answers and cancellation."""

    def test_coaching_reply(self, client):
        use_factory(ScriptedFactory(text_response("Keep it easy this week.")))

        response = client.post("/api/generations", json={
            "task_kind": "coaching_reply",
            "message": "My legs are tired",
            "history": [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello!"}],
        })
        assert response.status_code == 202
        generation_id = response.json()["id"]

        data = poll(client, generation_id, status_is("complete"))
        assert data["result"]["text"] == "Keep it easy this week."
        assert data["result"]["cancelled"] is False
        assert data["error"] is None

    def test_outline_with_clarifying_question(self, client):
        factory = ScriptedFactory(
            text_response("Do you have a goal time?"),
            text_response('{"weeks": [{"week_number": 1, "theme": "Base", "weekly_volume_percent": 70}]}'),
        )
        use_factory(factory)

        generation_id = client.post("/api/generations", json={
            "task_kind": "outline",
            "plan_request": PLAN_REQUEST,
            "profile": PROFILE,
            "schedule": SCHEDULE,
        }).json()["id"]

        data = poll(client, generation_id, status_is("waiting_for_input"))
        assert data["status"]["detail"] == "Do you have a goal time?"

        response = client.post(f"/api/generations/{generation_id}/response", json={"text": "Under 50 minutes"})
        assert response.status_code == 200

        data = poll(client, generation_id, status_is("complete"))
        week = data["result"]["plan"]["weeks"][0]
        assert week["theme"] == "Base"
        assert week["total_distance_km"] == pytest.approx(35)
        assert factory.adapters[0].requests[1]["messages"][-1].content == "Under 50 minutes"

    def test_week_generation(self, client):
        use_factory(ScriptedFactory(text_response('{"workouts": [{"name": "Easy", "day_of_week": 2}]}')))

        generation_id = client.post("/api/generations", json={
            "task_kind": "week_workouts",
            "plan": {"name": "10K", "start_date": "2024-01-07", "end_date": "2024-02-03", "vdot": 45},
            "week": {"week_number": 2, "theme": "Build"},
            "profile": PROFILE,
            "schedule": SCHEDULE,
        }).json()["id"]

        data = poll(client, generation_id, status_is("complete"))
        week = data["result"]["week"]
        assert week["workouts_generated"] is True
        assert week["workouts"][0]["scheduled_date"] == "2024-01-15"

    def test_answer_without_pending_question(self, client):
        use_factory(ScriptedFactory(text_response("Done.")))
        generation_id = client.post("/api/generations", json={
            "task_kind": "coaching_reply",
            "message": "hi",
        }).json()["id"]
        poll(client, generation_id, status_is("complete"))

        response = client.post(f"/api/generations/{generation_id}/response", json={"text": "extra"})
        assert response.status_code == 409
        assert client.post(f"/api/generations/{generation_id}/cancel-input").status_code == 409

    def test_cancel(self, client):
        use_factory(ScriptedFactory(text_response("Any injuries?")))
        generation_id = client.post("/api/generations", json={
            "task_kind": "outline",
            "plan_request": PLAN_REQUEST,
            "profile": PROFILE,
            "schedule": SCHEDULE,
        }).json()["id"]
        poll(client, generation_id, status_is("waiting_for_input"))

        assert client.post(f"/api/generations/{generation_id}/cancel").status_code == 200

        data = poll(client, generation_id, status_is("cancelled"))
        assert data["result"]["cancelled"] is True

    def test_missing_inputs_fail_the_generation(self, client):
        use_factory(ScriptedFactory(text_response("{}")))
        generation_id = client.post("/api/generations", json={"task_kind": "outline"}).json()["id"]

        data = poll(client, generation_id, status_is("failed"))
        assert data["error"]["kind"] == "invalid_request"

    def test_unknown_generation(self, client):
        assert client.get("/api/generations/missing").status_code == 404
        assert client.post("/api/generations/missing/response", json={"text": "x"}).status_code == 404
        assert client.post("/api/generations/missing/cancel-input").status_code == 404
        assert client.post("/api/generations/missing/cancel").status_code == 404

    def test_unsupported_provider(self, client):
        response = client.post("/api/generations", json={
            "task_kind": "coaching_reply",
            "provider": "gemini",
            "api_key": "k",
            "message": "hi",
        })
        assert response.status_code == 400

    def test_invalid_body(self, client):
        assert client.post("/api/generations", json={"task_kind": "poem"}).status_code == 422


class TestModelsAPI:
    """OpenRouter catalog endpoint."""

    def test_lists_models(self, client):
        payload = {"data": [{
            "id": "vendor/model",
            "name": "Vendor Model",
            "context_length": 64000,
            "supported_parameters": ["tools"],
            "pricing": {"prompt": "0.000001", "completion": "0.000002"},
        }]}
        catalog = ModelCatalog("key", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=payload)))
        app.dependency_overrides[get_model_catalog] = lambda: catalog

        models = client.get("/api/models").json()["models"]
        assert models == [{
            "id": "vendor/model",
            "name": "Vendor Model",
            "context_length": 64000,
            "prompt_pricing": "$1.00",
            "completion_pricing": "$2.00",
        }]

    def test_invalid_key(self, client):
        catalog = ModelCatalog("bad", transport=httpx.MockTransport(lambda r: httpx.Response(401, json={})))
        app.dependency_overrides[get_model_catalog] = lambda: catalog

        response = client.get("/api/models")
        assert response.status_code == 401
        assert response.json()["detail"]["kind"] == "invalid_credential"

    def test_catalog_is_created_at_startup(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENROUTER_API_KEY", "or-key")
        with TestClient(app):
            first = app.state.model_catalog
            assert first.api_key == "or-key"
        with TestClient(app):
            assert app.state.model_catalog is not first

    def test_missing_key_is_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENROUTER_API_KEY", None)
        monkeypatch.setattr(settings, "AI_API_KEY", "")
        with TestClient(app) as test_client:
            assert app.state.model_catalog is None
            assert test_client.get("/api/models").status_code == 400

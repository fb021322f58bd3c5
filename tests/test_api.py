"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from hyperfy_agent.api.app import create_app
from hyperfy_agent.decision.backends import BackendError
from hyperfy_agent.models.memory import string_to_uuid
from hyperfy_agent.registry.agents import AgentRegistry


@pytest.fixture
def client(runtime):
    """Create a test client with one registered agent."""
    registry = AgentRegistry()
    registry.register(runtime)
    return TestClient(create_app(registry=registry))


class TestHealth:
    def test_health_lists_agents(self, client, runtime):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "agents": [runtime.agent_id]}

    def test_health_without_agents(self):
        client = TestClient(create_app())
        assert client.get("/health").json() == {"status": "ok", "agents": []}


class TestHyperfyTurn:
    def test_acting_turn(self, client, backend, runtime):
        backend.push({"lookAt": "player1", "emote": "wave", "say": "hi", "actions": None})

        response = client.post("/agents/Ava/hyperfy", json={
            "roomId": "hyperfy",
            "emotes": ["wave", "laugh"],
            "triggers": ["player1"],
        })

        assert response.status_code == 200
        assert response.json() == {
            "lookAt": "player1",
            "emote": "wave",
            "say": "hi",
            "actions": None,
        }
        records = runtime.store.query_by_room(string_to_uuid("hyperfy"))
        outgoing = [r for r in records if r.is_from_agent]
        assert len(outgoing) == 1
        assert outgoing[0].content.text == "hi. Then I looked at player1 and "

    def test_silent_turn_with_empty_vocabularies(self, client, backend, runtime):
        backend.push({"lookAt": None, "emote": None, "say": None, "actions": None})

        response = client.post("/agents/Ava/hyperfy", json={"emotes": [], "triggers": []})

        assert response.status_code == 200
        assert response.json() == {"lookAt": None, "emote": None, "say": None, "actions": None}
        assert runtime.store.count() == 0

    def test_unknown_agent(self, client, backend):
        response = client.post("/agents/nonexistent/hyperfy", json={
            "emotes": ["wave"],
            "triggers": ["player1"],
        })

        assert response.status_code == 404
        assert response.json()["detail"] == "Agent not found"
        assert backend.calls == 0

    def test_route_by_agent_id(self, client, backend, runtime):
        backend.push({"lookAt": None, "emote": None, "say": None, "actions": None})
        response = client.post(
            f"/agents/{runtime.agent_id}/hyperfy",
            json={"emotes": [], "triggers": []},
        )
        assert response.status_code == 200

    def test_missing_vocabulary(self, client, backend):
        response = client.post("/agents/Ava/hyperfy", json={"emotes": ["wave"]})

        assert response.status_code == 400
        assert "triggers" in response.json()["detail"]
        assert backend.calls == 0

    def test_missing_body(self, client, backend):
        response = client.post("/agents/Ava/hyperfy")
        assert response.status_code == 400
        assert backend.calls == 0

    def test_backend_without_answer(self, client, runtime):
        response = client.post("/agents/Ava/hyperfy", json={"emotes": [], "triggers": []})

        assert response.status_code == 500
        assert response.json()["detail"] == "No response from generative backend"
        assert runtime.store.count() == 0

    def test_backend_error(self, client, backend):
        backend.push(BackendError("connection refused", error_code="network_error"))
        response = client.post("/agents/Ava/hyperfy", json={"emotes": [], "triggers": []})
        assert response.status_code == 500

    def test_non_conforming_answer(self, client, backend, runtime):
        backend.push({"lookAt": None, "emote": None, "say": "hi"})

        response = client.post("/agents/Ava/hyperfy", json={"emotes": [], "triggers": []})

        assert response.status_code == 500
        assert response.json()["detail"] == "Error in LLM response, try again"
        assert runtime.store.count() == 0

    def test_answer_outside_vocabulary(self, client, backend):
        backend.push({"lookAt": "the fountain", "emote": None, "say": None, "actions": None})

        response = client.post("/agents/Ava/hyperfy", json={
            "emotes": ["wave"],
            "triggers": ["player1"],
        })

        assert response.status_code == 200
        assert response.json()["lookAt"] == "the fountain"

    def test_actions_returned_in_order(self, client, backend):
        backend.push({"lookAt": None, "emote": None, "say": "ok", "actions": ["A", "B"]})
        response = client.post("/agents/Ava/hyperfy", json={"emotes": [], "triggers": []})
        assert response.json()["actions"] == ["A", "B"]

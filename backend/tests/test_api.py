"""Tests for the HTTP and websocket surface."""

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketDisconnect

from therapy_session.main import app
from therapy_session.services.session_manager import session_manager


def session_payload(session_id: str = "session-abc", max_tokens: int | None = None) -> dict:
    payload = {
        "config": {
            "id": session_id,
            "name": "Dragon Kingdom Adventure",
            "duration": 45,
            "activities": [
                {"id": "warmup", "name": "Dragon Speech Quest", "type": "speech", "duration": 10},
                {"id": "move", "name": "Dragon Movement", "type": "movement", "duration": 10},
                {"id": "den", "name": "Dragon's Den", "type": "break", "duration": 5},
            ],
            "speechTargets": ["Final Consonants"],
            "behaviorFocus": ["Engagement", "Engagement"],
            "theme": "dragon",
        }
    }
    if max_tokens is not None:
        payload["maxTokens"] = max_tokens
    return payload


@pytest.fixture
def client():
    session_manager.store._summaries.clear()
    with TestClient(app) as test_client:
        yield test_client
    session_manager.store._summaries.clear()


@pytest.fixture
def session_id(client) -> str:
    response = client.post("/api/sessions", json=session_payload())
    assert response.status_code == 201
    return "session-abc"


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["dependencies"]["summary_store"] == "memory"
        assert data["max_tokens"] == 10


class TestSessionLifecycle:
    """Test session control over HTTP."""

    def test_create_returns_snapshot(self, client):
        response = client.post("/api/sessions", json=session_payload(max_tokens=5))
        assert response.status_code == 201
        data = response.json()
        assert data["sessionId"] == "session-abc"
        assert data["phase"] == "not_started"
        assert data["maxTokens"] == 5
        assert [entry["status"] for entry in data["activities"]] == ["not_started"] * 3

    def test_duplicate_session(self, client, session_id):
        response = client.post("/api/sessions", json=session_payload())
        assert response.status_code == 409

    def test_invalid_config(self, client):
        """Duplicate activity ids are rejected at the boundary."""
        payload = session_payload()
        payload["config"]["activities"][1]["id"] = "warmup"
        assert client.post("/api/sessions", json=payload).status_code == 422

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404
        assert client.post("/api/sessions/nope/start").status_code == 404

    def test_start_pause_resume(self, client, session_id):
        data = client.post(f"/api/sessions/{session_id}/start").json()
        assert data["phase"] == "running"
        assert data["currentActivityId"] == "warmup"
        assert data["activities"][0]["status"] == "in_progress"

        assert client.post(f"/api/sessions/{session_id}/pause").json()["phase"] == "paused"
        assert client.post(f"/api/sessions/{session_id}/resume").json()["phase"] == "running"

    def test_pause_before_start(self, client, session_id):
        """Invalid transitions map to 409 and leave the phase alone."""
        response = client.post(f"/api/sessions/{session_id}/pause")
        assert response.status_code == 409
        assert "not_started" in response.json()["detail"]
        assert client.get(f"/api/sessions/{session_id}").json()["phase"] == "not_started"

    def test_advance_and_complete_to_end(self, client, session_id):
        """Advancing and completing past the last activity ends the session."""
        client.post(f"/api/sessions/{session_id}/start")
        data = client.post(f"/api/sessions/{session_id}/advance", json={"targetIndex": 1}).json()
        assert data["currentIndex"] == 1

        client.post(f"/api/sessions/{session_id}/advance", json={"targetIndex": 2})
        data = client.post(f"/api/sessions/{session_id}/complete", json={"successRate": 90}).json()
        assert data["phase"] == "ended"
        assert [entry["status"] for entry in data["activities"]] == ["completed"] * 3
        assert data["activities"][2]["successRate"] == 90

    def test_skip_activity(self, client, session_id):
        """Skipping moves on without a rate; skipping the last activity ends the session."""
        assert client.post(f"/api/sessions/{session_id}/skip").status_code == 409

        client.post(f"/api/sessions/{session_id}/start")
        data = client.post(f"/api/sessions/{session_id}/skip").json()
        assert data["currentIndex"] == 1
        assert data["activities"][0]["status"] == "completed"
        assert data["activities"][0]["successRate"] is None

        client.post(f"/api/sessions/{session_id}/skip")
        data = client.post(f"/api/sessions/{session_id}/skip").json()
        assert data["phase"] == "ended"
        assert client.get(f"/api/summaries/{session_id}").status_code == 200

    def test_success_rate_validation(self, client, session_id):
        response = client.post(
            f"/api/sessions/{session_id}/success-rate",
            json={"activityIndex": 0, "rate": 150},
        )
        assert response.status_code == 422

        response = client.post(
            f"/api/sessions/{session_id}/success-rate",
            json={"activityIndex": 7, "rate": 50},
        )
        assert response.status_code == 422

        data = client.post(
            f"/api/sessions/{session_id}/success-rate",
            json={"activityIndex": 1, "rate": 75},
        ).json()
        assert data["activities"][1]["successRate"] == 75

    def test_delete_session(self, client, session_id):
        response = client.delete(f"/api/sessions/{session_id}")
        assert response.json()["status"] == "removed"
        assert client.get(f"/api/sessions/{session_id}").status_code == 404
        assert client.delete(f"/api/sessions/{session_id}").status_code == 404


class TestTokensAndRewards:
    """Test token awards and the reward catalog."""

    def test_tokens_capped(self, client):
        client.post("/api/sessions", json=session_payload(max_tokens=2))
        client.post("/api/sessions/session-abc/start")
        counts = [client.post("/api/sessions/session-abc/tokens").json()["tokenCount"] for _ in range(4)]
        assert counts == [1, 2, 2, 2]

    def test_rewards_unlock(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/start")
        for _ in range(3):
            client.post(f"/api/sessions/{session_id}/tokens")

        rewards = {reward["id"]: reward for reward in client.get(f"/api/sessions/{session_id}/rewards").json()}
        assert rewards["reward-2"]["unlocked"] is True
        assert rewards["reward-2"]["progress"] == 100.0
        assert rewards["reward-1"]["unlocked"] is False
        assert rewards["reward-1"]["progress"] == pytest.approx(60.0)


class TestSummaries:
    """Test ending a session and reading its summary back."""

    def test_end_and_fetch_summary(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/start")
        client.post(f"/api/sessions/{session_id}/tokens")
        response = client.post(f"/api/sessions/{session_id}/end")
        assert response.status_code == 200
        summary = response.json()
        assert summary["sessionName"] == "Dragon Kingdom Adventure"
        assert summary["tokensEarned"] == 1
        assert summary["behaviorFocus"] == ["Engagement"]
        assert summary["activities"][0]["status"] == "in_progress"

        stored = client.get(f"/api/summaries/{session_id}").json()
        assert stored["sessionId"] == session_id
        assert stored["tokensEarned"] == 1

    def test_end_twice(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/start")
        client.post(f"/api/sessions/{session_id}/end")
        assert client.post(f"/api/sessions/{session_id}/end").status_code == 409
        assert client.post(f"/api/sessions/{session_id}/tokens").status_code == 409

    def test_list_summaries(self, client, session_id):
        assert client.get("/api/summaries").json() == {"sessionIds": []}
        client.post(f"/api/sessions/{session_id}/start")
        client.post(f"/api/sessions/{session_id}/end")
        assert client.get("/api/summaries").json() == {"sessionIds": [session_id]}

    def test_missing_summary(self, client):
        assert client.get("/api/summaries/never-ran").status_code == 404

    def test_summary_survives_delete(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/start")
        client.post(f"/api/sessions/{session_id}/end")
        client.delete(f"/api/sessions/{session_id}")
        assert client.get(f"/api/summaries/{session_id}").status_code == 200


class TestContent:
    """Test simulated content for the current activity."""

    def test_content_for_current_activity(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/start")
        data = client.post(f"/api/sessions/{session_id}/content").json()
        assert data["activity_id"] == "warmup"
        assert "Final Consonants" in data["prompt"]
        assert "Sparkle" in data["content"]

    def test_content_before_start(self, client, session_id):
        assert client.post(f"/api/sessions/{session_id}/content").status_code == 409


class TestWebSocket:
    """Test the session event stream."""

    def test_event_stream(self, client, session_id):
        """A snapshot comes first, then live events in order; the stream closes after the end."""
        with client.websocket_connect(f"/api/sessions/{session_id}/ws") as websocket:
            snapshot = websocket.receive_json()
            client.post(f"/api/sessions/{session_id}/start")
            client.post(f"/api/sessions/{session_id}/tokens")
            client.post(f"/api/sessions/{session_id}/end")
            events = [websocket.receive_json() for _ in range(4)]

        assert snapshot["type"] == "snapshot"
        assert snapshot["snapshot"]["phase"] == "not_started"
        assert [event["type"] for event in events] == [
            "session_started",
            "activity_changed",
            "token_awarded",
            "session_ended",
        ]
        assert events[3]["summary"]["tokensEarned"] == 1

    def test_two_clients(self, client, session_id):
        """Each connection receives every event."""
        with client.websocket_connect(f"/api/sessions/{session_id}/ws") as first:
            with client.websocket_connect(f"/api/sessions/{session_id}/ws") as second:
                first.receive_json()
                second.receive_json()
                client.post(f"/api/sessions/{session_id}/start")
                for websocket in (first, second):
                    types = [websocket.receive_json()["type"] for _ in range(2)]
                    assert types == ["session_started", "activity_changed"]

    def test_ended_session(self, client, session_id):
        """Connecting after the end yields the final snapshot and a close."""
        client.post(f"/api/sessions/{session_id}/start")
        client.post(f"/api/sessions/{session_id}/end")

        with client.websocket_connect(f"/api/sessions/{session_id}/ws") as websocket:
            snapshot = websocket.receive_json()
            assert snapshot["snapshot"]["phase"] == "ended"
            with pytest.raises(WebSocketDisconnect):
                websocket.receive_json()

    def test_removed_session(self, client, session_id):
        with client.websocket_connect(f"/api/sessions/{session_id}/ws") as websocket:
            websocket.receive_json()
            client.delete(f"/api/sessions/{session_id}")
            assert websocket.receive_json()["type"] == "session_removed"
        assert session_manager.subscribe(session_id) is None

    def test_unknown_session(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/sessions/nope/ws"):
                pass

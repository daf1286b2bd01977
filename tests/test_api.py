"""
Test the REST surface: auth, routing and error mapping.
"""

import pytest
from fastapi.testclient import TestClient

from standup_pulse.api import create_app

HEADERS = {"X-API-Key": "test-key"}


@pytest.fixture
def client(settings, service):
    return TestClient(create_app(settings, service=service))


class TestAuth:
    def test_healthcheck_is_open(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["scheduler"]["running"] is False

    def test_rejects_wrong_key(self, client):
        response = client.get("/api/teams/core/config", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_rejects_missing_key(self, client):
        assert client.get("/api/teams/core/config").status_code == 422


class TestTeamLifecycle:
    def test_configure_enable_start_answer(self, client, database):
        assert client.put("/api/teams/core", json={"name": "Core"}, headers=HEADERS).status_code == 200

        response = client.patch(
            "/api/teams/core/config",
            json={"schedule_time": "08:30", "participants": ["A", "B"], "channel_id": "C9"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["schedule_time"] == "08:30"
        assert response.json()["enabled"] is False

        response = client.post("/api/teams/core/enable", headers=HEADERS)
        assert response.json()["enabled"] is True

        response = client.post("/api/teams/core/start", headers=HEADERS)
        assert response.status_code == 201
        assert response.json()["participant_count"] == 2
        assert response.json()["date"] == "2024-01-15"

        response = client.post("/api/teams/core/start", headers=HEADERS)
        assert response.status_code == 409
        assert response.json()["detail"] == "Standup already started for today"

        response = client.post(
            "/api/answers",
            json={"user_id": "A", "question_index": 1, "text": "Shipped the release"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["responses"]["yesterday"] == "Shipped the release"
        assert response.json()["status"] == "pending"

        status = client.get("/api/teams/core/status", headers=HEADERS).json()
        assert status["date"] == "2024-01-15"
        assert status["pending"] == 2

        history = client.get("/api/teams/core/history", headers=HEADERS).json()
        assert history["history"][0]["total"] == 2

    def test_enable_incomplete_team_conflicts(self, client):
        client.put("/api/teams/core", json={"name": "Core"}, headers=HEADERS)
        response = client.post("/api/teams/core/enable", headers=HEADERS)
        assert response.status_code == 409
        assert "Schedule time" in response.json()["detail"]


class TestErrorMapping:
    def test_unknown_team_is_404(self, client):
        response = client.get("/api/teams/ghost/summary", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["context"] == {"team_id": "ghost"}

    def test_invalid_schedule_is_422(self, client):
        client.put("/api/teams/core", json={"name": "Core"}, headers=HEADERS)
        response = client.patch(
            "/api/teams/core/config", json={"schedule_time": "25:70"}, headers=HEADERS
        )
        assert response.status_code == 422
        assert response.json()["detail"].startswith("Invalid schedule time format")

    def test_short_answer_is_422(self, client, service, team):
        service.initializer.start("core")
        response = client.post(
            "/api/answers",
            json={"user_id": "A", "question_index": 2, "text": "ok"},
            headers=HEADERS,
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Answer must be at least 3 characters"

    def test_null_participants_is_422(self, client):
        client.put("/api/teams/core", json={"name": "Core"}, headers=HEADERS)
        response = client.patch(
            "/api/teams/core/config", json={"participants": None}, headers=HEADERS
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Participants must be a list of user ids"

    def test_clearing_channel_of_enabled_team_is_409(self, client, team):
        response = client.patch(
            "/api/teams/core/config", json={"channel_id": ""}, headers=HEADERS
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Channel must be set while standup is enabled"

    def test_question_out_of_range_is_rejected(self, client, team):
        response = client.post(
            "/api/answers",
            json={"user_id": "A", "question_index": 4, "text": "Something"},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_answer_without_standup_is_404(self, client, team):
        response = client.post(
            "/api/answers",
            json={"user_id": "A", "question_index": 1, "text": "Something"},
            headers=HEADERS,
        )
        assert response.status_code == 404

    def test_bad_date_is_400(self, client, team):
        response = client.get("/api/teams/core/summary?date=15-01-2024", headers=HEADERS)
        assert response.status_code == 400

    def test_summary_for_date(self, client, team):
        response = client.get("/api/teams/core/summary?date=2024-01-14", headers=HEADERS)
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2024-01-14"
        assert body["participation"]["total"] == 2
        assert body["participation"]["responded"] == 0

"""
Tests des routes /api/v1/training-sessions, /training-details et /performance.
TestClient FastAPI, base SQLite en memoire injectee via dependency_overrides.
"""
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.main import app
from app.core.database import get_session
from app.auth.jwt import jwt_manager
from app.domain.entities import ExerciseTrainingSession, SessionStatus


@pytest.fixture
def client(engine, seeded):
    def _get_test_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seeded):
    token = jwt_manager.create_token_for_user(seeded["user_id"]).access_token
    return {"Authorization": f"Bearer {token}"}


def _start(client, auth_headers, seeded):
    response = client.post(
        "/api/v1/training-sessions/start",
        json={"exercise_preset_group_id": seeded["group_id"]},
        headers=auth_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestAuth:

    def test_missing_token(self, client):
        response = client.get("/api/v1/training-sessions/1")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/training-sessions/1", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["services"]["database"] == "connected"
        assert response.json()["autosave"]["delay_ms"] == 2000


class TestSessionRoutes:

    def test_start_and_get(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        assert started["status"] == "ongoing"
        assert started["athlete_id"] == seeded["athlete_id"]

        response = client.get(f"/api/v1/training-sessions/{started['id']}", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == started["id"]
        assert body["exercise_preset_group"]["name"] == "Lower Body A"
        assert body["exercise_training_details"] == []

    def test_start_without_athlete_profile(self, client, seeded):
        token = jwt_manager.create_token_for_user("stranger").access_token
        response = client.post(
            "/api/v1/training-sessions/start",
            json={"exercise_preset_group_id": seeded["group_id"]},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No athlete profile found"

    def test_get_missing_session(self, client, auth_headers):
        response = client.get("/api/v1/training-sessions/999", headers=auth_headers)
        assert response.status_code == 404

    def test_list_sessions(self, client, auth_headers, seeded):
        _start(client, auth_headers, seeded)
        _start(client, auth_headers, seeded)
        response = client.get("/api/v1/training-sessions?limit=1", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_patch_session(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        response = client.patch(
            f"/api/v1/training-sessions/{started['id']}",
            json={"notes": "heavy day"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["notes"] == "heavy day"

    def test_complete_then_mutation_conflict(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        url = f"/api/v1/training-sessions/{started['id']}"

        response = client.post(f"{url}/complete", json={"notes": "done"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        # Idempotent
        response = client.post(f"{url}/complete", json={}, headers=auth_headers)
        assert response.status_code == 200

        response = client.patch(url, json={"notes": "late"}, headers=auth_headers)
        assert response.status_code == 409

    def test_complete_without_body(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        response = client.post(
            f"/api/v1/training-sessions/{started['id']}/complete", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"


    def test_patch_null_status_keeps_current(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        response = client.patch(
            f"/api/v1/training-sessions/{started['id']}",
            json={"status": None, "date_time": None, "notes": "tired"},
            headers=auth_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "ongoing"
        assert response.json()["date_time"] == started["date_time"]

    def test_complete_assigned_session_conflict(self, client, auth_headers, engine, seeded):
        with Session(engine) as session:
            assigned = ExerciseTrainingSession(
                exercise_preset_group_id=seeded["group_id"],
                athlete_id=seeded["athlete_id"],
                status=SessionStatus.ASSIGNED.value,
            )
            session.add(assigned)
            session.commit()
            session.refresh(assigned)
            assigned_id = assigned.id

        response = client.post(f"/api/v1/training-sessions/{assigned_id}/complete", headers=auth_headers)
        assert response.status_code == 409

        response = client.patch(
            f"/api/v1/training-sessions/{assigned_id}", json={"status": "completed"}, headers=auth_headers
        )
        assert response.status_code == 409


class TestPerformanceRoutes:

    def test_save_and_update_set(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        url = f"/api/v1/training-sessions/{started['id']}/exercises/{seeded['squat_id']}/performance"

        response = client.post(
            url, json={"set_index": 0, "reps": 5, "weight": 100, "performing_time": 42}, headers=auth_headers
        )
        assert response.status_code == 200, response.text
        detail = response.json()
        assert detail["performing_time"] == 42
        assert detail["completed"] is False

        response = client.patch(
            f"/api/v1/training-details/{detail['id']}",
            json={"completed": True, "rpe": 8},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["completed"] is True
        assert response.json()["reps"] == 5

    def test_patch_null_completed_keeps_current(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        url = f"/api/v1/training-sessions/{started['id']}/exercises/{seeded['squat_id']}/performance"
        detail = client.post(url, json={"set_index": 0, "completed": True}, headers=auth_headers).json()

        response = client.patch(
            f"/api/v1/training-details/{detail['id']}",
            json={"completed": None, "reps": 3},
            headers=auth_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["completed"] is True
        assert response.json()["reps"] == 3

    def test_negative_set_index_rejected(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        url = f"/api/v1/training-sessions/{started['id']}/exercises/{seeded['squat_id']}/performance"
        response = client.post(url, json={"set_index": -1}, headers=auth_headers)
        assert response.status_code == 422

    def test_update_missing_detail(self, client, auth_headers):
        response = client.patch("/api/v1/training-details/999", json={"reps": 1}, headers=auth_headers)
        assert response.status_code == 404

    def test_metrics_and_progress(self, client, auth_headers, seeded):
        started = _start(client, auth_headers, seeded)
        client.post(
            f"/api/v1/training-sessions/{started['id']}/exercises/{seeded['squat_id']}/performance",
            json={"set_index": 0, "reps": 5, "weight": 100},
            headers=auth_headers,
        )
        client.post(f"/api/v1/training-sessions/{started['id']}/complete", headers=auth_headers)

        metrics = client.get("/api/v1/performance/metrics", headers=auth_headers).json()
        assert metrics["total_sets"] == 1
        assert metrics["completion_rate"] == 100.0

        progress = client.get("/api/v1/performance/progress", headers=auth_headers).json()
        assert progress[0]["exercise_name"] == "Back Squat"
        assert progress[0]["pr_weight"] == 100

    def test_metrics_invalid_range(self, client, auth_headers):
        response = client.get(
            "/api/v1/performance/metrics?start_date=2026-10-10&end_date=2026-10-01",
            headers=auth_headers,
        )
        assert response.status_code == 400

"""HTTP surface tests: chat and admin routers through the FastAPI app."""

import pytest
from fastapi.testclient import TestClient

from intake import settings
from intake.live.engine import set_engine
from intake.main import app
from tests.fakes import FakeChat


@pytest.fixture
def client(make_engine, db_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", db_path)
    monkeypatch.setattr(settings, "SESSION_SWEEP_INTERVAL_SECONDS", 3600)
    set_engine(make_engine(FakeChat()))
    with TestClient(app) as c:
        yield c
    set_engine(None)


class TestChatRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_turn_sets_cookie_and_continues(self, client):
        first = client.post("/chat/turn", json={"message": "I was in a car accident"})
        assert first.status_code == 200
        body = first.json()
        assert body["complete"] is False
        assert body["debug_info"]["category"] == "personal_injury_law"
        session_id = body["session_id"]
        assert client.cookies.get("intake_session_id") == session_id

        second = client.post("/chat/turn", json={"message": "It was on 03/02/2024"})
        assert second.json()["session_id"] == session_id

        snapshot = client.get(f"/chat/session/{session_id}").json()
        assert snapshot["answers"]["date_of_incident"] == "03/02/2024"
        assert snapshot["client"]["user_agent"] == "testclient"
        assert len(snapshot["transcript"]) == 4

    def test_blank_message(self, client):
        assert client.post("/chat/turn", json={"message": "   "}).status_code == 400

    def test_unknown_session(self, client):
        assert client.get("/chat/session/intake_missing").status_code == 404

    def test_submit_errors(self, client):
        missing = client.post("/chat/submit", json={"session_id": "intake_missing", "tcpa_text": "I agree"})
        assert missing.status_code == 404
        assert missing.json()["detail"]["code"] == "SESSION_NOT_FOUND"

        session_id = client.post("/chat/turn", json={"message": "I got a DUI"}).json()["session_id"]
        early = client.post("/chat/submit", json={"session_id": session_id, "tcpa_text": "I agree"})
        assert early.status_code == 409
        assert early.json()["detail"]["code"] == "SESSION_NOT_COMPLETE"

    def test_reset(self, client):
        session_id = client.post("/chat/turn", json={"message": "I got a DUI"}).json()["session_id"]
        reset = client.post("/chat/reset", json={"rotate_id": True})
        assert reset.status_code == 200
        new_id = reset.json()["session_id"]
        assert new_id != session_id
        assert client.cookies.get("intake_session_id") == new_id
        assert client.get(f"/chat/session/{new_id}").json()["stage"] == "reset"

    def test_reset_needs_session(self, client):
        client.cookies.clear()
        assert client.post("/chat/reset", json={}).status_code == 400


class TestAdminRoutes:
    def test_practice_areas(self, client):
        body = client.get("/admin/practice-areas").json()
        assert body["fallback_category"] == "general"
        ids = [p["id"] for p in body["practice_areas"]]
        assert "personal_injury_law" in ids
        pi = next(p for p in body["practice_areas"] if p["id"] == "personal_injury_law")
        assert pi["askable_fields"][0] == "describe"
        assert "city" not in pi["askable_fields"]
        assert pi["askable_field_count"] == len(pi["askable_fields"])

    def test_leads_empty(self, client):
        assert client.get("/admin/leads").json() == {"submissions": []}
        assert client.get("/admin/leads", params={"limit": 0}).status_code == 422

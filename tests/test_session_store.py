"""Tests for the in-memory and SQLite session stores."""

import threading
import time
from datetime import timedelta

import pytest

from intake.live.session_store import InMemorySessionStore, SqliteSessionStore, build_session_store
from intake.state.models import IntakeStage, new_session, reset_session, utcnow


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionStore()
    return SqliteSessionStore(tmp_path / "sessions.db")


class TestRoundTrip:
    def test_put_get(self, store):
        session = new_session("intake_abc")
        session.category = "personal_injury_law"
        session.answers["first_name"] = "Dana"
        session.add_turn("user", "I was in a car accident")
        store.put(session)

        loaded = store.get("intake_abc")
        assert loaded.category == "personal_injury_law"
        assert loaded.answers == {"first_name": "Dana"}
        assert [t.text for t in loaded.transcript] == ["I was in a car accident"]
        assert loaded.expires_at == session.expires_at

    def test_missing(self, store):
        assert store.get("intake_missing") is None
        assert store.delete("intake_missing") is False

    def test_delete(self, store):
        store.put(new_session("intake_abc"))
        assert store.delete("intake_abc") is True
        assert store.get("intake_abc") is None

    def test_caller_changes_not_shared(self, store):
        session = new_session("intake_abc")
        store.put(session)
        session.answers["first_name"] = "changed"
        loaded = store.get("intake_abc")
        assert loaded.answers == {}
        loaded.answers["first_name"] = "also changed"
        assert store.get("intake_abc").answers == {}


class TestExpiry:
    def test_expired_session_not_returned(self, store):
        now = utcnow()
        store.put(new_session("intake_old", ttl_seconds=60, now=now - timedelta(minutes=5)))
        assert store.get("intake_old", now=now) is None

    def test_sweep_removes_only_expired(self, store):
        now = utcnow()
        store.put(new_session("intake_old", ttl_seconds=60, now=now - timedelta(minutes=5)))
        store.put(new_session("intake_new", ttl_seconds=3600, now=now))
        assert store.sweep_expired(now) == 1
        assert store.get("intake_new", now=now) is not None
        assert store.sweep_expired(now) == 0


class TestLocking:
    def test_turns_on_one_session_are_serialized(self):
        store = InMemorySessionStore()
        store.put(new_session("intake_abc"))
        active = []
        overlaps = []

        def turn(i):
            with store.lock("intake_abc"):
                active.append(i)
                if len(active) > 1:
                    overlaps.append(i)
                session = store.get("intake_abc")
                time.sleep(0.01)
                session.add_turn("user", f"message {i}")
                store.put(session)
                active.remove(i)

        threads = [threading.Thread(target=turn, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert overlaps == []
        assert len(store.get("intake_abc").transcript) == 8

    def test_other_sessions_not_blocked(self):
        store = InMemorySessionStore()
        with store.lock("intake_a"):
            acquired = threading.Event()

            def other():
                with store.lock("intake_b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            assert acquired.wait(timeout=2)
            t.join()

    def test_lock_map_empty_after_expired_sessions_swept(self, store):
        now = utcnow()
        for i in range(50):
            sid = f"intake_{i:03d}"
            with store.lock(sid):
                store.put(new_session(sid, ttl_seconds=60, now=now - timedelta(minutes=5)))
        assert store.sweep_expired(now) == 50
        assert store._locks == {}

    def test_lock_entry_kept_while_waiters_remain(self, store):
        holding = threading.Event()
        release = threading.Event()
        order = []

        def first():
            with store.lock("intake_abc"):
                holding.set()
                release.wait(timeout=2)
                order.append("first")

        def second():
            with store.lock("intake_abc"):
                order.append("second")

        t1 = threading.Thread(target=first)
        t1.start()
        assert holding.wait(timeout=2)
        t2 = threading.Thread(target=second)
        t2.start()
        deadline = time.monotonic() + 2
        while store._locks["intake_abc"].users < 2 and time.monotonic() < deadline:
            time.sleep(0.005)
        assert store._locks["intake_abc"].users == 2
        release.set()
        t1.join()
        t2.join()
        assert order == ["first", "second"]
        assert store._locks == {}


class TestResetAndFactory:
    def test_reset_keeps_or_rotates_id(self):
        session = new_session("intake_abc")
        session.answers["first_name"] = "Dana"
        session.client = session.client.model_copy(update={"ip_address": "203.0.113.9"})
        kept = reset_session(session)
        assert kept.session_id == "intake_abc"
        assert kept.stage == IntakeStage.RESET
        assert kept.answers == {}
        assert kept.client.ip_address == "203.0.113.9"
        assert reset_session(session, rotate_id=True).session_id != "intake_abc"

    def test_build_session_store(self, tmp_path, monkeypatch):
        from intake import settings

        monkeypatch.setattr(settings, "DB_PATH", tmp_path / "intake.db")
        assert isinstance(build_session_store("memory"), InMemorySessionStore)
        assert isinstance(build_session_store("sqlite"), SqliteSessionStore)
        assert isinstance(build_session_store("redis"), InMemorySessionStore)

"""
Session store: get / put / delete / sweep_expired, keyed by session id.
The engine takes ``lock(session_id)`` around each turn's read-modify-write.
Reads never return an expired session; removal is left to the sweep.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator

from intake import settings
from intake.registry import store as registry
from intake.state.models import IntakeSession, utcnow

logger = logging.getLogger(__name__)


@dataclass
class _SessionLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0  # holders plus waiters


class SessionStore(ABC):
    def __init__(self) -> None:
        self._locks: dict[str, _SessionLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        """
        Serialize turns for one session; other sessions are unaffected.
        An entry lives only while someone holds or waits on it.
        """
        with self._locks_guard:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = self._locks[session_id] = _SessionLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0 and self._locks.get(session_id) is entry:
                    del self._locks[session_id]

    @abstractmethod
    def get(self, session_id: str, now: datetime | None = None) -> IntakeSession | None: ...

    @abstractmethod
    def put(self, session: IntakeSession) -> None: ...

    @abstractmethod
    def delete(self, session_id: str) -> bool: ...

    @abstractmethod
    def sweep_expired(self, now: datetime | None = None) -> int: ...


class InMemorySessionStore(SessionStore):
    """Process-local store. Holds copies so callers never share a live object."""

    def __init__(self) -> None:
        super().__init__()
        self._sessions: dict[str, IntakeSession] = {}
        self._guard = threading.Lock()

    def get(self, session_id: str, now: datetime | None = None) -> IntakeSession | None:
        with self._guard:
            session = self._sessions.get(session_id)
        if session is None or session.is_expired(now):
            return None
        return session.model_copy(deep=True)

    def put(self, session: IntakeSession) -> None:
        with self._guard:
            self._sessions[session.session_id] = session.model_copy(deep=True)

    def delete(self, session_id: str) -> bool:
        with self._guard:
            return self._sessions.pop(session_id, None) is not None

    def sweep_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        with self._guard:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class SqliteSessionStore(SessionStore):
    """Sessions as JSON rows in the intake registry; survives restarts."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        super().__init__()
        self.db_path = db_path
        registry.init_db(db_path)

    def get(self, session_id: str, now: datetime | None = None) -> IntakeSession | None:
        raw = registry.load_session(session_id, db_path=self.db_path)
        if raw is None:
            return None
        session = IntakeSession.model_validate_json(raw)
        if session.is_expired(now):
            return None
        return session

    def put(self, session: IntakeSession) -> None:
        registry.save_session(
            session.session_id,
            session.model_dump_json(),
            session.expires_at.isoformat(timespec="microseconds"),
            db_path=self.db_path,
        )

    def delete(self, session_id: str) -> bool:
        return registry.delete_session(session_id, db_path=self.db_path)

    def sweep_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return registry.delete_expired_sessions(now.isoformat(timespec="microseconds"), db_path=self.db_path)


def build_session_store(backend: str | None = None) -> SessionStore:
    backend = (backend or settings.SESSION_BACKEND).lower()
    if backend == "sqlite":
        return SqliteSessionStore()
    if backend != "memory":
        logger.warning("Unknown SESSION_BACKEND %r, using memory", backend)
    return InMemorySessionStore()

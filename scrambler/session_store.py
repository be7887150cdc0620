# scrambler/session_store.py
import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from scrambler.entities import KeyboardSession
from scrambler.errors import SessionStoreError
from scrambler.layout import Layout, LayoutGenerator, layout_from_json, layout_to_json

logger = logging.getLogger("scrambler_backend")

DEFAULT_TTL_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


class ActiveField(str, Enum):
    IDENTIFIER = "identifier"
    SECRET = "secret"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ActiveField"]:
        """
        Accepts the enum values plus the browser client's `username` /
        `password` spellings. None stays None.
        """
        if value is None or isinstance(value, cls):
            return value
        v = str(value).strip().lower()
        if v in ("identifier", "username"):
            return cls.IDENTIFIER
        if v in ("secret", "password"):
            return cls.SECRET
        raise ValueError(f"Unknown field: {value!r}")


@dataclass(frozen=True)
class SessionState:
    id: str
    layout: Layout
    identifier_buffer: str = ""
    secret_buffer: str = ""
    active_field: ActiveField = ActiveField.IDENTIFIER
    expires_at: float = 0.0

    def buffer(self, field: ActiveField) -> str:
        if field is ActiveField.IDENTIFIER:
            return self.identifier_buffer
        return self.secret_buffer

    def with_buffer(self, field: ActiveField, value: str) -> "SessionState":
        if field is ActiveField.IDENTIFIER:
            return replace(self, identifier_buffer=value)
        return replace(self, secret_buffer=value)

    def cleared(self) -> "SessionState":
        return replace(self, identifier_buffer="", secret_buffer="")


class SessionStore:
    """
    Keyed session records with atomic read / whole-record replace.

    - Absent, unknown or expired ids yield a brand new session (scrambled,
      uppercase layout, empty buffers, identifier active).
    - Fixed TTL from creation; expiry is checked on access.
    - get_or_create sweeps expired entries at most once per
      `sweep_interval_seconds`.
    """

    def __init__(
        self,
        layout_generator: LayoutGenerator | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ):
        self.layout_generator = layout_generator or LayoutGenerator()
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.sweep_interval_seconds = sweep_interval_seconds
        self._last_sweep = clock()

    def _new_state(self, session_id: Optional[str]) -> SessionState:
        return SessionState(
            id=session_id or str(uuid4()),
            layout=self.layout_generator.generate(scramble=True, uppercase=True),
            expires_at=self.clock() + self.ttl_seconds,
        )

    def _maybe_sweep(self) -> None:
        now = self.clock()
        if now - self._last_sweep < self.sweep_interval_seconds:
            return
        self._last_sweep = now
        removed = self.sweep_expired()
        if removed:
            logger.debug(f"Swept {removed} expired session(s)")

    def get_or_create(self, session_id: Optional[str]) -> SessionState:
        raise NotImplementedError

    def save(self, state: SessionState) -> None:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError

    def sweep_expired(self) -> int:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._lock = threading.Lock()
        self._items: dict[str, SessionState] = {}

    def get_or_create(self, session_id: Optional[str]) -> SessionState:
        self._maybe_sweep()
        now = self.clock()
        with self._lock:
            if session_id:
                state = self._items.get(session_id)
                if state is not None:
                    if state.expires_at > now:
                        return state
                    # expired -> replace
                    del self._items[session_id]
                    logger.debug(f"Session {session_id} expired, allocating a fresh one")

            state = self._new_state(session_id)
            self._items[state.id] = state
            logger.debug(f"Session created: {state.id}")
            return state

    def save(self, state: SessionState) -> None:
        with self._lock:
            self._items[state.id] = state

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)

    def sweep_expired(self) -> int:
        """
        Delete expired sessions. Returns how many entries were removed.
        """
        now = self.clock()
        with self._lock:
            expired = [k for k, v in self._items.items() if v.expires_at <= now]
            for k in expired:
                del self._items[k]
        return len(expired)


def _to_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _to_timestamp(dt: datetime) -> float:
    # SQLite hands back naive datetimes
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


class SqlSessionStore(SessionStore):
    """
    One `sessions` row per session; each call opens and closes its own
    SQLAlchemy session.
    """

    def __init__(self, session_factory: sessionmaker, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.SessionFactory = session_factory

    def _row_to_state(self, row: KeyboardSession) -> SessionState:
        return SessionState(
            id=row.id,
            layout=layout_from_json(row.layout_map),
            identifier_buffer=row.identifier_buffer or "",
            secret_buffer=row.secret_buffer or "",
            active_field=ActiveField.parse(row.active_field) or ActiveField.IDENTIFIER,
            expires_at=_to_timestamp(row.expires_at),
        )

    def _write(self, session: Session, state: SessionState) -> None:
        row = session.get(KeyboardSession, state.id)
        if row is None:
            row = KeyboardSession(id=state.id)
            session.add(row)
        row.layout_map = layout_to_json(state.layout)
        row.identifier_buffer = state.identifier_buffer
        row.secret_buffer = state.secret_buffer
        row.active_field = state.active_field.value
        row.expires_at = _to_datetime(state.expires_at)

    def get_or_create(self, session_id: Optional[str]) -> SessionState:
        self._maybe_sweep()
        now = self.clock()
        session: Session = self.SessionFactory()
        try:
            if session_id:
                row = session.get(KeyboardSession, session_id)
                if row is not None:
                    state = self._row_to_state(row)
                    if state.expires_at > now:
                        return state
                    logger.debug(f"Session {session_id} expired, allocating a fresh one")

            state = self._new_state(session_id)
            self._write(session, state)
            session.commit()
            logger.debug(f"Session created: {state.id}")
            return state
        except SQLAlchemyError as e:
            session.rollback()
            raise SessionStoreError(f"Could not load session: {e}") from e
        finally:
            session.close()

    def save(self, state: SessionState) -> None:
        session: Session = self.SessionFactory()
        try:
            self._write(session, state)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise SessionStoreError(f"Could not save session {state.id}: {e}") from e
        finally:
            session.close()

    def delete(self, session_id: str) -> None:
        session: Session = self.SessionFactory()
        try:
            row = session.get(KeyboardSession, session_id)
            if row is not None:
                session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise SessionStoreError(f"Could not delete session {session_id}: {e}") from e
        finally:
            session.close()

    def sweep_expired(self) -> int:
        cutoff = _to_datetime(self.clock())
        session: Session = self.SessionFactory()
        try:
            removed = (
                session.query(KeyboardSession)
                .filter(KeyboardSession.expires_at <= cutoff)
                .delete(synchronize_session=False)
            )
            session.commit()
            return removed
        except SQLAlchemyError as e:
            session.rollback()
            raise SessionStoreError(f"Could not sweep expired sessions: {e}") from e
        finally:
            session.close()

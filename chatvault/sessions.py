"""Server-side sessions.

A session maps an opaque random token to a user id until its expiry. The
mapping lives in a pluggable ``SessionBackend``: ``InMemorySessionBackend`` for
tests and single-process development, ``SqlSessionBackend`` for anything that
has to survive a restart or be shared between workers.

Expiry is checked lazily in ``SessionManager.resolve``; there is no sweeper.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import StoreFailure
from .models import UserSession, utcnow

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=1)


@dataclass(frozen=True)
class SessionRecord:
    user_id: int
    expires_at: datetime


class SessionBackend(Protocol):
    def get(self, token: str) -> Optional[SessionRecord]: ...

    def set(self, token: str, record: SessionRecord) -> None: ...

    def delete(self, token: str) -> None: ...


class InMemorySessionBackend:
    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}

    def get(self, token: str) -> Optional[SessionRecord]:
        return self._records.get(token)

    def set(self, token: str, record: SessionRecord) -> None:
        self._records[token] = record

    def delete(self, token: str) -> None:
        self._records.pop(token, None)

    def __len__(self) -> int:
        return len(self._records)


class SqlSessionBackend:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, token: str) -> Optional[SessionRecord]:
        try:
            with self.session_factory() as db:
                row = db.get(UserSession, token)
        except SQLAlchemyError as exc:
            logger.exception("Session lookup failed")
            raise StoreFailure("session lookup failed") from exc
        if row is None:
            return None
        expires_at = row.expires_at
        if expires_at.tzinfo is None:
            # SQLite hands back naive datetimes
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return SessionRecord(user_id=row.user_id, expires_at=expires_at)

    def set(self, token: str, record: SessionRecord) -> None:
        try:
            with self.session_factory() as db:
                db.merge(UserSession(token=token, user_id=record.user_id, expires_at=record.expires_at))
                db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Session write failed")
            raise StoreFailure("session write failed") from exc

    def delete(self, token: str) -> None:
        try:
            with self.session_factory() as db:
                db.query(UserSession).filter(UserSession.token == token).delete()
                db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Session delete failed")
            raise StoreFailure("session delete failed") from exc


class SessionManager:
    def __init__(
        self,
        backend: SessionBackend,
        ttl: timedelta = SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.backend = backend
        self.ttl = ttl
        self.clock = clock

    def create(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        self.backend.set(token, SessionRecord(user_id=user_id, expires_at=self.clock() + self.ttl))
        return token

    def resolve(self, token: Optional[str]) -> Optional[int]:
        """Return the user id for ``token``, or None when absent or expired."""
        if not token:
            return None
        record = self.backend.get(token)
        if record is None:
            return None
        if self.clock() >= record.expires_at:
            self.backend.delete(token)
            return None
        return record.user_id

    def destroy(self, token: Optional[str]) -> None:
        if token:
            self.backend.delete(token)


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions

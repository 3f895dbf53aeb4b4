"""Server-side admin session records keyed by opaque cookie tokens."""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from flask import current_app

from utils.security import generate_token, hash_value

DEFAULT_SESSION_LIFETIME = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    admin_id: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionStore:
    """Interface the API layer depends on for admin sessions."""

    def create(self, admin_id: int) -> str:
        raise NotImplementedError

    def get(self, token: Optional[str]) -> Optional[SessionRecord]:
        raise NotImplementedError

    def destroy(self, token: Optional[str]) -> bool:
        raise NotImplementedError

    def purge_expired(self) -> int:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Process-local store; records are keyed by an HMAC of the token, never the token itself."""

    def __init__(
        self,
        secret: str,
        lifetime: timedelta = DEFAULT_SESSION_LIFETIME,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.lifetime = lifetime
        self.secret = secret
        self.clock = clock
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def _key(self, token: str) -> str:
        return hash_value(token, self.secret)

    def create(self, admin_id: int) -> str:
        token = generate_token(32)
        now = self.clock()
        record = SessionRecord(admin_id=admin_id, created_at=now, expires_at=now + self.lifetime)
        with self._lock:
            self._drop_expired(now)
            self._records[self._key(token)] = record
        return token

    def get(self, token: Optional[str]) -> Optional[SessionRecord]:
        if not token:
            return None
        key = self._key(token)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if record.is_expired(self.clock()):
                del self._records[key]
                return None
            return record

    def destroy(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return self._records.pop(self._key(token), None) is not None

    def _drop_expired(self, now: datetime) -> int:
        # Caller holds the lock.
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            return self._drop_expired(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def current_session_store() -> SessionStore:
    return current_app.extensions["session_store"]

"""In-process storage backend, used for tests and local development."""
import logging
from typing import Optional
from datetime import date, datetime, timedelta, timezone

from .base import Secret, SessionRecord

logger = logging.getLogger("mykeys.storage")


def _copy(secret: Secret, **changes) -> Secret:
    values = {
        "id": secret.id,
        "name": secret.name,
        "site": secret.site,
        "account": secret.account,
        "password": secret.password,
        "extra": secret.extra,
        "expires_at": secret.expires_at,
        "created_at": secret.created_at,
    }
    values.update(changes)
    return Secret(**values)


class MemoryStorage:
    """Dict-backed storage. Rows do not survive a restart."""

    def __init__(self) -> None:
        self._secrets: dict[int, Secret] = {}
        self._sessions: dict[str, SessionRecord] = {}
        self._next_id = 1

    async def init(self) -> None:
        logger.warning("Using in-memory storage, secrets will not be persisted")

    async def close(self) -> None:
        self._secrets.clear()
        self._sessions.clear()

    async def get_secret(self, secret_id: int) -> Optional[Secret]:
        row = self._secrets.get(secret_id)
        return _copy(row) if row is not None else None

    async def list_secrets(self) -> list[Secret]:
        rows = sorted(
            self._secrets.values(),
            key=lambda s: (s.created_at, s.id),
            reverse=True,
        )
        return [_copy(r) for r in rows]

    async def search_secrets(self, keyword: str, limit: int) -> list[Secret]:
        needle = keyword.lower()
        hits = [
            _copy(r) for _, r in sorted(self._secrets.items())
            if needle in r.name.lower() or needle in r.site.lower()
        ]
        return hits[:limit]

    async def list_expiring_within(self, days: int) -> list[Secret]:
        limit = (date.today() + timedelta(days=days)).isoformat()
        rows = [
            r for r in self._secrets.values()
            if r.expires_at and r.expires_at <= limit
        ]
        rows.sort(key=lambda r: (r.expires_at, r.id))
        return [_copy(r) for r in rows]

    async def insert_secret(self, secret: Secret) -> int:
        secret_id = self._next_id
        self._next_id += 1
        self._secrets[secret_id] = _copy(
            secret, id=secret_id, created_at=datetime.now(timezone.utc)
        )
        return secret_id

    async def update_expiry(self, secret_id: int, expires_at: Optional[str]) -> None:
        row = self._secrets.get(secret_id)
        if row is not None:
            self._secrets[secret_id] = _copy(row, expires_at=expires_at)

    async def delete_secret(self, secret_id: int) -> None:
        self._secrets.pop(secret_id, None)

    async def get_session(self, user_id: str) -> Optional[SessionRecord]:
        return self._sessions.get(user_id)

    async def set_session(self, user_id: str, payload: str) -> None:
        self._sessions[user_id] = SessionRecord(
            payload=payload, updated_at=datetime.now(timezone.utc)
        )

    async def clear_session(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)

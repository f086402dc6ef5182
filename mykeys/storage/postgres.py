"""
PostgreSQL storage backend over an asyncpg-compatible connection pool.

Security Note:
    Rows contain ciphertext only (sessions included). Never log row values.
"""
import logging
from typing import Any, Optional
from datetime import date

from .base import Secret, SessionRecord

logger = logging.getLogger("mykeys.storage")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS secrets (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    site TEXT NOT NULL DEFAULT '',
    account TEXT NOT NULL DEFAULT '',
    password TEXT NOT NULL DEFAULT '',
    extra TEXT,
    expires_at DATE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE TABLE IF NOT EXISTS sessions (
    user_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_SELECT_SECRET = """
SELECT id, name, site, account, password, extra, expires_at, created_at
FROM secrets WHERE id = $1
"""

_SELECT_ALL = """
SELECT id, name, site, account, password, extra, expires_at, created_at
FROM secrets ORDER BY created_at DESC, id DESC
"""

_SEARCH = """
SELECT id, name, site, account, password, extra, expires_at, created_at
FROM secrets
WHERE name ILIKE $1 OR site ILIKE $1
ORDER BY id
LIMIT $2
"""

_SELECT_EXPIRING = """
SELECT id, name, site, account, password, extra, expires_at, created_at
FROM secrets
WHERE expires_at IS NOT NULL AND expires_at <= CURRENT_DATE + $1::int
ORDER BY expires_at, id
"""

_INSERT_SECRET = """
INSERT INTO secrets (name, site, account, password, extra, expires_at)
VALUES ($1, $2, $3, $4, $5, $6)
RETURNING id
"""

_UPDATE_EXPIRY = "UPDATE secrets SET expires_at = $1 WHERE id = $2"

_DELETE_SECRET = "DELETE FROM secrets WHERE id = $1"

_SELECT_SESSION = "SELECT data, updated_at FROM sessions WHERE user_id = $1"

_UPSERT_SESSION = """
INSERT INTO sessions (user_id, data, updated_at)
VALUES ($1, $2, NOW())
ON CONFLICT (user_id)
DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
"""

_DELETE_SESSION = "DELETE FROM sessions WHERE user_id = $1"


def _escape_like(keyword: str) -> str:
    return (
        keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _row_to_secret(row: Any) -> Secret:
    expires_at = row["expires_at"]
    return Secret(
        id=row["id"],
        name=row["name"],
        site=row["site"],
        account=row["account"],
        password=row["password"],
        extra=row["extra"],
        expires_at=expires_at.isoformat() if expires_at else None,
        created_at=row["created_at"],
    )


class PostgresStorage:
    """Storage on top of an asyncpg-compatible pool.

    Args:
        db_pool: Pool exposing ``acquire()`` as an async context manager
            yielding connections with ``fetch``/``fetchrow``/``fetchval``/
            ``execute``.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    async def init(self) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_CREATE_TABLES)
        logger.info("Storage schema ready")

    async def close(self) -> None:
        await self._db.close()

    async def get_secret(self, secret_id: int) -> Optional[Secret]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SECRET, secret_id)
        return _row_to_secret(row) if row else None

    async def list_secrets(self) -> list[Secret]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL)
        return [_row_to_secret(r) for r in rows]

    async def search_secrets(self, keyword: str, limit: int) -> list[Secret]:
        pattern = f"%{_escape_like(keyword)}%"
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SEARCH, pattern, limit)
        return [_row_to_secret(r) for r in rows]

    async def list_expiring_within(self, days: int) -> list[Secret]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_EXPIRING, days)
        return [_row_to_secret(r) for r in rows]

    async def insert_secret(self, secret: Secret) -> int:
        async with self._db.acquire() as conn:
            secret_id = await conn.fetchval(
                _INSERT_SECRET,
                secret.name, secret.site, secret.account, secret.password,
                secret.extra, _to_date(secret.expires_at),
            )
        logger.debug("Secret inserted: id=%s", secret_id)
        return secret_id

    async def update_expiry(self, secret_id: int, expires_at: Optional[str]) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_UPDATE_EXPIRY, _to_date(expires_at), secret_id)

    async def delete_secret(self, secret_id: int) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_DELETE_SECRET, secret_id)

    async def get_session(self, user_id: str) -> Optional[SessionRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SESSION, user_id)
        if not row:
            return None
        return SessionRecord(payload=row["data"], updated_at=row["updated_at"])

    async def set_session(self, user_id: str, payload: str) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_UPSERT_SESSION, user_id, payload)

    async def clear_session(self, user_id: str) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_DELETE_SESSION, user_id)

"""
Storage contract — records and the protocol every backend implements.

Backends persist ciphertext exactly as handed to them; encryption and the
session expiry policy live in ``mykeys.service.Vault``.
"""
from typing import Optional, Protocol, runtime_checkable
from datetime import datetime

from datamodel import BaseModel

from ..conf import RAW_SITE


class Secret(BaseModel):
    """Stored secret row. ``account``, ``password`` and ``extra`` hold
    ContentCipher ciphertext."""
    name: str
    id: int = 0
    site: str = ''
    account: str = ''
    password: str = ''
    extra: Optional[str] = None
    expires_at: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_raw(self) -> bool:
        return self.site == RAW_SITE


class SecretDetail(BaseModel):
    """Decrypted view of a secret."""
    id: int
    name: str
    site: str = ''
    account: str = ''
    password: str = ''
    extra: Optional[str] = None
    expires_at: Optional[str] = None
    is_raw: bool = False


class SessionRecord(BaseModel):
    """Opaque session payload plus the time it was last written."""
    payload: str
    updated_at: datetime


@runtime_checkable
class Storage(Protocol):
    """Persistence operations consumed by the Vault.

    Single-row atomicity per call is all that is required.
    """

    async def init(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def get_secret(self, secret_id: int) -> Optional[Secret]:
        ...

    async def list_secrets(self) -> list[Secret]:
        ...

    async def search_secrets(self, keyword: str, limit: int) -> list[Secret]:
        ...

    async def list_expiring_within(self, days: int) -> list[Secret]:
        ...

    async def insert_secret(self, secret: Secret) -> int:
        ...

    async def update_expiry(self, secret_id: int, expires_at: Optional[str]) -> None:
        ...

    async def delete_secret(self, secret_id: int) -> None:
        ...

    async def get_session(self, user_id: str) -> Optional[SessionRecord]:
        ...

    async def set_session(self, user_id: str, payload: str) -> None:
        ...

    async def clear_session(self, user_id: str) -> None:
        ...

"""Storage backends for secrets and conversation sessions."""

from .base import Secret, SecretDetail, SessionRecord, Storage
from .memory import MemoryStorage
from .postgres import PostgresStorage

__all__ = [
    "Secret",
    "SecretDetail",
    "SessionRecord",
    "Storage",
    "MemoryStorage",
    "PostgresStorage",
]

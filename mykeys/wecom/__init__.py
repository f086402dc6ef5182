"""WeCom (WeChat Work) platform adapter."""

from .api import TokenCache, WeComClient
from .crypto import (
    WeComCrypto,
    decrypt_envelope,
    encrypt_envelope,
    generate_signature,
    verify_signature,
)
from .handler import WeComHandler

__all__ = [
    "TokenCache",
    "WeComClient",
    "WeComCrypto",
    "WeComHandler",
    "decrypt_envelope",
    "encrypt_envelope",
    "generate_signature",
    "verify_signature",
]

"""MyKeys — personal secret vault behind a WeCom chat bot.

Security Note (Threat Model):
    A single content key protects every stored field and every persisted
    conversation session. Decrypted secrets exist in process memory while a
    reply is built and inside the passive reply envelope sent to WeCom.
    Key rotation and per-user keys are out of scope.
"""

from .version import __version__
from .crypto import ContentCipher, KeyCache
from .exceptions import (
    CryptoError,
    EnvelopeDecryptError,
    MyKeysError,
    NotFoundError,
    SignatureError,
    ValidationError,
    WeComAPIError,
)
from .service import Vault
from .conversation import ConversationEngine

__all__ = [
    "__version__",
    "ContentCipher",
    "ConversationEngine",
    "CryptoError",
    "EnvelopeDecryptError",
    "KeyCache",
    "MyKeysError",
    "NotFoundError",
    "SignatureError",
    "ValidationError",
    "Vault",
    "WeComAPIError",
]

"""
Content Crypto — AES-256-GCM encryption of individual secret fields.

Every stored ciphertext field has the layout:
    base64([nonce 12B][encrypted_payload + GCM_tag 16B])

The key is derived once per configured secret string and kept in a
``KeyCache`` so it is not re-derived for every field.

Security Note:
    Never log plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .conf import NONCE_SIZE, KEY_LENGTH
from .exceptions import CryptoError

logger = logging.getLogger("mykeys.crypto")

TAG_SIZE = 16
_KEY_FILLER = b"0"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(secret: str) -> bytes:
    """Turn the configured secret string into a 32-byte AES-256 key.

    The UTF-8 encoded secret is right-padded with ``b"0"`` and truncated
    to exactly 32 bytes.

    Args:
        secret: Configured content encryption secret.

    Returns:
        32-byte key.
    """
    raw = secret.encode("utf-8")
    return raw.ljust(KEY_LENGTH, _KEY_FILLER)[:KEY_LENGTH]


class KeyCache:
    """Process-scoped cache of the AEAD cipher for one secret string."""

    def __init__(self) -> None:
        self._secret: Optional[str] = None
        self._cipher: Optional[AESGCM] = None

    def get(self, secret: str) -> AESGCM:
        """Return the cipher for ``secret``, deriving it only when the
        secret differs from the cached one."""
        if self._cipher is None or self._secret != secret:
            self._cipher = AESGCM(derive_key(secret))
            self._secret = secret
            logger.debug("Content key derived")
        return self._cipher

    def invalidate(self) -> None:
        self._secret = None
        self._cipher = None


_default_cache = KeyCache()


class ContentCipher:
    """Encrypt and decrypt single string fields for storage.

    Args:
        secret: Configured content encryption secret.
        key_cache: Cache holding the derived key; a private one is
            created when omitted.
    """

    def __init__(self, secret: str, key_cache: Optional[KeyCache] = None):
        self._secret = secret
        self._keys = key_cache or KeyCache()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` with a fresh random nonce.

        Returns:
            base64 of nonce + ciphertext + tag.
        """
        cipher = self._keys.get(self._secret)
        nonce = os.urandom(NONCE_SIZE)
        ct = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ct).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Authenticate and decrypt a blob produced by ``encrypt``.

        Raises:
            CryptoError: If the blob is malformed, truncated, tampered with
                or was encrypted under another key.
        """
        try:
            data = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as err:
            raise CryptoError("Ciphertext is not valid base64") from err
        _min = NONCE_SIZE + TAG_SIZE
        if len(data) < _min:
            raise CryptoError(
                f"Ciphertext too short: {len(data)} bytes (minimum {_min})"
            )
        cipher = self._keys.get(self._secret)
        try:
            plaintext = cipher.decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None)
        except InvalidTag as err:
            raise CryptoError("Ciphertext failed authentication") from err
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as err:
            raise CryptoError("Decrypted payload is not UTF-8") from err


def encrypt(plaintext: str, secret: str) -> str:
    """Encrypt with the process-wide key cache."""
    return ContentCipher(secret, _default_cache).encrypt(plaintext)


def decrypt(blob: str, secret: str) -> str:
    """Decrypt with the process-wide key cache."""
    return ContentCipher(secret, _default_cache).decrypt(blob)

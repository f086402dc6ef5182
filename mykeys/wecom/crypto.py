"""
WeCom Crypto — callback signatures and the AES-256-CBC message envelope.

- Signature: SHA-1 over the sorted concatenation of token, timestamp,
  nonce and the encrypted payload.
- Envelope: EncodingAESKey (43 chars + "=") → 32-byte AES key, IV = key[:16],
  CBC over the codec layout, base64 on the wire.

This layer is independent of the content encryption used for storage.

Security Note:
    Never log decrypted messages, keys or the callback token.
"""
import os
import time
import hmac
import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import EnvelopeDecryptError, SignatureError
from .codec import BLOCK_SIZE, RANDOM_SIZE, CodecError, pack, pkcs7_pad, pkcs7_unpad, unpack

logger = logging.getLogger("mykeys.wecom")

_AES_BLOCK = 16


@dataclass(frozen=True)
class Envelope:
    message: str
    receive_id: str


@dataclass(frozen=True)
class EncryptedReply:
    encrypt: str
    signature: str
    timestamp: str
    nonce: str


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

def generate_signature(
    token: str, timestamp: str, nonce: str, encrypted: Optional[str] = None,
) -> str:
    """SHA-1 hex digest of the sorted, concatenated non-empty components."""
    parts = sorted(p for p in (token, timestamp, nonce, encrypted) if p)
    return hashlib.sha1("".join(parts).encode("utf-8")).hexdigest()


def verify_signature(
    token: str,
    timestamp: str,
    nonce: str,
    msg_signature: str,
    encrypted: Optional[str] = None,
) -> bool:
    expected = generate_signature(token, timestamp, nonce, encrypted)
    return hmac.compare_digest(expected.encode("utf-8"), (msg_signature or "").encode("utf-8"))


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def decode_aes_key(encoding_aes_key: str) -> bytes:
    """Decode the 43-character EncodingAESKey into the 32-byte AES key.

    Raises:
        EnvelopeDecryptError: If the key is not valid base64 or not 32 bytes.
    """
    try:
        key = base64.b64decode(encoding_aes_key + "=", validate=True)
    except (binascii.Error, ValueError) as err:
        raise EnvelopeDecryptError("EncodingAESKey is not valid base64") from err
    if len(key) != 32:
        raise EnvelopeDecryptError(
            f"EncodingAESKey must decode to 32 bytes, got {len(key)}"
        )
    return key


def _cipher(key: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.CBC(key[:_AES_BLOCK]))


def decrypt_envelope(encoding_aes_key: str, blob: str) -> Envelope:
    """Decrypt a base64 envelope into its message and receive id.

    Raises:
        EnvelopeDecryptError: On bad base64, block misalignment, padding or
            layout errors, or non UTF-8 content.
    """
    key = decode_aes_key(encoding_aes_key)
    try:
        data = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as err:
        raise EnvelopeDecryptError("Envelope is not valid base64") from err
    if not data or len(data) % _AES_BLOCK:
        raise EnvelopeDecryptError(
            f"Envelope length {len(data)} is not a multiple of {_AES_BLOCK}"
        )
    decryptor = _cipher(key).decryptor()
    plain = decryptor.update(data) + decryptor.finalize()

    unpadded = pkcs7_unpad(plain, BLOCK_SIZE)
    if isinstance(unpadded, CodecError):
        raise EnvelopeDecryptError(unpadded.reason)
    payload = unpack(unpadded)
    if isinstance(payload, CodecError):
        raise EnvelopeDecryptError(payload.reason)
    try:
        return Envelope(
            message=payload.message.decode("utf-8"),
            receive_id=payload.receive_id.decode("utf-8"),
        )
    except UnicodeDecodeError as err:
        raise EnvelopeDecryptError("Envelope content is not UTF-8") from err


def encrypt_envelope(encoding_aes_key: str, receive_id: str, plaintext: str) -> str:
    """Encrypt ``plaintext`` for ``receive_id`` with a fresh random prefix."""
    key = decode_aes_key(encoding_aes_key)
    data = pack(
        os.urandom(RANDOM_SIZE),
        plaintext.encode("utf-8"),
        receive_id.encode("utf-8"),
    )
    encryptor = _cipher(key).encryptor()
    ct = encryptor.update(pkcs7_pad(data, BLOCK_SIZE)) + encryptor.finalize()
    return base64.b64encode(ct).decode("ascii")


def generate_nonce() -> str:
    return os.urandom(8).hex()


class WeComCrypto:
    """Callback crypto bound to one WeCom application.

    Args:
        token: Callback token configured in the WeCom console.
        encoding_aes_key: 43-character EncodingAESKey.
        receive_id: Expected receive id (the CorpID).
    """

    def __init__(self, token: str, encoding_aes_key: str, receive_id: str):
        self._token = token
        self._key = encoding_aes_key
        self._receive_id = receive_id
        decode_aes_key(encoding_aes_key)

    def signature(self, timestamp: str, nonce: str, encrypted: Optional[str] = None) -> str:
        return generate_signature(self._token, timestamp, nonce, encrypted)

    def verify(
        self, msg_signature: str, timestamp: str, nonce: str, encrypted: str,
    ) -> None:
        """Raises:
            SignatureError: If the signature does not match.
        """
        if not verify_signature(self._token, timestamp, nonce, msg_signature, encrypted):
            raise SignatureError("msg_signature mismatch")

    def decrypt(self, encrypted: str) -> str:
        """Decrypt an envelope addressed to this application.

        Raises:
            EnvelopeDecryptError: On any decoding failure or receive id mismatch.
        """
        envelope = decrypt_envelope(self._key, encrypted)
        if not hmac.compare_digest(
            envelope.receive_id.encode("utf-8"), self._receive_id.encode("utf-8"),
        ):
            raise EnvelopeDecryptError("receive id mismatch")
        return envelope.message

    def decrypt_request(
        self, msg_signature: str, timestamp: str, nonce: str, encrypted: str,
    ) -> str:
        """Verify, decrypt and check the receive id of an inbound payload."""
        self.verify(msg_signature, timestamp, nonce, encrypted)
        return self.decrypt(encrypted)

    def encrypt_reply(
        self,
        plaintext: str,
        timestamp: Optional[str] = None,
        nonce: Optional[str] = None,
    ) -> EncryptedReply:
        """Encrypt and sign an outbound passive reply."""
        timestamp = timestamp or str(int(time.time()))
        nonce = nonce or generate_nonce()
        encrypted = encrypt_envelope(self._key, self._receive_id, plaintext)
        return EncryptedReply(
            encrypt=encrypted,
            signature=self.signature(timestamp, nonce, encrypted),
            timestamp=timestamp,
            nonce=nonce,
        )

"""
Tests for content encryption.

Tests cover:
- Key derivation padding/truncation
- Encrypt/decrypt round trip and nonce freshness
- Wrong key, tampering and truncation raising CryptoError
- KeyCache reuse and invalidation
"""
import base64

import pytest

from mykeys.crypto import ContentCipher, KeyCache, decrypt, derive_key, encrypt
from mykeys.exceptions import CryptoError


class TestDeriveKey:
    """Tests for derive_key."""

    def test_short_secret_is_padded(self):
        """Short secrets are right-padded with '0'."""
        assert derive_key("abc") == b"abc" + b"0" * 29

    def test_long_secret_is_truncated(self):
        """Secrets longer than 32 bytes are truncated."""
        key = derive_key("x" * 40)
        assert key == b"x" * 32

    def test_deterministic(self):
        assert derive_key("same-secret") == derive_key("same-secret")

    def test_non_ascii_secret_is_32_bytes(self):
        """Multi-byte characters still produce a 32-byte key."""
        assert len(derive_key("密钥" * 20)) == 32


class TestContentCipher:
    """Tests for ContentCipher encrypt/decrypt."""

    @pytest.mark.parametrize("plaintext", [
        "hunter2",
        "",
        "多字节 🔑 text",
        "line1\nline2\n" * 50,
    ])
    def test_round_trip(self, cipher, plaintext):
        """decrypt(encrypt(s)) == s."""
        assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext

    def test_layout(self, cipher):
        """Blob is base64 of 12-byte nonce + ciphertext + 16-byte tag."""
        raw = base64.b64decode(cipher.encrypt("abcd"))
        assert len(raw) == 12 + 4 + 16

    def test_fresh_nonce_per_call(self, cipher):
        """Encrypting the same text twice yields different blobs."""
        first = cipher.encrypt("same")
        second = cipher.encrypt("same")
        assert first != second
        assert base64.b64decode(first)[:12] != base64.b64decode(second)[:12]

    def test_wrong_key_raises(self, cipher):
        """Decrypting under another secret fails authentication."""
        blob = cipher.encrypt("secret value")
        other = ContentCipher("a-completely-different-secret")
        with pytest.raises(CryptoError):
            other.decrypt(blob)

    def test_tampered_byte_raises(self, cipher):
        """Flipping any single byte is detected."""
        raw = bytearray(base64.b64decode(cipher.encrypt("secret value")))
        for index in (0, 12, len(raw) - 1):
            tampered = bytearray(raw)
            tampered[index] ^= 0x01
            with pytest.raises(CryptoError):
                cipher.decrypt(base64.b64encode(bytes(tampered)).decode())

    def test_truncated_raises(self, cipher):
        raw = base64.b64decode(cipher.encrypt("secret value"))
        with pytest.raises(CryptoError):
            cipher.decrypt(base64.b64encode(raw[:20]).decode())

    def test_invalid_base64_raises(self, cipher):
        with pytest.raises(CryptoError):
            cipher.decrypt("not base64 at all!")


class TestKeyCache:
    """Tests for KeyCache."""

    def test_reuses_cipher_for_same_secret(self):
        cache = KeyCache()
        assert cache.get("secret-one") is cache.get("secret-one")

    def test_rederives_on_secret_change(self):
        cache = KeyCache()
        first = cache.get("secret-one")
        assert cache.get("secret-two") is not first

    def test_invalidate(self):
        cache = KeyCache()
        first = cache.get("secret-one")
        cache.invalidate()
        assert cache.get("secret-one") is not first

    def test_shared_cache_between_ciphers(self):
        """Ciphers sharing a cache decrypt each other's output."""
        cache = KeyCache()
        blob = ContentCipher("shared-secret", cache).encrypt("value")
        assert ContentCipher("shared-secret", cache).decrypt(blob) == "value"


class TestModuleHelpers:
    """Tests for the module-level encrypt/decrypt helpers."""

    def test_round_trip(self):
        assert decrypt(encrypt("value", "k1-secret"), "k1-secret") == "value"

    def test_other_key_raises(self):
        blob = encrypt("value", "k1-secret")
        with pytest.raises(CryptoError):
            decrypt(blob, "k2-secret")

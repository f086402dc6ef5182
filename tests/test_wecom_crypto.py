"""
Tests for WeCom callback signatures, the envelope cipher and its byte codec.
"""
import base64
import os
import struct

import pytest

from mykeys.exceptions import EnvelopeDecryptError, SignatureError
from mykeys.wecom import codec
from mykeys.wecom.crypto import (
    WeComCrypto,
    decode_aes_key,
    decrypt_envelope,
    encrypt_envelope,
    generate_signature,
    verify_signature,
)

AES_KEY = base64.b64encode(bytes(range(32))).decode("ascii").rstrip("=")
CORP_ID = "ww0123456789abcdef"
TOKEN = "callback-token"


@pytest.fixture
def crypto():
    return WeComCrypto(TOKEN, AES_KEY, CORP_ID)


class TestSignature:

    def test_order_independent(self):
        a = generate_signature("t", "1700000000", "n0nce", "payload")
        b = generate_signature("payload", "n0nce", "t", "1700000000")
        assert a == b
        assert len(a) == 40

    def test_any_component_changes_digest(self):
        base = generate_signature(TOKEN, "1", "n", "enc")
        assert generate_signature(TOKEN, "2", "n", "enc") != base
        assert generate_signature(TOKEN, "1", "m", "enc") != base
        assert generate_signature(TOKEN, "1", "n", "enc2") != base
        assert generate_signature("other", "1", "n", "enc") != base

    def test_empty_components_skipped(self):
        assert generate_signature(TOKEN, "1", "n") == generate_signature(TOKEN, "1", "n", "")

    def test_verify(self):
        sig = generate_signature(TOKEN, "1", "n", "enc")
        assert verify_signature(TOKEN, "1", "n", sig, "enc")
        assert not verify_signature(TOKEN, "1", "n", sig.upper(), "enc")
        assert not verify_signature(TOKEN, "1", "n", "", "enc")

    def test_verify_non_ascii_signature(self):
        assert not verify_signature(TOKEN, "1", "n", "é", "enc")


class TestCodec:
    """Byte layout and PKCS#7 helpers."""

    def test_pad_always_adds_block(self):
        padded = codec.pkcs7_pad(b"x" * 32)
        assert len(padded) == 64
        assert padded[-1] == 32

    def test_pad_unpad(self):
        assert codec.pkcs7_unpad(codec.pkcs7_pad(b"hello")) == b"hello"

    @pytest.mark.parametrize(
        "data",
        [b"", b"abc\x00", b"abc" + bytes([33]), b"ab\x02\x03"],
    )
    def test_unpad_rejects(self, data):
        assert isinstance(codec.pkcs7_unpad(data), codec.CodecError)

    def test_pack_layout(self):
        random = bytes(16)
        data = codec.pack(random, b"msg", b"corp")
        assert data[:16] == random
        assert struct.unpack("!I", data[16:20]) == (3,)
        assert data[20:] == b"msgcorp"
        assert codec.unpack(data) == codec.Payload(message=b"msg", receive_id=b"corp")

    def test_pack_random_size(self):
        with pytest.raises(ValueError):
            codec.pack(b"short", b"msg", b"corp")

    def test_unpack_short(self):
        assert isinstance(codec.unpack(bytes(19)), codec.CodecError)

    def test_unpack_length_overflow(self):
        data = bytes(16) + struct.pack("!I", 100) + b"tiny"
        assert isinstance(codec.unpack(data), codec.CodecError)


class TestEnvelope:

    def test_round_trip(self):
        blob = encrypt_envelope(AES_KEY, CORP_ID, "<xml>你好</xml>")
        envelope = decrypt_envelope(AES_KEY, blob)
        assert envelope.message == "<xml>你好</xml>"
        assert envelope.receive_id == CORP_ID

    def test_random_prefix(self):
        assert encrypt_envelope(AES_KEY, CORP_ID, "a") != encrypt_envelope(AES_KEY, CORP_ID, "a")

    def test_key_decoding(self):
        assert decode_aes_key(AES_KEY) == bytes(range(32))
        with pytest.raises(EnvelopeDecryptError):
            decode_aes_key("short")

    def test_not_base64(self):
        with pytest.raises(EnvelopeDecryptError):
            decrypt_envelope(AES_KEY, "!!not base64!!")

    def test_misaligned(self):
        blob = base64.b64encode(os.urandom(20)).decode()
        with pytest.raises(EnvelopeDecryptError):
            decrypt_envelope(AES_KEY, blob)

    def test_truncated(self):
        raw = base64.b64decode(encrypt_envelope(AES_KEY, CORP_ID, "x" * 40))
        with pytest.raises(EnvelopeDecryptError):
            decrypt_envelope(AES_KEY, base64.b64encode(raw[:16]).decode())

    def test_wrong_key(self):
        other = WeComCrypto(TOKEN, base64.b64encode(bytes(32)).decode().rstrip("="), CORP_ID)
        with pytest.raises(EnvelopeDecryptError):
            other.decrypt(encrypt_envelope(AES_KEY, CORP_ID, "hello"))


class TestWeComCrypto:

    def test_request_round_trip(self, crypto):
        blob = encrypt_envelope(AES_KEY, CORP_ID, "hello")
        sig = crypto.signature("1700000000", "abc", blob)
        assert crypto.decrypt_request(sig, "1700000000", "abc", blob) == "hello"

    def test_bad_signature(self, crypto):
        blob = encrypt_envelope(AES_KEY, CORP_ID, "hello")
        with pytest.raises(SignatureError):
            crypto.decrypt_request("0" * 40, "1700000000", "abc", blob)

    def test_receive_id_mismatch(self, crypto):
        blob = encrypt_envelope(AES_KEY, "ww-someone-else", "hello")
        with pytest.raises(EnvelopeDecryptError):
            crypto.decrypt(blob)

    def test_non_ascii_receive_id_mismatch(self, crypto):
        blob = encrypt_envelope(AES_KEY, "wwé", "hi")
        with pytest.raises(EnvelopeDecryptError):
            crypto.decrypt(blob)

    def test_non_ascii_signature(self, crypto):
        blob = encrypt_envelope(AES_KEY, CORP_ID, "hello")
        with pytest.raises(SignatureError):
            crypto.decrypt_request("é", "1700000000", "abc", blob)

    def test_encrypt_reply(self, crypto):
        reply = crypto.encrypt_reply("<xml/>", timestamp="1700000000", nonce="n1")
        assert reply.signature == generate_signature(TOKEN, "1700000000", "n1", reply.encrypt)
        assert crypto.decrypt(reply.encrypt) == "<xml/>"

    def test_generated_nonce(self, crypto):
        reply = crypto.encrypt_reply("<xml/>")
        assert len(reply.nonce) == 16
        assert reply.timestamp.isdigit()

    def test_invalid_key_rejected(self):
        with pytest.raises(EnvelopeDecryptError):
            WeComCrypto(TOKEN, "x" * 10, CORP_ID)

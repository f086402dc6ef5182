"""
WeCom envelope byte layout.

Plaintext inside the AES-CBC envelope:
    [random 16B][msg_len 4B uint32 BE][msg][receive_id]
padded with PKCS#7 to a 32-byte block size.

Decoding functions return a ``CodecError`` instead of raising so callers
decide how a malformed envelope is reported.
"""
import struct
from dataclasses import dataclass
from typing import Union

BLOCK_SIZE = 32
RANDOM_SIZE = 16
LENGTH_SIZE = 4
HEADER_SIZE = RANDOM_SIZE + LENGTH_SIZE


@dataclass(frozen=True)
class Payload:
    message: bytes
    receive_id: bytes


@dataclass(frozen=True)
class CodecError:
    reason: str


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """Always appends 1..block_size bytes, each equal to the pad length."""
    pad = block_size - (len(data) % block_size)
    return data + bytes([pad]) * pad


def pkcs7_unpad(data: bytes, block_size: int = BLOCK_SIZE) -> Union[bytes, CodecError]:
    if not data:
        return CodecError("empty buffer")
    pad = data[-1]
    if pad < 1 or pad > block_size or pad > len(data):
        return CodecError(f"invalid padding length {pad}")
    if data[-pad:] != bytes([pad]) * pad:
        return CodecError("inconsistent padding bytes")
    return data[:-pad]


def pack(random: bytes, message: bytes, receive_id: bytes) -> bytes:
    if len(random) != RANDOM_SIZE:
        raise ValueError(f"random prefix must be {RANDOM_SIZE} bytes")
    return random + struct.pack("!I", len(message)) + message + receive_id


def unpack(data: bytes) -> Union[Payload, CodecError]:
    if len(data) < HEADER_SIZE:
        return CodecError(
            f"buffer too short: {len(data)} bytes (minimum {HEADER_SIZE})"
        )
    (length,) = struct.unpack("!I", data[RANDOM_SIZE:HEADER_SIZE])
    end = HEADER_SIZE + length
    if end > len(data):
        return CodecError(f"message length {length} exceeds buffer")
    return Payload(message=data[HEADER_SIZE:end], receive_id=data[end:])

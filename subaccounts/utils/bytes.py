"""
subaccounts.utils.bytes
=======================

Lightweight helpers around byte handling used across the package:

- Hex helpers: to_hex/from_hex, 0x-prefix management
- Address normalization: as_address (20 bytes), pad32 (left-pad to a word)
- Integer conversions: be_to_int / u256 words
- Bytes-like normalization: b(), is_byteslike()

Examples
--------
>>> to_hex(b"\\x01\\x02")
'0x0102'
>>> from_hex('0xdeadbeef')
b'\\xde\\xad\\xbe\\xef'
>>> u256(258)[-2:]
b'\\x01\\x02'
>>> be_to_int(b'\\x00\\x01\\x02')
258
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]
AddressLike = Union[bytes, bytearray, memoryview, str]

ADDRESS_LEN = 20
WORD_LEN = 32
U256_MAX: int = (1 << 256) - 1
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN


# -----------------------
# Basic bytes/hex helpers
# -----------------------

def is_byteslike(x: object) -> bool:
    return isinstance(x, (bytes, bytearray, memoryview))


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return lowercase hex string of data."""
    if isinstance(data, memoryview):
        data = data.tobytes()
    elif isinstance(data, bytearray):
        data = bytes(data)
    if not isinstance(data, bytes):
        raise TypeError("to_hex expects bytes-like")
    h = data.hex()
    return f"0x{h}" if prefix else h


def from_hex(h: str) -> bytes:
    """Parse hex string with or without 0x prefix; ignores surrounding whitespace."""
    if not isinstance(h, str):
        raise TypeError("from_hex expects str")
    h = strip0x(h.strip().replace(" ", ""))
    if len(h) % 2 == 1:  # pad leading zero if odd length
        h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def b(x: Union[BytesLike, str]) -> bytes:
    """Normalize bytes-like input, or a 0x-hex / utf-8 string, to bytes."""
    if isinstance(x, bytes):
        return x
    if isinstance(x, bytearray):
        return bytes(x)
    if isinstance(x, memoryview):
        return x.tobytes()
    if isinstance(x, str):
        return from_hex(x) if x.startswith(("0x", "0X")) else x.encode("utf-8")
    raise TypeError(f"unsupported type for b(): {type(x)!r}")


# ---------------------
# Addresses and words
# ---------------------

def as_address(x: AddressLike, *, name: str = "address") -> bytes:
    """
    Normalize an address to exactly 20 bytes.

    Hex strings must carry the 0x prefix. A 32-byte word is accepted when its
    upper 12 bytes are zero (right-aligned address).
    """
    if isinstance(x, str):
        if not x.startswith(("0x", "0X")):
            raise ValueError(f"{name} must be a 0x-prefixed hex string")
        raw = from_hex(x)
    elif is_byteslike(x):
        raw = b(x)
    else:
        raise TypeError(f"{name} must be bytes-like or hex str, got {type(x).__name__}")
    if len(raw) == WORD_LEN and not any(raw[:12]):
        raw = raw[12:]
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"{name} must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return raw


def pad32(data: BytesLike) -> bytes:
    """Left-pad to a 32-byte word."""
    raw = b(data)
    if len(raw) > WORD_LEN:
        raise ValueError(f"value longer than {WORD_LEN} bytes")
    return raw.rjust(WORD_LEN, b"\x00")


# -------------------------
# Integer ↔ big-endian bytes
# -------------------------

def be_to_int(data: BytesLike) -> int:
    return int.from_bytes(b(data), "big")


def u256(x: int) -> bytes:
    """Encode a non-negative integer as a 32-byte big-endian word."""
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError("u256 expects int")
    if x < 0 or x > U256_MAX:
        raise OverflowError("value out of u256 range")
    return x.to_bytes(WORD_LEN, "big")


__all__ = [
    "BytesLike",
    "AddressLike",
    "ADDRESS_LEN",
    "WORD_LEN",
    "U256_MAX",
    "ZERO_ADDRESS",
    "is_byteslike",
    "strip0x",
    "to_hex",
    "from_hex",
    "b",
    "as_address",
    "pad32",
    "be_to_int",
    "u256",
]

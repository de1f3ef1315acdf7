"""
subaccounts.state.storage — per-account storage (key/value)

A minimal, deterministic key/value storage view keyed by account address
(`bytes`) and 32-byte storage key (`bytes`) with `bytes` values.

- Bytes-in / bytes-out API; inputs are copied to immutable `bytes`.
- "Zero means absent": storing an empty value deletes the key.

Typical usage
-------------
    sv = StorageView()
    sv.set(addr, key, b"value")
    value = sv.get(addr, key)  # b"value" or default (b"" by default)
    sv.delete(addr, key)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

KEY_LEN = 32


def _as_bytes(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LEN:
        raise ValueError(f"storage key must be exactly {KEY_LEN} bytes (got {len(key)})")


@dataclass
class StorageView:
    """A per-account key/value store backed by a plain dict."""

    _store: Dict[bytes, Dict[bytes, bytes]] = field(default_factory=dict, repr=False)

    def get(self, address: bytes, key: bytes, default: bytes = b"") -> bytes:
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        _check_key(key_b)
        return self._store.get(addr_b, {}).get(key_b, default)

    def set(self, address: bytes, key: bytes, value: bytes) -> None:
        """
        Set value for (address, key). An empty value deletes the key.
        """
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        _check_key(key_b)
        val_b = _as_bytes(value, name="value")
        if len(val_b) == 0:
            self.delete(addr_b, key_b)
            return
        self._store.setdefault(addr_b, {})[key_b] = val_b

    def delete(self, address: bytes, key: bytes) -> bool:
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        acc = self._store.get(addr_b)
        if acc is None:
            return False
        removed = acc.pop(key_b, None) is not None
        if not acc:
            self._store.pop(addr_b, None)
        return removed

    def items(self, address: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """Iterate (key, value) pairs for an address in key order."""
        acc = self._store.get(_as_bytes(address, name="address"), {})
        for k in sorted(acc):
            yield k, acc[k]


__all__ = ["StorageView", "KEY_LEN"]

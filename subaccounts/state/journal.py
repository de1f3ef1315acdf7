"""
subaccounts.state.journal — journaling writes, checkpoints, revert/commit.

This module provides a deterministic, in-memory write journal layered over an
accounts mapping, a StorageView and an append-only log list. It supports nested
checkpoints via a stack of overlays. Writes go to the top overlay; reads consult
overlays from top → base. `commit()` merges the top overlay into the next layer
(or the base state if it is the last layer). `revert()` discards the top overlay.

Key properties
--------------
- Pure Python, no I/O.
- Copy-on-write for accounts (Account objects are copied into overlays).
- Storage overlay per (address, key) with explicit deletion markers.
- Emitted logs are staged per overlay, so a reverted frame's logs vanish with it.
- Nested checkpoints with O(changes) merge cost.

Intended usage
--------------
    j = Journal(base_accounts, base_storage, base_logs)
    j.begin()
    acc = j.ensure_account_for_write(addr)
    acc.credit(5)
    j.storage_set(addr, key, b"value")
    j.emit(log)
    j.commit()                      # apply to parent/base
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, MutableMapping, MutableSequence, Optional

from ..errors import ExecError
from ..types.events import LogEvent
from .accounts import EMPTY_CODE_HASH, Account
from .storage import StorageView


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `storage`: staged storage changes. `None` means deletion for that key.
    - `logs`: events emitted in this layer, in order.
    """

    accounts: Dict[bytes, Account] = field(default_factory=dict)
    storage: Dict[bytes, Dict[bytes, Optional[bytes]]] = field(default_factory=dict)
    logs: List[LogEvent] = field(default_factory=list)

    def storage_set_local(self, addr: bytes, key: bytes, value: Optional[bytes]) -> None:
        self.storage.setdefault(addr, {})[key] = value


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    accounts : MutableMapping[bytes, Account]
        The base (committed) account mapping.
    storage : StorageView
        The base storage view.
    logs : MutableSequence[LogEvent]
        The committed event log; only ever appended to.
    """

    def __init__(
        self,
        accounts: MutableMapping[bytes, Account],
        storage: StorageView,
        logs: MutableSequence[LogEvent],
    ) -> None:
        self._base_accounts = accounts
        self._base_storage = storage
        self._base_logs = logs
        self._layers: List[_Overlay] = [_Overlay()]

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """
        Commit the top overlay into its parent, or into the base state when the
        root layer is committed.
        """
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._apply_to_base(top)
            self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it is the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def commit_to(self, marker: int) -> None:
        """Commit repeatedly until the current depth equals `marker`."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until the current depth equals `marker`."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.revert()

    def flush(self) -> None:
        """Commit every pending layer, root included, into the base state."""
        self.commit_to(1)
        self.commit()

    # --------------------------------------------------------------------- #
    # Account API
    # --------------------------------------------------------------------- #

    def _lookup_account_any(self, addr: bytes) -> Optional[Account]:
        for layer in reversed(self._layers):
            local = layer.accounts.get(addr)
            if local is not None:
                return local
        return self._base_accounts.get(addr)

    def get_account(self, address: bytes) -> Optional[Account]:
        """Read-only lookup. Do not mutate the returned object."""
        return self._lookup_account_any(_b(address, name="address"))

    def get_account_for_write(self, address: bytes) -> Optional[Account]:
        """
        Fetch an Account suitable for mutation in the top layer, promoting a copy
        from a lower layer/base if needed. Returns None if absent everywhere.
        """
        addr = _b(address, name="address")
        top = self._layers[-1]
        if addr in top.accounts:
            return top.accounts[addr]
        acc = self._lookup_account_any(addr)
        if acc is None:
            return None
        top.accounts[addr] = acc.copy()
        return top.accounts[addr]

    def ensure_account_for_write(self, address: bytes) -> Account:
        """Like get_account_for_write, creating a zeroed account when absent."""
        addr = _b(address, name="address")
        acc = self.get_account_for_write(addr)
        if acc is not None:
            return acc
        acc = Account()
        self._layers[-1].accounts[addr] = acc
        return acc

    def install_code(self, address: bytes, code_hash: bytes) -> Account:
        """
        Attach code to `address` in the top overlay. The address must not hold
        code or a nonce yet; it may already hold a balance.
        """
        addr = _b(address, name="address")
        existing = self._lookup_account_any(addr)
        if existing is not None and (existing.has_code or existing.nonce != 0):
            raise ExecError("account already occupied", data={"address": addr.hex()})
        acc = self.ensure_account_for_write(addr)
        acc.code_hash = bytes(code_hash) if code_hash else EMPTY_CODE_HASH
        return acc

    # --------------------------------------------------------------------- #
    # Storage API
    # --------------------------------------------------------------------- #

    def storage_get(self, address: bytes, key: bytes, default: bytes = b"") -> bytes:
        """Read storage with overlay precedence. Returns `default` if absent."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        for layer in reversed(self._layers):
            m = layer.storage.get(addr)
            if m is not None and key_b in m:
                v = m[key_b]
                return default if v is None else v
        return self._base_storage.get(addr, key_b, default=default)

    def storage_set(self, address: bytes, key: bytes, value: bytes) -> None:
        """Stage a storage write in the top overlay. Empty value is a deletion."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        val_b = _b(value, name="value")
        self._layers[-1].storage_set_local(addr, key_b, val_b or None)

    # --------------------------------------------------------------------- #
    # Logs
    # --------------------------------------------------------------------- #

    def emit(self, log: LogEvent) -> None:
        self._layers[-1].logs.append(log)

    def pending_logs(self) -> List[LogEvent]:
        """Logs staged in any layer, oldest first."""
        out: List[LogEvent] = []
        for layer in self._layers:
            out.extend(layer.logs)
        return out

    # --------------------------------------------------------------------- #
    # Internal merge/apply
    # --------------------------------------------------------------------- #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for addr, acc in src.accounts.items():
            dst.accounts[addr] = acc.copy()
        for addr, writes in src.storage.items():
            dst.storage.setdefault(addr, {}).update(writes)
        dst.logs.extend(src.logs)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr, acc in layer.accounts.items():
            self._base_accounts[addr] = acc.copy()
        for addr, writes in layer.storage.items():
            for k, v in writes.items():
                if v is None:
                    self._base_storage.delete(addr, k)
                else:
                    self._base_storage.set(addr, k, v)
        self._base_logs.extend(layer.logs)


__all__ = ["Journal"]

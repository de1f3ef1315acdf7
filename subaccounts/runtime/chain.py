"""
subaccounts.runtime.chain — the in-memory ledger that hosts programs.

`Chain` owns the journaled state (accounts, storage, logs) and the programs
placed at addresses. Every call runs in a *frame*: a journal checkpoint that is
committed when the frame returns and reverted when it raises, so a failed call
leaves no balance, storage, log or deployment behind.

Programs
--------
A `Program` is a Python object hosted at an address. Its `code()` bytes identify
the logic and any immutable constructor arguments; `code_hash()` is what the
account record stores. `execute(env)` handles an inbound `Message` and returns
raw output bytes. The default implementation accepts value and returns nothing.

Deployment
----------
- `install(program, address)`  genesis-style placement at a fixed address
- `create(sender, program)`    address = keccak256(sender ‖ u256(nonce))[12:]
- `create2(deployer, salt, program)`
      address = keccak256(0xff ‖ deployer ‖ salt ‖ keccak256(code))[12:];
      an occupied address raises `Create2Failed`

Limits
------
Nested call depth is bounded by `Limits.max_call_depth` (`CallDepthExceeded`)
and payload size by `Limits.max_payload_bytes` (`PayloadTooLarge`). Both are
fatal: no frame catches them.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterator, List, Optional

from .. import logging as slog
from ..config import SubaccountsConfig, get_config
from ..errors import CallDepthExceeded, Create2Failed, ExecError, InsufficientBalance, PayloadTooLarge
from ..state.accounts import EMPTY_CODE_HASH, Account
from ..state.journal import Journal
from ..state.storage import StorageView
from ..types.events import EventSchema, LogEvent
from ..types.message import Message
from ..utils.bytes import AddressLike, as_address, be_to_int, pad32, u256
from ..utils.hash import create2_address, create_address, keccak256, keccak256_concat

log = slog.get_logger(__name__)

_CODE_PREFIX = b"\xfesubaccounts:"


# --------------------------------------------------------------------------------------
# Programs
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class CallEnv:
    """What a program sees while executing one message."""

    chain: "Chain"
    message: Message

    @property
    def address(self) -> bytes:
        return self.message.to

    @property
    def sender(self) -> bytes:
        return self.message.sender

    @property
    def value(self) -> int:
        return self.message.value

    @property
    def data(self) -> bytes:
        return self.message.data


class Program:
    """
    Base class for code hosted on a `Chain`.

    Subclasses set `KIND` and override `code_args()` to bake immutable
    constructor arguments into their code, and `execute()` to react to calls.
    `chain` and `address` are bound when the program is placed.
    """

    KIND: ClassVar[bytes] = b"program"

    chain: Optional["Chain"] = None
    address: Optional[bytes] = None

    def code_args(self) -> bytes:
        return b""

    def code(self) -> bytes:
        return _CODE_PREFIX + self.KIND + b"\x00" + self.code_args()

    def code_hash(self) -> bytes:
        return keccak256(self.code())

    def execute(self, env: CallEnv) -> bytes:
        return b""

    # ---- storage helpers (bound programs only) ----

    def _bound(self) -> "Chain":
        if self.chain is None or self.address is None:
            raise ExecError("program is not deployed")
        return self.chain

    @staticmethod
    def slot(name: str, *keys: Any) -> bytes:
        """32-byte storage key for `name` indexed by `keys` (addresses or ints)."""
        parts = [name.encode("ascii")]
        for k in keys:
            parts.append(u256(k) if isinstance(k, int) else pad32(as_address(k)))
        return keccak256_concat(*parts)

    def sload(self, key: bytes) -> bytes:
        return self._bound().journal.storage_get(self.address, key)

    def sstore(self, key: bytes, value: bytes) -> None:
        self._bound().journal.storage_set(self.address, key, value)

    def load_int(self, key: bytes) -> int:
        raw = self.sload(key)
        return be_to_int(raw) if raw else 0

    def store_int(self, key: bytes, value: int) -> None:
        self.sstore(key, u256(value) if value else b"")

    def load_address(self, key: bytes) -> Optional[bytes]:
        raw = self.sload(key)
        return raw if raw else None

    def store_address(self, key: bytes, value: bytes) -> None:
        self.sstore(key, as_address(value))

    def emit(self, schema: EventSchema, **values: Any) -> LogEvent:
        ev = schema.encode(self.address, **values)
        self._bound().journal.emit(ev)
        return ev


# --------------------------------------------------------------------------------------
# Chain
# --------------------------------------------------------------------------------------


class Chain:
    """
    Deterministic single-threaded ledger.

    Parameters
    ----------
    config : SubaccountsConfig | None
        Effective configuration (default: process-wide `get_config()`).
    """

    def __init__(self, config: Optional[SubaccountsConfig] = None) -> None:
        self.config = config or get_config()
        self._accounts: Dict[bytes, Account] = {}
        self._storage = StorageView()
        self._logs: List[LogEvent] = []
        self.journal = Journal(self._accounts, self._storage, self._logs)
        self._programs: Dict[bytes, Program] = {}
        self._depth = 0

    # ------------------------------------------------------------------ frames

    @contextmanager
    def frame(self) -> Iterator[int]:
        """
        Run a block with all-or-nothing semantics.

        The block's effects are committed to the enclosing frame on normal exit
        and discarded if it raises. The outermost frame commits to base state.
        """
        marker = self.journal.begin()
        try:
            yield marker
        except BaseException:
            self.journal.revert_to(marker - 1)
            raise
        self.journal.commit_to(marker - 1)
        if self.journal.depth() == 1:
            self.journal.commit()

    @property
    def depth(self) -> int:
        """Current nesting depth of executing calls (0 when idle)."""
        return self._depth

    # ------------------------------------------------------------------ reads

    def account(self, address: AddressLike) -> Optional[Account]:
        return self.journal.get_account(as_address(address))

    def balance_of(self, address: AddressLike) -> int:
        acc = self.account(address)
        return acc.balance if acc is not None else 0

    def nonce_of(self, address: AddressLike) -> int:
        acc = self.account(address)
        return acc.nonce if acc is not None else 0

    def code_hash_of(self, address: AddressLike) -> bytes:
        acc = self.account(address)
        return acc.code_hash if acc is not None else EMPTY_CODE_HASH

    def has_code(self, address: AddressLike) -> bool:
        return self.code_hash_of(address) != EMPTY_CODE_HASH

    def program_at(self, address: AddressLike) -> Optional[Program]:
        addr = as_address(address)
        if not self.has_code(addr):
            return None
        return self._programs.get(addr)

    def storage_at(self, address: AddressLike, key: bytes) -> bytes:
        return self.journal.storage_get(as_address(address), key)

    @property
    def logs(self) -> List[LogEvent]:
        """Committed logs, oldest first."""
        return list(self._logs)

    def logs_since(self, marker: int) -> List[LogEvent]:
        """Committed logs appended after `marker` (a previous `len(chain.logs)`)."""
        return list(self._logs[marker:])

    # ------------------------------------------------------------------ writes

    def fund(self, address: AddressLike, amount: int) -> None:
        """Credit `amount` out of thin air (genesis allocation / tests)."""
        with self.frame():
            self.journal.ensure_account_for_write(as_address(address)).credit(amount)

    def _transfer(self, sender: bytes, to: bytes, value: int) -> None:
        if value == 0:
            return
        src = self.journal.get_account_for_write(sender)
        if src is None or not src.can_debit(value):
            raise InsufficientBalance(
                address=sender, balance=src.balance if src else 0, amount=value
            )
        src.debit(value)
        self.journal.ensure_account_for_write(to).credit(value)

    def _place(self, address: bytes, program: Program) -> bytes:
        self.journal.install_code(address, program.code_hash())
        program.chain = self
        program.address = address
        self._programs[address] = program
        return address

    def install(self, program: Program, address: AddressLike) -> bytes:
        """Place `program` at a fixed address."""
        addr = as_address(address)
        with self.frame():
            return self._place(addr, program)

    def create(self, sender: AddressLike, program: Program) -> bytes:
        """Deploy `program` at the next nonce-derived address of `sender`."""
        sender_b = as_address(sender, name="sender")
        with self.frame():
            acc = self.journal.ensure_account_for_write(sender_b)
            addr = create_address(sender_b, acc.nonce)
            acc.increment_nonce()
            self._place(addr, program)
        log.debug("program created", extra={"address": addr, "kind": program.KIND.decode()})
        return addr

    def create2(self, deployer: AddressLike, salt: bytes, program: Program) -> bytes:
        """Deploy `program` at its content- and context-derived address."""
        deployer_b = as_address(deployer, name="deployer")
        addr = create2_address(deployer_b, salt, program.code_hash())
        existing = self.account(addr)
        if existing is not None and (existing.has_code or existing.nonce != 0):
            raise Create2Failed(address=addr, data={"deployer": deployer_b.hex()})
        with self.frame():
            self._place(addr, program)
        log.debug("program created2", extra={"address": addr, "deployer": deployer_b})
        return addr

    # ------------------------------------------------------------------ calls

    def call(
        self,
        sender: AddressLike,
        to: AddressLike,
        value: int = 0,
        data: bytes = b"",
    ) -> bytes:
        """
        Deliver a message: move `value`, run the callee's program (if any) and
        return its raw output. Any failure reverts the whole frame and propagates.
        """
        limits = self.config.limits
        if self._depth >= limits.max_call_depth:
            raise CallDepthExceeded(depth=self._depth, limit=limits.max_call_depth)
        if len(data) > limits.max_payload_bytes:
            raise PayloadTooLarge(size=len(data), limit=limits.max_payload_bytes)

        msg = Message(sender=sender, to=to, value=int(value), data=bytes(data), depth=self._depth)
        with self.frame():
            self._transfer(msg.sender, msg.to, msg.value)
            program = self.program_at(msg.to)
            if program is None:
                return b""
            self._depth += 1
            try:
                out = program.execute(CallEnv(chain=self, message=msg))
            finally:
                self._depth -= 1
            return bytes(out or b"")


__all__ = ["Chain", "CallEnv", "Program"]

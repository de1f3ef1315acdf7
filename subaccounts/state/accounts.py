"""
subaccounts.state.accounts — account records.

An Account holds three fields:

- nonce:      u256 deployment counter (monotonically increasing)
- balance:    u256 currency amount
- code_hash:  32-byte keccak of the program code (all-zero for plain identities)

Accounts are never destroyed; there is no self-destruct path in this ledger.
All arithmetic is u256-bounded and deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ExecError
from ..utils.bytes import U256_MAX

EMPTY_CODE_HASH: bytes = b"\x00" * 32


def _ensure_u256(name: str, value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"{name} must be int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    if value > U256_MAX:
        raise OverflowError(f"{name} exceeds u256")
    return value


@dataclass(slots=True)
class Account:
    """
    A minimal, deterministic account record.

    Invariants:
    - nonce and balance are u256
    - code_hash is exactly 32 bytes
    """
    nonce: int = 0
    balance: int = 0
    code_hash: bytes = EMPTY_CODE_HASH

    def __post_init__(self) -> None:
        self.nonce = _ensure_u256("nonce", int(self.nonce))
        self.balance = _ensure_u256("balance", int(self.balance))
        ch = bytes(self.code_hash)
        if len(ch) != 32:
            raise ValueError("code_hash must be 32 bytes")
        self.code_hash = ch

    @property
    def has_code(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH

    def is_empty(self) -> bool:
        return self.nonce == 0 and self.balance == 0 and not self.has_code

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, balance=self.balance, code_hash=self.code_hash)

    def increment_nonce(self) -> None:
        if self.nonce == U256_MAX:
            raise ExecError("nonce overflow (u256 max)")
        self.nonce += 1

    def credit(self, amount: int) -> None:
        amt = _ensure_u256("amount", int(amount))
        if self.balance + amt > U256_MAX:
            raise OverflowError("balance exceeds u256")
        self.balance += amt

    def can_debit(self, amount: int) -> bool:
        return self.balance >= _ensure_u256("amount", int(amount))

    def debit(self, amount: int) -> None:
        """
        Decrease balance by `amount`; callers check `can_debit` first and
        raise a contract-level failure themselves.
        """
        amt = _ensure_u256("amount", int(amount))
        if self.balance < amt:
            raise ExecError("insufficient balance")
        self.balance -= amt

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "balance": self.balance,
            "code_hash": self.code_hash.hex(),
        }


__all__ = ["Account", "EMPTY_CODE_HASH"]

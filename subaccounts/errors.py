"""
subaccounts.errors — failure types for the sub-account ledger.

Every failure is a *typed exception*. Contract-level failures are reverts: they
unwind the frame they occur in (and, unless caught by an isolating caller,
every enclosing frame) and carry raw failure bytes (``return_data``) that a
caller may inspect. Host-level failures are fatal and are never caught by the
dispatch machinery.

Hierarchy
---------
ExecError (base)
 ├─ Revert                    : contract-level failure, carries ``return_data``
 │   ├─ InsufficientBalance   : value transfer exceeds the sender's balance
 │   ├─ ForwardFailed         : proxy forwarding failed (payload discarded)
 │   ├─ Reentrancy            : nested batch while a step is active (no payload)
 │   └─ coded registry errors : NotAdmin, NotOwner, AccountNotFound,
 │                              AdapterNotAllowed, SubaccountNotDeployed,
 │                              LengthMismatch, NotManagerContext
 ├─ Create2Failed             : deterministic address already occupied (fatal)
 ├─ CallDepthExceeded         : nested call chain hit the configured bound (fatal)
 └─ PayloadTooLarge           : message data exceeds the configured bound (fatal)

The raw failure payload of a coded error is its code encoded as ASCII, so
``NotOwner().return_data == b"NOT_OWNER"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional


@dataclass(eq=False)
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'REVERT', 'NOT_OWNER').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Revert(ExecError):
    """
    Contract-triggered revert.

    ``return_data`` is the raw failure payload seen by the caller. It is kept as
    bytes on the exception and mirrored as hex into ``data`` for JSON output.
    """

    def __init__(
        self,
        message: str = "reverted",
        *,
        return_data: bytes = b"",
        code: str = "REVERT",
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if return_data:
            d.setdefault("return_data", bytes(return_data).hex())
        super().__init__(message=message, code=code, data=d or None)
        self.return_data = bytes(return_data)


class InsufficientBalance(Revert):
    def __init__(self, *, address: bytes, balance: int, amount: int):
        super().__init__(
            "insufficient balance",
            code="INSUFFICIENT_BALANCE",
            data={"address": address.hex(), "balance": balance, "amount": amount},
        )


class ForwardFailed(Revert):
    """
    A proxy's forwarded call failed.

    The callee's own failure payload is dropped at the proxy boundary unless the
    ledger is configured to bubble it (``bubble_forward_reverts``).
    """

    def __init__(self, *, return_data: bytes = b""):
        super().__init__("forwarded call failed", return_data=return_data, code="FORWARD_FAILED")


class Reentrancy(Revert):
    """Batch entry while a dispatch step is active. Carries no payload."""

    def __init__(self) -> None:
        super().__init__("", code="REENTRANCY")


class _CodedRevert(Revert):
    CODE: ClassVar[str] = "REVERT"
    MESSAGE: ClassVar[str] = "reverted"

    def __init__(self, message: Optional[str] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message or self.MESSAGE,
            return_data=self.CODE.encode("ascii"),
            code=self.CODE,
            data=data,
        )


class NotAdmin(_CodedRevert):
    CODE = "NOT_ADMIN"
    MESSAGE = "caller is not the registry admin"


class NotOwner(_CodedRevert):
    CODE = "NOT_OWNER"
    MESSAGE = "caller does not own the account"


class AccountNotFound(_CodedRevert):
    CODE = "ACCOUNT_NOT_FOUND"
    MESSAGE = "unknown account"


class AdapterNotAllowed(_CodedRevert):
    CODE = "ADAPTER_NOT_ALLOWED"
    MESSAGE = "adapter is not whitelisted"


class SubaccountNotDeployed(_CodedRevert):
    CODE = "SUBACCOUNT_NOT_DEPLOYED"
    MESSAGE = "sub-account proxy is not deployed"


class LengthMismatch(_CodedRevert):
    CODE = "LENGTH_MISMATCH"
    MESSAGE = "batch arrays differ in length"


class NotManagerContext(_CodedRevert):
    CODE = "NOT_MANAGER_CONTEXT"
    MESSAGE = "adapter invoked outside a dispatch step"


class Create2Failed(ExecError):
    """Deterministic deployment address is already occupied. Not retried."""

    def __init__(self, *, address: bytes, data: Optional[Dict[str, Any]] = None):
        d: Dict[str, Any] = {"address": address.hex()}
        if data:
            d.update(data)
        super().__init__(message="create2 address collision", code="CREATE2_FAILED", data=d)


class CallDepthExceeded(ExecError):
    def __init__(self, *, depth: int, limit: int):
        super().__init__(
            message="call depth limit exceeded",
            code="CALL_DEPTH_EXCEEDED",
            data={"depth": depth, "limit": limit},
        )


class PayloadTooLarge(ExecError):
    def __init__(self, *, size: int, limit: int):
        super().__init__(
            message="payload too large",
            code="PAYLOAD_TOO_LARGE",
            data={"size": size, "limit": limit},
        )


# -------- helper utilities --------------------------------------------------


def failure_payload(err: BaseException) -> bytes:
    """Raw failure bytes of an error as seen by a calling frame."""
    return getattr(err, "return_data", b"") or b""


__all__ = [
    "ExecError",
    "Revert",
    "InsufficientBalance",
    "ForwardFailed",
    "Reentrancy",
    "NotAdmin",
    "NotOwner",
    "AccountNotFound",
    "AdapterNotAllowed",
    "SubaccountNotDeployed",
    "LengthMismatch",
    "NotManagerContext",
    "Create2Failed",
    "CallDepthExceeded",
    "PayloadTooLarge",
    "failure_payload",
]

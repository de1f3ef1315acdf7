"""
subaccounts.runtime.adapters — adapter extensions run by the registry.

An adapter is stateless logic placed at its own address. The registry never
*calls* an adapter; during a dispatch step it looks up the adapter's program and
runs it with the registry's authority, handing it a `DispatchContext`:

    ctx.owner        owner of the active account
    ctx.account_id   global id of the active account
    ctx.proxy        address of the active proxy
    ctx.forward(target, value, data) -> bytes
                     one forwarded call through the active proxy, sent by the
                     registry (the proxy's master); the proxy spends its own balance

Every accessor raises `NotManagerContext` when no step is active, so an adapter
used outside a dispatch step cannot touch any proxy. Messages sent straight to
an adapter's address only deposit value.

`MultiCallAdapter` is the reference adapter: its payload is a canonical CBOR
list of `[target, value, data]` triples, forwarded in order. The first failure
aborts the adapter with that failure's raw payload; on success it returns the
CBOR list of raw outputs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence, Tuple

import cbor2

from ..errors import NotManagerContext, Revert
from ..utils.bytes import U256_MAX, AddressLike, as_address
from .chain import Program
from .proxy import encode_forward

if TYPE_CHECKING:
    from .registry import ScopedContext, SubAccountRegistry

Call = Tuple[bytes, int, bytes]


class DispatchContext:
    """Capability handed to an adapter for the duration of one dispatch step."""

    def __init__(self, registry: "SubAccountRegistry") -> None:
        self._registry = registry

    def require(self) -> "ScopedContext":
        """Return the active scope, or raise `NotManagerContext` outside a step."""
        scope = self._registry.scope
        if scope is None:
            raise NotManagerContext()
        return scope

    @property
    def owner(self) -> bytes:
        return self.require().owner

    @property
    def account_id(self) -> int:
        return self.require().account_id

    @property
    def proxy(self) -> bytes:
        return self.require().proxy

    def forward(self, target: AddressLike, value: int = 0, data: bytes = b"") -> bytes:
        proxy = self.require().proxy
        registry = self._registry
        return registry._bound().call(
            registry.address, proxy, 0, encode_forward(target, value, data)
        )


class Adapter(Program):
    """Base class for whitelisted dispatch extensions."""

    KIND = b"adapter"

    def run(self, ctx: DispatchContext, payload: bytes) -> bytes:
        raise NotImplementedError


# --------------------------------------------------------------------------------------
# Multi-call adapter
# --------------------------------------------------------------------------------------


def encode_calls(calls: Sequence[Tuple[AddressLike, int, bytes]]) -> bytes:
    """Canonical CBOR payload for `MultiCallAdapter`."""
    return cbor2.dumps(
        [[as_address(t, name="target"), int(v), bytes(d)] for t, v, d in calls],
        canonical=True,
    )


def decode_calls(payload: bytes) -> List[Call]:
    try:
        items = cbor2.loads(payload)
        if not isinstance(items, list):
            raise ValueError("payload must be a list")
        calls: List[Call] = []
        for item in items:
            target, value, data = item
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U256_MAX:
                raise ValueError("value must be an integer in u256 range")
            if not isinstance(data, bytes):
                raise ValueError("data must be a byte string")
            calls.append((as_address(target, name="target"), value, data))
        return calls
    except (cbor2.CBORDecodeError, ValueError, TypeError) as exc:
        raise Revert(
            "malformed adapter payload", code="MALFORMED_PAYLOAD", data={"reason": str(exc)}
        ) from exc


def decode_results(output: bytes) -> List[bytes]:
    """Decode a `MultiCallAdapter` step output into its ordered raw outputs."""
    return [bytes(r) for r in cbor2.loads(output)]


class MultiCallAdapter(Adapter):
    """Forward an ordered list of calls through the active proxy."""

    KIND = b"adapter-multicall-v1"

    def run(self, ctx: DispatchContext, payload: bytes) -> bytes:
        ctx.require()
        results = [ctx.forward(target, value, data) for target, value, data in decode_calls(payload)]
        return cbor2.dumps(results, canonical=True)


__all__ = [
    "Adapter",
    "DispatchContext",
    "MultiCallAdapter",
    "encode_calls",
    "decode_calls",
    "decode_results",
]

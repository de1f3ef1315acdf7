"""
subaccounts.runtime.proxy — the sub-account proxy program.

A proxy is storage-less. Its only immutable input is the *master* address baked
into its code at creation. On every inbound message it decides between two
paths:

  forward  sender == master and len(data) >= 64
           data = [target: 32][value: 32][payload: rest]
           call `target` with `value` (debited from the proxy) and `payload`,
           return the callee's raw output unchanged
  deposit  anything else (including the master sending < 64 bytes)
           keep whatever value arrived, return b""

A failed forward raises `ForwardFailed` with an *empty* payload: the callee's
failure data stops at the proxy boundary. `FeatureFlags.bubble_forward_reverts`
keeps it instead.

Wire format helpers
-------------------
    encode_forward(target, value, payload) -> bytes
    decode_forward(data) -> (target, value, payload)
"""

from __future__ import annotations

from typing import Tuple

from ..errors import ForwardFailed, Revert, failure_payload
from ..utils.bytes import WORD_LEN, AddressLike, as_address, be_to_int, pad32, u256
from .chain import CallEnv, Program

HEADER_SIZE = 2 * WORD_LEN


def encode_forward(target: AddressLike, value: int, payload: bytes = b"") -> bytes:
    """Build the master's invocation payload for a forwarded call."""
    return pad32(as_address(target, name="target")) + u256(int(value)) + bytes(payload)


def decode_forward(data: bytes) -> Tuple[bytes, int, bytes]:
    """
    Split a forward payload into (target, value, payload).

    The target is the low 20 bytes of the first word; high bytes are ignored.
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"forward payload must be at least {HEADER_SIZE} bytes")
    target = bytes(data[12:WORD_LEN])
    value = be_to_int(data[WORD_LEN:HEADER_SIZE])
    return target, value, bytes(data[HEADER_SIZE:])


class SubAccountProxy(Program):
    """Proxy program controlled by a single immutable master."""

    KIND = b"subaccount-proxy-v1"

    def __init__(self, master: AddressLike) -> None:
        self._master = as_address(master, name="master")

    @property
    def master(self) -> bytes:
        return self._master

    def code_args(self) -> bytes:
        return self._master

    def execute(self, env: CallEnv) -> bytes:
        if env.sender != self._master or len(env.data) < HEADER_SIZE:
            return b""

        target, value, payload = decode_forward(env.data)
        try:
            return env.chain.call(env.address, target, value, payload)
        except Revert as exc:
            if env.chain.config.features.bubble_forward_reverts:
                raise ForwardFailed(return_data=failure_payload(exc)) from exc
            raise ForwardFailed() from None


__all__ = ["HEADER_SIZE", "encode_forward", "decode_forward", "SubAccountProxy"]

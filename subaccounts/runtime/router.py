"""
subaccounts.runtime.router — per-caller proxy lists.

`SubAccountRouter` is a thin convenience layer over the factory: it deploys
proxies with itself as master and remembers, per caller, the ordered list of
proxies it created for them (0-based). Calls are forwarded through the proxy
invocation format; the router keeps no ownership bookkeeping beyond that list.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .. import logging as slog
from ..errors import AccountNotFound, LengthMismatch
from ..types.events import EventField, EventSchema
from ..utils.bytes import AddressLike, as_address
from .chain import Program
from .factory import SubAccountFactory
from .proxy import encode_forward

log = slog.get_logger(__name__)

SubAccountCreated = EventSchema(
    "SubAccountCreated",
    (
        EventField("owner", "address", indexed=True),
        EventField("account", "address", indexed=True),
        EventField("index", "uint256"),
    ),
)


class SubAccountRouter(Program):
    KIND = b"subaccount-router-v1"

    def __init__(self, factory: SubAccountFactory) -> None:
        self.factory = factory

    def code_args(self) -> bytes:
        return as_address(self.factory.address, name="factory")

    # ------------------------------------------------------------------ reads

    def count(self, owner: AddressLike) -> int:
        return self.load_int(self.slot("count", as_address(owner, name="owner")))

    def list(self, owner: AddressLike) -> List[bytes]:
        owner_b = as_address(owner, name="owner")
        return [self.load_address(self.slot("account", owner_b, i)) for i in range(self.count(owner_b))]

    def account_at(self, owner: AddressLike, index: int) -> bytes:
        owner_b = as_address(owner, name="owner")
        if not 0 <= int(index) < self.count(owner_b):
            raise AccountNotFound(data={"owner": owner_b.hex(), "index": int(index)})
        return self.load_address(self.slot("account", owner_b, int(index)))

    # ------------------------------------------------------------------ writes

    def create(self, sender: AddressLike) -> bytes:
        owner = as_address(sender, name="sender")
        with self._bound().frame():
            account = self.factory.deploy(self.address)
            index = self.count(owner)
            self.store_address(self.slot("account", owner, index), account)
            self.store_int(self.slot("count", owner), index + 1)
            self.emit(SubAccountCreated, owner=owner, account=account, index=index)
        log.info("router account created", extra={"owner": owner, "account": account, "index": index})
        return account

    def execute(
        self,
        sender: AddressLike,
        index: int,
        target: AddressLike,
        value: int = 0,
        data: bytes = b"",
    ) -> bytes:
        """Forward one call through `sender`'s `index`-th proxy, spending the proxy's balance."""
        proxy = self.account_at(sender, index)
        return self._bound().call(self.address, proxy, 0, encode_forward(target, value, data))

    def batch_execute(
        self,
        sender: AddressLike,
        indices: Sequence[int],
        calls: Sequence[Tuple[AddressLike, int, bytes]],
    ) -> List[bytes]:
        """Forward `calls[i]` through proxy `indices[i]`; any failure aborts the whole batch."""
        if len(indices) != len(calls):
            raise LengthMismatch(data={"indices": len(indices), "calls": len(calls)})
        with self._bound().frame():
            return [
                self.execute(sender, index, target, value, data)
                for index, (target, value, data) in zip(indices, calls)
            ]


__all__ = ["SubAccountCreated", "SubAccountRouter"]

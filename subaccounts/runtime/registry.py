"""
subaccounts.runtime.registry — ownership registry and batch dispatcher.

The registry is the master of every proxy it deploys. Owners never hold a
proxy's controlling identity; they hold *registry-level* ownership records and
act through `execute_batch`, which runs whitelisted adapters against proxies the
caller owns.

State (journaled contract storage)
----------------------------------
    owner[globalId]                  -> owner address   (written once)
    count[owner]                     -> number of accounts (local indices 1..count)
    index[owner, localIndex]         -> globalId
    whitelist[adapter]               -> bool            (admin only)

The *global id* is the factory sequence number under which the registry
deployed the proxy; the *local index* is the owner-relative, 1-based, gap-free
number users see.

Dispatch
--------
For every step, in order: the account must exist (ACCOUNT_NOT_FOUND), belong to
the caller (NOT_OWNER), the adapter must be whitelisted (ADAPTER_NOT_ALLOWED)
and the proxy deployed (SUBACCOUNT_NOT_DEPLOYED). Validation failures abort the
whole call. The scoped context (owner, global id, proxy) is then set, the
adapter runs, and the context is cleared on every exit path.

- atomic:     any adapter failure reverts the whole batch with that step's
              raw failure payload
- non-atomic: the failing step's effects are reverted, a NonAtomicFailure event
              records (globalId, adapter, raw payload), the batch continues

Entering a batch while another batch on the same registry is still running
(e.g. from code an adapter reached through a proxy) aborts with `Reentrancy`,
which carries no payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .. import logging as slog
from ..errors import (
    AccountNotFound,
    AdapterNotAllowed,
    LengthMismatch,
    NotAdmin,
    NotOwner,
    Reentrancy,
    Revert,
    SubaccountNotDeployed,
    failure_payload,
)
from ..types.events import EventField, EventSchema
from ..utils.bytes import ZERO_ADDRESS, AddressLike, as_address
from .adapters import Adapter, DispatchContext
from .chain import Program
from .factory import SubAccountFactory

log = slog.get_logger(__name__)

AccountRegistered = EventSchema(
    "SubAccountDeployed",
    (
        EventField("owner", "address", indexed=True),
        EventField("globalId", "uint256", indexed=True),
        EventField("localIndex", "uint256"),
    ),
)

AdapterWhitelisted = EventSchema(
    "AdapterWhitelisted",
    (
        EventField("adapter", "address", indexed=True),
        EventField("allowed", "bool"),
    ),
)

NonAtomicFailure = EventSchema(
    "NonAtomicFailure",
    (
        EventField("globalId", "uint256", indexed=True),
        EventField("adapter", "address", indexed=True),
        EventField("reason", "bytes"),
    ),
)


@dataclass(frozen=True)
class ScopedContext:
    """The account a dispatch step is operating on."""

    owner: bytes
    account_id: int
    proxy: bytes


class SubAccountRegistry(Program):
    """
    Parameters
    ----------
    factory : SubAccountFactory
        Deployed factory used for every proxy this registry creates.
    admin : address
        The only identity allowed to change the adapter whitelist. Fixed for life.
    """

    KIND = b"subaccount-registry-v1"

    def __init__(self, factory: SubAccountFactory, admin: AddressLike) -> None:
        self.factory = factory
        self._admin = as_address(admin, name="admin")
        self._scope: Optional[ScopedContext] = None
        self._entered = False

    def code_args(self) -> bytes:
        return as_address(self.factory.address, name="factory") + self._admin

    @property
    def admin(self) -> bytes:
        return self._admin

    # ------------------------------------------------------------------ scoped context

    @property
    def scope(self) -> Optional[ScopedContext]:
        return self._scope

    @property
    def active_owner(self) -> bytes:
        return self._scope.owner if self._scope else ZERO_ADDRESS

    @property
    def active_account_id(self) -> int:
        return self._scope.account_id if self._scope else 0

    @property
    def active_proxy(self) -> bytes:
        return self._scope.proxy if self._scope else ZERO_ADDRESS

    # ------------------------------------------------------------------ reads

    def owner_of(self, global_id: int) -> Optional[bytes]:
        return self.load_address(self.slot("owner", int(global_id)))

    def account_count(self, owner: AddressLike) -> int:
        return self.load_int(self.slot("count", as_address(owner, name="owner")))

    def global_id_of(self, owner: AddressLike, local_index: int) -> int:
        """Global id behind (owner, local_index), or 0 when unmapped."""
        return self.load_int(self.slot("index", as_address(owner, name="owner"), int(local_index)))

    def has_account(self, owner: AddressLike, local_index: int) -> bool:
        return self.global_id_of(owner, local_index) != 0

    def account_address(self, global_id: int) -> bytes:
        return self.factory.predict(self.address, int(global_id))

    def resolve(self, owner: AddressLike, local_index: int) -> bytes:
        """Proxy address of `owner`'s `local_index`-th account."""
        owner_b = as_address(owner, name="owner")
        global_id = self.global_id_of(owner_b, local_index)
        if global_id == 0:
            raise AccountNotFound(data={"owner": owner_b.hex(), "local_index": int(local_index)})
        if self.owner_of(global_id) != owner_b:
            raise NotOwner(data={"global_id": global_id})
        return self.account_address(global_id)

    def is_adapter_whitelisted(self, adapter: AddressLike) -> bool:
        return self.load_int(self.slot("whitelist", as_address(adapter, name="adapter"))) == 1

    # ------------------------------------------------------------------ writes

    def register_new_account(self, sender: AddressLike) -> bytes:
        """Deploy a proxy (mastered by this registry) and record `sender` as its owner."""
        owner = as_address(sender, name="sender")
        chain = self._bound()
        with chain.frame():
            account = self.factory.deploy(self.address)
            global_id = self.factory.count(self.address)
            local_index = self.account_count(owner) + 1
            self.store_address(self.slot("owner", global_id), owner)
            self.store_int(self.slot("count", owner), local_index)
            self.store_int(self.slot("index", owner, local_index), global_id)
            self.emit(AccountRegistered, owner=owner, globalId=global_id, localIndex=local_index)
        log.info(
            "account registered",
            extra={"owner": owner, "global_id": global_id, "local_index": local_index},
        )
        return account

    def set_adapter_whitelisted(self, sender: AddressLike, adapter: AddressLike, allowed: bool) -> None:
        if as_address(sender, name="sender") != self._admin:
            raise NotAdmin()
        adapter_b = as_address(adapter, name="adapter")
        with self._bound().frame():
            self.store_int(self.slot("whitelist", adapter_b), 1 if allowed else 0)
            self.emit(AdapterWhitelisted, adapter=adapter_b, allowed=bool(allowed))
        log.info("adapter whitelist changed", extra={"adapter": adapter_b, "allowed": bool(allowed)})

    # ------------------------------------------------------------------ dispatch

    def _authorize(self, caller: bytes, adapter: bytes, global_id: int) -> bytes:
        owner = self.owner_of(global_id)
        if owner is None:
            raise AccountNotFound(data={"global_id": global_id})
        if owner != caller:
            raise NotOwner(data={"global_id": global_id})
        if not self.is_adapter_whitelisted(adapter):
            raise AdapterNotAllowed(data={"adapter": adapter.hex()})
        proxy = self.account_address(global_id)
        if not self.factory.is_deployed(self.address, global_id) or not self._bound().has_code(proxy):
            raise SubaccountNotDeployed(data={"global_id": global_id})
        return proxy

    def _run_step(self, owner: bytes, global_id: int, proxy: bytes, adapter: bytes, payload: bytes) -> bytes:
        program = self._bound().program_at(adapter)
        self._scope = ScopedContext(owner=owner, account_id=global_id, proxy=proxy)
        try:
            with slog.bound(owner=owner, global_id=global_id, adapter=adapter):
                if not isinstance(program, Adapter):
                    return b""
                return bytes(program.run(DispatchContext(self), bytes(payload)) or b"")
        finally:
            self._scope = None

    def execute_batch(
        self,
        sender: AddressLike,
        adapters: Sequence[AddressLike],
        payloads: Sequence[bytes],
        global_ids: Sequence[int],
        *,
        atomic: bool = True,
    ) -> List[Optional[bytes]]:
        """
        Run `adapters[i]` with `payloads[i]` against account `global_ids[i]`, in order.

        Returns each step's raw output; isolated (non-atomic) failures yield None.
        """
        if self._entered:
            raise Reentrancy()
        caller = as_address(sender, name="sender")
        if not (len(adapters) == len(payloads) == len(global_ids)):
            raise LengthMismatch(
                data={"adapters": len(adapters), "payloads": len(payloads), "global_ids": len(global_ids)}
            )
        chain = self._bound()
        limit = chain.config.limits.max_batch_steps
        if len(adapters) > limit:
            raise Revert("batch too large", code="BATCH_TOO_LARGE", data={"steps": len(adapters), "limit": limit})

        results: List[Optional[bytes]] = []
        self._entered = True
        try:
            with chain.frame():
                for adapter, payload, global_id in zip(adapters, payloads, global_ids):
                    adapter_b = as_address(adapter, name="adapter")
                    gid = int(global_id)
                    proxy = self._authorize(caller, adapter_b, gid)
                    if atomic:
                        results.append(self._run_step(caller, gid, proxy, adapter_b, payload))
                        continue
                    try:
                        with chain.frame():
                            results.append(self._run_step(caller, gid, proxy, adapter_b, payload))
                    except Revert as exc:
                        self.emit(NonAtomicFailure, globalId=gid, adapter=adapter_b, reason=failure_payload(exc))
                        log.warning(
                            "batch step failed",
                            extra={"global_id": gid, "adapter": adapter_b, "code": exc.code},
                        )
                        results.append(None)
        finally:
            self._entered = False
        return results

    def execute_batch_non_atomic(
        self,
        sender: AddressLike,
        adapters: Sequence[AddressLike],
        payloads: Sequence[bytes],
        global_ids: Sequence[int],
    ) -> List[Optional[bytes]]:
        return self.execute_batch(sender, adapters, payloads, global_ids, atomic=False)


__all__ = [
    "AccountRegistered",
    "AdapterWhitelisted",
    "NonAtomicFailure",
    "ScopedContext",
    "SubAccountRegistry",
]

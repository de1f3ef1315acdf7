"""
subaccounts.runtime.factory — deterministic proxy factory.

The factory deploys `SubAccountProxy` programs keyed by (deployer, sequence):

    nonce[deployer] += 1                     (sequence numbers start at 1, no gaps)
    salt     = keccak256(pad32(deployer) ‖ u256(seq))
    code     = proxy code with master = deployer
    address  = keccak256(0xff ‖ factory ‖ salt ‖ keccak256(code))[12:]

`predict()` and `deploy()` share `_derive()`, so a prediction made before any
deployment is the address the deployment produces. The caller of `deploy()` is
always the deployer and therefore the proxy's master.
"""

from __future__ import annotations

from .. import logging as slog
from ..types.events import EventField, EventSchema
from ..utils.bytes import AddressLike, as_address, pad32, u256
from ..utils.hash import create2_address, create_address, keccak256_concat
from .chain import Program
from .proxy import SubAccountProxy

log = slog.get_logger(__name__)

SubAccountDeployed = EventSchema(
    "SubAccountDeployed",
    (
        EventField("deployer", "address", indexed=True),
        EventField("account", "address", indexed=True),
        EventField("seq", "uint256"),
    ),
)


def salt_for(deployer: AddressLike, seq: int) -> bytes:
    """CREATE2 salt of the `seq`-th proxy of `deployer`."""
    return keccak256_concat(pad32(as_address(deployer, name="deployer")), u256(seq))


def init_code_for(master: AddressLike) -> bytes:
    """Construction code of a proxy controlled by `master`."""
    return SubAccountProxy(master).code()


def predict_address(factory: AddressLike, deployer: AddressLike, seq: int) -> bytes:
    """Address the factory at `factory` assigns to `deployer`'s `seq`-th proxy."""
    return create2_address(
        factory, salt_for(deployer, seq), SubAccountProxy(deployer).code_hash()
    )


def factory_address(deployer: AddressLike, nonce: int) -> bytes:
    """Address of a factory created by `deployer` at account nonce `nonce`."""
    return create_address(deployer, nonce)


class SubAccountFactory(Program):
    """Deterministic deployer of sub-account proxies."""

    KIND = b"subaccount-factory-v1"

    def _nonce_slot(self, deployer: bytes) -> bytes:
        return self.slot("nonce", deployer)

    def _derive(self, deployer: bytes, seq: int) -> bytes:
        self._bound()
        return predict_address(self.address, deployer, seq)

    # ------------------------------------------------------------------ reads

    def count(self, deployer: AddressLike) -> int:
        return self.load_int(self._nonce_slot(as_address(deployer, name="deployer")))

    def predict(self, deployer: AddressLike, seq: int) -> bytes:
        """Pure: the address `deployer`'s `seq`-th proxy has (or will have)."""
        return self._derive(as_address(deployer, name="deployer"), int(seq))

    def is_deployed(self, deployer: AddressLike, seq: int) -> bool:
        return 1 <= int(seq) <= self.count(deployer)

    # ------------------------------------------------------------------ writes

    def deploy(self, sender: AddressLike) -> bytes:
        """
        Deploy the next proxy for `sender`, who becomes its master.

        Raises `Create2Failed` if the derived address is already occupied.
        """
        deployer = as_address(sender, name="sender")
        chain = self._bound()
        with chain.frame():
            seq = self.count(deployer) + 1
            self.store_int(self._nonce_slot(deployer), seq)
            account = chain.create2(self.address, salt_for(deployer, seq), SubAccountProxy(deployer))
            self.emit(SubAccountDeployed, deployer=deployer, account=account, seq=seq)
        log.info("sub-account deployed", extra={"deployer": deployer, "account": account, "seq": seq})
        return account


__all__ = [
    "SubAccountDeployed",
    "SubAccountFactory",
    "salt_for",
    "init_code_for",
    "predict_address",
    "factory_address",
]

"""
subaccounts.utils.hash
======================

Keccak-256 (Ethereum-style, pre-SHA3 padding) and the two address derivation
rules used by the ledger:

- create_address(sender, nonce)
      keccak256(sender ‖ u256(nonce))[12:]
- create2_address(deployer, salt, init_code_hash)
      keccak256(0xff ‖ deployer ‖ salt ‖ init_code_hash)[12:]

Both derivations are pure functions of their inputs; nothing here depends on
the state of any chain, so predictions made before a deployment always match
the address produced by it.

Keccak is provided by PyCryptodome (``pip install pycryptodome``).
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak

from .bytes import BytesLike, as_address, b as _b, u256

CREATE2_PREFIX = b"\xff"


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest (32 bytes)."""
    h = _keccak.new(digest_bits=256)
    h.update(_b(data))
    return h.digest()


def keccak256_concat(*chunks: BytesLike) -> bytes:
    """Keccak-256 over the concatenation of `chunks` (no separators)."""
    h = _keccak.new(digest_bits=256)
    for c in chunks:
        h.update(_b(c))
    return h.digest()


def create_address(sender: BytesLike, nonce: int) -> bytes:
    """Address of the `nonce`-th plain deployment by `sender`."""
    return keccak256_concat(as_address(sender, name="sender"), u256(nonce))[12:]


def create2_address(deployer: BytesLike, salt: BytesLike, init_code_hash: BytesLike) -> bytes:
    """Content- and context-addressed deployment address."""
    salt_b = _b(salt)
    ich = _b(init_code_hash)
    if len(salt_b) != 32:
        raise ValueError("salt must be 32 bytes")
    if len(ich) != 32:
        raise ValueError("init_code_hash must be 32 bytes")
    return keccak256_concat(
        CREATE2_PREFIX, as_address(deployer, name="deployer"), salt_b, ich
    )[12:]


__all__ = [
    "keccak256",
    "keccak256_concat",
    "create_address",
    "create2_address",
]

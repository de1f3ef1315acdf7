"""
subaccounts.utils — byte helpers and hashing/address derivation.
"""

from .bytes import ZERO_ADDRESS, as_address, from_hex, to_hex
from .hash import create2_address, create_address, keccak256

__all__ = [
    "ZERO_ADDRESS",
    "as_address",
    "from_hex",
    "to_hex",
    "keccak256",
    "create_address",
    "create2_address",
]

"""
subaccounts.types.message — the inbound invocation seen by a program.

A `Message` is immutable and fully describes one call frame:

* sender : 20-byte caller address
* to     : 20-byte callee address (the executing program)
* value  : amount moved from sender to callee before the program runs
* data   : raw invocation payload
* depth  : nesting depth of the frame (0 for a top-level call)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.bytes import as_address


@dataclass(frozen=True)
class Message:
    sender: bytes
    to: bytes
    value: int = 0
    data: bytes = b""
    depth: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", as_address(self.sender, name="sender"))
        object.__setattr__(self, "to", as_address(self.to, name="to"))
        object.__setattr__(self, "data", bytes(self.data))
        if self.value < 0:
            raise ValueError("value must be non-negative")


__all__ = ["Message"]

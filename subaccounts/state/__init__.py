"""
subaccounts.state — state subsystem (accounts, storage, journal).

Common symbols are lazily re-exported from their submodules on first access to
keep import-time overhead low and avoid circular imports.

Submodules:
- accounts: Account records (nonce, balance, code hash)
- storage:  Per-account storage view (key/value)
- journal:  Journaling writes, checkpoints, revert/commit
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "Account": ("accounts", "Account"),
    "EMPTY_CODE_HASH": ("accounts", "EMPTY_CODE_HASH"),
    "StorageView": ("storage", "StorageView"),
    "Journal": ("journal", "Journal"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        mod = _imp(f"{__name__}.{submod}")
        return getattr(mod, symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))

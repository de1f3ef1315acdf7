"""
subaccounts.runtime — programs hosted on the ledger.

Submodules:
- chain:     Chain (journaled ledger), Program base class, CallEnv
- proxy:     SubAccountProxy and the forward payload codec
- factory:   SubAccountFactory (deterministic CREATE2 deployment)
- registry:  SubAccountRegistry (ownership records + batch dispatcher)
- adapters:  Adapter protocol, DispatchContext, MultiCallAdapter
- router:    SubAccountRouter (per-caller proxy lists)
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "Chain": ("chain", "Chain"),
    "CallEnv": ("chain", "CallEnv"),
    "Program": ("chain", "Program"),
    "SubAccountProxy": ("proxy", "SubAccountProxy"),
    "encode_forward": ("proxy", "encode_forward"),
    "decode_forward": ("proxy", "decode_forward"),
    "SubAccountFactory": ("factory", "SubAccountFactory"),
    "predict_address": ("factory", "predict_address"),
    "factory_address": ("factory", "factory_address"),
    "SubAccountRegistry": ("registry", "SubAccountRegistry"),
    "ScopedContext": ("registry", "ScopedContext"),
    "Adapter": ("adapters", "Adapter"),
    "DispatchContext": ("adapters", "DispatchContext"),
    "MultiCallAdapter": ("adapters", "MultiCallAdapter"),
    "SubAccountRouter": ("router", "SubAccountRouter"),
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

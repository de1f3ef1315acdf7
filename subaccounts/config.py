"""
subaccounts.config — runtime configuration for the sub-account ledger.

This module centralizes knobs for:
  • Feature flags (whether proxies bubble forwarded failure data)
  • Limits (nested call depth, batch length, payload size)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  SUBACCOUNTS_BUBBLE_FORWARD_REVERTS -> 0/1/true/false (default: 0)
  SUBACCOUNTS_MAX_CALL_DEPTH         -> integer (default: 1024)
  SUBACCOUNTS_MAX_BATCH_STEPS        -> integer (default: 256)
  SUBACCOUNTS_MAX_PAYLOAD_BYTES      -> e.g. "128KiB", "131072" (default: 128KiB)

Programmatic usage:
    from subaccounts.config import get_config
    cfg = get_config()
    if cfg.features.bubble_forward_reverts:
        ...

Proxies discard a forwarded call's failure data by default. Setting
SUBACCOUNTS_BUBBLE_FORWARD_REVERTS=1 keeps it on the ForwardFailed error instead.
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return bool(v) if v != "" else default


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmM]i?[bB])?\s*$")

_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
}


def _parse_size_bytes(s: Union[str, int]) -> int:
    """
    Parse human-friendly byte sizes:
      "128KiB", "64KB", "1MiB", "131072", 131072 -> bytes (int)
    """
    if isinstance(s, int):
        if s < 0:
            raise ValueError("size must be non-negative")
        return s

    m = _SIZE_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid size: {s!r}")
    unit = (m.group(2) or "B").lower()
    if unit not in _UNITS:
        raise ValueError(f"unknown size unit: {unit}")
    return int(m.group(1)) * _UNITS[unit]


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class FeatureFlags:
    bubble_forward_reverts: bool = False


@dataclass(frozen=True)
class Limits:
    max_call_depth: int = 1024
    max_batch_steps: int = 256
    max_payload_bytes: int = 128 * 1024  # 128 KiB


@dataclass(frozen=True)
class SubaccountsConfig:
    features: FeatureFlags = FeatureFlags()
    limits: Limits = Limits()

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate_limits(l: Limits) -> Limits:
    if l.max_call_depth <= 0:
        raise ValueError("max_call_depth must be > 0")
    if l.max_batch_steps <= 0:
        raise ValueError("max_batch_steps must be > 0")
    if l.max_payload_bytes < 64:
        raise ValueError("max_payload_bytes must be ≥ 64 (forward header size)")
    return l


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool]]] = None,
) -> SubaccountsConfig:
    """
    Build a SubaccountsConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'bubble_forward_reverts', 'max_call_depth', 'max_batch_steps',
          'max_payload_bytes'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    features = FeatureFlags(
        bubble_forward_reverts=_bool_env(
            env.get("SUBACCOUNTS_BUBBLE_FORWARD_REVERTS"),
            bool(overrides.get("bubble_forward_reverts", False)),
        ),
    )

    limits = Limits(
        max_call_depth=int(
            overrides.get("max_call_depth", env.get("SUBACCOUNTS_MAX_CALL_DEPTH", 1024))
        ),
        max_batch_steps=int(
            overrides.get("max_batch_steps", env.get("SUBACCOUNTS_MAX_BATCH_STEPS", 256))
        ),
        max_payload_bytes=_parse_size_bytes(
            overrides.get(
                "max_payload_bytes", env.get("SUBACCOUNTS_MAX_PAYLOAD_BYTES", 128 * 1024)
            )
        ),
    )
    limits = _validate_limits(limits)

    return SubaccountsConfig(features=features, limits=limits)


@lru_cache(maxsize=1)
def get_config() -> SubaccountsConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def _fmt_bytes(n: int) -> str:
    for unit, div in (("MiB", 1024**2), ("KiB", 1024)):
        if n >= div and n % div == 0:
            return f"{n // div}{unit}"
    return f"{n}B"


def summary(cfg: Optional[SubaccountsConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the effective knobs.
    """
    cfg = cfg or get_config()
    f = cfg.features
    l = cfg.limits
    return (
        "subaccounts{"
        f"bubble={int(f.bubble_forward_reverts)}, "
        f"depth={l.max_call_depth}, batch={l.max_batch_steps}, "
        f"payload={_fmt_bytes(l.max_payload_bytes)}"
        "}"
    )


__all__ = [
    "FeatureFlags",
    "Limits",
    "SubaccountsConfig",
    "load_config",
    "get_config",
    "summary",
]

"""
subaccounts.types.events — event/log records and typed event schemas.

`LogEvent` is the compact container the ledger records for every emitted event.
`EventSchema` describes one event kind (name + typed fields) and converts
between keyword values and `LogEvent`s.

Conventions
-----------
* `address` is the 20-byte emitter address.
* `topics[0]` is `keccak256(signature)`, e.g. `keccak256(b"AdapterWhitelisted(address,bool)")`;
  each indexed field adds one 32-byte topic.
* Non-indexed fields are packed into `data` in declaration order: static kinds
  (`address`, `uint256`, `bool`) as one 32-byte word each, `bytes` as a 32-byte
  length word followed by the raw bytes. A `bytes` field must come last.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.bytes import as_address, be_to_int, pad32, to_hex, u256
from ..utils.hash import keccak256

_STATIC_KINDS = ("address", "uint256", "bool")
_KINDS = _STATIC_KINDS + ("bytes",)


@dataclass(frozen=True)
class LogEvent:
    """
    A single event emitted during execution.

    Attributes:
        address: bytes — emitter address (20 bytes)
        topics:  tuple[bytes, ...] — ordered 32-byte topics
        data:    bytes — packed non-indexed fields
    """

    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes

    def __init__(self, address: bytes, topics: Sequence[bytes] = (), data: bytes = b""):
        object.__setattr__(self, "address", as_address(address))
        object.__setattr__(self, "topics", tuple(bytes(t) for t in topics))
        object.__setattr__(self, "data", bytes(data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self.address),
            "topics": [to_hex(t) for t in self.topics],
            "data": to_hex(self.data),
        }

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        data_h = to_hex(self.data)
        if len(data_h) > 18:
            data_h = data_h[:18] + "…"
        return f"LogEvent(address={to_hex(self.address)[:12]}…, topics={len(self.topics)}, data={data_h})"


@dataclass(frozen=True)
class EventField:
    name: str
    kind: str
    indexed: bool = False

    def __post_init__(self) -> None:
        if self.kind not in _KINDS:
            raise ValueError(f"unsupported event field kind: {self.kind!r}")
        if self.indexed and self.kind == "bytes":
            raise ValueError("bytes fields cannot be indexed")


def _encode_word(kind: str, value: Any) -> bytes:
    if kind == "address":
        return pad32(as_address(value))
    if kind == "bool":
        return u256(1 if value else 0)
    return u256(int(value))


def _decode_word(kind: str, word: bytes) -> Any:
    if kind == "address":
        return word[12:]
    if kind == "bool":
        return be_to_int(word) != 0
    return be_to_int(word)


@dataclass(frozen=True)
class EventSchema:
    """
    Typed description of one event kind.

    >>> ev = EventSchema("AdapterWhitelisted", (EventField("adapter", "address", True), EventField("allowed", "bool")))
    >>> ev.signature
    'AdapterWhitelisted(address,bool)'
    """

    name: str
    fields: Tuple[EventField, ...]

    def __post_init__(self) -> None:
        data_fields = [f for f in self.fields if not f.indexed]
        for f in data_fields[:-1]:
            if f.kind == "bytes":
                raise ValueError("a bytes field must be the last non-indexed field")

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(f.kind for f in self.fields)})"

    @property
    def topic(self) -> bytes:
        return keccak256(self.signature.encode("ascii"))

    def encode(self, emitter: bytes, **values: Any) -> LogEvent:
        missing = [f.name for f in self.fields if f.name not in values]
        if missing:
            raise ValueError(f"{self.name}: missing fields {missing}")
        topics = [self.topic]
        data = bytearray()
        for f in self.fields:
            v = values[f.name]
            if f.indexed:
                topics.append(_encode_word(f.kind, v))
            elif f.kind == "bytes":
                raw = bytes(v)
                data += u256(len(raw)) + raw
            else:
                data += _encode_word(f.kind, v)
        return LogEvent(address=emitter, topics=topics, data=bytes(data))

    def matches(self, log: LogEvent) -> bool:
        n_indexed = sum(1 for f in self.fields if f.indexed)
        return bool(log.topics) and log.topics[0] == self.topic and len(log.topics) == n_indexed + 1

    def decode(self, log: LogEvent) -> Dict[str, Any]:
        if not self.matches(log):
            raise ValueError(f"log is not a {self.name} event")
        out: Dict[str, Any] = {}
        topics = iter(log.topics[1:])
        off = 0
        data = log.data
        for f in self.fields:
            if f.indexed:
                out[f.name] = _decode_word(f.kind, next(topics))
            elif f.kind == "bytes":
                n = be_to_int(data[off:off + 32])
                out[f.name] = data[off + 32:off + 32 + n]
                off += 32 + n
            else:
                out[f.name] = _decode_word(f.kind, data[off:off + 32])
                off += 32
        return out


def filter_events(
    logs: Iterable[LogEvent], schema: EventSchema, *, emitter: Optional[bytes] = None
) -> List[Dict[str, Any]]:
    """Decode every log in `logs` that matches `schema` (and `emitter`, if given)."""
    want = as_address(emitter) if emitter is not None else None
    return [
        schema.decode(log)
        for log in logs
        if schema.matches(log) and (want is None or log.address == want)
    ]


__all__ = ["LogEvent", "EventField", "EventSchema", "filter_events"]

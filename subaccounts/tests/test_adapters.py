from __future__ import annotations

import cbor2
import pytest

from subaccounts.errors import ForwardFailed, NotManagerContext, Reentrancy, Revert
from subaccounts.runtime.adapters import (
    DispatchContext,
    decode_calls,
    decode_results,
    encode_calls,
)

from .programs import ADMIN, ALICE, BOB, ContextProbe, ReentrantAdapter, ReentrantTarget


def _whitelisted(chain, registry, adapter):
    chain.create(ADMIN, adapter)
    registry.set_adapter_whitelisted(ADMIN, adapter.address, True)
    return adapter


# ---------------------------------------------------------------------------
# Payload codec
# ---------------------------------------------------------------------------

def test_encode_calls_is_canonical_cbor(receiver):
    payload = encode_calls([(receiver.address, 3, b"hi")])
    assert cbor2.loads(payload) == [[receiver.address, 3, b"hi"]]
    assert decode_calls(payload) == [(receiver.address, 3, b"hi")]


def test_encode_calls_accepts_hex_targets(receiver):
    hex_target = "0x" + receiver.address.hex()
    assert decode_calls(encode_calls([(hex_target, 0, b"")])) == [(receiver.address, 0, b"")]


@pytest.mark.parametrize(
    "payload",
    [
        b"\xff\x00",
        cbor2.dumps({"not": "a list"}),
        cbor2.dumps([[b"\x01" * 20, 1]]),
        cbor2.dumps([[b"\x01" * 19, 1, b""]]),
        cbor2.dumps([[b"\x01" * 20, -1, b""]]),
        cbor2.dumps([[b"\x01" * 20, 2**256, b""]]),
        cbor2.dumps([[b"\x01" * 20, True, b""]]),
        cbor2.dumps([[b"\x01" * 20, 0, 5]]),
        cbor2.dumps([[b"\x01" * 20, 0, [1, 2]]]),
        cbor2.dumps([[b"\x01" * 20, 0, "text"]]),
    ],
)
def test_decode_calls_rejects_malformed_payloads(payload):
    with pytest.raises(Revert) as ei:
        decode_calls(payload)
    assert ei.value.code == "MALFORMED_PAYLOAD"


def test_decode_results_roundtrip():
    assert decode_results(cbor2.dumps([b"a", b""])) == [b"a", b""]


# ---------------------------------------------------------------------------
# Scoped context
# ---------------------------------------------------------------------------

def test_context_is_visible_during_step(chain, registry):
    probe = _whitelisted(chain, registry, ContextProbe())
    registry.register_new_account(BOB)
    proxy = registry.register_new_account(ALICE)

    (out,) = registry.execute_batch(ALICE, [probe.address], [b""], [2])

    assert out == ALICE + (2).to_bytes(32, "big") + proxy
    assert registry.scope is None
    assert registry.active_account_id == 0


def test_context_outside_step_raises(registry):
    ctx = DispatchContext(registry)
    with pytest.raises(NotManagerContext) as ei:
        ctx.owner
    assert ei.value.return_data == b"NOT_MANAGER_CONTEXT"
    with pytest.raises(NotManagerContext):
        ctx.forward(ALICE, 0, b"")


def test_multicall_outside_step_raises(registry, multicall, receiver):
    with pytest.raises(NotManagerContext):
        multicall.run(DispatchContext(registry), encode_calls([(receiver.address, 0, b"")]))
    assert receiver.calls() == 0


def test_direct_call_to_adapter_only_deposits(chain, multicall, receiver):
    chain.fund(ALICE, 4)
    out = chain.call(ALICE, multicall.address, 4, encode_calls([(receiver.address, 0, b"")]))
    assert out == b""
    assert chain.balance_of(multicall.address) == 4
    assert receiver.calls() == 0


def test_context_cleared_after_atomic_abort(chain, registry, multicall, reverter):
    registry.register_new_account(ALICE)
    with pytest.raises(ForwardFailed):
        registry.execute_batch(ALICE, [multicall.address], [encode_calls([(reverter.address, 0, b"")])], [1])
    assert registry.scope is None
    assert registry.execute_batch(ALICE, [], [], []) == []


# ---------------------------------------------------------------------------
# Reentrancy
# ---------------------------------------------------------------------------

def test_reentrant_batch_from_adapter_is_rejected_without_payload(chain, registry):
    adapter = _whitelisted(chain, registry, ReentrantAdapter(registry))
    registry.register_new_account(ALICE)
    marker = len(chain.logs)

    with pytest.raises(Reentrancy) as ei:
        registry.execute_batch(ALICE, [adapter.address], [b""], [1])

    assert ei.value.return_data == b""
    assert ei.value.message == ""
    assert chain.logs_since(marker) == []
    assert registry.scope is None


def test_reentry_is_rejected_before_length_check(chain, registry):
    adapter = _whitelisted(chain, registry, ReentrantAdapter(registry, global_ids=[1]))
    registry.register_new_account(ALICE)

    with pytest.raises(Reentrancy) as ei:
        registry.execute_batch(ALICE, [adapter.address], [b""], [1])
    assert ei.value.return_data == b""


def test_reentrant_batch_through_proxy_aborts_forward(chain, registry, multicall):
    registry.register_new_account(ALICE)
    target = ReentrantTarget(registry, ALICE, multicall.address, 1)
    chain.create(ADMIN, target)

    with pytest.raises(ForwardFailed) as ei:
        registry.execute_batch(ALICE, [multicall.address], [encode_calls([(target.address, 0, b"")])], [1])
    assert ei.value.return_data == b""


def test_registry_usable_after_rejected_reentry(chain, registry, multicall, receiver):
    adapter = _whitelisted(chain, registry, ReentrantAdapter(registry))
    registry.register_new_account(ALICE)
    with pytest.raises(Reentrancy):
        registry.execute_batch(ALICE, [adapter.address], [b""], [1])

    out = registry.execute_batch(ALICE, [multicall.address], [encode_calls([(receiver.address, 0, b"z")])], [1])
    assert decode_results(out[0]) == [b"echo:z"]

from __future__ import annotations

import pytest

from subaccounts.config import load_config
from subaccounts.errors import CallDepthExceeded, ExecError, InsufficientBalance, PayloadTooLarge, Revert
from subaccounts.runtime.chain import CallEnv, Chain, Program
from subaccounts.state.accounts import EMPTY_CODE_HASH, Account
from subaccounts.state.journal import Journal
from subaccounts.state.storage import StorageView
from subaccounts.types.events import EventField, EventSchema, LogEvent
from subaccounts.utils.hash import create_address

from .programs import ALICE, BOB, DEPLOYER, Receiver

Ping = EventSchema("Ping", (EventField("n", "uint256"),))
KEY = b"\x01" * 32


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

def _journal():
    accounts = {}
    storage = StorageView()
    logs = []
    return Journal(accounts, storage, logs), accounts, storage, logs


def test_journal_commit_applies_to_base():
    j, accounts, storage, logs = _journal()
    j.begin()
    j.ensure_account_for_write(ALICE).credit(5)
    j.storage_set(ALICE, KEY, b"v")
    j.emit(LogEvent(ALICE, [], b""))
    j.flush()

    assert accounts[ALICE].balance == 5
    assert storage.get(ALICE, KEY) == b"v"
    assert len(logs) == 1


def test_journal_revert_discards_layer():
    j, accounts, storage, logs = _journal()
    j.ensure_account_for_write(ALICE).credit(1)
    m = j.begin()
    j.get_account_for_write(ALICE).credit(10)
    j.storage_set(ALICE, KEY, b"x")
    j.emit(LogEvent(ALICE, [], b""))
    assert j.get_account(ALICE).balance == 11
    j.revert_to(m - 1)

    assert j.get_account(ALICE).balance == 1
    assert j.storage_get(ALICE, KEY) == b""
    assert j.pending_logs() == []


def test_journal_nested_commit_then_outer_revert():
    j, accounts, _, _ = _journal()
    outer = j.begin()
    j.begin()
    j.ensure_account_for_write(BOB).credit(3)
    j.commit()
    assert j.get_account(BOB).balance == 3
    j.revert_to(outer - 1)
    assert j.get_account(BOB) is None
    j.flush()
    assert BOB not in accounts


def test_journal_storage_delete_marker():
    j, _, storage, _ = _journal()
    storage.set(ALICE, KEY, b"old")
    j.begin()
    j.storage_set(ALICE, KEY, b"")
    assert j.storage_get(ALICE, KEY) == b""
    j.flush()
    assert storage.get(ALICE, KEY) == b""


def test_journal_install_code_refuses_occupied():
    j, _, _, _ = _journal()
    j.install_code(ALICE, b"\x11" * 32)
    with pytest.raises(ExecError):
        j.install_code(ALICE, b"\x22" * 32)
    j.ensure_account_for_write(BOB).increment_nonce()
    with pytest.raises(ExecError):
        j.install_code(BOB, b"\x22" * 32)


def test_journal_marker_validation():
    j, _, _, _ = _journal()
    with pytest.raises(ValueError):
        j.commit_to(0)
    with pytest.raises(ValueError):
        j.revert_to(0)


# ---------------------------------------------------------------------------
# Chain frames & calls
# ---------------------------------------------------------------------------

class Emitter(Program):
    KIND = b"test-emitter"

    def execute(self, env: CallEnv) -> bytes:
        self.emit(Ping, n=len(env.data))
        if env.data == b"fail":
            raise Revert("asked to fail", return_data=b"F")
        return b""


class Recurser(Program):
    KIND = b"test-recurser"

    def execute(self, env: CallEnv) -> bytes:
        return env.chain.call(self.address, self.address, 0, b"")


def test_frame_commits_on_success(chain):
    with chain.frame():
        chain.fund(ALICE, 3)
    assert chain.balance_of(ALICE) == 3
    assert chain.journal.depth() == 1


def test_frame_reverts_on_exception(chain):
    with pytest.raises(RuntimeError):
        with chain.frame():
            chain.fund(ALICE, 3)
            raise RuntimeError("boom")
    assert chain.balance_of(ALICE) == 0
    assert chain.journal.depth() == 1


def test_transfer_and_insufficient_balance(chain):
    chain.fund(ALICE, 10)
    assert chain.call(ALICE, BOB, 4) == b""
    assert chain.balance_of(ALICE) == 6
    assert chain.balance_of(BOB) == 4
    with pytest.raises(InsufficientBalance) as ei:
        chain.call(BOB, ALICE, 5)
    assert ei.value.data["amount"] == 5
    assert chain.balance_of(BOB) == 4


def test_failed_call_discards_logs(chain):
    e = Emitter()
    chain.create(DEPLOYER, e)
    marker = len(chain.logs)
    chain.call(ALICE, e.address, 0, b"ok")
    with pytest.raises(Revert):
        chain.call(ALICE, e.address, 0, b"fail")
    logs = chain.logs_since(marker)
    assert [Ping.decode(l) for l in logs] == [{"n": 2}]


def test_create_uses_sender_nonce(chain):
    r1, r2 = Receiver(), Receiver()
    a1 = chain.create(ALICE, r1)
    a2 = chain.create(ALICE, r2)
    assert a1 == create_address(ALICE, 0)
    assert a2 == create_address(ALICE, 1)
    assert chain.nonce_of(ALICE) == 2
    assert chain.code_hash_of(a1) == r1.code_hash()
    assert chain.code_hash_of(BOB) == EMPTY_CODE_HASH


def test_program_not_visible_after_reverted_deploy(chain):
    r = Receiver()
    with pytest.raises(RuntimeError):
        with chain.frame():
            addr = chain.create(ALICE, r)
            raise RuntimeError
    assert not chain.has_code(addr)
    assert chain.program_at(addr) is None
    assert chain.nonce_of(ALICE) == 0


def test_call_depth_limit():
    chain = Chain(load_config(env={}, overrides={"max_call_depth": 8}))
    r = Recurser()
    chain.create(ALICE, r)
    with pytest.raises(CallDepthExceeded) as ei:
        chain.call(ALICE, r.address)
    assert ei.value.data == {"depth": 8, "limit": 8}
    assert chain.depth == 0


def test_payload_limit_is_fatal():
    chain = Chain(load_config(env={}, overrides={"max_payload_bytes": 64}))
    with pytest.raises(PayloadTooLarge) as ei:
        chain.call(ALICE, BOB, 0, b"\x00" * 65)
    assert not isinstance(ei.value, Revert)
    assert ei.value.code == "PAYLOAD_TOO_LARGE"
    assert ei.value.data == {"size": 65, "limit": 64}
    assert chain.depth == 0


def test_account_helpers():
    acc = Account()
    assert acc.is_empty()
    acc.credit(2)
    assert acc.can_debit(2) and not acc.can_debit(3)
    acc.debit(2)
    assert acc.balance == 0

from __future__ import annotations

import pytest

from subaccounts.errors import Create2Failed, ExecError
from subaccounts.runtime.factory import (
    SubAccountDeployed,
    SubAccountFactory,
    factory_address,
    init_code_for,
    predict_address,
    salt_for,
)
from subaccounts.types.events import filter_events
from subaccounts.utils.hash import keccak256

from .programs import ALICE, BOB, DEPLOYER, Receiver


def test_sequential_deploys_match_predictions(chain, factory):
    predicted = [factory.predict(ALICE, n) for n in (1, 2, 3)]
    deployed = [factory.deploy(ALICE) for _ in range(3)]

    assert deployed == predicted
    assert len(set(deployed)) == 3
    assert factory.count(ALICE) == 3
    assert all(chain.has_code(a) for a in deployed)
    assert all(chain.program_at(a).master == ALICE for a in deployed)


def test_sequences_are_per_deployer(factory):
    a1 = factory.deploy(ALICE)
    b1 = factory.deploy(BOB)
    assert factory.count(ALICE) == 1
    assert factory.count(BOB) == 1
    assert a1 == factory.predict(ALICE, 1)
    assert b1 == factory.predict(BOB, 1)
    assert a1 != b1


def test_is_deployed(factory):
    assert not factory.is_deployed(ALICE, 0)
    assert not factory.is_deployed(ALICE, 1)
    factory.deploy(ALICE)
    assert not factory.is_deployed(ALICE, 0)
    assert factory.is_deployed(ALICE, 1)
    assert not factory.is_deployed(ALICE, 2)


def test_salt_and_address_derivation(factory):
    salt = salt_for(ALICE, 1)
    assert salt == keccak256(b"\x00" * 12 + ALICE + (1).to_bytes(32, "big"))

    expected = keccak256(b"\xff" + factory.address + salt + keccak256(init_code_for(ALICE)))[12:]
    assert factory.predict(ALICE, 1) == expected
    assert predict_address(factory.address, ALICE, 1) == expected


def test_factory_address_is_nonce_derived(chain, factory):
    assert factory.address == factory_address(DEPLOYER, 0)
    assert chain.nonce_of(DEPLOYER) == 1
    second = SubAccountFactory()
    chain.create(DEPLOYER, second)
    assert second.address == factory_address(DEPLOYER, 1)
    assert second.predict(ALICE, 1) != factory.predict(ALICE, 1)


def test_deploy_emits_event(chain, factory):
    marker = len(chain.logs)
    account = factory.deploy(ALICE)
    assert filter_events(chain.logs_since(marker), SubAccountDeployed, emitter=factory.address) == [
        {"deployer": ALICE, "account": account, "seq": 1}
    ]


def test_occupied_address_fails_without_side_effects(chain, factory):
    target = factory.predict(ALICE, 1)
    chain.install(Receiver(), target)
    marker = len(chain.logs)

    with pytest.raises(Create2Failed) as ei:
        factory.deploy(ALICE)

    assert ei.value.code == "CREATE2_FAILED"
    assert factory.count(ALICE) == 0
    assert chain.logs_since(marker) == []


def test_prefunded_predicted_address_still_deploys(chain, factory):
    target = factory.predict(ALICE, 1)
    chain.fund(target, 5)
    assert factory.deploy(ALICE) == target
    assert chain.balance_of(target) == 5
    assert chain.has_code(target)


def test_unplaced_factory_cannot_predict():
    with pytest.raises(ExecError):
        SubAccountFactory().predict(ALICE, 1)

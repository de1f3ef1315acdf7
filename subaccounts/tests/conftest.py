from __future__ import annotations

import logging

import pytest

from subaccounts import logging as slog
from subaccounts.config import load_config
from subaccounts.runtime.adapters import MultiCallAdapter
from subaccounts.runtime.chain import Chain
from subaccounts.runtime.factory import SubAccountFactory
from subaccounts.runtime.registry import SubAccountRegistry

from .programs import ADMIN, DEPLOYER, Receiver, Reverter


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    slog.clear_context()
    root = logging.getLogger("subaccounts")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def chain() -> Chain:
    return Chain(load_config(env={}))


@pytest.fixture
def bubbling_chain() -> Chain:
    return Chain(load_config(env={}, overrides={"bubble_forward_reverts": True}))


@pytest.fixture
def factory(chain: Chain) -> SubAccountFactory:
    f = SubAccountFactory()
    chain.create(DEPLOYER, f)
    return f


@pytest.fixture
def registry(chain: Chain, factory: SubAccountFactory) -> SubAccountRegistry:
    r = SubAccountRegistry(factory, ADMIN)
    chain.create(ADMIN, r)
    return r


@pytest.fixture
def multicall(chain: Chain, registry: SubAccountRegistry) -> MultiCallAdapter:
    a = MultiCallAdapter()
    chain.create(ADMIN, a)
    registry.set_adapter_whitelisted(ADMIN, a.address, True)
    return a


@pytest.fixture
def receiver(chain: Chain) -> Receiver:
    r = Receiver()
    chain.create(DEPLOYER, r)
    return r


@pytest.fixture
def reverter(chain: Chain) -> Reverter:
    r = Reverter()
    chain.create(DEPLOYER, r)
    return r

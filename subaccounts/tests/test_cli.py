"""
CLI tests for the dry-run address tooling.
"""

from __future__ import annotations

import json

import typer.testing

from subaccounts.cli.main import DEFAULT_CHAINS, app
from subaccounts.runtime.factory import factory_address, predict_address
from subaccounts.utils.bytes import to_hex
from subaccounts.version import __version__

from .programs import ALICE, DEPLOYER

runner = typer.testing.CliRunner()

FACTORY = factory_address(DEPLOYER, 0)


class TestCLIBasics:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "predict" in result.stdout
        assert "factory-address" in result.stdout

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert result.stdout.strip() == __version__

    def test_config(self) -> None:
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert result.stdout.startswith("subaccounts{")

    def test_config_json(self) -> None:
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        assert "max_batch_steps" in json.loads(result.stdout)["limits"]


class TestPredict:
    def test_matches_library_prediction(self) -> None:
        result = runner.invoke(
            app,
            ["predict", "--factory", to_hex(FACTORY), "--deployer", to_hex(ALICE), "--seq", "1", "--count", "3", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [row["seq"] for row in data["accounts"]] == [1, 2, 3]
        assert [row["address"] for row in data["accounts"]] == [
            to_hex(predict_address(FACTORY, ALICE, n)) for n in (1, 2, 3)
        ]

    def test_text_output(self) -> None:
        result = runner.invoke(
            app, ["predict", "--factory", to_hex(FACTORY), "--deployer", to_hex(ALICE), "--seq", "2"]
        )
        assert result.exit_code == 0
        assert to_hex(predict_address(FACTORY, ALICE, 2)) in result.stdout

    def test_bad_address(self) -> None:
        result = runner.invoke(app, ["predict", "--factory", "0x1234", "--deployer", to_hex(ALICE)])
        assert result.exit_code == 2


class TestFactoryAddress:
    def test_same_address_on_every_chain(self) -> None:
        result = runner.invoke(
            app,
            ["factory-address", "--deployer", to_hex(DEPLOYER), "--nonce", "0", "--chains", "Ethereum,Base", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["address"] == to_hex(FACTORY)
        assert data["chains"] == {"Ethereum": to_hex(FACTORY), "Base": to_hex(FACTORY)}

    def test_default_chain_list(self) -> None:
        result = runner.invoke(app, ["factory-address", "--deployer", to_hex(DEPLOYER)])
        assert result.exit_code == 0
        assert f"{len(DEFAULT_CHAINS)} chains: {to_hex(FACTORY)}" in result.stdout

    def test_empty_chain_list(self) -> None:
        result = runner.invoke(app, ["factory-address", "--deployer", to_hex(DEPLOYER), "--chains", ","])
        assert result.exit_code == 2

    def test_unknown_chain_is_rejected(self) -> None:
        result = runner.invoke(
            app, ["factory-address", "--deployer", to_hex(DEPLOYER), "--chains", "Ethereum,Atlantis"]
        )
        assert result.exit_code == 2
        assert "Ethereum" not in result.output

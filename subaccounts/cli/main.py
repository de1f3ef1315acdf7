"""
subaccounts - dry-run CLI for deterministic sub-account deployments.

Everything here is derived locally; nothing is broadcast.

  subaccounts predict          Proxy addresses a factory assigns to a deployer
  subaccounts factory-address  Factory address for (deployer, nonce) per chain
  subaccounts config           Effective configuration summary

Global options:
  --verbose / -v   Log at DEBUG instead of WARNING
  --log-json       Emit logs as JSON lines

Examples:
  subaccounts predict --factory 0x5FbD... --deployer 0xf39F... --seq 1 --count 3
  subaccounts factory-address --deployer 0xf39F... --nonce 0 --chains Ethereum,Base
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

import typer

from .. import logging as slog
from ..config import get_config, summary
from ..runtime.factory import factory_address, predict_address, salt_for
from ..utils.bytes import as_address, to_hex
from ..version import __version__

log = slog.get_logger(__name__)

DEFAULT_CHAINS = (
    "Ethereum",
    "Arbitrum",
    "Optimism",
    "Base",
    "Polygon",
    "BSC",
    "Avalanche",
    "Gnosis",
    "Sepolia",
    "Hoodi",
)

app = typer.Typer(
    name="subaccounts",
    help="Deterministic sub-account address tooling (dry run only)",
    no_args_is_help=True,
    add_completion=False,
)


def _address(value: str, name: str) -> bytes:
    try:
        return as_address(value, name=name)
    except (TypeError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)


def _pretty(obj: object) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Increase verbosity"),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit logs as JSON lines",
    ),
) -> None:
    """
    Predict proxy and factory addresses without touching any network.
    """
    slog.configure(json=log_json or None, level="DEBUG" if verbose else "WARNING")


@app.command()
def predict(
    factory: str = typer.Option(..., "--factory", help="Factory address (0x…)"),
    deployer: str = typer.Option(..., "--deployer", help="Deployer (master) address (0x…)"),
    seq: int = typer.Option(1, "--seq", min=0, help="First sequence number"),
    count: int = typer.Option(1, "--count", min=1, help="How many consecutive sequences"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Predicted proxy addresses for sequences SEQ..SEQ+COUNT-1."""
    factory_b = _address(factory, "factory")
    deployer_b = _address(deployer, "deployer")

    rows: List[Dict[str, object]] = []
    for n in range(seq, seq + count):
        rows.append(
            {
                "seq": n,
                "salt": to_hex(salt_for(deployer_b, n)),
                "address": to_hex(predict_address(factory_b, deployer_b, n)),
            }
        )
    log.debug("predicted addresses", extra={"deployer": deployer_b, "count": count})

    if json_output:
        typer.echo(_pretty({"factory": to_hex(factory_b), "deployer": to_hex(deployer_b), "accounts": rows}))
        return

    typer.echo(f"Factory:  {to_hex(factory_b)}")
    typer.echo(f"Deployer: {to_hex(deployer_b)}")
    typer.echo("-" * 60)
    for row in rows:
        typer.echo(f"#{row['seq']:<6} {row['address']}")


@app.command("factory-address")
def factory_address_cmd(
    deployer: str = typer.Option(..., "--deployer", help="Deploying account (0x…)"),
    nonce: int = typer.Option(0, "--nonce", min=0, help="Deployer account nonce"),
    chains: Optional[str] = typer.Option(
        None,
        "--chains",
        help=f"Comma-separated chain names from: {', '.join(DEFAULT_CHAINS)}",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """
    Dry-run factory address for each chain.

    The address depends only on (deployer, nonce), so every listed chain gets
    the same value when deployed from the same account state.
    """
    deployer_b = _address(deployer, "deployer")
    names = [c.strip() for c in chains.split(",") if c.strip()] if chains else list(DEFAULT_CHAINS)
    if not names:
        typer.echo("Error: no chains selected", err=True)
        raise typer.Exit(2)
    unknown = [n for n in names if n not in DEFAULT_CHAINS]
    if unknown:
        typer.echo(f"Error: unknown chain(s): {', '.join(unknown)}", err=True)
        raise typer.Exit(2)

    address = to_hex(factory_address(deployer_b, nonce))

    if json_output:
        typer.echo(_pretty({"address": address, "chains": {name: address for name in names}}))
        return

    for name in names:
        typer.echo(f"{name:<12} {address}")
    typer.echo("-" * 60)
    typer.echo(f"{len(names)} chains: {address}")


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Show the effective configuration."""
    cfg = get_config()
    if json_output:
        typer.echo(_pretty(cfg.to_dict()))
    else:
        typer.echo(summary(cfg))


@app.command()
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


def main() -> None:
    """Entry point for the subaccounts CLI."""
    app()


if __name__ == "__main__":
    main()

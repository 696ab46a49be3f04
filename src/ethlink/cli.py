"""
ethlink CLI

Command-line front end for the Ethereum JSON-RPC client.

Commands:
  chain-id      - Show the node's chain id
  block         - Show a block by hash or number
  tx            - Show a transaction
  receipt       - Show a transaction receipt
  balance       - Native or ERC-20 balance
  pool-address  - Derive a Uniswap pool address offline
  encrypt       - AES-encrypt a blob
  decrypt       - AES-decrypt a blob
  transfer      - Build (and optionally send) a value transfer
  whoami        - Show the configured wallet address
"""

from __future__ import annotations

import logging
import sys

import click

from . import __version__
from .wallet.eth import get_address, load_private_key


@click.group()
@click.version_option(version=__version__, prog_name="ethlink")
@click.option("--verbose", "-v", is_flag=True, help="Log RPC traffic and build decisions")
def cli(verbose: bool) -> None:
    """ethlink - Ethereum JSON-RPC client."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# ============ Commands ============

from .commands.chain import balance, block, chain_id, receipt, tx  # noqa: E402
from .commands.crypt import decrypt, encrypt  # noqa: E402
from .commands.pool import pool_address  # noqa: E402
from .commands.transfer import transfer  # noqa: E402

cli.add_command(chain_id)
cli.add_command(block)
cli.add_command(tx)
cli.add_command(receipt)
cli.add_command(balance)
cli.add_command(pool_address)
cli.add_command(encrypt)
cli.add_command(decrypt)
cli.add_command(transfer)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        pk = load_private_key()
        address = get_address(pk)
        click.echo(f"Address: {address}")
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Set PRIVATE_KEY in the environment or in ~/.ethlink/.env.")
        sys.exit(1)


# ============ Entry Points ============


def main() -> None:
    """ethlink CLI entry point."""
    cli()


if __name__ == "__main__":
    main()

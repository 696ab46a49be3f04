"""
Commands - CLI command implementations for ethlink.

- chain:    chain-id, block, tx, receipt, balance (read-only node queries)
- pool:     pool-address (offline Uniswap derivation)
- crypt:    encrypt, decrypt (AES-CBC blobs)
- transfer: build, and optionally send, a value transfer
"""

from __future__ import annotations

from typing import Optional

import click

from ..config import DEFAULT_RPC_URL

rpc_url_option = click.option(
    "--rpc-url",
    envvar="ETHLINK_RPC_URL",
    default=DEFAULT_RPC_URL,
    show_default=True,
    help="JSON-RPC endpoint",
)


def parse_block_arg(value: Optional[str]) -> Optional[int]:
    """``latest``/None -> None, ``pending`` -> -1, otherwise a decimal or 0x height."""
    if value is None or value == "latest":
        return None
    if value == "pending":
        return -1
    try:
        return int(value, 0)
    except ValueError:
        raise click.BadParameter(f"not a block number: {value}") from None

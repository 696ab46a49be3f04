"""
Pool address - derive a Uniswap pool address offline.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..uniswap.address import calculate_pool_address_v2, calculate_pool_address_v3


@click.command("pool-address")
@click.argument("token_a")
@click.argument("token_b")
@click.option("--fee", type=int, default=None, help="V3 fee tier (500, 3000, 10000); omit for V2")
def pool_address(token_a: str, token_b: str, fee: Optional[int]) -> None:
    """
    Print the pool address for two tokens.

    Token order does not matter. Without --fee the V2 pair is derived,
    with it the V3 pool of that fee tier. No network access is needed.
    """
    try:
        if fee is None:
            address = calculate_pool_address_v2(token_a, token_b)
        else:
            address = calculate_pool_address_v3(token_a, token_b, fee)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
    click.echo(address)

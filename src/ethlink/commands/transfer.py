"""
Transfer - build, sign and optionally broadcast a value transfer.

Without --send the signed transaction is only printed, so it can be
inspected (or broadcast elsewhere) first.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import EthlinkError
from ..node.client import Client
from ..node.tx import TransactOpts
from ..wallet.eth import load_private_key
from . import rpc_url_option


@click.command()
@click.argument("to")
@click.argument("value", type=int)
@click.option("--nonce", type=int, default=None, help="Nonce (default: pending count)")
@click.option("--gas-limit", type=int, default=None, help="Gas limit (default: 21000)")
@click.option("--gas-price", type=int, default=None, help="Legacy gas price in wei")
@click.option("--max-fee", type=int, default=None, help="maxFeePerGas in wei")
@click.option("--tip", type=int, default=None, help="maxPriorityFeePerGas in wei")
@click.option("--send", is_flag=True, help="Broadcast after signing")
@rpc_url_option
def transfer(
    to: str,
    value: int,
    nonce: Optional[int],
    gas_limit: Optional[int],
    gas_price: Optional[int],
    max_fee: Optional[int],
    tip: Optional[int],
    send: bool,
    rpc_url: str,
) -> None:
    """Send VALUE wei to TO from the configured wallet."""
    try:
        private_key = load_private_key()
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    opts = TransactOpts(
        nonce=nonce,
        value=value,
        gas_limit=gas_limit,
        gas_price=gas_price,
        gas_fee_cap=max_fee,
        gas_tip_cap=tip,
    )

    try:
        with Client.dial(rpc_url) as client:
            signed = client.build_transfer_tx(private_key, to, opts=opts)
            click.echo(f"  From:   {signed.sender}")
            click.echo(f"  To:     {signed.fields['to']}")
            click.echo(f"  Value:  {value} wei")
            click.echo(f"  Nonce:  {signed.fields['nonce']}")
            click.echo(f"  Policy: {signed.policy.value}")
            click.echo(f"  Hash:   {signed.hash}")
            if not send:
                click.echo(f"  Raw:    {signed.raw_hex}")
                return
            tx_hash = client.send_transaction(signed)
    except (EthlinkError, ValueError) as exc:
        click.secho(f"Transaction failed: {exc}", fg="red")
        sys.exit(1)

    click.secho(f"SENT: {tx_hash}", fg="green")

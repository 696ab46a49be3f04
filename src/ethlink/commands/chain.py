"""
Chain queries - read-only views of the connected node.

Every command opens one client, prints a short report and exits non-zero
with a red error line on any node or transport failure.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import EthlinkError, NotFoundError
from ..node.client import Client
from . import parse_block_arg, rpc_url_option


def _fail(exc: Exception) -> None:
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(1)


@click.command("chain-id")
@rpc_url_option
def chain_id(rpc_url: str) -> None:
    """Show the chain id of the node."""
    try:
        with Client.dial(rpc_url) as client:
            click.echo(client.chain_id())
    except EthlinkError as exc:
        _fail(exc)


@click.command()
@click.argument("ref", required=False)
@click.option("--uncles", is_flag=True, help="List uncle headers too")
@rpc_url_option
def block(ref: Optional[str], uncles: bool, rpc_url: str) -> None:
    """
    Show a block by hash or number.

    REF is a 0x block hash (66 chars), a height, "latest" or "pending".
    """
    try:
        with Client.dial(rpc_url) as client:
            if ref and ref.startswith("0x") and len(ref) == 66:
                blk = client.block_by_hash(ref)
            else:
                blk = client.block_by_number(parse_block_arg(ref))
    except NotFoundError:
        click.secho(f"Block not found: {ref or 'latest'}", fg="yellow")
        sys.exit(1)
    except EthlinkError as exc:
        _fail(exc)

    click.echo(f"  Number:       {blk.number}")
    click.echo(f"  Hash:         {blk.hash}")
    click.echo(f"  Parent:       {blk.header.parent_hash}")
    click.echo(f"  Timestamp:    {blk.header.time}")
    click.echo(f"  Gas used:     {blk.header.gas_used} / {blk.header.gas_limit}")
    if blk.base_fee is not None:
        click.echo(f"  Base fee:     {blk.base_fee} wei")
    click.echo(f"  Transactions: {len(blk.transactions)}")
    click.echo(f"  Uncles:       {len(blk.uncle_hashes)}")
    if uncles:
        for uncle in blk.uncles:
            click.echo(f"    - #{uncle.number} {uncle.hash}")


@click.command()
@click.argument("tx_hash")
@rpc_url_option
def tx(tx_hash: str, rpc_url: str) -> None:
    """Show a transaction by hash."""
    try:
        with Client.dial(rpc_url) as client:
            transaction, pending = client.transaction_by_hash(tx_hash)
    except NotFoundError:
        click.secho(f"Transaction not found: {tx_hash}", fg="yellow")
        sys.exit(1)
    except EthlinkError as exc:
        _fail(exc)

    click.echo(f"  Hash:    {transaction.hash}")
    click.echo(f"  Type:    {transaction.type}")
    click.echo(f"  Nonce:   {transaction.nonce}")
    click.echo(f"  To:      {transaction.to or '(contract creation)'}")
    click.echo(f"  Value:   {transaction.value} wei")
    click.echo(f"  Gas:     {transaction.gas}")
    click.echo(f"  Status:  {'pending' if pending else 'mined'}")


@click.command()
@click.argument("tx_hash")
@rpc_url_option
def receipt(tx_hash: str, rpc_url: str) -> None:
    """Show the receipt of a mined transaction."""
    try:
        with Client.dial(rpc_url) as client:
            rcpt = client.transaction_receipt(tx_hash)
    except NotFoundError:
        click.secho(f"Receipt not found (pending or unknown): {tx_hash}", fg="yellow")
        sys.exit(1)
    except EthlinkError as exc:
        _fail(exc)

    status = click.style("success", fg="green") if rcpt.succeeded else click.style("reverted", fg="red")
    click.echo(f"  Block:    {rcpt.block_number} ({rcpt.block_hash})")
    click.echo(f"  Status:   {status}")
    click.echo(f"  Gas used: {rcpt.gas_used}")
    click.echo(f"  Logs:     {len(rcpt.logs)}")
    if rcpt.contract_address:
        click.echo(f"  Contract: {rcpt.contract_address}")


@click.command()
@click.argument("address")
@click.option("--token", default=None, help="ERC-20 contract; omit for the native balance")
@click.option("--block", "block_ref", default=None, help="Height, latest or pending")
@rpc_url_option
def balance(address: str, token: Optional[str], block_ref: Optional[str], rpc_url: str) -> None:
    """Show the native or ERC-20 balance of ADDRESS."""
    number = parse_block_arg(block_ref)
    try:
        with Client.dial(rpc_url) as client:
            if token:
                click.echo(client.balance_of(address, token))
            elif number == -1:
                click.echo(client.pending_balance_at(address))
            else:
                click.echo(client.balance_at(address, number))
    except EthlinkError as exc:
        _fail(exc)

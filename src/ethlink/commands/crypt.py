"""
Encrypt / decrypt - AES-CBC blobs under a password.

Input and output are hex strings so blobs survive copy and paste.
"""

from __future__ import annotations

import sys

import click

from ..utils import hex_to_bytes
from ..wallet.crypto import CryptoError, aes_cbc_decrypt, aes_cbc_encrypt


@click.command()
@click.argument("plaintext")
@click.option("--key", prompt=True, hide_input=True, help="Password (1-32 bytes)")
@click.option("--hex-input", is_flag=True, help="PLAINTEXT is hex rather than text")
def encrypt(plaintext: str, key: str, hex_input: bool) -> None:
    """Encrypt PLAINTEXT and print the ciphertext as hex."""
    try:
        data = hex_to_bytes(plaintext) if hex_input else plaintext.encode("utf-8")
        click.echo(aes_cbc_encrypt(data, key.encode("utf-8")).hex())
    except (CryptoError, ValueError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)


@click.command()
@click.argument("ciphertext")
@click.option("--key", prompt=True, hide_input=True, help="Password (1-32 bytes)")
@click.option("--hex-output", is_flag=True, help="Print the plaintext as hex")
def decrypt(ciphertext: str, key: str, hex_output: bool) -> None:
    """Decrypt hex CIPHERTEXT."""
    try:
        data = aes_cbc_decrypt(hex_to_bytes(ciphertext), key.encode("utf-8"))
    except (CryptoError, ValueError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
    if hex_output:
        click.echo(data.hex())
    else:
        click.echo(data.decode("utf-8", errors="replace"))

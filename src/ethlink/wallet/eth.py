"""
ECDSA / secp256k1 key handling.

Keys are read from ``PRIVATE_KEY`` in the environment, after loading
``~/.ethlink/.env`` when it exists. Hierarchical-deterministic accounts are
derived from a BIP-39 seed along a BIP-32 path.

Dependencies: eth-account (lightweight, no full web3.py needed)
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.hdaccount import key_from_seed
from eth_account.hdaccount.mnemonic import Mnemonic
from eth_account.signers.local import LocalAccount

from ..config import ETHLINK_ENV

DEFAULT_HD_PATH = "m/44'/60'/0'/0/0"


def generate_account() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, address)
        - private_key_hex: 0x-prefixed hex private key (66 chars)
        - address: 0x-prefixed checksummed Ethereum address (42 chars)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Args:
        env_path: Path to .env file (default: ~/.ethlink/.env)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If PRIVATE_KEY is not set
    """
    env_path = env_path or ETHLINK_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    private_key = os.environ.get("PRIVATE_KEY")
    if not private_key:
        raise ValueError(f"PRIVATE_KEY not found. Set PRIVATE_KEY in the environment or in {env_path}")

    # Ensure 0x prefix
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    Args:
        private_key: hex private key, with or without 0x.
                     If None, loads from .env.

    Raises:
        ValueError: If the key is not a valid secp256k1 private key
    """
    if private_key is None:
        private_key = load_private_key()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    try:
        return Account.from_key(private_key)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"hex private key to ECDSA key: {exc}") from exc


def get_address(private_key: Optional[str] = None) -> str:
    """0x-prefixed checksummed address for a private key."""
    return get_account(private_key).address


def seed_from_mnemonic(mnemonic: str, passphrase: str = "") -> bytes:
    """
    BIP-39 seed of a mnemonic phrase.

    The words are not checked against a wordlist, so seeds produced by
    other tools from arbitrary phrases are reproduced exactly.
    """
    return Mnemonic.to_seed(mnemonic, passphrase)


def derive_account(seed: bytes, path: str = DEFAULT_HD_PATH) -> LocalAccount:
    """Account at BIP-32 ``path`` below the master key of ``seed``."""
    return Account.from_key(key_from_seed(seed, path))

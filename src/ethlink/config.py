"""
Runtime configuration.

Everything is read from the environment so the same code runs against a
local dev node, a testnet or mainnet without edits:

- ``ETHLINK_RPC_URL``      JSON-RPC endpoint (default: local node)
- ``ETHLINK_RPC_TIMEOUT``  per-request timeout in seconds (default: 10)
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_TIMEOUT = 10.0

# Default config directory
ETHLINK_DIR = Path.home() / ".ethlink"
ETHLINK_ENV = ETHLINK_DIR / ".env"


def get_rpc_url() -> str:
    """Get the RPC URL from environment or default."""
    return os.environ.get("ETHLINK_RPC_URL", DEFAULT_RPC_URL)


def get_timeout() -> float:
    """Get the request timeout (seconds) from environment or default."""
    raw = os.environ.get("ETHLINK_RPC_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ValueError(f"ETHLINK_RPC_TIMEOUT must be a number, got {raw!r}") from exc
    if timeout <= 0:
        raise ValueError(f"ETHLINK_RPC_TIMEOUT must be positive, got {raw!r}")
    return timeout

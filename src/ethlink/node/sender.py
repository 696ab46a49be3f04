"""
Sender resolution.

Recovering a sender from a signature costs an ECDSA public-key recovery.
When the node already told us the sender (the ``from`` field next to a
transaction fetched from a known block), that answer can stand in for the
math, but only for the block hash it was reported with.

Resolution is two-tier: a fast, injectable ``SenderLookup`` first, then
cryptographic recovery.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .types import Transaction


class SenderLookup(Protocol):
    """Fast-path sender source keyed by (transaction, assumed block hash)."""

    def lookup(self, tx: Transaction, block_hash: str) -> Optional[str]:
        """Return the known sender, or None when this source cannot tell."""


class ServerSenderLookup:
    """Reads the sender the node reported alongside the transaction."""

    def lookup(self, tx: Transaction, block_hash: str) -> Optional[str]:
        return tx.cached_sender(block_hash)


class SenderResolver:
    """Fast lookup first, signature recovery second. Never touches the network."""

    def __init__(self, fast: Optional[SenderLookup] = None) -> None:
        self.fast = fast or ServerSenderLookup()

    def resolve(self, tx: Transaction, block_hash: Optional[str] = None) -> str:
        if block_hash is not None:
            sender = self.fast.lookup(tx, block_hash)
            if sender is not None:
                return sender
        return tx.recover_sender()

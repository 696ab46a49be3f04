"""
Uniswap V3 swap paths.

A multi-hop path is packed as ``token (20) | fee (3) | token (20) | ...``,
the format expected by the router's ``exactInput``/``exactOutput``.
"""

from __future__ import annotations

from typing import Sequence, Union

from ..utils import address_to_bytes, to_checksum_address

ADDR_SIZE = 20
FEE_SIZE = 3
OFFSET = ADDR_SIZE + FEE_SIZE


def encode_path(path: Sequence[Union[str, bytes]], fees: Sequence[int]) -> bytes:
    """Pack tokens and the fee tiers between them.

    Raises:
        ValueError: If there is not exactly one fee per hop
    """
    if len(path) != len(fees) + 1:
        raise ValueError("path/fee lengths do not match")
    encoded = b""
    for token, fee in zip(path, fees):
        if not 0 <= fee < 1 << 24:
            raise ValueError(f"fee must fit in uint24, got {fee}")
        encoded += address_to_bytes(token) + fee.to_bytes(FEE_SIZE, "big")
    return encoded + address_to_bytes(path[-1])


def decode_path(data: bytes) -> tuple[list[str], list[int]]:
    """Unpack a path into checksummed tokens and fee tiers."""
    if len(data) < ADDR_SIZE or (len(data) - ADDR_SIZE) % OFFSET:
        raise ValueError(f"invalid path length {len(data)}")
    tokens = []
    fees = []
    pos = 0
    while pos + OFFSET <= len(data):
        tokens.append(to_checksum_address(data[pos:pos + ADDR_SIZE]))
        fees.append(int.from_bytes(data[pos + ADDR_SIZE:pos + OFFSET], "big"))
        pos += OFFSET
    tokens.append(to_checksum_address(data[pos:pos + ADDR_SIZE]))
    return tokens, fees

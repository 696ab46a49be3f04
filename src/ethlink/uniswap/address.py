"""
Offline Uniswap pool address derivation.

Both factories deploy pools with CREATE2, so a pool's address follows from
its tokens (and, for V3, its fee tier) without asking the chain:

    keccak256(0xff ++ factory ++ salt ++ init_code_hash)[12:]

V2 salts with keccak256(token0 ++ token1); V3 salts with the ABI encoding of
(token0, token1, fee). Tokens are sorted by numeric value first, so the
argument order does not matter.
"""

from __future__ import annotations

from typing import Union

from eth_abi import encode

from ..utils import address_to_bytes, hex_to_bytes, keccak256, to_checksum_address

FACTORY_ADDRESS_V2 = "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f"
FACTORY_ADDRESS_V3 = "0x1F98431c8aD98523631AE4a59f267346ea31F984"

POOL_INIT_CODE_HASH_V2 = hex_to_bytes("96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f")
POOL_INIT_CODE_HASH_V3 = hex_to_bytes("e34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54")

AddressLike = Union[str, bytes]


def sort_tokens(token_a: AddressLike, token_b: AddressLike) -> tuple[bytes, bytes]:
    """Return both tokens as 20-byte values, smaller address first."""
    a = address_to_bytes(token_a)
    b = address_to_bytes(token_b)
    if int.from_bytes(a, "big") > int.from_bytes(b, "big"):
        a, b = b, a
    return a, b


def _create2(factory: AddressLike, salt: bytes, init_code_hash: bytes) -> bytes:
    return keccak256(b"\xff" + address_to_bytes(factory) + salt + init_code_hash)


def calculate_pair_address(
    factory: AddressLike,
    token_a: AddressLike,
    token_b: AddressLike,
    init_code_hash: bytes = POOL_INIT_CODE_HASH_V2,
) -> str:
    """
    Pair-style address: salt is keccak256 of the sorted, concatenated tokens.

    The digest is read as a non-negative big integer and its low 20 bytes
    form the address; the V3 derivation slices the digest directly.
    """
    token0, token1 = sort_tokens(token_a, token_b)
    digest = _create2(factory, keccak256(token0 + token1), init_code_hash)
    value = abs(int.from_bytes(digest, "big"))
    return to_checksum_address(value.to_bytes(32, "big")[-20:])


def calculate_pool_address_v2(token_a: AddressLike, token_b: AddressLike) -> str:
    """Address of the Uniswap V2 pair for two tokens."""
    return calculate_pair_address(FACTORY_ADDRESS_V2, token_a, token_b, POOL_INIT_CODE_HASH_V2)


def calculate_pool_address_v3(token_a: AddressLike, token_b: AddressLike, fee: int) -> str:
    """
    Address of the Uniswap V3 pool for two tokens and a fee tier.

    Args:
        token_a: Either pool token
        token_b: The other pool token
        fee: Fee tier in hundredths of a bip (500, 3000, 10000, ...)

    Raises:
        ValueError: If the fee does not fit a uint24
    """
    if not 0 <= fee < 1 << 24:
        raise ValueError(f"fee must fit in uint24, got {fee}")
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak256(encode(["address", "address", "uint24"], [token0, token1, fee]))
    digest = _create2(FACTORY_ADDRESS_V3, salt, POOL_INIT_CODE_HASH_V3)
    return to_checksum_address(digest[12:])

"""Uniswap helpers: offline pool addresses, swap paths, prices and multicall."""

from .address import (
    FACTORY_ADDRESS_V2,
    FACTORY_ADDRESS_V3,
    calculate_pair_address,
    calculate_pool_address_v2,
    calculate_pool_address_v3,
    sort_tokens,
)
from .multicall import MULTICALL2_ADDRESS, Multicall2Call, Multicall2Result, multicall
from .path import decode_path, encode_path
from .price import sqrt_price_x96_to_price

__all__ = [
    "FACTORY_ADDRESS_V2",
    "FACTORY_ADDRESS_V3",
    "MULTICALL2_ADDRESS",
    "Multicall2Call",
    "Multicall2Result",
    "calculate_pair_address",
    "calculate_pool_address_v2",
    "calculate_pool_address_v3",
    "decode_path",
    "encode_path",
    "multicall",
    "sort_tokens",
    "sqrt_price_x96_to_price",
]

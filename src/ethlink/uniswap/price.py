"""Uniswap V3 ``sqrtPriceX96`` conversion."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

X96 = Decimal(2) ** 96

# Places kept on every division, as the pool math tooling does.
DIVISION_PRECISION = 16


def _div(a: Decimal, b: Decimal) -> Decimal:
    return (a / b).quantize(Decimal(1).scaleb(-DIVISION_PRECISION), rounding=ROUND_HALF_UP)


def sqrt_price_x96_to_price(sqrt_price_x96: int, zero_for_one: bool = True) -> Decimal:
    """
    Convert a pool's ``sqrtPriceX96`` to a price.

    Args:
        sqrt_price_x96: Q64.96 square root of the price, as read from slot0
        zero_for_one: True for token1 per token0, False for the inverse

    Returns:
        Decimal price (raw token units, not adjusted for decimals)
    """
    if sqrt_price_x96 <= 0:
        raise ValueError(f"sqrtPriceX96 must be positive, got {sqrt_price_x96}")
    with localcontext() as ctx:
        ctx.prec = 100
        root = _div(Decimal(sqrt_price_x96), X96)
        price = root * root
        if not zero_for_one:
            return _div(Decimal(1), price)
        return price

"""
Constant Product Pool Math.

Integer-exact quoting for x * y = k pools with either fee convention seen
across the mesh venues:

- POST_FEE: the fee is taken from the curve output (Astroport style)
- PRE_FEE: the fee is taken from the input before the curve (Raydium CPMM,
  Uniswap style)

All arithmetic uses Python integers and truncating division so that two
executions on identical inputs always produce identical amounts.
"""
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

from mesh_solver.errors import PoolMathError

logger = logging.getLogger(__name__)

# Fee rates are expressed in parts per million
FEE_SCALE = 1_000_000

INT256_MIN = -(1 << 255)
INT256_MAX = (1 << 255) - 1


class FeeConvention(str, Enum):
    """Where a venue deducts its swap fee."""
    PRE_FEE = "pre_fee"
    POST_FEE = "post_fee"


def check_int256(value: int, label: str = "value") -> int:
    """Reject values that would overflow a signed 256-bit integer."""
    if value < INT256_MIN or value > INT256_MAX:
        raise PoolMathError(f"{label} overflows 256-bit range: {value}")
    return value


def trunc_div(numerator: int, denominator: int) -> int:
    """
    Integer division truncating toward zero.

    Python's ``//`` floors, which differs from fixed-width integer division
    for negative operands.
    """
    if denominator == 0:
        raise PoolMathError("division by zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def isqrt(value: int) -> int:
    """Floor integer square root."""
    if value < 0:
        raise PoolMathError(f"square root of negative value: {value}")
    return math.isqrt(value)


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Immutable view of a two-asset pool.

    ``reserve_a`` always holds the settlement asset shared by every pool
    compared in one arbitrage evaluation.
    """
    dex_name: str
    venue_plane: str
    reserve_a: int
    reserve_b: int
    fee_rate: int
    fee_convention: FeeConvention
    denom_a: str = ""
    denom_b: str = ""
    # Asset B amounts moved across planes must be multiples of this
    b_granularity: int = 1

    def __post_init__(self):
        if self.reserve_a < 0 or self.reserve_b < 0:
            raise PoolMathError(
                f"reserves must be non-negative: a={self.reserve_a}, b={self.reserve_b}",
                venue=self.dex_name
            )
        if not 0 <= self.fee_rate <= FEE_SCALE:
            raise PoolMathError(
                f"fee rate {self.fee_rate} outside 0..{FEE_SCALE}",
                venue=self.dex_name
            )
        if self.b_granularity < 1:
            raise PoolMathError(
                f"b_granularity must be >= 1, got {self.b_granularity}",
                venue=self.dex_name
            )
        check_int256(self.reserve_a, "reserve_a")
        check_int256(self.reserve_b, "reserve_b")

    def swap_output(self, x: int, a_for_b: bool) -> Tuple[str, int]:
        """Quote this pool. See :func:`swap_output`."""
        return swap_output(self, x, a_for_b)

    def apply_trade(self, x: int, a_for_b: bool) -> "PoolSnapshot":
        """Return the snapshot after a hypothetical trade. See :func:`apply_trade`."""
        return apply_trade(self, x, a_for_b)

    def reversed(self) -> "PoolSnapshot":
        """Swap asset A and asset B."""
        if self.b_granularity != 1:
            raise PoolMathError("cannot reverse a pool with asset B granularity", venue=self.dex_name)
        return replace(
            self,
            reserve_a=self.reserve_b,
            reserve_b=self.reserve_a,
            denom_a=self.denom_b,
            denom_b=self.denom_a,
        )


def _round_down(amount: int, granularity: int) -> int:
    if granularity == 1:
        return amount
    return (amount // granularity) * granularity


def swap_output(pool: PoolSnapshot, x: int, a_for_b: bool) -> Tuple[str, int]:
    """
    Calculate the output of swapping ``x`` into the pool.

    Args:
        pool: Pool snapshot
        x: Input amount (asset A when ``a_for_b``, asset B otherwise)
        a_for_b: Trade direction

    Returns:
        Tuple of (output denom, output amount)
    """
    if x < 0:
        raise PoolMathError(f"trade size must be non-negative, got {x}", venue=pool.dex_name)
    check_int256(x, "trade size")

    if a_for_b:
        reserve_in, reserve_out, denom_out = pool.reserve_a, pool.reserve_b, pool.denom_b
    else:
        reserve_in, reserve_out, denom_out = pool.reserve_b, pool.reserve_a, pool.denom_a

    fee_keep = FEE_SCALE - pool.fee_rate

    if pool.fee_convention == FeeConvention.POST_FEE:
        x_eff = x if a_for_b else _round_down(x, pool.b_granularity)
        numerator = check_int256(reserve_out * x_eff * fee_keep, "swap numerator")
        denominator = check_int256((reserve_in + x_eff) * FEE_SCALE, "swap denominator")
        if denominator == 0:
            raise PoolMathError("empty pool: reserve_in + x is zero", venue=pool.dex_name)
        y = trunc_div(numerator, denominator)

    elif pool.fee_convention == FeeConvention.PRE_FEE:
        x_eff = trunc_div(check_int256(x * fee_keep, "fee-adjusted input"), FEE_SCALE)
        if not a_for_b:
            x_eff = _round_down(x_eff, pool.b_granularity)
        numerator = check_int256(reserve_out * x_eff, "swap numerator")
        denominator = reserve_in + x_eff
        if denominator == 0:
            raise PoolMathError("empty pool: reserve_in + x is zero", venue=pool.dex_name)
        y = trunc_div(numerator, denominator)

    else:
        raise PoolMathError(f"unsupported fee convention: {pool.fee_convention}", venue=pool.dex_name)

    if a_for_b:
        y = _round_down(y, pool.b_granularity)

    return denom_out, y


def apply_trade(pool: PoolSnapshot, x: int, a_for_b: bool) -> PoolSnapshot:
    """
    Return the pool state after executing a trade of size ``x``.

    The full input (fee included) is credited to the input reserve.
    """
    _, y = swap_output(pool, x, a_for_b)
    if a_for_b:
        return replace(pool, reserve_a=pool.reserve_a + x, reserve_b=pool.reserve_b - y)
    return replace(pool, reserve_a=pool.reserve_a - y, reserve_b=pool.reserve_b + x)


def spot_rate(pool: PoolSnapshot, multiplier: int = 10 ** 18) -> int:
    """
    Units of asset A per unit of asset B, scaled by ``multiplier``.

    The multiplier hides decimal differences between assets; rates are only
    comparable when computed with the same multiplier.
    """
    if pool.reserve_b == 0:
        raise PoolMathError("cannot price a pool with zero asset B reserve", venue=pool.dex_name)
    return trunc_div(pool.reserve_a * multiplier, pool.reserve_b)

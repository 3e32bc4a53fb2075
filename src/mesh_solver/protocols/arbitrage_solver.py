"""
Closed-form two-pool arbitrage solver.

Buys asset B with asset A on the cheaper pool and sells it back on the
richer one. Both pools must hold the settlement asset as asset A.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from mesh_solver.errors import PoolMathError
from mesh_solver.execution.models import Swap
from mesh_solver.protocols.dex_protocols.constant_product_math import (
    FEE_SCALE,
    PoolSnapshot,
    check_int256,
    isqrt,
    trunc_div,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeCorrectionPolicy:
    """
    Empirical scaling of the fee-free optimal trade size.

    The closed form ignores pool fees, so the raw optimum overshoots. The
    deeper the price deviation, the less the fees matter and the more of the
    raw optimum is kept. These values are tuned, not derived.
    """
    mild_threshold: int = -10_000
    moderate_threshold: int = -20_000
    mild_pct: int = 90
    moderate_pct: int = 95
    severe_pct: int = 99

    @classmethod
    def from_settings(cls, settings) -> "FeeCorrectionPolicy":
        """Build the policy from application settings."""
        return cls(
            mild_threshold=settings.fee_correction_mild_threshold,
            moderate_threshold=settings.fee_correction_moderate_threshold,
            mild_pct=settings.fee_correction_mild_pct,
            moderate_pct=settings.fee_correction_moderate_pct,
            severe_pct=settings.fee_correction_severe_pct,
        )

    @staticmethod
    def deviation_ratio(src_pool: PoolSnapshot, dst_pool: PoolSnapshot) -> int:
        """Price deviation between the pools, scaled by FEE_SCALE."""
        a1, b1 = src_pool.reserve_a, src_pool.reserve_b
        a2, b2 = dst_pool.reserve_a, dst_pool.reserve_b
        denominator = b1 * a2
        if denominator == 0:
            raise PoolMathError("price deviation undefined: b1 * a2 is zero")
        return trunc_div(check_int256(a1 * b2 * FEE_SCALE, "deviation numerator"), denominator) - FEE_SCALE

    def scale_pct(self, ratio: int) -> int:
        """Percent of the optimal size to keep for a deviation ratio."""
        if ratio >= self.mild_threshold:
            return self.mild_pct
        if ratio >= self.moderate_threshold:
            return self.moderate_pct
        return self.severe_pct

    def apply(self, optimal_x: int, src_pool: PoolSnapshot, dst_pool: PoolSnapshot) -> int:
        """Scale ``optimal_x`` down according to the pools' price deviation."""
        ratio = self.deviation_ratio(src_pool, dst_pool)
        pct = self.scale_pct(ratio)
        logger.debug(f"Fee correction: ratio={ratio}, keeping {pct}% of {optimal_x}")
        return trunc_div(optimal_x * pct, 100)


@dataclass(frozen=True)
class ArbitragePlan:
    """A profitable round trip sized for execution."""
    src_pool: PoolSnapshot
    dst_pool: PoolSnapshot
    optimal_amount: int
    execute_amount: int
    first_output_denom: str
    first_swap_output: int
    second_output_denom: str
    second_swap_output: int

    @property
    def profit(self) -> int:
        """Settlement asset gained by the round trip."""
        return self.second_swap_output - self.execute_amount


@dataclass(frozen=True)
class NoTrade:
    """Valid outcome meaning "take no action"."""
    reason: str
    optimal_amount: int = 0
    projected_profit: int = 0


SolverResult = Union[ArbitragePlan, NoTrade]


def get_max_profit_point(a1: int, b1: int, a2: int, b2: int) -> int:
    """
    Fee-free profit-maximizing input for an A -> B -> A round trip.

    Solves d/dx [a2*b1*x / (a1*b2 + (b1+b2)*x)] = 1, which gives
    x* = (sqrt(a1*b1) * sqrt(a2*b2) - a1*b2) / (b1 + b2).
    """
    if b1 + b2 == 0:
        raise PoolMathError("optimal point undefined: b1 + b2 is zero")
    root = isqrt(check_int256(a1 * b1, "a1*b1")) * isqrt(check_int256(a2 * b2, "a2*b2"))
    numerator = check_int256(root - a1 * b2, "optimal point numerator")
    return trunc_div(numerator, b1 + b2)


def calculate_pools_output(src_pool: PoolSnapshot, dst_pool: PoolSnapshot,
                           x: int) -> Tuple[str, int, str, int]:
    """
    Swap ``x`` of asset A to B in ``src_pool``, then all of that B back to A
    in ``dst_pool``.

    Returns:
        Tuple of (first output denom, first output, second output denom, second output)
    """
    first_denom, first_output = src_pool.swap_output(x, True)
    second_denom, second_output = dst_pool.swap_output(first_output, False)
    return first_denom, first_output, second_denom, second_output


class ArbitrageSolver:
    """Sizes a two-pool arbitrage with the closed-form optimum."""

    def __init__(self, policy: Optional[FeeCorrectionPolicy] = None):
        """
        Initialize the solver.

        Args:
            policy: Fee correction heuristic (defaults to 90/95/99)
        """
        self.policy = policy or FeeCorrectionPolicy()

    @staticmethod
    def _validate_pools(src_pool: PoolSnapshot, dst_pool: PoolSnapshot) -> None:
        for pool in (src_pool, dst_pool):
            if pool.reserve_a == 0 or pool.reserve_b == 0:
                raise PoolMathError(
                    f"pool reserves must be positive: a={pool.reserve_a}, b={pool.reserve_b}",
                    venue=pool.dex_name
                )

    def optimal_trade_size(self, src_pool: PoolSnapshot, dst_pool: PoolSnapshot) -> int:
        """Fee-corrected optimal input in asset A (may be <= 0)."""
        self._validate_pools(src_pool, dst_pool)
        raw = get_max_profit_point(
            src_pool.reserve_a, src_pool.reserve_b,
            dst_pool.reserve_a, dst_pool.reserve_b
        )
        return self.policy.apply(raw, src_pool, dst_pool)

    def solve(self, src_pool: PoolSnapshot, dst_pool: PoolSnapshot,
              available_balance: int, min_profit: int = 0) -> SolverResult:
        """
        Size the round trip src (A -> B) then dst (B -> A).

        Args:
            src_pool: Pool to buy asset B on
            dst_pool: Pool to sell asset B on, reserves aligned to asset A
            available_balance: Asset A the caller can spend
            min_profit: Profit that must be strictly exceeded

        Returns:
            ArbitragePlan, or NoTrade when nothing worthwhile exists
        """
        optimal_x = self.optimal_trade_size(src_pool, dst_pool)
        if optimal_x <= 0:
            logger.info(f"No arbitrage {src_pool.dex_name} -> {dst_pool.dex_name}: optimal size {optimal_x}")
            return NoTrade(reason="no profitable trade size", optimal_amount=optimal_x)

        _, first_output, _, second_output = calculate_pools_output(src_pool, dst_pool, optimal_x)
        projected_profit = second_output - optimal_x
        logger.debug(
            f"arbitrage from {src_pool.dex_name} => {dst_pool.dex_name}, optimal x: {optimal_x}, "
            f"estimate first swap output: {first_output}, estimate profit: {projected_profit}"
        )

        if projected_profit <= min_profit:
            return NoTrade(
                reason=f"projected profit {projected_profit} does not exceed minimum {min_profit}",
                optimal_amount=optimal_x,
                projected_profit=projected_profit,
            )

        execute_amount = min(optimal_x, available_balance)
        if execute_amount <= 0:
            return NoTrade(
                reason="no balance available",
                optimal_amount=optimal_x,
                projected_profit=projected_profit,
            )

        first_denom, first_output, second_denom, second_output = calculate_pools_output(
            src_pool, dst_pool, execute_amount
        )
        realized_profit = second_output - execute_amount
        # A capped input can fall below the threshold even when the optimum clears it
        if realized_profit <= min_profit:
            return NoTrade(
                reason=f"profit {realized_profit} at available balance does not exceed minimum {min_profit}",
                optimal_amount=optimal_x,
                projected_profit=realized_profit,
            )

        logger.info(
            f"Arbitrage {src_pool.dex_name} -> {dst_pool.dex_name}: x={execute_amount}, "
            f"first output={first_output}, second output={second_output}, profit={realized_profit}"
        )
        return ArbitragePlan(
            src_pool=src_pool,
            dst_pool=dst_pool,
            optimal_amount=optimal_x,
            execute_amount=execute_amount,
            first_output_denom=first_denom,
            first_swap_output=first_output,
            second_output_denom=second_denom,
            second_swap_output=second_output,
        )

    @staticmethod
    def compose_swaps(plan: ArbitragePlan, pool_name: str, sender: str,
                      input_denom: str, intermediate_denom: str,
                      sender_svm: Optional[str] = None) -> Tuple[Swap, Swap]:
        """
        Turn a plan into the two venue swaps.

        Args:
            plan: Sized arbitrage plan
            pool_name: Trading pair, e.g. "btc-usdt"
            sender: Account executing both swaps
            input_denom: Settlement asset symbol
            intermediate_denom: Asset B symbol
            sender_svm: SVM account of the sender, when an SVM venue is involved

        Returns:
            Tuple of (source swap, destination swap)
        """
        src_swap = Swap(
            dex_name=plan.src_pool.dex_name,
            pool_name=pool_name,
            sender=sender,
            sender_svm=sender_svm,
            denom=input_denom,
            amount=plan.execute_amount,
        )
        dst_swap = Swap(
            dex_name=plan.dst_pool.dex_name,
            pool_name=pool_name,
            sender=sender,
            sender_svm=sender_svm,
            denom=intermediate_denom,
            amount=plan.first_swap_output,
        )
        return src_swap, dst_swap

"""
Arbitrage and swap strategies.

Given pre-fetched pool state, decide the trade and return the ordered FIS
instructions that execute it across planes. Nothing here performs I/O.
"""
import logging
from typing import Any, List, Optional, Sequence

from mesh_solver.config.registry import VenueRegistry, load_registry
from mesh_solver.config.settings import Settings
from mesh_solver.errors import PoolMathError, StateDecodeError, UnsupportedPairError
from mesh_solver.execution.models import StrategyOutput, Swap
from mesh_solver.protocols.arbitrage_solver import ArbitrageSolver, FeeCorrectionPolicy, NoTrade
from mesh_solver.protocols.dex_protocols.constant_product_math import PoolSnapshot, spot_rate
from mesh_solver.protocols.venues.astromesh import astro_transfer
from mesh_solver.protocols.venues.dispatch import VenueDispatcher

logger = logging.getLogger(__name__)

RATE_MULTIPLIER = 10 ** 18


class ArbitrageStrategy:
    """Cross-venue arbitrage of the settlement asset through one pair."""

    def __init__(self, registry: Optional[VenueRegistry] = None,
                 settings: Optional[Settings] = None):
        """
        Initialize the strategy.

        Args:
            registry: Venue registry (loaded from settings when omitted)
            settings: Application settings (environment defaults when omitted)
        """
        self.settings = settings or Settings()
        self.registry = registry or load_registry(self.settings.registry_path)
        self.solver = ArbitrageSolver(FeeCorrectionPolicy.from_settings(self.settings))
        self.dispatcher = VenueDispatcher(self.registry, svm_compute_budget=self.settings.svm_compute_budget)

    def pools_from_state(self, astroport_pool: Any,
                         raydium_accounts: Sequence[Any],
                         pair: Optional[str] = None,
                         uniswap_reserves: Optional[Sequence[int]] = None) -> List[PoolSnapshot]:
        """
        Quote the pools of a pair from raw query results.

        Args:
            astroport_pool: Astroport pool query response (JSON or mapping)
            raydium_accounts: Raydium vault 0, vault 1 and pool state account records
            pair: Trading pair, required with ``uniswap_reserves``
            uniswap_reserves: Uniswap (settlement, pair asset) reserves; quoted
                only when a router is configured
        """
        astroport = self.dispatcher.composer(self.registry.astroport.dex_name)
        raydium = self.dispatcher.composer(self.registry.raydium.dex_name)
        pools = [
            astroport.pool_from_response(astroport_pool),
            raydium.pool_from_records(raydium_accounts),
        ]

        if uniswap_reserves is not None:
            if len(uniswap_reserves) != 2:
                raise StateDecodeError(
                    f"uniswap reserves must be a (settlement, pair asset) pair, got {len(uniswap_reserves)} values",
                    venue=self.registry.uniswap.dex_name
                )
            if not self.registry.uniswap.router_contract:
                logger.warning("Uniswap reserves supplied but no router configured, skipping pool")
            elif pair is None:
                raise UnsupportedPairError("a pair is required to quote uniswap reserves",
                                           venue=self.registry.uniswap.dex_name)
            else:
                uniswap = self.dispatcher.composer(self.registry.uniswap.dex_name)
                pools.append(uniswap.pool_from_reserves(pair, *uniswap_reserves))
        return pools

    @staticmethod
    def select_route(pools: Sequence[PoolSnapshot]):
        """
        Pick the pool to buy asset B on (lowest A-per-B rate) and the pool to
        sell it on (highest rate). Ties keep the earliest pool.
        """
        if len(pools) < 2:
            raise PoolMathError(f"arbitrage needs at least two pools, got {len(pools)}")

        src_pool = dst_pool = None
        lowest_rate = highest_rate = None
        for pool in pools:
            rate = spot_rate(pool, RATE_MULTIPLIER)
            if lowest_rate is None or rate < lowest_rate:
                src_pool, lowest_rate = pool, rate
            if highest_rate is None or rate > highest_rate:
                dst_pool, highest_rate = pool, rate
        return src_pool, dst_pool

    def arbitrage(self, pair: str, amount: int, pools: Sequence[PoolSnapshot],
                  sender: str, sender_svm: Optional[str] = None,
                  min_profit: Optional[int] = None) -> StrategyOutput:
        """
        Plan a settlement asset -> pair asset -> settlement asset round trip.

        Args:
            pair: Trading pair, e.g. "btc-usdt"
            amount: Settlement asset available to trade
            pools: Quoted pools of the pair, settlement asset as asset A
            sender: Account executing the trades
            sender_svm: SVM account of ``sender``, needed for SVM venues
            min_profit: Profit that must be exceeded (settings default when None)

        Returns:
            Ordered instructions: swap on src, transfer to dst plane, swap on
            dst, transfer back. Empty when there is nothing to gain.
        """
        self.registry.must_support(pair)
        if amount < 0:
            raise PoolMathError(f"amount must be non-negative, got {amount}")
        if min_profit is None:
            min_profit = self.settings.default_min_profit

        if len(pools) < 2:
            logger.info(f"Only {len(pools)} {pair} pools quoted, nothing to arbitrage")
            return StrategyOutput(reason="fewer than two pools quoted")

        src_pool, dst_pool = self.select_route(pools)
        if src_pool is dst_pool:
            logger.info(f"All {pair} pools quote the same rate, nothing to arbitrage")
            return StrategyOutput(reason="pools are priced identically")

        result = self.solver.solve(src_pool, dst_pool, amount, min_profit)
        if isinstance(result, NoTrade):
            return StrategyOutput(reason=result.reason)

        settlement = self.registry.settlement_denom
        src_swap, dst_swap = self.solver.compose_swaps(
            result,
            pool_name=pair,
            sender=sender,
            input_denom=settlement,
            intermediate_denom=self.registry.pair_output_denom(settlement, pair),
            sender_svm=sender_svm,
        )

        instructions = []
        instructions.extend(self.dispatcher.compose_swap(src_swap))
        instructions.append(astro_transfer(
            sender, src_pool.venue_plane, dst_pool.venue_plane,
            result.first_output_denom, result.first_swap_output, self.registry
        ))
        instructions.extend(self.dispatcher.compose_swap(dst_swap))
        instructions.append(astro_transfer(
            sender, dst_pool.venue_plane, src_pool.venue_plane,
            result.second_output_denom, result.second_swap_output, self.registry
        ))

        logger.info(
            f"Arbitrage {pair} {src_pool.dex_name} -> {dst_pool.dex_name}: "
            f"{len(instructions)} instructions, expected profit {result.profit}"
        )
        return StrategyOutput(instructions=instructions)

    def swap(self, dex_name: str, src_denom: str, dst_denom: str, amount: int,
             sender: str, sender_svm: Optional[str] = None) -> StrategyOutput:
        """Compose a single swap between the settlement asset and a pair asset."""
        settlement = self.registry.settlement_denom
        if settlement not in (src_denom, dst_denom):
            raise UnsupportedPairError(
                f"Unsupported swap from {src_denom} to {dst_denom}. "
                f"Supported pairs: {', '.join(self.registry.pairs)}"
            )
        other = dst_denom if src_denom == settlement else src_denom
        pair = f"{other}-{settlement}"
        self.registry.must_support(pair)

        swap = Swap(
            dex_name=dex_name,
            pool_name=pair,
            sender=sender,
            sender_svm=sender_svm,
            denom=src_denom,
            amount=amount,
        )
        return StrategyOutput(instructions=self.dispatcher.compose_swap(swap))


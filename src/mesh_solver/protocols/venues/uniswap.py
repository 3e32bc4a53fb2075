"""
Uniswap v4 pools on the EVM plane.

Swaps go through a router exposing
``swap((address,address,uint24,int24,address),(bool,int256,uint160),bytes)``.
"""
import base64
from dataclasses import dataclass
from typing import List

from eth_abi import encode
from eth_utils import to_canonical_address, to_checksum_address

from mesh_solver.config.registry import UNISWAP_SWAP_SELECTOR, UniswapPoolKey, VenueRegistry
from mesh_solver.errors import StateDecodeError, UnsupportedPairError, UnsupportedVenueError
from mesh_solver.execution.models import FISInstruction, Plane, Swap, to_json_bytes
from mesh_solver.protocols.dex_protocols.constant_product_math import FeeConvention, PoolSnapshot
from mesh_solver.protocols.venues.base import VenueComposer

# TickMath bounds; the limit must lie strictly inside them
MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342

POOL_KEY_ABI = "(address,address,uint24,int24,address)"
SWAP_PARAMS_ABI = "(bool,int256,uint160)"


@dataclass(frozen=True)
class PoolSlot0:
    """Packed slot0 of a v4 pool."""
    sqrt_price_x96: int
    tick: int
    protocol_fee: int
    lp_fee: int


def parse_pool_info(data: bytes) -> PoolSlot0:
    """
    Unpack a 32-byte slot0 word.

    Big-endian layout: 3 bytes unused, lp fee (uint24), protocol fee
    (uint24), tick (int24), sqrtPriceX96 (uint160).
    """
    if len(data) != 32:
        raise StateDecodeError(f"slot0 data must be 32 bytes, got {len(data)}", venue="uniswap")

    lp_fee = int.from_bytes(data[3:6], "big")
    protocol_fee = int.from_bytes(data[6:9], "big")
    tick = int.from_bytes(data[9:12], "big", signed=True)
    sqrt_price_x96 = int.from_bytes(data[12:32], "big")
    return PoolSlot0(
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        protocol_fee=protocol_fee,
        lp_fee=lp_fee,
    )


def serialize_swap_calldata(pool_key: UniswapPoolKey, zero_for_one: bool, amount: int,
                            sqrt_price_limit_x96: int, selector: str = UNISWAP_SWAP_SELECTOR,
                            hook_data: bytes = b"") -> bytes:
    """
    ABI-encode a router swap call.

    Args:
        pool_key: Pool to swap on
        zero_for_one: True to sell currency0 for currency1
        amount: Negative for exact input, positive for exact output
        sqrt_price_limit_x96: Price limit as a Q64.96 square root
        selector: 4-byte function selector as hex
        hook_data: Data forwarded to the pool's hooks

    Returns:
        Selector followed by the encoded arguments
    """
    selector_bytes = bytes.fromhex(selector[2:] if selector.startswith("0x") else selector)
    if len(selector_bytes) != 4:
        raise UnsupportedVenueError(f"selector must be 4 bytes: {selector}", venue="uniswap")

    key = (
        to_checksum_address(pool_key.currency0),
        to_checksum_address(pool_key.currency1),
        pool_key.fee,
        pool_key.tick_spacing,
        to_checksum_address(pool_key.hooks),
    )
    params = (zero_for_one, amount, sqrt_price_limit_x96)
    return selector_bytes + encode([POOL_KEY_ABI, SWAP_PARAMS_ABI, "bytes"], [key, params, hook_data])


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class UniswapVenue(VenueComposer):
    """Uniswap pools quoted as constant product with the fee taken from the input."""

    venue_plane = Plane.EVM
    instruction_plane = Plane.EVM

    def __init__(self, registry: VenueRegistry):
        super().__init__(registry)
        self.config = registry.uniswap
        self.dex_name = self.config.dex_name

    def pool_from_reserves(self, pair: str, reserve_a: int, reserve_b: int) -> PoolSnapshot:
        """
        Quote ``pair`` from reserves already aligned to the settlement asset.

        Reached through ``ArbitrageStrategy.pools_from_state`` when the caller
        supplies Uniswap reserves and a router is configured.
        """
        settlement = self.registry.settlement_denom
        return PoolSnapshot(
            dex_name=self.dex_name,
            venue_plane=self.venue_plane.value,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            fee_rate=self.config.fee_rate,
            fee_convention=FeeConvention.PRE_FEE,
            denom_a=settlement,
            denom_b=self.registry.pair_output_denom(settlement, pair),
        )

    def compose_swap(self, swap: Swap) -> List[FISInstruction]:
        if not self.config.router_contract:
            raise UnsupportedVenueError("no uniswap router configured", venue=self.dex_name)
        pool_key = self.registry.uniswap_pool(swap.pool_name)
        amount = self._check_amount(swap.amount, 2 ** 255 - 1)

        input_token = self.registry.evm_address(swap.denom).lower()
        if input_token == pool_key.currency0.lower():
            zero_for_one = True
            price_limit = MIN_SQRT_PRICE + 1
        elif input_token == pool_key.currency1.lower():
            zero_for_one = False
            price_limit = MAX_SQRT_PRICE - 1
        else:
            raise UnsupportedPairError(
                f"{swap.denom} is not a currency of pool {swap.pool_name}",
                venue=self.dex_name
            )

        # exact input
        calldata = serialize_swap_calldata(
            pool_key, zero_for_one, -amount, price_limit, self.config.swap_selector
        )
        router = to_canonical_address(self.config.router_contract)
        msg = {
            "sender": swap.sender,
            "contract_address": _b64(router),
            "calldata": _b64(calldata),
            "input_amount": _b64(amount.to_bytes(32, "big")),
        }
        self.logger.info(f"Composed uniswap swap of {amount} {swap.denom} on {swap.pool_name}")
        return [FISInstruction(
            plane=self.instruction_plane,
            action="VM_INVOKE",
            address="",
            msg=to_json_bytes(msg),
        )]

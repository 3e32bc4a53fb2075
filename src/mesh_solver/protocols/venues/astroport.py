"""Astroport pair contracts on the WASM plane."""
import json
from typing import Any, List, Mapping, Sequence, Tuple, Union

from mesh_solver.config.registry import VenueRegistry
from mesh_solver.errors import StateDecodeError
from mesh_solver.execution.models import FISInstruction, Plane, Swap, to_json_bytes
from mesh_solver.protocols.dex_protocols.constant_product_math import FeeConvention, PoolSnapshot
from mesh_solver.protocols.venues.base import U128_MAX, VenueComposer


def parse_asset(asset: Mapping[str, Any]) -> Tuple[str, int]:
    """
    Decode an Astroport ``Asset`` into (denom, amount).

    ``info`` is either ``{"token": {"contract_addr": ...}}`` or
    ``{"native_token": {"denom": ...}}``; amounts are Uint128 strings.
    """
    try:
        info = asset["info"]
        if "token" in info:
            denom = info["token"]["contract_addr"]
        elif "native_token" in info:
            denom = info["native_token"]["denom"]
        else:
            raise StateDecodeError(f"unknown asset info: {info}", venue="astroport")
        amount = int(asset["amount"])
    except (KeyError, TypeError, ValueError) as e:
        raise StateDecodeError(f"invalid astroport asset {asset}: {e}", venue="astroport") from e

    if not 0 <= amount <= U128_MAX:
        raise StateDecodeError(f"asset amount outside u128 range: {amount}", venue="astroport")
    return denom, amount


class AstroportVenue(VenueComposer):
    """Astroport xyk pairs (fee taken from the output)."""

    venue_plane = Plane.COSMOS
    instruction_plane = Plane.WASM

    def __init__(self, registry: VenueRegistry):
        super().__init__(registry)
        self.config = registry.astroport
        self.dex_name = self.config.dex_name

    def pool_from_assets(self, assets: Sequence[Mapping[str, Any]]) -> PoolSnapshot:
        """Quote a pair from the ``assets`` of its pool query, settlement asset first."""
        if len(assets) < 2:
            raise StateDecodeError(f"expected 2 pool assets, got {len(assets)}", venue=self.dex_name)

        denom_a, reserve_a = parse_asset(assets[0])
        denom_b, reserve_b = parse_asset(assets[1])
        if denom_a != self.registry.settlement_denom:
            denom_a, denom_b = denom_b, denom_a
            reserve_a, reserve_b = reserve_b, reserve_a

        return PoolSnapshot(
            dex_name=self.dex_name,
            venue_plane=self.venue_plane.value,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            fee_rate=self.config.fee_rate,
            fee_convention=FeeConvention.POST_FEE,
            denom_a=denom_a,
            denom_b=denom_b,
        )

    def pool_from_response(self, response: Union[bytes, str, Mapping[str, Any]]) -> PoolSnapshot:
        """Quote a pair from its raw pool query response."""
        if isinstance(response, (bytes, str)):
            try:
                response = json.loads(response)
            except ValueError as e:
                raise StateDecodeError(f"invalid pool response: {e}", venue=self.dex_name) from e
        if not isinstance(response, Mapping) or "assets" not in response:
            raise StateDecodeError("pool response has no assets", venue=self.dex_name)
        return self.pool_from_assets(response["assets"])

    def compose_swap(self, swap: Swap) -> List[FISInstruction]:
        contract = self.registry.astroport_contract(swap.pool_name)
        amount = str(self._check_amount(swap.amount, U128_MAX))

        msg = {
            "sender": swap.sender,
            "contract": contract,
            "msg": {
                "swap": {
                    "offer_asset": {
                        "info": {"native_token": {"denom": swap.denom}},
                        "amount": amount,
                    },
                    "ask_asset_info": None,
                    "belief_price": None,
                    "max_spread": self.config.max_spread,
                    "to": swap.sender,
                }
            },
            "funds": [{"denom": swap.denom, "amount": amount}],
        }
        self.logger.info(f"Composed astroport swap of {amount} {swap.denom} on {contract}")
        return [FISInstruction(
            plane=self.instruction_plane,
            action="VM_INVOKE",
            address="",
            msg=to_json_bytes(msg),
        )]

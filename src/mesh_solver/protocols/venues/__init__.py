"""
Venue integrations.

Each venue quotes its pools as PoolSnapshots and encodes swaps as FIS
instructions for its execution plane.
"""
from .astromesh import astro_transfer
from .astroport import AstroportVenue
from .base import VenueComposer
from .dispatch import VenueDispatcher
from .raydium import RaydiumVenue
from .uniswap import UniswapVenue, parse_pool_info, serialize_swap_calldata

__all__ = [
    "astro_transfer",
    "AstroportVenue",
    "VenueComposer",
    "VenueDispatcher",
    "RaydiumVenue",
    "UniswapVenue",
    "parse_pool_info",
    "serialize_swap_calldata",
]

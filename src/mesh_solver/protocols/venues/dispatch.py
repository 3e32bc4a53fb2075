"""Venue composer registry keyed by dex name."""
import logging
from typing import Dict, List, Optional

from mesh_solver.config.registry import VenueRegistry
from mesh_solver.errors import UnsupportedVenueError
from mesh_solver.execution.models import FISInstruction, Swap

from .astroport import AstroportVenue
from .base import VenueComposer
from .raydium import RaydiumVenue
from .uniswap import UniswapVenue

logger = logging.getLogger(__name__)


class VenueDispatcher:
    """
    Routes swaps to the composer of their venue.

    Composers are found by dex name ("raydium") or by plane-qualified name
    ("svm raydium"), case-insensitively.
    """

    def __init__(self, registry: VenueRegistry, svm_compute_budget: Optional[int] = None):
        """
        Initialize the dispatcher with the built-in venues.

        Args:
            registry: Venue registry shared by all composers
            svm_compute_budget: Compute budget override for SVM transactions
        """
        self.registry = registry
        self._composers: Dict[str, VenueComposer] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self.register_composer(RaydiumVenue(registry, compute_budget=svm_compute_budget))
        self.register_composer(AstroportVenue(registry))
        self.register_composer(UniswapVenue(registry))

    def register_composer(self, composer: VenueComposer) -> None:
        """Register ``composer`` under its dex name and plane-qualified name."""
        for key in (composer.dex_name.lower(), composer.qualified_name.lower()):
            if key in self._composers:
                self.logger.warning(f"Venue {key} already registered, overwriting")
            self._composers[key] = composer
        self.logger.debug(f"Registered venue {composer.qualified_name}")

    def composer(self, dex_name: str) -> VenueComposer:
        try:
            return self._composers[dex_name.strip().lower()]
        except KeyError:
            supported = ", ".join(f"'{c.qualified_name}'" for c in self.composers())
            raise UnsupportedVenueError(f"Unsupported: {dex_name}. Supported: {supported}") from None

    def composers(self) -> List[VenueComposer]:
        """Registered composers, once each, in registration order."""
        unique: List[VenueComposer] = []
        for composer in self._composers.values():
            if composer not in unique:
                unique.append(composer)
        return unique

    def compose_swap(self, swap: Swap) -> List[FISInstruction]:
        return self.composer(swap.dex_name).compose_swap(swap)

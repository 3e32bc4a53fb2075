"""Base class for venue integrations."""
import logging
from abc import ABC, abstractmethod
from typing import List

from mesh_solver.config.registry import VenueRegistry
from mesh_solver.errors import PoolMathError
from mesh_solver.execution.models import FISInstruction, Plane, Swap

logger = logging.getLogger(__name__)

U64_MAX = 2 ** 64 - 1
U128_MAX = 2 ** 128 - 1


class VenueComposer(ABC):
    """
    Turns a requested Swap into the FIS instructions of one venue.

    Subclasses know how to quote the venue (build a PoolSnapshot from
    pre-fetched state) and how to encode a swap on its execution plane.
    """

    dex_name: str = "unknown"
    # Plane holding the venue's pool assets
    venue_plane: Plane = Plane.COSMOS
    # Plane the swap instruction executes on
    instruction_plane: Plane = Plane.COSMOS

    def __init__(self, registry: VenueRegistry):
        """
        Initialize the composer.

        Args:
            registry: Venue registry with pool and program configuration
        """
        self.registry = registry
        self.logger = logging.getLogger(f"{self.__class__.__name__}")

    @property
    def qualified_name(self) -> str:
        """Plane-qualified name, e.g. 'svm raydium'."""
        return f"{self.instruction_plane.value.lower()} {self.dex_name}"

    @abstractmethod
    def compose_swap(self, swap: Swap) -> List[FISInstruction]:
        """
        Encode ``swap`` for this venue.

        Args:
            swap: Requested trade; ``amount`` is in the input asset's units

        Returns:
            Instructions executing the trade, in order
        """
        pass

    def _check_amount(self, amount: int, upper: int, label: str = "swap amount") -> int:
        if amount < 0 or amount > upper:
            raise PoolMathError(f"{label} {amount} outside 0..{upper}", venue=self.dex_name)
        return amount

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dex_name={self.dex_name!r}, plane={self.instruction_plane.value})"

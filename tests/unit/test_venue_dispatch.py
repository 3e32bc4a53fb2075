"""Unit tests for venue dispatch."""
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from mesh_solver.config.registry import default_registry
from mesh_solver.errors import UnsupportedVenueError
from mesh_solver.execution.models import FISInstruction, Plane, Swap
from mesh_solver.protocols.venues import (
    AstroportVenue,
    RaydiumVenue,
    UniswapVenue,
    VenueComposer,
    VenueDispatcher,
)


class EchoVenue(VenueComposer):
    """Composer returning the swap amount as its message."""

    dex_name = "echo"
    venue_plane = Plane.EVM
    instruction_plane = Plane.EVM

    def compose_swap(self, swap):
        return [FISInstruction(plane=self.instruction_plane, action="VM_INVOKE", msg=str(swap.amount).encode())]


@pytest.fixture
def dispatcher():
    return VenueDispatcher(default_registry())


class TestVenueDispatcher:
    """Test composer lookup."""

    def test_builtin_venues(self, dispatcher):
        assert isinstance(dispatcher.composer("raydium"), RaydiumVenue)
        assert isinstance(dispatcher.composer("astroport"), AstroportVenue)
        assert isinstance(dispatcher.composer("uniswap"), UniswapVenue)
        assert len(dispatcher.composers()) == 3

    def test_qualified_names(self, dispatcher):
        assert dispatcher.composer("svm raydium") is dispatcher.composer("raydium")
        assert dispatcher.composer("WASM Astroport") is dispatcher.composer("astroport")
        assert dispatcher.composer(" evm uniswap ") is dispatcher.composer("uniswap")

    def test_unknown_venue(self, dispatcher):
        with pytest.raises(UnsupportedVenueError) as exc_info:
            dispatcher.composer("curve")
        assert "'svm raydium'" in str(exc_info.value)
        assert "'wasm astroport'" in str(exc_info.value)

    def test_register_custom_composer(self, dispatcher):
        dispatcher.register_composer(EchoVenue(dispatcher.registry))
        swap = Swap(dex_name="evm echo", pool_name="btc-usdt", sender="lux1sender", denom="usdt", amount=9)

        instructions = dispatcher.compose_swap(swap)

        assert instructions[0].msg == b"9"
        assert len(dispatcher.composers()) == 4

    def test_compute_budget_passed_to_svm(self):
        dispatcher = VenueDispatcher(default_registry(), svm_compute_budget=77)
        assert dispatcher.composer("raydium").compute_budget == 77

    def test_repr(self, dispatcher):
        assert repr(dispatcher.composer("raydium")) == "RaydiumVenue(dex_name='raydium', plane=SVM)"

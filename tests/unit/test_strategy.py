"""
Unit tests for the arbitrage and swap strategies.

End-to-end planning from pool snapshots or raw state to ordered FIS
instructions.
"""
import base64
import struct
import sys
from pathlib import Path

import base58
import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from mesh_solver.config.registry import ASTROPORT_CONTRACTS, SVM_DENOM_MINTS, UniswapConfig, default_registry
from mesh_solver.config.settings import Settings
from mesh_solver.errors import InvalidAddressError, PoolMathError, StateDecodeError, UnsupportedPairError
from mesh_solver.execution.models import Plane, StrategyOutput
from mesh_solver.execution.strategy import ArbitrageStrategy
from mesh_solver.protocols.dex_protocols.constant_product_math import FeeConvention, PoolSnapshot
from mesh_solver.svm.accounts import RaydiumPoolState

SENDER = "lux1jcltmuhplrdcwp7stlr4hlhlhgd4htqhu86cqx"
SENDER_SVM = "DRK5Bi2NwkGRPsqHJSyy6rhUo3uQ8YHtt1xUWbu7Bnsx"


@pytest.fixture
def strategy():
    return ArbitrageStrategy(registry=default_registry(), settings=Settings(_env_file=None))


@pytest.fixture
def raydium_pool():
    return PoolSnapshot(
        dex_name="raydium",
        venue_plane="SVM",
        reserve_a=10_000_000_000,
        reserve_b=10_000_000_000,
        fee_rate=1000,
        fee_convention=FeeConvention.PRE_FEE,
        denom_a=SVM_DENOM_MINTS["usdt"],
        denom_b=SVM_DENOM_MINTS["btc"],
    )


@pytest.fixture
def astroport_pool():
    return PoolSnapshot(
        dex_name="astroport",
        venue_plane="COSMOS",
        reserve_a=139_304_175_643,
        reserve_b=201_000_000,
        fee_rate=10_000,
        fee_convention=FeeConvention.POST_FEE,
        denom_a="usdt",
        denom_b="btc",
    )


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _account_record(data: bytes) -> dict:
    return {"pubkey": _b64(bytes(32)), "owner": _b64(bytes(32)), "lamports": 0, "data": _b64(data)}


def _token_account(mint: str, amount: int) -> bytes:
    return base58.b58decode(mint) + bytes(32) + struct.pack("<Q", amount) + bytes(93)


def _raw_state():
    astroport_response = {
        "assets": [
            {"info": {"native_token": {"denom": "btc"}}, "amount": "201000000"},
            {"info": {"native_token": {"denom": "usdt"}}, "amount": "139304175643"},
        ]
    }
    raydium_accounts = [
        _account_record(_token_account(SVM_DENOM_MINTS["btc"], 10_000_000_000)),
        _account_record(_token_account(SVM_DENOM_MINTS["usdt"], 10_000_000_000)),
        _account_record(bytes(RaydiumPoolState.LEN)),
    ]
    return astroport_response, raydium_accounts


class TestSelectRoute:
    """Test buy/sell pool selection."""

    def test_lowest_and_highest_rate(self, raydium_pool, astroport_pool):
        src, dst = ArbitrageStrategy.select_route([astroport_pool, raydium_pool])
        assert src is raydium_pool
        assert dst is astroport_pool

    def test_ties_keep_earliest(self, raydium_pool):
        twin = PoolSnapshot(
            dex_name="astroport",
            venue_plane="COSMOS",
            reserve_a=raydium_pool.reserve_a,
            reserve_b=raydium_pool.reserve_b,
            fee_rate=0,
            fee_convention=FeeConvention.POST_FEE,
        )
        src, dst = ArbitrageStrategy.select_route([raydium_pool, twin])
        assert src is raydium_pool
        assert dst is raydium_pool

    def test_needs_two_pools(self, raydium_pool):
        with pytest.raises(PoolMathError):
            ArbitrageStrategy.select_route([raydium_pool])


class TestArbitrage:
    """Test round-trip planning."""

    def test_profitable_round_trip(self, strategy, raydium_pool, astroport_pool):
        output = strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool, astroport_pool],
                                    SENDER, sender_svm=SENDER_SVM)

        assert not output.is_noop
        planes = [(ix.plane, ix.action) for ix in output.instructions]
        assert planes == [
            (Plane.SVM, "VM_INVOKE"),
            (Plane.COSMOS, "COSMOS_INVOKE"),
            (Plane.WASM, "VM_INVOKE"),
            (Plane.COSMOS, "COSMOS_INVOKE"),
        ]

        to_cosmos = output.instructions[1].decoded_msg()
        assert (to_cosmos["src_plane"], to_cosmos["dst_plane"]) == ("SVM", "COSMOS")
        assert to_cosmos["coin"]["denom"] == "astro/" + SVM_DENOM_MINTS["btc"]

        astroport_swap = output.instructions[2].decoded_msg()
        assert astroport_swap["contract"] == ASTROPORT_CONTRACTS["btc-usdt"]
        assert astroport_swap["funds"][0]["denom"] == "btc"
        assert astroport_swap["funds"][0]["amount"] == to_cosmos["coin"]["amount"]

        back_to_svm = output.instructions[3].decoded_msg()
        assert (back_to_svm["src_plane"], back_to_svm["dst_plane"]) == ("COSMOS", "SVM")
        assert back_to_svm["coin"]["denom"] == "usdt"

    def test_balance_limits_first_swap(self, strategy, raydium_pool, astroport_pool):
        output = strategy.arbitrage("btc-usdt", 1_000_000, [raydium_pool, astroport_pool],
                                    SENDER, sender_svm=SENDER_SVM)

        tx = output.instructions[0].decoded_msg()
        data = base64.b64decode(tx["instructions"][1]["data"])
        assert struct.unpack_from("<Q", data, 8)[0] == 1_000_000

    def test_identical_pools_no_trade(self, strategy, raydium_pool):
        output = strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool, raydium_pool], SENDER)
        assert output == StrategyOutput(reason="pools are priced identically")

    def test_fewer_than_two_pools_no_trade(self, strategy, raydium_pool):
        assert strategy.arbitrage("btc-usdt", 10 ** 12, [], SENDER) == StrategyOutput(
            reason="fewer than two pools quoted"
        )
        output = strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool], SENDER)
        assert output.is_noop
        assert output.reason == "fewer than two pools quoted"

    def test_min_profit_no_trade(self, strategy, raydium_pool, astroport_pool):
        output = strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool, astroport_pool],
                                    SENDER, sender_svm=SENDER_SVM, min_profit=10 ** 18)
        assert output.is_noop
        assert "does not exceed minimum" in output.reason

    def test_default_min_profit_from_settings(self, raydium_pool, astroport_pool):
        settings = Settings(_env_file=None, DEFAULT_MIN_PROFIT=10 ** 18)
        strategy = ArbitrageStrategy(registry=default_registry(), settings=settings)
        output = strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool, astroport_pool],
                                    SENDER, sender_svm=SENDER_SVM)
        assert output.is_noop

    def test_unsupported_pair(self, strategy, raydium_pool, astroport_pool):
        with pytest.raises(UnsupportedPairError):
            strategy.arbitrage("doge-usdt", 1, [raydium_pool, astroport_pool], SENDER)

    def test_negative_amount(self, strategy, raydium_pool, astroport_pool):
        with pytest.raises(PoolMathError):
            strategy.arbitrage("btc-usdt", -1, [raydium_pool, astroport_pool], SENDER)

    def test_svm_leg_needs_svm_sender(self, strategy, raydium_pool, astroport_pool):
        with pytest.raises(InvalidAddressError):
            strategy.arbitrage("btc-usdt", 10 ** 12, [raydium_pool, astroport_pool], SENDER)

    def test_pools_from_state(self, strategy):
        astroport, raydium = strategy.pools_from_state(*_raw_state())

        assert (astroport.dex_name, astroport.reserve_a, astroport.reserve_b) == (
            "astroport", 139_304_175_643, 201_000_000
        )
        assert (raydium.dex_name, raydium.venue_plane) == ("raydium", "SVM")
        assert raydium.denom_a == SVM_DENOM_MINTS["usdt"]

        output = strategy.arbitrage("btc-usdt", 10 ** 12, [astroport, raydium], SENDER, sender_svm=SENDER_SVM)
        assert len(output.instructions) == 4

    def test_pools_from_state_with_uniswap(self):
        registry = default_registry()
        registry.uniswap = UniswapConfig(router_contract="0x" + "11" * 20)
        strategy = ArbitrageStrategy(registry=registry, settings=Settings(_env_file=None))

        pools = strategy.pools_from_state(*_raw_state(), pair="btc-usdt", uniswap_reserves=[5_000_000, 7_000])

        assert [pool.dex_name for pool in pools] == ["astroport", "raydium", "uniswap"]
        uniswap = pools[2]
        assert (uniswap.venue_plane, uniswap.reserve_a, uniswap.reserve_b) == ("EVM", 5_000_000, 7_000)
        assert (uniswap.denom_a, uniswap.denom_b) == ("usdt", "btc")

    def test_uniswap_reserves_skipped_without_router(self, strategy):
        pools = strategy.pools_from_state(*_raw_state(), pair="btc-usdt", uniswap_reserves=[5_000_000, 7_000])
        assert [pool.dex_name for pool in pools] == ["astroport", "raydium"]

    def test_malformed_uniswap_reserves(self, strategy):
        with pytest.raises(StateDecodeError):
            strategy.pools_from_state(*_raw_state(), pair="btc-usdt", uniswap_reserves=[1])


class TestSwap:
    """Test single swaps."""

    def test_astroport_swap(self, strategy):
        output = strategy.swap("astroport", "usdt", "btc", 1000, SENDER)

        assert len(output.instructions) == 1
        assert output.instructions[0].plane == Plane.WASM
        assert output.instructions[0].decoded_msg()["contract"] == ASTROPORT_CONTRACTS["btc-usdt"]

    def test_raydium_swap_sells_pair_asset(self, strategy):
        output = strategy.swap("svm raydium", "sol", "usdt", 1000, SENDER, sender_svm=SENDER_SVM)
        assert output.instructions[0].plane == Plane.SVM

    def test_pair_without_settlement(self, strategy):
        with pytest.raises(UnsupportedPairError):
            strategy.swap("astroport", "btc", "eth", 1, SENDER)

    def test_unconfigured_pair(self, strategy):
        with pytest.raises(UnsupportedPairError):
            strategy.swap("astroport", "usdt", "atom", 1, SENDER)

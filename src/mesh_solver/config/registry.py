"""Venue registry: assets, pools and program ids of every supported venue."""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from mesh_solver.errors import StateDecodeError, UnsupportedPairError, UnsupportedVenueError

logger = logging.getLogger(__name__)

ETH_DECIMAL_DIFF = 1_000_000_000

# SVM mints of the bridged assets
SVM_DENOM_MINTS = {
    "btc": "ENyus6yS21v95sreLKcVEA5Wjcyh8jg6w4jBFHzJaPox",
    "eth": "7Smiqjum5Xd7sZYysWXuS4Qbws6Y1rUKjcxudFJsLGJc",
    "sol": "1a5UtpbTcDiUPQcQ5tMSKQoLJXTzQRrjitQXxozn4ga",
    "usdt": "ErDYXZUZ9rpSSvdWvrsQwgh6K4BQeoY2CPyv1FeD1S9r",
}

SPL_TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
RAYDIUM_CPMM_PROGRAM_ID = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

RAYDIUM_AUTHORITY = "GpMZbSM2GgvTKHJirzeGfMFoaZ8UR2X7F4v8vHTvxFbL"
RAYDIUM_AMM_CONFIG = "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2"

# Raydium CPMM pools by pair
RAYDIUM_POOLS = {
    "btc-usdt": {
        "pool_state": "HUtjobntUDzrsq1k7xLM6SLzuZyUvr2U8skA8SUWevFd",
        "token0_mint": SVM_DENOM_MINTS["btc"],
        "token1_mint": SVM_DENOM_MINTS["usdt"],
        "token0_vault": "9U5Lpfmc6u1rCRAfzGe883KnK5Avm76zX4te6sexvCEk",
        "token1_vault": "UURmKznoUTh8Dt9wgyusq6u1ETuY8Zj79NFAtfQJ7HB",
        "observer_state": "FXqXrt2xDrxg7J5wdXrTbB2hCGajSzXLvwvc4x3Uw7i",
    },
    "eth-usdt": {
        "pool_state": "GASMVGvEguNjicG1UhaTiYDPib4geFQBXjtbqAG1HPLH",
        "token0_mint": SVM_DENOM_MINTS["eth"],
        "token1_mint": SVM_DENOM_MINTS["usdt"],
        "token0_vault": "CP9w46ipnMBBQP2Nqg8DceobmnTFeb9Pri5W2RX1CiSV",
        "token1_vault": "DCJQyrGYeHWocMxpBBWCSJEgtMFZXgwMuXxZnkrHtuvW",
        "observer_state": "aLPmyw8Zs6kivaeaysiA1CXyhKCngeUW1deStmbn7ri",
    },
    "sol-usdt": {
        "pool_state": "F5h7xu4VdUdY3LRxCWo8Jv6HcdVK4tNsnEwdhBHvQA9K",
        "token0_mint": SVM_DENOM_MINTS["sol"],
        "token1_mint": SVM_DENOM_MINTS["usdt"],
        "token0_vault": "HNHWS8EqDH8GCW5XeL6dVirSRPcKEn5mZ7qUzvHWfizD",
        "token1_vault": "6DY4BxWgdoNG557vXUif4A6AdMSSrR7RH4uarfBW7vb5",
        "observer_state": "8rvsAHa9HztPWoioR8w6FR64VdS3TZCCmK52i1xCEJoF",
    },
}

# Astroport pair contracts on the WASM plane
ASTROPORT_CONTRACTS = {
    "btc-usdt": "lux1nc5tatafv6eyq7llkr2gv50ff9e22mnf70qgjlv737ktmt4eswrqhywrts",
    "eth-usdt": "lux1aakfpghcanxtc45gpqlx8j3rq0zcpyf49qmhm9mdjrfx036h4z5sdltq0m",
    "sol-usdt": "lux18v47nqmhvejx3vc498pantg8vr435xa0rt6x0m6kzhp6yuqmcp8s3z45es",
}

SWAP_BASE_INPUT_DISCRIMINATOR = [143, 190, 90, 218, 196, 30, 51, 222]
UNISWAP_SWAP_SELECTOR = "0x92443779"


class DenomConfig(BaseModel):
    """Per-asset addresses across planes."""
    symbol: str
    svm_mint: Optional[str] = None
    evm_address: Optional[str] = None
    svm_decimal_diff: int = Field(
        default=1,
        ge=1,
        description="Factor between the asset's COSMOS/EVM and SVM decimals"
    )


class RaydiumPoolAccounts(BaseModel):
    """Accounts of one Raydium CPMM pool."""
    authority: str = RAYDIUM_AUTHORITY
    amm_config: str = RAYDIUM_AMM_CONFIG
    pool_state: str
    token0_mint: str
    token1_mint: str
    token0_vault: str
    token1_vault: str
    observer_state: str


class RaydiumConfig(BaseModel):
    """Raydium CPMM venue on the SVM plane."""
    dex_name: str = "raydium"
    cpmm_program_id: str = RAYDIUM_CPMM_PROGRAM_ID
    token_program_id: str = SPL_TOKEN_2022_PROGRAM_ID
    associated_token_program_id: str = ASSOCIATED_TOKEN_PROGRAM_ID
    system_program_id: str = SYSTEM_PROGRAM_ID
    swap_base_input_discriminator: List[int] = Field(
        default_factory=lambda: list(SWAP_BASE_INPUT_DISCRIMINATOR)
    )
    compute_budget: int = Field(default=10_000_000, ge=0, lt=2 ** 64)
    fee_rate: int = Field(default=1000, ge=0, le=1_000_000)
    pools: Dict[str, RaydiumPoolAccounts] = Field(default_factory=dict)

    @field_validator("swap_base_input_discriminator")
    @classmethod
    def _check_discriminator(cls, value: List[int]) -> List[int]:
        if len(value) != 8 or any(not 0 <= b <= 255 for b in value):
            raise ValueError("discriminator must be 8 bytes")
        return value


class AstroportConfig(BaseModel):
    """Astroport pair contracts on the WASM plane."""
    dex_name: str = "astroport"
    fee_rate: int = Field(default=10_000, ge=0, le=1_000_000)
    max_spread: str = "0.5"
    contracts: Dict[str, str] = Field(default_factory=dict)


class UniswapPoolKey(BaseModel):
    """Uniswap v4 pool key; currency0 sorts below currency1."""
    currency0: str
    currency1: str
    fee: int = Field(default=3000, ge=0, lt=2 ** 24)
    tick_spacing: int = Field(default=60, ge=-(2 ** 23), lt=2 ** 23)
    hooks: str = "0x0000000000000000000000000000000000000000"


class UniswapConfig(BaseModel):
    """Uniswap v4 router on the EVM plane."""
    dex_name: str = "uniswap"
    router_contract: Optional[str] = None
    swap_selector: str = UNISWAP_SWAP_SELECTOR
    fee_rate: int = Field(default=3000, ge=0, le=1_000_000)
    pools: Dict[str, UniswapPoolKey] = Field(default_factory=dict)


class VenueRegistry(BaseModel):
    """Everything the solver needs to know about the mesh venues."""
    settlement_denom: str = "usdt"
    pairs: List[str] = Field(default_factory=lambda: ["btc-usdt", "eth-usdt", "sol-usdt"])
    denoms: Dict[str, DenomConfig] = Field(default_factory=dict)
    raydium: RaydiumConfig = Field(default_factory=RaydiumConfig)
    astroport: AstroportConfig = Field(default_factory=AstroportConfig)
    uniswap: UniswapConfig = Field(default_factory=UniswapConfig)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "VenueRegistry":
        """Load a registry from a JSON document."""
        try:
            with open(path, "r") as f:
                raw = json.load(f)
            registry = cls.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            raise StateDecodeError(f"cannot load venue registry from {path}: {e}") from e
        logger.info(f"Loaded venue registry from {path} with pairs {registry.pairs}")
        return registry

    def must_support(self, pair: str) -> None:
        """Raise UnsupportedPairError unless ``pair`` is configured."""
        if pair not in self.pairs:
            raise UnsupportedPairError(f"unsupported pair: {pair}")

    def pair_output_denom(self, input_denom: str, pair: str) -> str:
        """The other asset of ``pair``."""
        self.must_support(pair)
        first, _, second = pair.partition("-")
        if input_denom == first:
            return second
        if input_denom == second:
            return first
        raise UnsupportedPairError(f"{input_denom} is not part of pair {pair}")

    def svm_mint(self, denom: str) -> str:
        """SVM mint of a symbol; anything else is assumed to already be a mint."""
        config = self.denoms.get(denom)
        if config is not None and config.svm_mint:
            return config.svm_mint
        return denom

    def svm_decimal_diff(self, denom: str) -> int:
        """Decimal factor of a symbol or SVM mint (1 when unknown)."""
        for config in self.denoms.values():
            if denom == config.symbol or denom == config.svm_mint:
                return config.svm_decimal_diff
        return 1

    def evm_address(self, denom: str) -> str:
        config = self.denoms.get(denom)
        if config is None or not config.evm_address:
            raise UnsupportedVenueError(f"no EVM address configured for {denom}", venue=self.uniswap.dex_name)
        return config.evm_address

    def raydium_pool(self, pair: str) -> RaydiumPoolAccounts:
        self.must_support(pair)
        try:
            return self.raydium.pools[pair]
        except KeyError:
            raise UnsupportedPairError(f"raydium pair not found: {pair}", venue=self.raydium.dex_name)

    def astroport_contract(self, pair: str) -> str:
        self.must_support(pair)
        try:
            return self.astroport.contracts[pair]
        except KeyError:
            raise UnsupportedPairError(f"astroport pair not found: {pair}", venue=self.astroport.dex_name)

    def uniswap_pool(self, pair: str) -> UniswapPoolKey:
        self.must_support(pair)
        try:
            return self.uniswap.pools[pair]
        except KeyError:
            raise UnsupportedPairError(f"uniswap pair not found: {pair}", venue=self.uniswap.dex_name)


def default_registry() -> VenueRegistry:
    """Registry with the built-in mesh deployment."""
    denoms = {
        symbol: DenomConfig(
            symbol=symbol,
            svm_mint=mint,
            svm_decimal_diff=ETH_DECIMAL_DIFF if symbol == "eth" else 1,
        )
        for symbol, mint in SVM_DENOM_MINTS.items()
    }
    return VenueRegistry(
        denoms=denoms,
        raydium=RaydiumConfig(
            pools={pair: RaydiumPoolAccounts(**accounts) for pair, accounts in RAYDIUM_POOLS.items()}
        ),
        astroport=AstroportConfig(contracts=dict(ASTROPORT_CONTRACTS)),
    )


def load_registry(path: Optional[str] = None) -> VenueRegistry:
    """Registry from ``path`` when given, else the built-in one."""
    if path:
        return VenueRegistry.from_json_file(path)
    return default_registry()

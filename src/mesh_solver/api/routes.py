"""Solver API endpoints."""
import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, field_validator

from mesh_solver.execution.models import Plane
from mesh_solver.protocols.dex_protocols.constant_product_math import FeeConvention, PoolSnapshot
from mesh_solver.svm.pubkey import find_program_address
from mesh_solver.svm.transaction_builder import (
    InstructionAccountMeta,
    InstructionMeta,
    build_transaction,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _decode_base64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 data: {e}") from e


class PoolModel(BaseModel):
    """A quoted pool, settlement asset as asset A."""
    dex_name: str
    venue_plane: Plane
    reserve_a: int = Field(..., ge=0)
    reserve_b: int = Field(..., ge=0)
    fee_rate: int = Field(..., ge=0, le=1_000_000)
    fee_convention: FeeConvention
    denom_a: str = ""
    denom_b: str = ""
    b_granularity: int = Field(default=1, ge=1)

    def to_snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            dex_name=self.dex_name,
            venue_plane=self.venue_plane.value,
            reserve_a=self.reserve_a,
            reserve_b=self.reserve_b,
            fee_rate=self.fee_rate,
            fee_convention=self.fee_convention,
            denom_a=self.denom_a,
            denom_b=self.denom_b,
            b_granularity=self.b_granularity,
        )


class RawPoolState(BaseModel):
    """Unparsed query results for the pools of a pair."""
    astroport_pool: Dict[str, Any]
    raydium_accounts: List[Dict[str, Any]]
    uniswap_reserves: Optional[List[int]] = None


class ArbitrageRequest(BaseModel):
    pair: str
    amount: int = Field(..., ge=0)
    min_profit: Optional[int] = None
    sender: str
    sender_svm: Optional[str] = None
    pools: List[PoolModel] = Field(default_factory=list)
    state: Optional[RawPoolState] = None


class SwapRequest(BaseModel):
    dex_name: str
    src_denom: str
    dst_denom: str
    amount: int = Field(..., ge=0)
    sender: str
    sender_svm: Optional[str] = None


class FindProgramAddressRequest(BaseModel):
    seeds: List[str] = Field(default_factory=list, description="Base64 encoded seeds")
    program_id: str

    @field_validator("seeds")
    @classmethod
    def _check_seeds(cls, value: List[str]) -> List[str]:
        for seed in value:
            _decode_base64(seed)
        return value


class AccountMetaModel(BaseModel):
    pubkey: str
    is_signer: bool = False
    is_writable: bool = False


class InstructionModel(BaseModel):
    program_id: str
    accounts: List[AccountMetaModel] = Field(default_factory=list)
    data: str = Field(default="", description="Base64 encoded instruction data")

    @field_validator("data")
    @classmethod
    def _check_data(cls, value: str) -> str:
        _decode_base64(value)
        return value

    def to_meta(self) -> InstructionMeta:
        return InstructionMeta(
            program_id=self.program_id,
            account_meta=[
                InstructionAccountMeta(a.pubkey, is_signer=a.is_signer, is_writable=a.is_writable)
                for a in self.accounts
            ],
            data=_decode_base64(self.data),
        )


class TransactionRequest(BaseModel):
    instructions: List[InstructionModel]
    signers: List[str]
    compute_budget: Optional[int] = None


@router.post("/arbitrage")
def arbitrage(body: ArbitrageRequest, request: Request) -> Dict[str, Any]:
    """Plan an arbitrage round trip; empty instructions mean no trade."""
    strategy = request.app.state.strategy
    if body.pools:
        pools = [pool.to_snapshot() for pool in body.pools]
    elif body.state is not None:
        pools = strategy.pools_from_state(
            body.state.astroport_pool,
            body.state.raydium_accounts,
            pair=body.pair,
            uniswap_reserves=body.state.uniswap_reserves,
        )
    else:
        pools = []
    output = strategy.arbitrage(
        body.pair, body.amount, pools, body.sender, body.sender_svm, body.min_profit
    )
    return output.model_dump(mode="json")


@router.post("/swap")
def swap(body: SwapRequest, request: Request) -> Dict[str, Any]:
    """Compose a single swap on one venue."""
    strategy = request.app.state.strategy
    output = strategy.swap(
        body.dex_name, body.src_denom, body.dst_denom, body.amount, body.sender, body.sender_svm
    )
    return output.model_dump(mode="json")


@router.post("/svm/find-program-address")
def program_address(body: FindProgramAddressRequest) -> Dict[str, Any]:
    """Derive a program address and its bump seed."""
    address, bump = find_program_address([_decode_base64(s) for s in body.seeds], body.program_id)
    return {"address": str(address), "bump": bump}


@router.post("/svm/transactions")
def compile_transaction(body: TransactionRequest, request: Request) -> Dict[str, Any]:
    """Compile instructions into a MsgTransaction."""
    compute_budget = body.compute_budget
    if compute_budget is None:
        compute_budget = request.app.state.strategy.settings.svm_compute_budget
    tx = build_transaction([ix.to_meta() for ix in body.instructions], body.signers, compute_budget)
    return tx.model_dump(mode="json")

"""
SVM Transaction Builder.

Compiles a list of instructions that reference accounts by base58 address
into a ``MsgTransaction`` that references them by index into one shared,
deduplicated account table.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from mesh_solver.errors import InvalidTransactionError
from mesh_solver.execution.models import decode_base64_field, encode_base64_field
from mesh_solver.svm.pubkey import as_pubkey

logger = logging.getLogger(__name__)

U64_MAX = 2 ** 64 - 1


@dataclass
class InstructionAccountMeta:
    """An account referenced by an instruction."""
    pubkey: str
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class InstructionMeta:
    """An instruction before compilation."""
    program_id: str
    account_meta: List[InstructionAccountMeta] = field(default_factory=list)
    data: bytes = b""


class InstructionAccount(BaseModel):
    """Compiled account reference."""
    model_config = ConfigDict(frozen=True)

    id_index: int
    caller_index: int
    callee_index: int
    is_signer: bool
    is_writable: bool


class CompiledInstruction(BaseModel):
    """Compiled instruction; ``program_index`` is sent as a one-element list."""
    model_config = ConfigDict(frozen=True)

    program_index: int
    accounts: List[InstructionAccount] = Field(default_factory=list)
    data: bytes = b""

    @field_validator("program_index", mode="before")
    @classmethod
    def _unwrap_program_index(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != 1:
                raise ValueError(f"program_index must hold exactly one index, got {len(value)}")
            return value[0]
        return value

    @field_validator("data", mode="before")
    @classmethod
    def _decode_data(cls, value: Any) -> Any:
        return decode_base64_field(value)

    @field_serializer("program_index")
    def _wrap_program_index(self, value: int) -> List[int]:
        return [value]

    @field_serializer("data", when_used="json")
    def _encode_data(self, value: bytes) -> str:
        return encode_base64_field(value)


class MsgTransaction(BaseModel):
    """SVM transaction message executed on behalf of COSMOS signers."""
    model_config = ConfigDict(frozen=True)

    signers: List[str]
    accounts: List[str]
    instructions: List[CompiledInstruction]
    compute_budget: int = Field(..., ge=0, le=U64_MAX)


def _validate_address(address: str) -> str:
    # Raises InvalidAddressError with the offending string
    as_pubkey(address)
    return address


class TransactionBuilder:
    """
    Accumulates instructions and compiles them into a MsgTransaction.

    The account table lists addresses in first-appearance order, each
    instruction's program id before its accounts, so the same instruction
    sequence always compiles to the same transaction.
    """

    def __init__(self):
        self.instructions: List[InstructionMeta] = []

    def add_instruction(self, ix: InstructionMeta) -> "TransactionBuilder":
        """
        Append an instruction after validating every address it references.

        Raises:
            InvalidAddressError: The program id or an account is not a valid pubkey
        """
        _validate_address(ix.program_id)
        for meta in ix.account_meta:
            _validate_address(meta.pubkey)
        self.instructions.append(ix)
        return self

    def _account_table(self) -> Dict[str, int]:
        table: Dict[str, int] = {}
        for ix in self.instructions:
            if ix.program_id not in table:
                table[ix.program_id] = len(table)
            for meta in ix.account_meta:
                if meta.pubkey not in table:
                    table[meta.pubkey] = len(table)
        return table

    def build(self, signers: Sequence[str], compute_budget: int) -> MsgTransaction:
        """
        Compile the accumulated instructions.

        Args:
            signers: COSMOS addresses authorizing the transaction
            compute_budget: Compute units, must fit an unsigned 64-bit integer

        Returns:
            Compiled MsgTransaction
        """
        if isinstance(compute_budget, bool) or not isinstance(compute_budget, int):
            raise InvalidTransactionError(f"compute budget must be an integer, got {compute_budget!r}")
        if not 0 <= compute_budget <= U64_MAX:
            raise InvalidTransactionError(f"compute budget outside u64 range: {compute_budget}")
        if isinstance(signers, str) or not all(isinstance(s, str) for s in signers):
            raise InvalidTransactionError("signers must be a list of address strings")

        table = self._account_table()

        compiled = []
        for ix in self.instructions:
            local_positions: Dict[str, int] = {}
            accounts = []
            for position, meta in enumerate(ix.account_meta):
                callee_index = local_positions.setdefault(meta.pubkey, position)
                global_index = table[meta.pubkey]
                accounts.append(InstructionAccount(
                    id_index=global_index,
                    caller_index=global_index,
                    callee_index=callee_index,
                    is_signer=meta.is_signer,
                    is_writable=meta.is_writable,
                ))
            compiled.append(CompiledInstruction(
                program_index=table[ix.program_id],
                accounts=accounts,
                data=bytes(ix.data),
            ))

        logger.debug(
            f"Compiled {len(compiled)} instructions over {len(table)} accounts, "
            f"compute budget {compute_budget}"
        )
        return MsgTransaction(
            signers=list(signers),
            accounts=list(table),
            instructions=compiled,
            compute_budget=compute_budget,
        )


def build_transaction(instructions: Sequence[InstructionMeta], signers: Sequence[str],
                      compute_budget: int) -> MsgTransaction:
    """Compile ``instructions`` in one call."""
    builder = TransactionBuilder()
    for ix in instructions:
        builder.add_instruction(ix)
    return builder.build(signers, compute_budget)

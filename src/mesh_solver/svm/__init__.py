"""
SVM plane support.

Program-derived address derivation, account decoding and compilation of
instruction lists into MsgTransaction payloads.
"""
from .pubkey import (
    Pubkey,
    as_pubkey,
    create_program_address,
    find_program_address,
    get_associated_token_address,
    is_on_curve,
    svm_account_from_cosmos_address,
)
from .transaction_builder import (
    CompiledInstruction,
    InstructionAccount,
    InstructionAccountMeta,
    InstructionMeta,
    MsgTransaction,
    TransactionBuilder,
    build_transaction,
)
from .accounts import RaydiumPoolState, SvmAccount, TokenAccount

__all__ = [
    "Pubkey",
    "as_pubkey",
    "create_program_address",
    "find_program_address",
    "get_associated_token_address",
    "is_on_curve",
    "svm_account_from_cosmos_address",
    "CompiledInstruction",
    "InstructionAccount",
    "InstructionAccountMeta",
    "InstructionMeta",
    "MsgTransaction",
    "TransactionBuilder",
    "build_transaction",
    "RaydiumPoolState",
    "SvmAccount",
    "TokenAccount",
]

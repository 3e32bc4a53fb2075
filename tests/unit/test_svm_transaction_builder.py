"""Unit tests for SVM transaction compilation."""
import json
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from mesh_solver.errors import InvalidAddressError, InvalidTransactionError
from mesh_solver.svm.transaction_builder import (
    CompiledInstruction,
    InstructionAccount,
    InstructionAccountMeta,
    InstructionMeta,
    MsgTransaction,
    TransactionBuilder,
    build_transaction,
)

FEEPAYER = "RM3uwjR7LUugxxfZLe9grNC9HNW7BMU9227KsyFsbfB"
ACCOUNT_1 = "8LBk2doATLb8M6JX4auYe1gGQMqimHi1hwkKSkLzo6f5"
ACCOUNT_2 = "Zs5KiCvJHCN2PwZqEQczvQGizKr6en9AAotSfi9AeWH"
SYSTEM_PROGRAM = "11111111111111111111111111111111"

SIGNERS = [
    "lux1jcltmuhplrdcwp7stlr4hlhlhgd4htqhu86cqx",
    "lux1dzqd00lfd4y4qy2pxa0dsdwzfnmsu27hdef8k5",
    "lux1kmmz47pr8h46wcyxw8h3k8s85x0ncykqp0xmgj",
]


@pytest.fixture
def create_account1():
    return InstructionMeta(
        program_id=SYSTEM_PROGRAM,
        account_meta=[
            InstructionAccountMeta(FEEPAYER, is_signer=True, is_writable=True),
            InstructionAccountMeta(ACCOUNT_1, is_signer=True, is_writable=True),
        ],
        data=bytes([0x01, 0x02, 0x03]),
    )


@pytest.fixture
def create_account2():
    return InstructionMeta(
        program_id=SYSTEM_PROGRAM,
        account_meta=[
            InstructionAccountMeta(FEEPAYER, is_signer=True, is_writable=True),
            InstructionAccountMeta(ACCOUNT_2, is_signer=True, is_writable=True),
            InstructionAccountMeta(ACCOUNT_2, is_signer=False, is_writable=True),
        ],
        data=bytes([0x04, 0x05, 0x06]),
    )


def _account(index, callee_index, is_signer=True, is_writable=True):
    return InstructionAccount(
        id_index=index,
        caller_index=index,
        callee_index=callee_index,
        is_signer=is_signer,
        is_writable=is_writable,
    )


class TestTransactionBuilder:
    """Test instruction compilation."""

    def test_build_transaction(self, create_account1, create_account2):
        builder = TransactionBuilder()
        builder.add_instruction(create_account1)
        builder.add_instruction(create_account2)

        transaction = builder.build(SIGNERS, 1000)

        assert transaction.accounts == [SYSTEM_PROGRAM, FEEPAYER, ACCOUNT_1, ACCOUNT_2]
        assert transaction.signers == SIGNERS
        assert transaction.compute_budget == 1000
        assert len(transaction.instructions) == 2

        assert transaction.instructions[0] == CompiledInstruction(
            program_index=0,
            accounts=[_account(1, 0), _account(2, 1)],
            data=bytes([0x01, 0x02, 0x03]),
        )
        assert transaction.instructions[1] == CompiledInstruction(
            program_index=0,
            accounts=[_account(1, 0), _account(3, 1), _account(3, 1, is_signer=False)],
            data=bytes([0x04, 0x05, 0x06]),
        )

    def test_same_instructions_same_transaction(self, create_account1, create_account2):
        first = build_transaction([create_account1, create_account2], SIGNERS, 1000)
        second = build_transaction([create_account1, create_account2], SIGNERS, 1000)
        assert first == second

    def test_reordered_instructions_self_consistent(self, create_account1, create_account2):
        forward = build_transaction([create_account1, create_account2], SIGNERS, 1000)
        reverse = build_transaction([create_account2, create_account1], SIGNERS, 1000)

        assert reverse.accounts != forward.accounts
        assert reverse.accounts == [SYSTEM_PROGRAM, FEEPAYER, ACCOUNT_2, ACCOUNT_1]

        for ix, source in zip(reverse.instructions, [create_account2, create_account1]):
            assert reverse.accounts[ix.program_index] == source.program_id
            for compiled, meta in zip(ix.accounts, source.account_meta):
                assert reverse.accounts[compiled.id_index] == meta.pubkey

    def test_accounts_deduplicated(self, create_account1, create_account2):
        transaction = build_transaction([create_account1, create_account2], SIGNERS, 0)

        assert len(transaction.accounts) == len(set(transaction.accounts))
        feepayer_indices = {
            account.id_index
            for ix in transaction.instructions
            for account in ix.accounts
            if transaction.accounts[account.id_index] == FEEPAYER
        }
        assert feepayer_indices == {1}

    def test_no_instructions(self):
        transaction = TransactionBuilder().build(SIGNERS, 5)
        assert transaction.accounts == []
        assert transaction.instructions == []

    def test_invalid_account(self):
        ix = InstructionMeta(
            program_id=SYSTEM_PROGRAM,
            account_meta=[InstructionAccountMeta("not-base58-0OIl")],
        )
        with pytest.raises(InvalidAddressError) as exc_info:
            TransactionBuilder().add_instruction(ix)
        assert "not-base58-0OIl" in str(exc_info.value)

    def test_invalid_program_id(self):
        with pytest.raises(InvalidAddressError):
            TransactionBuilder().add_instruction(InstructionMeta(program_id="short"))

    def test_compute_budget_range(self, create_account1):
        builder = TransactionBuilder().add_instruction(create_account1)
        builder.build(SIGNERS, 2 ** 64 - 1)
        with pytest.raises(InvalidTransactionError):
            builder.build(SIGNERS, 2 ** 64)
        with pytest.raises(InvalidTransactionError):
            builder.build(SIGNERS, -1)

    def test_signers_must_be_list(self, create_account1):
        builder = TransactionBuilder().add_instruction(create_account1)
        with pytest.raises(InvalidTransactionError):
            builder.build(SIGNERS[0], 1)


class TestMsgTransactionJson:
    """Test the wire representation."""

    def test_program_index_is_list(self, create_account1):
        transaction = build_transaction([create_account1], SIGNERS, 1000)
        payload = json.loads(transaction.model_dump_json())

        instruction = payload["instructions"][0]
        assert instruction["program_index"] == [0]
        assert instruction["data"] == "AQID"
        assert instruction["accounts"][0] == {
            "id_index": 1,
            "caller_index": 1,
            "callee_index": 0,
            "is_signer": True,
            "is_writable": True,
        }

    def test_parse_wire_form(self, create_account1, create_account2):
        transaction = build_transaction([create_account1, create_account2], SIGNERS, 1000)
        parsed = MsgTransaction.model_validate(json.loads(transaction.model_dump_json()))
        assert parsed == transaction

    def test_program_index_needs_one_entry(self):
        with pytest.raises(ValueError):
            CompiledInstruction.model_validate({"program_index": [0, 1], "accounts": [], "data": ""})

"""
Raydium CPMM venue on the SVM plane.

Quotes pools from their vault and pool state accounts and composes
``swap_base_input`` transactions, creating the output token account first
when it does not exist yet.
"""
import struct
from typing import Any, List, Mapping, Optional, Sequence, Union

from mesh_solver.config.registry import RaydiumPoolAccounts, VenueRegistry
from mesh_solver.errors import InvalidAddressError, StateDecodeError, UnsupportedPairError
from mesh_solver.execution.models import FISInstruction, Plane, Swap, to_json_bytes
from mesh_solver.protocols.dex_protocols.constant_product_math import FeeConvention, PoolSnapshot
from mesh_solver.protocols.venues.base import U64_MAX, VenueComposer
from mesh_solver.svm.accounts import RaydiumPoolState, SvmAccount, TokenAccount
from mesh_solver.svm.pubkey import Pubkey, as_pubkey, get_associated_token_address
from mesh_solver.svm.transaction_builder import (
    InstructionAccountMeta,
    InstructionMeta,
    MsgTransaction,
    build_transaction,
)

# Associated token program instruction tag
CREATE_IDEMPOTENT = 1

AccountRecord = Union[bytes, str, Mapping[str, Any], SvmAccount]


class RaydiumVenue(VenueComposer):
    """Raydium constant product pools (fee taken from the input)."""

    venue_plane = Plane.SVM
    instruction_plane = Plane.SVM

    def __init__(self, registry: VenueRegistry, compute_budget: Optional[int] = None):
        super().__init__(registry)
        self.config = registry.raydium
        self.dex_name = self.config.dex_name
        self.compute_budget = compute_budget if compute_budget is not None else self.config.compute_budget

    def pool_from_accounts(self, token0_vault: bytes, token1_vault: bytes,
                           pool_state: bytes) -> PoolSnapshot:
        """
        Quote a pool from raw account data.

        Accrued protocol and fund fees sit in the vaults but belong to the
        pool owner, so they are excluded from the reserves. Asset A is always
        the settlement asset.

        Args:
            token0_vault: Data of the token 0 vault account
            token1_vault: Data of the token 1 vault account
            pool_state: Data of the CPMM pool state account

        Returns:
            Pool snapshot with reserves in COSMOS units
        """
        token_a = TokenAccount.unpack(token0_vault)
        token_b = TokenAccount.unpack(token1_vault)
        fees = RaydiumPoolState.unpack(pool_state)

        settlement_mint = self.registry.svm_mint(self.registry.settlement_denom)
        if str(token_a.mint) != settlement_mint:
            token_a, token_b = token_b, token_a
            fees = fees.swapped()

        reserve_a = token_a.amount - (fees.protocol_fees_token_0 + fees.fund_fees_token_0)
        reserve_b = token_b.amount - (fees.protocol_fees_token_1 + fees.fund_fees_token_1)
        if reserve_a < 0 or reserve_b < 0:
            raise StateDecodeError(
                f"accrued fees exceed vault balances: a={reserve_a}, b={reserve_b}",
                venue=self.dex_name
            )

        # SVM keeps fewer decimals for some assets; quote in COSMOS units
        decimal_diff = self.registry.svm_decimal_diff(str(token_b.mint))

        pool = PoolSnapshot(
            dex_name=self.dex_name,
            venue_plane=self.venue_plane.value,
            reserve_a=reserve_a,
            reserve_b=reserve_b * decimal_diff,
            fee_rate=self.config.fee_rate,
            fee_convention=FeeConvention.PRE_FEE,
            denom_a=str(token_a.mint),
            denom_b=str(token_b.mint),
            b_granularity=decimal_diff,
        )
        self.logger.debug(f"Parsed raydium pool: {pool}")
        return pool

    def pool_from_records(self, records: Sequence[AccountRecord]) -> PoolSnapshot:
        """
        Quote a pool from JSON account records.

        Args:
            records: token 0 vault, token 1 vault and pool state, in that order
        """
        if len(records) < 3:
            raise StateDecodeError(
                f"expected 3 account records (vault 0, vault 1, pool state), got {len(records)}",
                venue=self.dex_name
            )
        accounts = [SvmAccount.from_record(record) for record in records[:3]]
        return self.pool_from_accounts(accounts[0].data, accounts[1].data, accounts[2].data)

    def swap_instructions(self, sender_svm: Pubkey, pool: RaydiumPoolAccounts,
                          input_mint: str, amount_in: int,
                          min_amount_out: int = 0) -> List[InstructionMeta]:
        """
        Instructions swapping ``amount_in`` of ``input_mint`` (SVM units).

        Returns:
            [create output token account, swap_base_input]
        """
        self._check_amount(amount_in, U64_MAX, "amount in")
        self._check_amount(min_amount_out, U64_MAX, "minimum amount out")

        if input_mint == pool.token0_mint:
            output_mint = pool.token1_mint
            input_vault, output_vault = pool.token0_vault, pool.token1_vault
        elif input_mint == pool.token1_mint:
            output_mint = pool.token0_mint
            input_vault, output_vault = pool.token1_vault, pool.token0_vault
        else:
            raise UnsupportedPairError(
                f"mint {input_mint} is not traded by pool {pool.pool_state}",
                venue=self.dex_name
            )

        token_program = self.config.token_program_id
        ata_program = self.config.associated_token_program_id
        input_token_account = get_associated_token_address(sender_svm, input_mint, token_program, ata_program)
        output_token_account = get_associated_token_address(sender_svm, output_mint, token_program, ata_program)
        payer = str(sender_svm)

        create_output_account = InstructionMeta(
            program_id=ata_program,
            account_meta=[
                InstructionAccountMeta(payer, is_signer=True, is_writable=True),
                InstructionAccountMeta(str(output_token_account), is_writable=True),
                InstructionAccountMeta(payer),
                InstructionAccountMeta(output_mint),
                InstructionAccountMeta(self.config.system_program_id),
                InstructionAccountMeta(token_program),
            ],
            data=bytes([CREATE_IDEMPOTENT]),
        )

        data = bytes(self.config.swap_base_input_discriminator) + struct.pack("<QQ", amount_in, min_amount_out)
        swap = InstructionMeta(
            program_id=self.config.cpmm_program_id,
            account_meta=[
                InstructionAccountMeta(payer, is_signer=True, is_writable=True),
                InstructionAccountMeta(pool.authority),
                InstructionAccountMeta(pool.amm_config),
                InstructionAccountMeta(pool.pool_state, is_writable=True),
                InstructionAccountMeta(str(input_token_account), is_writable=True),
                InstructionAccountMeta(str(output_token_account), is_writable=True),
                InstructionAccountMeta(input_vault, is_writable=True),
                InstructionAccountMeta(output_vault, is_writable=True),
                # input and output token programs
                InstructionAccountMeta(token_program),
                InstructionAccountMeta(token_program),
                InstructionAccountMeta(input_mint),
                InstructionAccountMeta(output_mint),
                InstructionAccountMeta(pool.observer_state, is_writable=True),
            ],
            data=data,
        )
        return [create_output_account, swap]

    def build_swap_transaction(self, swap: Swap) -> MsgTransaction:
        """Compile ``swap`` into a MsgTransaction signed by ``swap.sender``."""
        if not swap.sender_svm:
            raise InvalidAddressError("raydium swaps require the sender's SVM account", venue=self.dex_name)
        sender_svm = as_pubkey(swap.sender_svm)
        pool = self.registry.raydium_pool(swap.pool_name)

        input_mint = self.registry.svm_mint(swap.denom)
        self._check_amount(swap.amount, 2 ** 127 - 1)
        # SVM holds the asset with fewer decimals
        amount_in = swap.amount // self.registry.svm_decimal_diff(input_mint)

        instructions = self.swap_instructions(sender_svm, pool, input_mint, amount_in)
        return build_transaction(instructions, [swap.sender], self.compute_budget)

    def compose_swap(self, swap: Swap) -> List[FISInstruction]:
        tx = self.build_swap_transaction(swap)
        self.logger.info(
            f"Composed raydium swap of {swap.amount} {swap.denom} on {swap.pool_name} "
            f"({len(tx.accounts)} accounts)"
        )
        return [FISInstruction(
            plane=self.instruction_plane,
            action="VM_INVOKE",
            address="",
            msg=to_json_bytes(tx.model_dump(mode="json")),
        )]

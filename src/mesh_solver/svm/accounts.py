"""Decoders for pre-fetched SVM account state."""
import json
import logging
import struct
from dataclasses import dataclass
from typing import Any, Mapping, Union

from pydantic import BaseModel, ValidationError, field_validator

from mesh_solver.errors import StateDecodeError
from mesh_solver.execution.models import decode_base64_field
from mesh_solver.svm.pubkey import Pubkey

logger = logging.getLogger(__name__)

TOKEN_ACCOUNT_MIN_LEN = 72


class SvmAccount(BaseModel):
    """Account record as returned by the SVM plane query (base64 binary fields)."""
    pubkey: bytes
    owner: bytes
    lamports: int
    data: bytes
    executable: bool = False
    rent_epoch: int = 0

    @field_validator("pubkey", "owner", "data", mode="before")
    @classmethod
    def _decode_binary(cls, value: Any) -> Any:
        return decode_base64_field(value)

    @classmethod
    def from_json_bytes(cls, raw: Union[bytes, str]) -> "SvmAccount":
        """Parse an account record, raising StateDecodeError on malformed input."""
        try:
            return cls.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            raise StateDecodeError(f"invalid svm account record: {e}") from e

    @classmethod
    def from_record(cls, record: Union[bytes, str, Mapping[str, Any], "SvmAccount"]) -> "SvmAccount":
        """Accept a parsed account, a mapping or raw JSON."""
        if isinstance(record, SvmAccount):
            return record
        if isinstance(record, Mapping):
            try:
                return cls.model_validate(record)
            except ValidationError as e:
                raise StateDecodeError(f"invalid svm account record: {e}") from e
        return cls.from_json_bytes(record)


@dataclass(frozen=True)
class TokenAccount:
    """The leading fields of an SPL token account."""
    mint: Pubkey
    owner: Pubkey
    amount: int

    @classmethod
    def unpack(cls, data: bytes) -> "TokenAccount":
        if len(data) < TOKEN_ACCOUNT_MIN_LEN:
            raise StateDecodeError(
                f"token account size must be >= {TOKEN_ACCOUNT_MIN_LEN} bytes, got {len(data)}"
            )
        mint = Pubkey.from_bytes(data[0:32])
        owner = Pubkey.from_bytes(data[32:64])
        (amount,) = struct.unpack_from("<Q", data, 64)
        return cls(mint=mint, owner=owner, amount=amount)


@dataclass(frozen=True)
class RaydiumPoolState:
    """
    Fee counters of a Raydium CPMM pool state account.

    Layout: 8-byte discriminator, 10 pubkeys, 5 single-byte fields, 6 u64
    fields, then 32 u64 of padding. The protocol and fund fee counters are
    the u64 fields at offsets 341..373.
    """
    LEN = 8 + 10 * 32 + 1 * 5 + 8 * 6 + 8 * 32

    protocol_fees_token_0: int
    protocol_fees_token_1: int
    fund_fees_token_0: int
    fund_fees_token_1: int

    @classmethod
    def unpack(cls, data: bytes) -> "RaydiumPoolState":
        if len(data) != cls.LEN:
            raise StateDecodeError(
                f"pool state account must be {cls.LEN} bytes, current len: {len(data)}"
            )
        protocol_0, protocol_1, fund_0, fund_1 = struct.unpack_from("<4Q", data, 341)
        return cls(
            protocol_fees_token_0=protocol_0,
            protocol_fees_token_1=protocol_1,
            fund_fees_token_0=fund_0,
            fund_fees_token_1=fund_1,
        )

    def swapped(self) -> "RaydiumPoolState":
        """Counters with token 0 and token 1 exchanged."""
        return RaydiumPoolState(
            protocol_fees_token_0=self.protocol_fees_token_1,
            protocol_fees_token_1=self.protocol_fees_token_0,
            fund_fees_token_0=self.fund_fees_token_1,
            fund_fees_token_1=self.fund_fees_token_0,
        )

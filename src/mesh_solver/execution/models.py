"""Wire-facing models exchanged with the orchestration layer."""
import base64
import binascii
import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Plane(str, Enum):
    """Execution planes of the mesh."""
    COSMOS = "COSMOS"
    EVM = "EVM"
    SVM = "SVM"
    WASM = "WASM"


def decode_base64_field(value: Any) -> Any:
    """Accept standard base64 strings for bytes fields."""
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"invalid base64 data: {e}") from e
    return value


def encode_base64_field(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


class Swap(BaseModel):
    """A single requested trade on one venue."""
    model_config = ConfigDict(frozen=True)

    dex_name: str
    pool_name: str
    sender: str
    denom: str = Field(..., description="Symbol of the input asset, e.g. 'usdt'")
    amount: int = Field(..., description="Input amount in the denom's smallest unit")
    sender_svm: Optional[str] = Field(
        None,
        description="Base58 SVM account linked to the sender"
    )


class FISInstruction(BaseModel):
    """Venue-tagged instruction returned by a strategy."""
    model_config = ConfigDict(frozen=True)

    plane: Plane
    action: str
    address: str = ""
    msg: bytes

    @field_validator("msg", mode="before")
    @classmethod
    def _decode_msg(cls, value: Any) -> Any:
        return decode_base64_field(value)

    @field_serializer("msg", when_used="json")
    def _encode_msg(self, value: bytes) -> str:
        return encode_base64_field(value)

    def decoded_msg(self) -> Any:
        """Parse the JSON message body."""
        return json.loads(self.msg)


class StrategyOutput(BaseModel):
    """Ordered trade plan; empty means take no action."""
    instructions: List[FISInstruction] = Field(default_factory=list)
    reason: Optional[str] = Field(
        None,
        description="Why no instructions were produced, when empty"
    )

    @property
    def is_noop(self) -> bool:
        return not self.instructions


def to_json_bytes(payload: Any) -> bytes:
    """Compact, key-order-preserving JSON encoding used for message bodies."""
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")

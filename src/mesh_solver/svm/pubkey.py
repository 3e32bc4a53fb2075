"""
SVM public keys and program-derived addresses.

A program-derived address (PDA) is the SHA-256 of the seeds, the owning
program id and a fixed marker. It is only valid when the digest is *not* an
ed25519 public key, so nobody can ever hold a private key for it.

Keys are ``solders.pubkey.Pubkey`` values; this module adds the typed
error mapping the solver reports to callers.
"""
import hashlib
import logging
from typing import Iterable, List, Sequence, Tuple, Union

import base58
from eth_utils import keccak
from solders.pubkey import Pubkey

from mesh_solver.errors import (
    BumpSeedExhaustedError,
    InvalidAddressError,
    InvalidSeedsError,
    MaxSeedLengthExceededError,
)

logger = logging.getLogger(__name__)

PUBKEY_BYTES = 32
MAX_SEED_LEN = 32
MAX_SEEDS = 255
PDA_MARKER = b"ProgramDerivedAddress"

PubkeyLike = Union[Pubkey, str, bytes]
SeedLike = Union[bytes, bytearray, Pubkey]


def is_on_curve(data: bytes) -> bool:
    """Check whether 32 bytes decompress to an Edwards25519 point."""
    if len(data) != PUBKEY_BYTES:
        raise InvalidAddressError(f"curve point must be {PUBKEY_BYTES} bytes: {len(data)}")
    return Pubkey.from_bytes(bytes(data)).is_on_curve()


def as_pubkey(value: PubkeyLike) -> Pubkey:
    """
    Coerce a Pubkey, base58 string or raw bytes to a Pubkey.

    Raises:
        InvalidAddressError: The value is not a 32-byte address
    """
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, str):
        if not value:
            raise InvalidAddressError("pubkey from string: empty string")
        try:
            decoded = base58.b58decode(value)
        except ValueError as e:
            raise InvalidAddressError(f"pubkey from string: {value}: {e}") from e
        if len(decoded) != PUBKEY_BYTES:
            raise InvalidAddressError(
                f"pubkey from string: {value}: pubkey must be {PUBKEY_BYTES} bytes: {len(decoded)}"
            )
        return Pubkey.from_bytes(decoded)
    if isinstance(value, (bytes, bytearray)):
        if len(value) != PUBKEY_BYTES:
            raise InvalidAddressError(f"pubkey must be {PUBKEY_BYTES} bytes: {len(value)}")
        return Pubkey.from_bytes(bytes(value))
    raise InvalidAddressError(f"cannot interpret {type(value).__name__} as a pubkey")


def _seed_bytes(seeds: Iterable[SeedLike]) -> List[bytes]:
    result = []
    for seed in seeds:
        if isinstance(seed, Pubkey):
            result.append(bytes(seed))
        elif isinstance(seed, (bytes, bytearray)):
            result.append(bytes(seed))
        else:
            raise InvalidSeedsError(f"seed must be bytes or a pubkey, got {type(seed).__name__}")
    return result


def create_program_address(seeds: Sequence[SeedLike], program_id: PubkeyLike) -> Pubkey:
    """
    Derive the address for ``seeds`` owned by ``program_id``.

    Args:
        seeds: Up to 255 seeds of at most 32 bytes each
        program_id: Owning program

    Returns:
        The derived address

    Raises:
        MaxSeedLengthExceededError: Too many or too long seeds
        InvalidSeedsError: A seed is not bytes, or the digest is a valid curve point
    """
    seed_list = _seed_bytes(seeds)
    if len(seed_list) > MAX_SEEDS:
        raise MaxSeedLengthExceededError(f"at most {MAX_SEEDS} seeds allowed: {len(seed_list)}")
    for seed in seed_list:
        if len(seed) > MAX_SEED_LEN:
            raise MaxSeedLengthExceededError(
                f"seed exceeds {MAX_SEED_LEN} bytes: {len(seed)}"
            )

    program = as_pubkey(program_id)
    hasher = hashlib.sha256()
    for seed in seed_list:
        hasher.update(seed)
    hasher.update(bytes(program))
    hasher.update(PDA_MARKER)
    digest = hasher.digest()

    if is_on_curve(digest):
        raise InvalidSeedsError("derived address lands on the ed25519 curve")

    return Pubkey.from_bytes(digest)


def find_program_address(seeds: Sequence[SeedLike], program_id: PubkeyLike) -> Tuple[Pubkey, int]:
    """
    Find the first off-curve address, appending a bump seed from 255 down.

    Returns:
        Tuple of (address, bump seed)

    Raises:
        BumpSeedExhaustedError: All 256 bump seeds landed on the curve
    """
    seed_list = _seed_bytes(seeds)
    program = as_pubkey(program_id)
    for bump in range(255, -1, -1):
        try:
            address = create_program_address(seed_list + [bytes([bump])], program)
        except InvalidSeedsError:
            continue
        return address, bump

    logger.error(f"No viable bump seed for program {program}")
    raise BumpSeedExhaustedError(f"unable to find a viable program address bump seed for {program}")


def get_associated_token_address(owner: PubkeyLike, mint: PubkeyLike,
                                 token_program_id: PubkeyLike,
                                 associated_token_program_id: PubkeyLike) -> Pubkey:
    """Associated token account of ``owner`` for ``mint``."""
    address, _ = find_program_address(
        [as_pubkey(owner), as_pubkey(token_program_id), as_pubkey(mint)],
        associated_token_program_id,
    )
    return address


def svm_account_from_cosmos_address(address_bytes: bytes) -> Pubkey:
    """SVM account linked to a COSMOS account: keccak256 of its raw address bytes."""
    if not address_bytes:
        raise InvalidAddressError("cosmos address bytes must not be empty")
    return Pubkey.from_bytes(keccak(bytes(address_bytes)))

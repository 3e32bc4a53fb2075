"""Cross-plane transfers through the astromesh bank."""
import logging

from mesh_solver.config.registry import VenueRegistry
from mesh_solver.errors import PoolMathError, UnsupportedVenueError
from mesh_solver.execution.models import FISInstruction, Plane, to_json_bytes

logger = logging.getLogger(__name__)

ASTRO_TRANSFER_TYPE = "/flux.astromesh.v1beta1.MsgAstroTransfer"
ASTRO_DENOM_PREFIX = "astro/"
U128_MAX = 2 ** 128 - 1


def _plane(value) -> Plane:
    try:
        return Plane(value)
    except ValueError:
        raise UnsupportedVenueError(f"unknown plane: {value}") from None


def _svm_mint_decimal_diff(registry: VenueRegistry, denom: str) -> int:
    for config in registry.denoms.values():
        if config.svm_mint and denom == config.svm_mint:
            return config.svm_decimal_diff
    return 1


def _symbol_decimal_diff(registry: VenueRegistry, denom: str) -> int:
    config = registry.denoms.get(denom)
    return config.svm_decimal_diff if config is not None else 1


def astro_transfer(sender: str, src_plane, dst_plane, denom: str, amount: int,
                   registry: VenueRegistry) -> FISInstruction:
    """
    Move ``amount`` of ``denom`` from ``src_plane`` to ``dst_plane``.

    SVM balances of assets with a decimal difference (ETH) are kept at
    fewer decimals: leaving SVM by mint divides the amount, entering SVM by
    symbol rounds it down to a transferable multiple. Denoms minted on the
    EVM and SVM planes are prefixed with ``astro/`` in the bank.

    Args:
        sender: Account sending and receiving the funds
        src_plane: Plane holding the funds
        dst_plane: Plane to move them to
        denom: Denom as known on ``src_plane``
        amount: Amount in the denom's units on ``src_plane``
        registry: Venue registry with the decimal differences

    Returns:
        COSMOS_INVOKE instruction wrapping a MsgAstroTransfer
    """
    src = _plane(src_plane)
    dst = _plane(dst_plane)
    if amount < 0:
        raise PoolMathError(f"transfer amount must be non-negative, got {amount}")

    if src == Plane.SVM:
        diff = _svm_mint_decimal_diff(registry, denom)
        if diff > 1:
            amount = amount // diff

    if dst == Plane.SVM:
        diff = _symbol_decimal_diff(registry, denom)
        if diff > 1:
            amount = (amount // diff) * diff

    if amount > U128_MAX:
        raise PoolMathError(f"transfer amount overflows u128: {amount}")

    if src in (Plane.EVM, Plane.SVM):
        denom = ASTRO_DENOM_PREFIX + denom

    logger.debug(f"astro transfer {amount} {denom}: {src.value} -> {dst.value}")
    msg = {
        "@type": ASTRO_TRANSFER_TYPE,
        "sender": sender,
        "receiver": sender,
        "src_plane": src.value,
        "dst_plane": dst.value,
        "coin": {
            "denom": denom,
            "amount": str(amount),
        },
    }
    return FISInstruction(
        plane=Plane.COSMOS,
        action="COSMOS_INVOKE",
        address="",
        msg=to_json_bytes(msg),
    )

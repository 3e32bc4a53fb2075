"""
DEX Protocol Math Implementations.

Integer-exact constant product quoting shared by every venue of the mesh.
"""
from .constant_product_math import (
    FEE_SCALE,
    FeeConvention,
    PoolSnapshot,
    apply_trade,
    spot_rate,
    swap_output,
)

__all__ = [
    "FEE_SCALE",
    "FeeConvention",
    "PoolSnapshot",
    "apply_trade",
    "spot_rate",
    "swap_output",
]

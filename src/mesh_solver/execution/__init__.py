"""Execution models and strategy orchestration for the mesh solver."""
from .models import (
    FISInstruction,
    Plane,
    StrategyOutput,
    Swap,
)

__all__ = [
    "FISInstruction",
    "Plane",
    "StrategyOutput",
    "Swap",
]

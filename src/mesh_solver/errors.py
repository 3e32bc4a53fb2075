"""Exception hierarchy for the mesh solver.

Domain errors are deterministic rejections of malformed input; retrying
them can never change the outcome. Bump seed exhaustion is kept outside the
domain branch because it signals a broken seed configuration.
"""
from typing import Optional


class MeshSolverError(Exception):
    """Base exception for all mesh solver errors."""

    def __init__(self, message: str, venue: Optional[str] = None):
        """
        Initialize solver error.

        Args:
            message: Error message
            venue: Venue (dex name) where the error occurred
        """
        self.venue = venue
        super().__init__(message)

    def __str__(self) -> str:
        """String representation of the error."""
        base_msg = super().__str__()
        if self.venue:
            return f"[{self.venue}] {base_msg}"
        return base_msg


class DomainError(MeshSolverError):
    """Raised when caller input can never produce a valid result."""
    pass


class PoolMathError(DomainError):
    """Raised for invalid pool reserves or trade sizes."""
    pass


class PubkeyError(DomainError):
    """Base class for address and derivation errors."""
    pass


class MaxSeedLengthExceededError(PubkeyError):
    """Raised when too many seeds are given or a seed is too long."""
    pass


class InvalidSeedsError(PubkeyError):
    """Raised when the derived hash lands on the ed25519 curve."""
    pass


class InvalidAddressError(PubkeyError):
    """Raised when an address string or byte value is malformed."""
    pass


class UnsupportedVenueError(DomainError):
    """Raised when no composer or registry entry exists for a venue."""
    pass


class UnsupportedPairError(DomainError):
    """Raised when a trading pair is not configured."""
    pass


class StateDecodeError(DomainError):
    """Raised when pre-fetched on-chain state cannot be decoded."""
    pass


class BumpSeedExhaustedError(MeshSolverError):
    """Raised when no bump seed yields an off-curve address."""
    pass


class InvalidTransactionError(DomainError):
    """Raised when transaction parameters are out of range."""
    pass

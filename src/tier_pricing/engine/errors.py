"""
Error taxonomy for tier admission and price resolution.
"""
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationResult


class TierError(str, Enum):
    """Reason a candidate tier was rejected."""
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_BOUND = "INVALID_BOUND"
    INVALID_PRICE = "INVALID_PRICE"
    OVERLAPPING_RANGE = "OVERLAPPING_RANGE"


class TierRejected(ValueError):
    """A candidate tier failed validation and was not admitted."""

    def __init__(self, result: 'ValidationResult'):
        super().__init__(result.message)
        self.result = result

    @property
    def error(self) -> TierError:
        return self.result.error

    @property
    def message(self) -> str:
        return self.result.message


class TierInvariantError(AssertionError):
    """
    An active tier set breaks the bound or overlap invariants.

    Raised by the resolver only. It means a tier reached storage without
    passing the validator, so it is a programming error and not user input.
    """

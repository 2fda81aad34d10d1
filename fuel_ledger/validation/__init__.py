"""Draft validation package."""

from fuel_ledger.validation.validator import (
    REQUIRED_NUMBERS,
    DraftValidator,
    combine_timestamp,
)

__all__ = ["REQUIRED_NUMBERS", "DraftValidator", "combine_timestamp"]

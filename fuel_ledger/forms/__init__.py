"""Form editing package: the add/edit draft and its price solver."""

from fuel_ledger.forms.editor import DraftEditor
from fuel_ledger.forms.solver import PinnedPrice, PriceField, solve

__all__ = ["DraftEditor", "PinnedPrice", "PriceField", "solve"]

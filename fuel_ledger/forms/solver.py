"""
Bidirectional Field Solver

Price, volume and total cost are tied together by `total = volume * price`.
When the user edits one of them, the solver fills in a dependent field:

- editing price or volume recomputes the total (2 decimals)
- editing the total recomputes the volume (3 decimals)
- the price is NEVER derived; it is either typed or pinned

The edited field always keeps exactly the text the user typed, even when
it does not parse. A dependent field is only touched when both inputs of
its formula parse.

`solve` is pure: it returns a new draft and leaves the input unchanged.
"""

from enum import Enum
from typing import Union

from fuel_ledger.audit import AuditLogger
from fuel_ledger.models.draft import FormDraft, RawNumber
from fuel_ledger.services.storage import LedgerStore


class PriceField(str, Enum):
    """The three mutually dependent draft fields."""
    PRICE_PER_UNIT = "price_per_unit"
    VOLUME = "volume"
    TOTAL_COST = "total_cost"


def format_total(value: float) -> str:
    return f"{value:.2f}"


def format_volume(value: float) -> str:
    return f"{value:.3f}"


def solve(draft: FormDraft, field: Union[PriceField, str], text: str) -> FormDraft:
    """
    Apply a user edit of one price field and recompute its dependent.

    Args:
        draft: The current draft
        field: Which field the user edited
        text: The raw text now in that field

    Returns:
        A new draft
    """
    field = PriceField(field)
    edited = RawNumber(text=text)
    updates: dict[str, RawNumber] = {field.value: edited}

    if field == PriceField.PRICE_PER_UNIT:
        price, volume = edited.value, draft.volume.value
        if price is not None and volume is not None:
            updates["total_cost"] = RawNumber(text=format_total(volume * price))

    elif field == PriceField.VOLUME:
        volume, price = edited.value, draft.price_per_unit.value
        if volume is not None and price is not None:
            updates["total_cost"] = RawNumber(text=format_total(volume * price))

    else:
        cost, price = edited.value, draft.price_per_unit.value
        if cost is not None and price is not None and price != 0:
            updates["volume"] = RawNumber(text=format_volume(cost / price))

    return draft.model_copy(update=updates)


class PinnedPrice:
    """
    The "fix price" option: remembers the unit price across drafts.

    While enabled, every price edit is mirrored into durable storage and
    every new blank draft starts with that price. Disabling stops the
    mirroring but keeps the last stored price.
    """

    def __init__(self, store: LedgerStore, audit_logger: AuditLogger):
        self._store = store
        self._audit = audit_logger

    @property
    def enabled(self) -> bool:
        return self._store.pinned_price_enabled

    @property
    def text(self) -> str:
        return self._store.pinned_price_text

    def initial_price(self) -> str:
        """Price text a new blank draft should start with."""
        return self._store.pinned_price_text if self.enabled else ""

    def record_edit(self, text: str) -> None:
        """Mirror a price edit, if pinning is on."""
        if self.enabled:
            self._store.set_pinned_price_text(text)

    def toggle(self, current_price_text: str) -> bool:
        """
        Flip the option.

        Turning it on snapshots `current_price_text` as the pinned price.

        Returns:
            The new state
        """
        enabled = not self.enabled
        self._store.set_pinned_price_enabled(enabled)
        if enabled:
            self._store.set_pinned_price_text(current_price_text)

        self._audit.log_pinned_price_toggled(enabled, current_price_text)
        return enabled

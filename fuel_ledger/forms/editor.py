"""
Draft Editor

Owns the single in-progress add/edit form and everything that writes to
it: the price solver, the pinned price, receipt merges, and submit.

FLOW:
1. `reset()` or `begin_edit(record_id)` produces a fresh draft
2. Field edits go through `set_*` / `update_fields`
3. `submit()` validates; only a valid draft reaches the ledger store
4. After a successful submit the draft is reset
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from fuel_ledger.audit import AuditLogger
from fuel_ledger.forms.solver import PinnedPrice, PriceField, solve
from fuel_ledger.models.draft import FormDraft, RawNumber
from fuel_ledger.models.record import (
    FuelRecord,
    ReceiptData,
    ValidationResult,
    format_number,
)
from fuel_ledger.services.storage import LedgerStore
from fuel_ledger.validation import DraftValidator


logger = structlog.get_logger(__name__)


# Fields the editor lets callers set directly; price fields go through the solver
PLAIN_FIELDS = frozenset({"date", "time", "odometer", "station_name", "full_tank", "notes"})


class DraftEditor:
    """
    The form behind the Add/Edit page.

    `clock` returns "now" for blank drafts and is injectable for tests.
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[DraftValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._validator = validator or DraftValidator()
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or datetime.now
        self._pinned = PinnedPrice(store, self._audit)

        self.last_result: Optional[ValidationResult] = None
        self._draft = self._blank()

    # -------------------------------------------------------------------------
    # Draft lifecycle
    # -------------------------------------------------------------------------

    @property
    def draft(self) -> FormDraft:
        return self._draft

    def _blank(self) -> FormDraft:
        return FormDraft.blank(price_text=self._pinned.initial_price(), now=self._clock())

    def reset(self) -> FormDraft:
        """Discard the current draft and start a blank one."""
        self._draft = self._blank()
        self.last_result = None
        return self._draft

    def begin_edit(self, record_id: str) -> FormDraft:
        """
        Replace the draft with one populated from an existing record.

        Raises:
            NotFoundError: If the record does not exist
        """
        record = self._store.require(record_id)
        self._draft = FormDraft.from_record(record, now=self._clock())
        self.last_result = None
        return self._draft

    # -------------------------------------------------------------------------
    # Field edits
    # -------------------------------------------------------------------------

    def set_price_per_unit(self, text: str) -> FormDraft:
        self._draft = solve(self._draft, PriceField.PRICE_PER_UNIT, text)
        self._pinned.record_edit(text)
        return self._draft

    def set_volume(self, text: str) -> FormDraft:
        self._draft = solve(self._draft, PriceField.VOLUME, text)
        return self._draft

    def set_total_cost(self, text: str) -> FormDraft:
        self._draft = solve(self._draft, PriceField.TOTAL_COST, text)
        return self._draft

    def update_fields(self, **changes) -> FormDraft:
        """
        Set non-derived fields (date, time, odometer, station, tank, notes).

        Raises:
            ValueError: For a price field or an unknown field
        """
        unknown = set(changes) - PLAIN_FIELDS
        if unknown:
            raise ValueError(f"Cannot set field(s) directly: {', '.join(sorted(unknown))}")
        self._draft = self._draft.model_copy(update=_coerce(changes))
        return self._draft

    # -------------------------------------------------------------------------
    # Pinned price
    # -------------------------------------------------------------------------

    @property
    def pinned_price_enabled(self) -> bool:
        return self._pinned.enabled

    def toggle_pinned_price(self) -> bool:
        return self._pinned.toggle(self._draft.price_per_unit.text)

    # -------------------------------------------------------------------------
    # Receipt merge
    # -------------------------------------------------------------------------

    def merge_receipt(self, receipt: ReceiptData) -> list[str]:
        """
        Copy every non-null receipt field into the draft.

        The time of day is kept; derived fields are NOT recomputed, the
        receipt's figures are taken as printed.

        Returns:
            Names of the draft fields that were overwritten
        """
        updates: dict = {}
        for field in ("total_cost", "volume", "price_per_unit"):
            value = getattr(receipt, field)
            if value is not None:
                updates[field] = RawNumber(text=format_number(value))
        if receipt.station_name is not None:
            updates["station_name"] = receipt.station_name
        if receipt.date is not None:
            updates["date"] = receipt.date

        if updates:
            self._draft = self._draft.model_copy(update=updates)
        return sorted(updates)

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        self.last_result = self._validator.validate(self._draft)
        return self.last_result

    def submit(self) -> Optional[FuelRecord]:
        """
        Validate the draft and write it to the ledger.

        Returns:
            The created or updated record, or None when the draft was
            rejected (see `last_result`) or the edited record no longer
            exists. The draft is reset only on success.
        """
        result = self.validate()
        if result.has_errors:
            self._audit.log_submit_rejected(
                self._draft.draft_id,
                [issue.model_dump() for issue in result.issues if issue.severity == "error"],
            )
            return None

        fields = self._validator.to_fields(self._draft)

        if self._draft.is_editing:
            record_id = self._draft.editing_id
            if not self._store.update(record_id, fields):
                logger.warning("edited_record_missing", record_id=record_id)
                return None
            record = self._store.get(record_id)
        else:
            record = self._store.create(fields)

        self.reset()
        return record


def _coerce(changes: dict) -> dict:
    # model_copy skips validation, so raw odometer text must be wrapped here
    if isinstance(changes.get("odometer"), str):
        changes = {**changes, "odometer": RawNumber(text=changes["odometer"])}
    return changes

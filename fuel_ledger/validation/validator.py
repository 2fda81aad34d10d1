"""
Draft Validation

DESIGN DECISION: The form draft holds raw text; a `FuelRecord` holds
numbers. The ONLY crossing between the two is `DraftValidator`.

A draft is accepted when odometer, total cost, volume and price all parse
as finite, non-negative numbers. Anything else blocks the submit and is
reported as a `ValidationIssue`; nothing is raised and nothing is silently
fixed.

The timestamp is the one field that degrades instead of blocking: date and
time are combined into a local date-time, and when they cannot be combined
the raw date text is stored as it was typed.
"""

from datetime import datetime
from typing import Optional

from fuel_ledger.config import AppSettings, get_settings
from fuel_ledger.models.draft import FormDraft, RawNumber
from fuel_ledger.models.record import (
    FuelRecordFields,
    ValidationIssue,
    ValidationResult,
)


# Submit requires every one of these, in the order issues are reported
REQUIRED_NUMBERS = {
    "odometer": "Odometer",
    "total_cost": "Total cost",
    "volume": "Volume",
    "price_per_unit": "Price per unit",
}

_TIME_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")


def combine_timestamp(day: str, clock: str) -> Optional[str]:
    """
    Combine date and time components into an ISO-8601 local date-time.

    Returns None when the two do not form a valid date-time.
    """
    text = f"{day.strip()}T{clock.strip()}"
    for fmt in _TIME_FORMATS:
        try:
            moment = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return moment.astimezone().isoformat(timespec="seconds")
    return None


class DraftValidator:
    """Turns a form draft into validated record fields."""

    def __init__(self, app_settings: Optional[AppSettings] = None):
        self._settings = app_settings or get_settings().app

    def _check_number(self, field: str, label: str, raw: RawNumber) -> Optional[ValidationIssue]:
        if raw.is_empty:
            return ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
                severity="error",
            )

        value = raw.value
        if value is None:
            return ValidationIssue(
                field=field,
                issue_type="not_a_number",
                message=f"{label} must be a number, got {raw.text!r}",
                severity="error",
            )
        if value < 0:
            return ValidationIssue(
                field=field,
                issue_type="negative",
                message=f"{label} cannot be negative",
                severity="error",
            )
        return None

    def validate(self, draft: FormDraft) -> ValidationResult:
        """Check a draft. Never raises; problems are returned as issues."""
        issues = []

        for field, label in REQUIRED_NUMBERS.items():
            issue = self._check_number(field, label, getattr(draft, field))
            if issue is not None:
                issues.append(issue)

        if not draft.date.strip():
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        elif combine_timestamp(draft.date, draft.time) is None:
            issues.append(ValidationIssue(
                field="time",
                issue_type="unparseable",
                message="Date and time could not be combined; the date will be stored as entered",
                severity="warning",
            ))

        return ValidationResult(draft_id=draft.draft_id, issues=issues)

    def to_fields(self, draft: FormDraft) -> FuelRecordFields:
        """
        Build record fields from a draft.

        Call only after `validate` reported no errors.

        Raises:
            ValueError: If a required number does not parse
        """
        numbers = {}
        for field, label in REQUIRED_NUMBERS.items():
            value = getattr(draft, field).value
            if value is None:
                raise ValueError(f"{label} does not parse as a number")
            numbers[field] = value

        timestamp = combine_timestamp(draft.date, draft.time) or draft.date.strip()
        station = draft.station_name.strip() or self._settings.unknown_station_label
        notes = draft.notes.strip() or None

        return FuelRecordFields(
            timestamp=timestamp,
            station_name=station,
            full_tank=draft.full_tank,
            notes=notes,
            **numbers,
        )

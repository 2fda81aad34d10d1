"""
Fuel Record Models

The persisted fill-up record, the figures derived from a collection of
them, the receipt recognition result and the submit validation result.
All are pydantic models, so stored JSON is validated on load.

DESIGN DECISION: Persisted records keep the field names of the original
browser app (`date`, `pricePerUnit`, `totalCost`, ...) through aliases.
A collection exported from that app loads without conversion.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


UNKNOWN_STATION = "Unknown Station"


# =============================================================================
# ENUMS
# =============================================================================

class SortMode(str, Enum):
    """History ordering modes."""
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    COST_DESC = "cost-desc"
    COST_ASC = "cost-asc"

    @property
    def label(self) -> str:
        return {
            SortMode.DATE_DESC: "Date: Newest First",
            SortMode.DATE_ASC: "Date: Oldest First",
            SortMode.COST_DESC: "Cost: Highest First",
            SortMode.COST_ASC: "Cost: Lowest First",
        }[self]


class ViewState(str, Enum):
    """Top-level views of the app."""
    DASHBOARD = "dashboard"
    ADD = "add"
    HISTORY = "history"
    SETTINGS = "settings"


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================

def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a stored record timestamp into an aware datetime.

    Accepts ISO date-times (with or without offset, `Z` suffix allowed) and
    legacy date-only values. Date-only values are midnight UTC; date-times
    without an offset are local wall-clock time. Anything else returns None.
    """
    text = (value or "").strip()
    if not text:
        return None

    if "T" not in text and " " not in text:
        try:
            day = date.fromisoformat(text)
        except ValueError:
            return None
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def format_number(value: float) -> str:
    """Render a stored number back into editable text ("20", "1.5")."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


# =============================================================================
# CORE RECORD MODEL
# =============================================================================

class FuelRecordFields(BaseModel):
    """
    The user-supplied part of a fill-up record.

    This is what a submitted draft produces and what `update` accepts.
    The identity (`id`) is added by the ledger store.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )

    timestamp: str = Field(
        ...,
        alias="date",
        min_length=1,
        description="ISO date-time, legacy YYYY-MM-DD, or raw fallback text"
    )
    odometer: float = Field(
        ...,
        ge=0,
        description="Odometer reading, unit-less"
    )
    price_per_unit: float = Field(
        ...,
        ge=0,
        description="Price of one unit of fuel"
    )
    volume: float = Field(
        ...,
        ge=0,
        description="Amount of fuel bought"
    )
    total_cost: float = Field(
        ...,
        ge=0,
        description="Amount paid"
    )
    station_name: str = Field(
        default=UNKNOWN_STATION,
        description="Station display label"
    )
    # Informational only: metrics do not look at it
    full_tank: bool = Field(
        default=True,
        description="Whether the tank was filled up completely"
    )
    notes: Optional[str] = Field(
        default=None,
        description="Free text"
    )

    @field_validator('station_name', mode='before')
    @classmethod
    def default_station_name(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNKNOWN_STATION
        return v

    @property
    def moment(self) -> Optional[datetime]:
        """Parsed timestamp, or None for a degraded value."""
        return parse_timestamp(self.timestamp)

    @property
    def sort_key(self) -> float:
        """Numeric timestamp for chronological ordering.

        Unparseable timestamps sort before everything else.
        """
        moment = self.moment
        if moment is None:
            return float("-inf")
        return moment.timestamp()

    @property
    def has_time_of_day(self) -> bool:
        return "T" in self.timestamp


class FuelRecord(FuelRecordFields):
    """
    A persisted fill-up event.

    CRITICAL: `id` is assigned once by the ledger store and never reused.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique record ID"
    )

    @classmethod
    def from_fields(cls, fields: FuelRecordFields, record_id: Optional[str] = None) -> "FuelRecord":
        return cls(id=record_id or str(uuid4()), **fields.model_dump())

    def with_fields(self, fields: FuelRecordFields) -> "FuelRecord":
        """Copy of this record with all user fields replaced, same id."""
        return FuelRecord(id=self.id, **fields.model_dump())

    def to_storage_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# DERIVED MODELS
# =============================================================================

class VehicleStats(BaseModel):
    """Summary statistics derived from the whole record collection."""

    total_cost: float = 0.0
    total_distance: float = 0.0
    average_efficiency: float = Field(
        default=0.0,
        description="Distance per unit of fuel"
    )
    last_odometer: float = 0.0


class ChartPoint(BaseModel):
    """One point of the spending trend chart."""

    label: str
    cost: float


# =============================================================================
# RECEIPT RECOGNITION MODEL
# =============================================================================

class ReceiptData(BaseModel):
    """
    Best-effort guess returned by receipt recognition.

    CRITICAL: This is PROPOSED data, NOT verified.
    Every field is independently nullable; only non-null fields are merged
    into the draft and the user still submits explicitly.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    total_cost: Optional[float] = None
    volume: Optional[float] = None
    price_per_unit: Optional[float] = None
    station_name: Optional[str] = None
    date: Optional[str] = Field(
        default=None,
        description="Transaction date as YYYY-MM-DD"
    )

    @field_validator('total_cost', 'volume', 'price_per_unit', mode='before')
    @classmethod
    def drop_unusable_numbers(cls, v):
        """Negative or non-finite guesses are treated as unknown."""
        if v is None:
            return None
        try:
            number = float(v)
        except (TypeError, ValueError):
            return None
        if number != number or number in (float("inf"), float("-inf")) or number < 0:
            return None
        return number

    @field_validator('station_name', 'date', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.total_cost,
                self.volume,
                self.price_per_unit,
                self.station_name,
                self.date,
            )
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """One problem with a draft field."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_a_number', 'negative')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of checking a draft before submit."""

    draft_id: UUID = Field(
        ...,
        description="ID of the draft being validated"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """True if anything blocks the submit."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

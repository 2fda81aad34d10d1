"""
Form Draft Models

The editor works on raw text, not numbers: the user types "1." on the way
to "1.5", and the form must hold that without complaint. Numeric fields are
therefore `RawNumber`s that parse lazily. The only way from a draft to a
`FuelRecord` is the validator in `fuel_ledger.validation`.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fuel_ledger.models.record import FuelRecord, format_number


class RawNumber(BaseModel):
    """Raw editable text of a numeric field, parsed on demand."""
    model_config = ConfigDict(frozen=True)

    text: str = ""

    @property
    def value(self) -> Optional[float]:
        """The parsed number, or None when the text is not a finite number."""
        stripped = self.text.strip()
        if not stripped:
            return None
        try:
            number = float(stripped)
        except ValueError:
            return None
        if number != number or number in (float("inf"), float("-inf")):
            return None
        return number

    @property
    def is_present(self) -> bool:
        return self.value is not None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def __str__(self) -> str:
        return self.text


def _now_parts(now: Optional[datetime] = None) -> tuple[str, str]:
    now = (now or datetime.now()).astimezone()
    return now.strftime("%Y-%m-%d"), now.strftime("%H:%M")


class FormDraft(BaseModel):
    """
    The single in-progress add/edit form.

    `draft_id` identifies this draft instance; it changes whenever the
    form is reset, so late receipt recognition results can tell whether the
    draft they were started for is still the active one.
    """
    model_config = ConfigDict(validate_assignment=True)

    draft_id: UUID = Field(default_factory=uuid4)
    editing_id: Optional[str] = Field(
        default=None,
        description="ID of the record being edited, None for a new record"
    )

    date: str = Field(
        ...,
        description="Date component, YYYY-MM-DD"
    )
    time: str = Field(
        ...,
        description="Time component, HH:MM"
    )
    odometer: RawNumber = Field(default_factory=RawNumber)
    price_per_unit: RawNumber = Field(default_factory=RawNumber)
    volume: RawNumber = Field(default_factory=RawNumber)
    total_cost: RawNumber = Field(default_factory=RawNumber)
    station_name: str = ""
    full_tank: bool = True
    notes: str = ""

    @field_validator('odometer', 'price_per_unit', 'volume', 'total_cost', mode='before')
    @classmethod
    def wrap_text(cls, v):
        if isinstance(v, str):
            return RawNumber(text=v)
        return v

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    @classmethod
    def blank(cls, price_text: str = "", now: Optional[datetime] = None) -> "FormDraft":
        """A fresh draft stamped with the current local date and time."""
        day, clock = _now_parts(now)
        return cls(date=day, time=clock, price_per_unit=RawNumber(text=price_text))

    @classmethod
    def from_record(cls, record: FuelRecord, now: Optional[datetime] = None) -> "FormDraft":
        """
        Populate a draft for editing an existing record.

        Date-time timestamps are split into local date and HH:MM. Legacy
        date-only (or degraded) timestamps keep their text as the date and
        take the current time.
        """
        moment = record.moment if record.has_time_of_day else None
        if moment is not None:
            local = moment.astimezone()
            day, clock = local.strftime("%Y-%m-%d"), local.strftime("%H:%M")
        else:
            day = record.timestamp
            _, clock = _now_parts(now)

        return cls(
            editing_id=record.id,
            date=day,
            time=clock,
            odometer=RawNumber(text=format_number(record.odometer)),
            price_per_unit=RawNumber(text=format_number(record.price_per_unit)),
            volume=RawNumber(text=format_number(record.volume)),
            total_cost=RawNumber(text=format_number(record.total_cost)),
            station_name=record.station_name or "",
            full_tank=record.full_tank,
            notes=record.notes or "",
        )

"""Station directory interaction: row gestures and the picker."""

from fuel_ledger.interaction.gesture import (
    DeleteActivated,
    Delete,
    Phase,
    PointerCancel,
    PointerDown,
    PointerMove,
    PointerUp,
    Reset,
    RowState,
    Select,
    SwipeableRow,
    transition,
)
from fuel_ledger.interaction.station_picker import StationPicker, filter_stations

__all__ = [
    "Delete",
    "DeleteActivated",
    "Phase",
    "PointerCancel",
    "PointerDown",
    "PointerMove",
    "PointerUp",
    "Reset",
    "RowState",
    "Select",
    "StationPicker",
    "SwipeableRow",
    "filter_stations",
    "transition",
]

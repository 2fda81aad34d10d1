"""
Station Picker

The station directory as the editor sees it: a searchable list of
swipeable rows. Tapping a row selects the station for the draft; swiping
it open and pressing delete removes the station from the directory, after
the user confirms.

Rows are positional. When a search changes which station sits at a
position, that row is `Reset` to the new station so a half-open row never
carries over to a different name.
"""

from typing import Callable, Optional

import structlog

from fuel_ledger.config import AppSettings, get_settings
from fuel_ledger.forms import DraftEditor
from fuel_ledger.interaction.gesture import GestureEffect, GestureEvent, SwipeableRow
from fuel_ledger.services.storage import LedgerStore


logger = structlog.get_logger(__name__)


ConfirmGate = Callable[[str], bool]


def filter_stations(stations: list[str], query: str, limit: int) -> list[str]:
    """Case-insensitive substring match, first `limit` results."""
    needle = query.strip().lower()
    matches = [name for name in stations if needle in name.lower()]
    return matches[:limit]


class StationPicker:
    """
    Connects the station directory, the row gestures and the draft.

    `confirm` is asked before every destructive action and receives the
    prompt text to show; returning False cancels the action.
    """

    def __init__(
        self,
        store: LedgerStore,
        editor: DraftEditor,
        confirm: ConfirmGate,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._editor = editor
        self._confirm = confirm
        self._settings = app_settings or get_settings().app
        self._rows: list[SwipeableRow] = []
        self.query = ""

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def visible_stations(self) -> list[str]:
        return filter_stations(
            self._store.stations(),
            self.query,
            self._settings.station_search_limit,
        )

    def rows(self) -> list[SwipeableRow]:
        """One gesture row per visible station, in display order."""
        names = self.visible_stations()

        for index, name in enumerate(names):
            if index < len(self._rows):
                if self._rows[index].row_id != name:
                    self._rows[index].reset(name)
            else:
                self._rows.append(SwipeableRow(
                    name,
                    on_select=self.select,
                    on_delete=self.request_delete,
                    reveal_width=self._settings.reveal_width,
                    drag_threshold=self._settings.drag_threshold,
                ))
        del self._rows[len(names):]

        return list(self._rows)

    def row(self, name: str) -> Optional[SwipeableRow]:
        for row in self.rows():
            if row.row_id == name:
                return row
        return None

    def dispatch(self, name: str, event: GestureEvent) -> list[GestureEffect]:
        """Feed a pointer event to the row showing `name`."""
        row = self.row(name)
        if row is None:
            logger.warning("gesture_for_hidden_station", station=name)
            return []
        return row.dispatch(event)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def select(self, name: str) -> None:
        """Use `name` as the draft's station and clear the search."""
        self._editor.update_fields(station_name=name)
        self.query = ""

    def add_station(self, name: str) -> Optional[str]:
        """
        Add a station to the directory and select it.

        An existing name is selected without being added twice.

        Returns:
            The trimmed name, or None if it was blank
        """
        name = name.strip()
        if not name:
            return None
        if not self._store.has_station(name):
            self._store.add_station(name)
        self.select(name)
        return name

    def request_delete(self, name: str) -> bool:
        """
        Delete a station after confirmation.

        Returns:
            True if the station was removed
        """
        if not self._confirm(f'Delete "{name}"?'):
            return False

        removed = self._store.delete_station(name)
        if self._editor.draft.station_name == name:
            self._editor.update_fields(station_name="")
        return removed

"""
Tests for station search and the station picker.
"""

import pytest

from fuel_ledger.interaction import (
    DeleteActivated,
    Phase,
    PointerDown,
    PointerMove,
    PointerUp,
    StationPicker,
    filter_stations,
)


class ConfirmSpy:
    """Records prompts and answers with a fixed choice."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def confirm():
    return ConfirmSpy()


@pytest.fixture
def picker(store, editor, confirm, app_settings):
    return StationPicker(store, editor, confirm, app_settings)


def open_and_delete(picker, name):
    picker.dispatch(name, PointerDown(x=100))
    picker.dispatch(name, PointerMove(x=0))
    picker.dispatch(name, PointerUp())
    return picker.dispatch(name, DeleteActivated())


class TestFilterStations:
    """Tests for the station search."""

    def test_case_insensitive_substring(self):
        """Test matching ignores case."""
        stations = ["Al Maha", "Oman Oil", "Shell"]
        assert filter_stations(stations, "OIL", 20) == ["Oman Oil"]
        assert filter_stations(stations, "a", 20) == ["Al Maha", "Oman Oil"]

    def test_empty_query_lists_everything(self):
        """Test that a blank query matches all names."""
        assert filter_stations(["b", "a"], "  ", 20) == ["b", "a"]

    def test_results_are_capped(self):
        """Test the result limit keeps directory order."""
        stations = [f"Station {i:02d}" for i in range(30)]
        result = filter_stations(stations, "station", 20)
        assert len(result) == 20
        assert result[0] == "Station 00"
        assert result[-1] == "Station 19"

    def test_no_match(self):
        """Test an empty result."""
        assert filter_stations(["Shell"], "xyz", 20) == []


class TestStationPicker:
    """Tests for selecting, adding and deleting stations."""

    def test_default_directory(self, picker):
        """Test the stations offered on first run."""
        assert picker.visible_stations() == ["Oman Oil", "Shell", "Al Maha"]

    def test_tap_selects_and_clears_search(self, picker, editor):
        """Test that tapping a row sets the draft's station."""
        picker.query = "sh"
        picker.dispatch("Shell", PointerDown(x=50))
        picker.dispatch("Shell", PointerUp())

        assert editor.draft.station_name == "Shell"
        assert picker.query == ""

    def test_add_station_selects_it(self, picker, store, editor):
        """Test adding a new station."""
        assert picker.add_station("  Bahrain Gas  ") == "Bahrain Gas"
        assert "Bahrain Gas" in store.stations()
        assert editor.draft.station_name == "Bahrain Gas"

    def test_add_existing_station_only_selects(self, picker, store, editor, kv):
        """Test that a known name is not duplicated or rewritten."""
        writes = kv.write_count
        picker.add_station("Shell")
        assert store.stations() == ["Oman Oil", "Shell", "Al Maha"]
        assert kv.write_count == writes
        assert editor.draft.station_name == "Shell"

    def test_add_blank_station(self, picker, store):
        """Test that a blank name is ignored."""
        assert picker.add_station("   ") is None
        assert store.stations() == ["Oman Oil", "Shell", "Al Maha"]

    def test_delete_asks_for_confirmation(self, picker, store, confirm):
        """Test the swipe-delete flow with the user agreeing."""
        open_and_delete(picker, "Oman Oil")
        assert confirm.prompts == ['Delete "Oman Oil"?']
        assert store.stations() == ["Shell", "Al Maha"]

    def test_declined_delete_keeps_station(self, picker, store, confirm):
        """Test that answering no leaves the directory alone."""
        confirm.answer = False
        open_and_delete(picker, "Oman Oil")
        assert store.stations() == ["Oman Oil", "Shell", "Al Maha"]

    def test_deleting_selected_station_clears_draft(self, picker, editor):
        """Test that the draft does not keep a removed station."""
        picker.select("Shell")
        assert picker.request_delete("Shell") is True
        assert editor.draft.station_name == ""

    def test_deleting_other_station_keeps_selection(self, picker, editor):
        """Test that only the matching selection is cleared."""
        picker.select("Shell")
        picker.request_delete("Al Maha")
        assert editor.draft.station_name == "Shell"

    def test_deleted_station_stays_on_records(self, picker, store, make_fields):
        """Test that records keep their stored station name."""
        record = store.create(make_fields(station_name="Shell"))
        picker.request_delete("Shell")
        assert store.get(record.id).station_name == "Shell"

    def test_row_resets_when_station_changes(self, picker):
        """Test that a half-open row does not carry over after a search."""
        picker.dispatch("Oman Oil", PointerDown(x=100))
        picker.dispatch("Oman Oil", PointerMove(x=0))
        picker.dispatch("Oman Oil", PointerUp())
        assert picker.rows()[0].state.phase == Phase.OPEN

        picker.query = "shell"
        first = picker.rows()[0]
        assert first.row_id == "Shell"
        assert first.state.phase == Phase.IDLE

    def test_gesture_for_hidden_station_is_ignored(self, picker):
        """Test events for a station outside the search results."""
        picker.query = "shell"
        assert picker.dispatch("Al Maha", PointerDown(x=1)) == []

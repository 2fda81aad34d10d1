"""
Tests for the price/volume/total solver, the pinned price, submit
validation and the draft editor.
"""

import pytest

from fuel_ledger.forms import PriceField, solve
from fuel_ledger.models.audit import AuditEventType
from fuel_ledger.models.draft import FormDraft
from fuel_ledger.models.record import UNKNOWN_STATION, FuelRecord, ReceiptData
from fuel_ledger.services.storage import LedgerStore, NotFoundError
from fuel_ledger.validation import DraftValidator, combine_timestamp


@pytest.fixture
def draft():
    return FormDraft(date="2024-01-05", time="10:00")


def fill(editor, odometer="1000", price="2", volume="10"):
    editor.update_fields(odometer=odometer)
    editor.set_price_per_unit(price)
    editor.set_volume(volume)


class TestSolve:
    """Tests for the pure solve function."""

    def test_price_then_volume_then_total(self, draft):
        """Test the worked example: 2 x 10 = 20.00, then 15.00 / 2 = 7.500."""
        draft = solve(draft, PriceField.PRICE_PER_UNIT, "2")
        draft = solve(draft, PriceField.VOLUME, "10")
        assert draft.total_cost.text == "20.00"

        draft = solve(draft, PriceField.TOTAL_COST, "15.00")
        assert draft.volume.text == "7.500"
        assert draft.price_per_unit.text == "2"

    def test_price_edit_recomputes_total(self, draft):
        """Test that editing the price updates the total when volume is known."""
        draft = solve(draft, "volume", "40")
        draft = solve(draft, "price_per_unit", "0.229")
        assert draft.total_cost.text == "9.16"

    def test_total_rounds_to_two_decimals(self, draft):
        """Test the total's display precision."""
        draft = solve(draft, "price_per_unit", "0.333")
        draft = solve(draft, "volume", "3")
        assert draft.total_cost.text == "1.00"

    def test_volume_rounds_to_three_decimals(self, draft):
        """Test the derived volume's display precision."""
        draft = solve(draft, "price_per_unit", "3")
        draft = solve(draft, "total_cost", "10")
        assert draft.volume.text == "3.333"

    def test_missing_partner_blocks_recompute(self, draft):
        """Test that nothing is derived while the other input is absent."""
        draft = solve(draft, "price_per_unit", "2")
        assert draft.total_cost.text == ""

        other = solve(FormDraft(date="2024-01-05", time="10:00"), "total_cost", "9")
        assert other.volume.text == ""

    def test_unparseable_edit_keeps_raw_text(self, draft):
        """Test that half-typed input is held verbatim and derives nothing."""
        draft = solve(draft, "volume", "10")
        draft = solve(draft, "price_per_unit", "abc")
        assert draft.price_per_unit.text == "abc"
        assert draft.total_cost.text == ""

    def test_zero_price_does_not_derive_volume(self, draft):
        """Test the division guard when editing the total."""
        draft = solve(draft, "price_per_unit", "0")
        draft = solve(draft, "volume", "12")
        assert draft.total_cost.text == "0.00"

        draft = solve(draft, "total_cost", "30")
        assert draft.volume.text == "12"

    def test_price_is_never_derived(self, draft):
        """Test that only total and volume are ever computed."""
        draft = solve(draft, "volume", "10")
        draft = solve(draft, "total_cost", "20")
        assert draft.price_per_unit.text == ""

    def test_edited_field_is_not_overwritten(self, draft):
        """Test that the field being typed keeps the user's text."""
        draft = solve(draft, "price_per_unit", "2")
        draft = solve(draft, "total_cost", "15")
        assert draft.total_cost.text == "15"

    def test_solve_is_pure(self, draft):
        """Test that the input draft is left unchanged."""
        solved = solve(draft, "volume", "10")
        assert draft.volume.text == ""
        assert solved.volume.text == "10"
        assert solved.draft_id == draft.draft_id


class TestPinnedPrice:
    """Tests for the pinned ("fixed") price option."""

    def test_pinned_price_prefills_new_draft(self, editor):
        """Test the worked example: pin 1.5, new draft starts at 1.5."""
        editor.set_price_per_unit("1.5")
        assert editor.toggle_pinned_price() is True

        draft = editor.reset()
        assert draft.price_per_unit.text == "1.5"

    def test_edits_are_mirrored_while_pinned(self, editor, store):
        """Test that price edits update the stored price."""
        editor.toggle_pinned_price()
        editor.set_price_per_unit("0.31")
        assert store.pinned_price_text == "0.31"
        assert editor.reset().price_per_unit.text == "0.31"

    def test_toggle_off_stops_mirroring_but_keeps_value(self, editor, store):
        """Test that disabling keeps the last pinned price."""
        editor.set_price_per_unit("1.5")
        editor.toggle_pinned_price()
        assert editor.toggle_pinned_price() is False

        editor.set_price_per_unit("9")
        assert store.pinned_price_text == "1.5"
        assert editor.reset().price_per_unit.text == ""

    def test_pinned_state_is_durable(self, editor, kv, storage_settings, app_settings, audit_logger):
        """Test that a new store over the same slots sees the pinned price."""
        editor.set_price_per_unit("1.5")
        editor.toggle_pinned_price()

        reloaded = LedgerStore(kv, storage_settings, app_settings, audit_logger)
        assert reloaded.pinned_price_enabled is True
        assert reloaded.pinned_price_text == "1.5"
        assert kv.get(storage_settings.pinned_flag_key) == "true"

    def test_toggle_is_audited(self, editor, audit_logger):
        """Test the audit trail of the toggle."""
        editor.toggle_pinned_price()
        assert audit_logger.events[-1].event_type == AuditEventType.PINNED_PRICE_TOGGLED


class TestDraftValidator:
    """Tests for submit validation."""

    def test_complete_draft_is_valid(self, app_settings):
        """Test that four numbers make a submittable draft."""
        draft = FormDraft(
            date="2024-01-05", time="10:00",
            odometer="1000", price_per_unit="2", volume="10", total_cost="20",
        )
        assert DraftValidator(app_settings).validate(draft).is_valid

    def test_missing_volume_is_an_error(self, app_settings):
        """Test that an empty required number blocks submit."""
        draft = FormDraft(
            date="2024-01-05", time="10:00",
            odometer="1000", price_per_unit="2", total_cost="20",
        )
        result = DraftValidator(app_settings).validate(draft)
        assert result.has_errors
        assert [(i.field, i.issue_type) for i in result.issues] == [("volume", "missing")]

    def test_non_numeric_and_negative_are_errors(self, app_settings):
        """Test the other blocking problems."""
        draft = FormDraft(
            date="2024-01-05", time="10:00",
            odometer="abc", price_per_unit="2", volume="-1", total_cost="20",
        )
        result = DraftValidator(app_settings).validate(draft)
        kinds = {i.field: i.issue_type for i in result.issues}
        assert kinds == {"odometer": "not_a_number", "volume": "negative"}

    def test_bad_time_is_only_a_warning(self, app_settings):
        """Test that an unparseable time does not block submit."""
        draft = FormDraft(
            date="2024-01-05", time="late",
            odometer="1000", price_per_unit="2", volume="10", total_cost="20",
        )
        result = DraftValidator(app_settings).validate(draft)
        assert result.is_valid
        assert result.issues[0].severity == "warning"

    def test_to_fields_combines_date_and_time(self, app_settings):
        """Test the stored timestamp is a local ISO date-time."""
        draft = FormDraft(
            date="2024-01-05", time="10:30",
            odometer="1000", price_per_unit="2", volume="10", total_cost="20",
            station_name="  ", notes="  ",
        )
        fields = DraftValidator(app_settings).to_fields(draft)
        assert fields.timestamp.startswith("2024-01-05T10:30:00")
        assert fields.moment is not None
        assert fields.station_name == UNKNOWN_STATION
        assert fields.notes is None

    def test_to_fields_falls_back_to_raw_date(self, app_settings):
        """Test the degraded timestamp when date and time do not combine."""
        draft = FormDraft(
            date="05/01/2024", time="10:30",
            odometer="1000", price_per_unit="2", volume="10", total_cost="20",
        )
        assert DraftValidator(app_settings).to_fields(draft).timestamp == "05/01/2024"

    def test_combine_timestamp(self):
        """Test combining components directly."""
        assert combine_timestamp("2024-01-05", "07:05").startswith("2024-01-05T07:05:00")
        assert combine_timestamp("2024-01-05", "") is None
        assert combine_timestamp("2024-02-30", "10:00") is None


class TestDraftEditor:
    """Tests for the editor lifecycle and submit."""

    def test_new_draft_uses_clock(self, editor):
        """Test the blank draft's date and time."""
        assert editor.draft.date == "2024-03-10"
        assert editor.draft.time == "14:30"

    def test_submit_creates_record(self, editor, store):
        """Test a successful submit of a new record."""
        fill(editor)
        editor.update_fields(station_name="Shell", notes="highway")
        old_draft_id = editor.draft.draft_id

        record = editor.submit()

        assert isinstance(record, FuelRecord)
        assert record.total_cost == 20.0
        assert record.station_name == "Shell"
        assert store.list_records() == [record]
        assert editor.draft.draft_id != old_draft_id
        assert editor.draft.odometer.text == ""

    def test_submit_missing_volume_is_rejected(self, editor, store, audit_logger):
        """Test that a draft without volume leaves the store unchanged."""
        editor.update_fields(odometer="1000")
        editor.set_total_cost("20")
        editor.set_price_per_unit("2")
        assert editor.draft.volume.text == ""

        assert editor.submit() is None
        assert store.list_records() == []
        assert editor.last_result.has_errors
        assert audit_logger.events[-1].event_type == AuditEventType.SUBMIT_REJECTED

    def test_rejected_submit_keeps_draft(self, editor):
        """Test that the user's input survives a blocked submit."""
        editor.update_fields(odometer="1000")
        draft_id = editor.draft.draft_id
        assert editor.submit() is None
        assert editor.draft.draft_id == draft_id
        assert editor.draft.odometer.text == "1000"

    def test_edit_updates_in_place(self, editor, store, make_fields):
        """Test editing an existing record keeps its id and position."""
        first = store.create(make_fields(total_cost=10))
        second = store.create(make_fields(total_cost=11))

        editor.begin_edit(first.id)
        assert editor.draft.is_editing
        editor.set_total_cost("12.5")
        updated = editor.submit()

        assert updated.id == first.id
        assert [r.id for r in store.list_records()] == [first.id, second.id]
        assert store.get(first.id).total_cost == 12.5

    def test_edit_of_deleted_record_returns_none(self, editor, store, make_fields):
        """Test submitting an edit whose record vanished."""
        record = store.create(make_fields())
        editor.begin_edit(record.id)
        store.delete(record.id)
        assert editor.submit() is None
        assert store.list_records() == []

    def test_begin_edit_unknown_record_raises(self, editor):
        """Test that editing a missing record is an error."""
        with pytest.raises(NotFoundError):
            editor.begin_edit("nope")

    def test_price_fields_cannot_be_set_directly(self, editor):
        """Test that price fields must go through the solver."""
        with pytest.raises(ValueError):
            editor.update_fields(total_cost="5")

    def test_merge_receipt_only_non_null_fields(self, editor):
        """Test merging a partial recognition result."""
        fill(editor)
        editor.update_fields(station_name="Shell")

        merged = editor.merge_receipt(ReceiptData(total_cost=25.5, date="2024-02-01"))

        assert merged == ["date", "total_cost"]
        assert editor.draft.total_cost.text == "25.5"
        assert editor.draft.date == "2024-02-01"
        assert editor.draft.time == "14:30"
        assert editor.draft.station_name == "Shell"
        assert editor.draft.volume.text == "10"

    def test_merge_empty_receipt_changes_nothing(self, editor):
        """Test that an all-null result leaves the draft alone."""
        before = editor.draft
        assert editor.merge_receipt(ReceiptData()) == []
        assert editor.draft == before

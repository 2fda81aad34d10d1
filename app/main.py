"""
Streamlit Frontend for Fuel Ledger

The screen the driver uses at the pump: record a fill-up, check the
running figures, look back over the history.

Deleting anything asks first, and every save or scan reports what it did.

The UI enforces the draft/submit boundary:
- Receipt scans only fill in the form
- Nothing is saved without an explicit "Save" action
- Leaving the form discards it
"""

import asyncio

import streamlit as st

from fuel_ledger.config import get_settings, validate_all_settings
from fuel_ledger.interaction import DeleteActivated, Phase, PointerDown, PointerMove, PointerUp
from fuel_ledger.models.record import SortMode, ViewState, format_number
from fuel_ledger.orchestrator import (
    FuelLedgerSession,
    ScanStatus,
    create_app_components,
)
from fuel_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Fuel Ledger",
    page_icon="⛽",
    layout="centered",
    initial_sidebar_state="expanded",
)

# Full-width buttons and muted captions
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
    .muted {
        color: #8e8e93;
        font-size: 0.85em;
    }
</style>
""", unsafe_allow_html=True)


PAGES = {
    "📊 Dashboard": ViewState.DASHBOARD,
    "⛽ Add Fuel": ViewState.ADD,
    "🕑 History": ViewState.HISTORY,
    "⚙️ Settings": ViewState.SETTINGS,
}

# Form widget keys, mirrored from the draft before every render
FIELD_KEYS = {
    "date": "field_date",
    "time": "field_time",
    "odometer": "field_odometer",
    "price_per_unit": "field_price",
    "volume": "field_volume",
    "total_cost": "field_total",
    "full_tank": "field_full_tank",
    "notes": "field_notes",
}


def run_async(coro):
    """Run a coroutine to completion from Streamlit's synchronous script."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# =============================================================================
# CONFIRMATION GATE
# =============================================================================

def confirm_gate(prompt: str) -> bool:
    """
    Two-step confirmation for Streamlit.

    The first call records the prompt and answers "no"; the page then
    shows the prompt with Yes/No buttons. Pressing Yes replays the
    pending action, and this time the gate answers "yes".
    """
    if st.session_state.get("confirmed_prompt") == prompt:
        st.session_state.confirmed_prompt = None
        return True
    st.session_state.pending_prompt = prompt
    return False


def request_action(action: tuple) -> None:
    """Run a destructive action now, or park it until it is confirmed."""
    st.session_state.pending_action = action
    perform_action(action)


def perform_action(action: tuple) -> None:
    ledger = get_session()
    kind, target = action
    if kind == "delete_record":
        done = ledger.delete_record(target)
    else:
        done = ledger.stations.request_delete(target)

    if done:
        st.session_state.pending_action = None
        st.session_state.pending_prompt = None


def render_pending_confirmation() -> None:
    prompt = st.session_state.get("pending_prompt")
    action = st.session_state.get("pending_action")
    if not prompt or not action:
        return

    st.warning(prompt)
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Yes, delete", type="primary", key="confirm_yes"):
            st.session_state.confirmed_prompt = prompt
            perform_action(action)
            st.session_state.pending_action = None
            st.session_state.pending_prompt = None
            st.rerun()
    with col2:
        if st.button("No, keep it", key="confirm_no"):
            st.session_state.pending_action = None
            st.session_state.pending_prompt = None
            st.rerun()


# =============================================================================
# SESSION
# =============================================================================

def get_session() -> FuelLedgerSession:
    """Get or create this browser session's ledger session."""
    if "ledger_session" not in st.session_state:
        st.session_state.ledger_session = create_app_components(confirm=confirm_gate)
    return st.session_state.ledger_session


def sync_form_widgets(ledger: FuelLedgerSession) -> None:
    """Copy the draft into the form widgets' state before they render."""
    draft = ledger.editor.draft
    for field, key in FIELD_KEYS.items():
        value = getattr(draft, field)
        if field in ("odometer", "price_per_unit", "volume", "total_cost"):
            value = value.text
        st.session_state[key] = value


def on_field_change(field: str) -> None:
    """Widget callback: push an edited field into the draft."""
    ledger = get_session()
    value = st.session_state[FIELD_KEYS[field]]

    if field == "price_per_unit":
        ledger.editor.set_price_per_unit(value)
    elif field == "volume":
        ledger.editor.set_volume(value)
    elif field == "total_cost":
        ledger.editor.set_total_cost(value)
    else:
        ledger.editor.update_fields(**{field: value})


def main():
    """Main application entry point."""
    try:
        ledger = get_session()
    except StorageError as e:
        st.error(
            f"❌ Your fuel ledger could not be read: {e}\n\n"
            "Nothing has been changed. Fix or move the file and reload."
        )
        return

    # Sidebar navigation
    st.sidebar.title("⛽ Fuel Ledger")
    st.sidebar.markdown("---")

    labels = list(PAGES)
    current = next(label for label, view in PAGES.items() if view == ledger.view)
    page = st.sidebar.radio("Navigate to:", labels, index=labels.index(current))
    if PAGES[page] != ledger.view:
        ledger.navigate(PAGES[page])

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add a fill-up after every visit to the pump
        2. Scan the receipt to fill in the numbers
        3. Check the dashboard for your efficiency
        """
    )

    render_pending_confirmation()

    # Route to appropriate page
    if ledger.view == ViewState.DASHBOARD:
        render_dashboard_page(ledger)
    elif ledger.view == ViewState.ADD:
        render_add_page(ledger)
    elif ledger.view == ViewState.HISTORY:
        render_history_page(ledger)
    elif ledger.view == ViewState.SETTINGS:
        render_settings_page(ledger)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(ledger: FuelLedgerSession):
    """Render the dashboard."""
    st.title("📊 Dashboard")

    stats = ledger.stats()
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Avg Efficiency", f"{stats.average_efficiency:.1f} km/L")
    with col2:
        st.metric("Total Spent", f"${stats.total_cost:.2f}")
    with col3:
        st.metric("Distance", f"{stats.total_distance:,.0f} km")

    st.markdown("### Spending Trend")
    points = ledger.chart()
    if points:
        st.bar_chart(
            {"Fill-up": [p.label for p in points], "Cost": [p.cost for p in points]},
            x="Fill-up",
            y="Cost",
        )
    else:
        st.info("📋 Your spending trend will appear here after your first fill-up.")

    st.markdown("### Recent Activity")
    recent = ledger.recent_activity()
    if not recent:
        st.caption("No fill-ups recorded yet.")
    for record in recent:
        col1, col2 = st.columns([3, 1])
        with col1:
            st.markdown(f"**{record.station_name}**")
            st.markdown(
                f"<span class='muted'>{record.timestamp[:10]} · {record.volume:.1f} L</span>",
                unsafe_allow_html=True,
            )
        with col2:
            st.markdown(f"**-${record.total_cost:.2f}**")


# =============================================================================
# ADD / EDIT
# =============================================================================

def render_add_page(ledger: FuelLedgerSession):
    """Render the add/edit form."""
    draft = ledger.editor.draft
    st.title("✏️ Edit Entry" if draft.is_editing else "⛽ Add Fuel")

    if st.button("Cancel", key="cancel_edit"):
        ledger.cancel_edit()
        st.rerun()

    # Receipt scan
    if not draft.is_editing:
        settings = get_settings().app
        uploaded_file = st.file_uploader(
            "📷 Scan a receipt",
            type=settings.supported_formats_list,
            key=f"receipt_{draft.draft_id}",
        )
        if uploaded_file is not None and st.button("Read receipt", type="primary"):
            with st.spinner("🔍 Reading the receipt..."):
                outcome = run_async(
                    ledger.scan_receipt(uploaded_file.getvalue(), uploaded_file.name)
                )
            if outcome.status == ScanStatus.APPLIED:
                st.success(f"✅ Filled in: {', '.join(outcome.merged_fields)}. Please check them.")
                for tip in outcome.quality_issues:
                    st.caption(f"📷 {tip}")
            elif outcome.status == ScanStatus.FAILED:
                st.error(outcome.message)
                if get_settings().app.debug_mode and outcome.detail:
                    st.caption(outcome.detail)
            elif outcome.message:
                st.warning(outcome.message)

    sync_form_widgets(ledger)

    col1, col2 = st.columns(2)
    with col1:
        st.text_input("Date (YYYY-MM-DD)", key=FIELD_KEYS["date"],
                      on_change=on_field_change, args=("date",))
    with col2:
        st.text_input("Time (HH:MM)", key=FIELD_KEYS["time"],
                      on_change=on_field_change, args=("time",))

    hint = ledger.last_odometer_hint()
    st.text_input(
        "Odometer",
        key=FIELD_KEYS["odometer"],
        on_change=on_field_change,
        args=("odometer",),
        placeholder=f"Last: {format_number(hint)}" if hint is not None else "",
    )

    render_price_fields(ledger)
    render_station_picker(ledger)

    st.checkbox("Full tank", key=FIELD_KEYS["full_tank"],
                on_change=on_field_change, args=("full_tank",))
    st.text_area("Notes", key=FIELD_KEYS["notes"],
                 on_change=on_field_change, args=("notes",))

    if st.button("💾 Update Entry" if draft.is_editing else "💾 Save Entry", type="primary"):
        record = ledger.submit()
        if record is None:
            result = ledger.editor.last_result
            for issue in (result.issues if result else []):
                if issue.severity == "error":
                    st.error(f"❌ {issue.message}")
        else:
            st.toast(f"✅ Saved {record.station_name}, ${record.total_cost:.2f}")
            st.rerun()


def render_price_fields(ledger: FuelLedgerSession):
    """Price, volume and total: editing one fills in the others."""
    col1, col2 = st.columns([3, 1])
    with col1:
        st.text_input("Price per unit", key=FIELD_KEYS["price_per_unit"],
                      on_change=on_field_change, args=("price_per_unit",))
    with col2:
        pinned = ledger.editor.pinned_price_enabled
        if st.button("📌 Fixed" if pinned else "📌 Fix price", key="toggle_pinned"):
            ledger.editor.toggle_pinned_price()
            st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        st.text_input("Volume (L)", key=FIELD_KEYS["volume"],
                      on_change=on_field_change, args=("volume",))
    with col2:
        st.text_input("Total cost", key=FIELD_KEYS["total_cost"],
                      on_change=on_field_change, args=("total_cost",))


def render_station_picker(ledger: FuelLedgerSession):
    """Station selection with swipe-to-delete rows."""
    picker = ledger.stations
    selected = ledger.editor.draft.station_name

    with st.expander(f"⛽ Station: {selected or 'Select station'}"):
        picker.query = st.text_input("Search stations", value=picker.query, key="station_search")

        for row in picker.rows():
            name = row.row_id
            is_open = row.state.phase == Phase.OPEN
            col1, col2 = st.columns([4, 1])
            with col1:
                label = f"✓ {name}" if name == selected else name
                if st.button(label, key=f"station_tap_{name}"):
                    # A tap selects a closed row and closes an open one
                    picker.dispatch(name, PointerDown(x=0))
                    picker.dispatch(name, PointerUp())
                    st.rerun()
            with col2:
                if is_open:
                    if st.button("🗑", key=f"station_delete_{name}"):
                        st.session_state.pending_action = ("delete_station", name)
                        picker.dispatch(name, DeleteActivated())
                        st.rerun()
                elif st.button("⟵", key=f"station_swipe_{name}"):
                    width = get_settings().app.reveal_width
                    picker.dispatch(name, PointerDown(x=width))
                    picker.dispatch(name, PointerMove(x=0))
                    picker.dispatch(name, PointerUp())
                    st.rerun()

        new_name = st.text_input("New station", key="new_station")
        if st.button("Add Station", key="add_station"):
            if picker.add_station(new_name) is not None:
                st.session_state.pop("new_station", None)
                st.rerun()


# =============================================================================
# HISTORY
# =============================================================================

def render_history_page(ledger: FuelLedgerSession):
    """Render the history list."""
    st.title("🕑 History")

    modes = list(SortMode)
    mode = st.selectbox(
        "Sort by",
        options=modes,
        index=modes.index(ledger.sort_mode),
        format_func=lambda m: m.label,
    )

    records = ledger.history(mode)
    if not records:
        st.info("📋 Your fill-ups will appear here once you add them.")
        return

    for record in records:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 1, 1])
            with col1:
                st.markdown(f"**{record.station_name}**  ·  -${record.total_cost:.2f}")
                st.markdown(
                    f"<span class='muted'>{record.timestamp[:16].replace('T', ' ')} · "
                    f"{record.volume:.1f} L @ {record.price_per_unit:.3f} · "
                    f"{format_number(record.odometer)} km</span>",
                    unsafe_allow_html=True,
                )
                if record.notes:
                    st.caption(record.notes)
            with col2:
                if st.button("✏️", key=f"edit_{record.id}"):
                    ledger.begin_edit(record.id)
                    st.rerun()
            with col3:
                if st.button("🗑", key=f"delete_{record.id}"):
                    request_action(("delete_record", record.id))
                    st.rerun()


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(ledger: FuelLedgerSession):
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    services = [
        ("Gemini (Receipt scanning)", "gemini"),
        ("Local storage", "storage"),
        ("App settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Ledger")
    st.markdown(f"Records: **{len(ledger.records())}**  ·  Stations: **{len(ledger.store.stations())}**")
    st.markdown(f"Pinned price: **{'on' if ledger.editor.pinned_price_enabled else 'off'}**")
    if ledger.store.unreadable_count:
        st.warning(
            f"{ledger.store.unreadable_count} stored entries could not be read. "
            "They are kept in the ledger file unchanged."
        )
    st.caption(f"Environment: {get_settings().app.app_environment}")

    events = list(ledger.audit_logger.events)[-10:]
    if events:
        st.markdown("### Recent Activity Log")
        for event in reversed(events):
            st.caption(f"{event.occurred_at:%H:%M:%S} · {event.summary} · {event.subject_id or ''}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

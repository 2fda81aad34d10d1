"""
Main Orchestrator for Fuel Ledger

Wires the ledger store, the editor, the station picker and receipt
scanning into one session, and owns the flows between them:
1. Recording a fill-up (draft -> solver -> validate -> ledger)
2. Editing and deleting records
3. Receipt scanning (photo -> prepare -> recognize -> merge into draft)
4. View navigation and the derived views (stats, chart, history)

The session keeps these rules:
- Nothing reaches the ledger without an explicit submit
- Recognition only ever proposes values for the draft it was started for
- Destructive actions pass through a confirmation gate
- Every mutation is audited

This is the "glue" a surface (the Streamlit app, a test) talks to.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from fuel_ledger.audit import AuditLogger, create_correlation_id
from fuel_ledger.config import AppSettings, get_settings
from fuel_ledger.forms import DraftEditor
from fuel_ledger.interaction import StationPicker
from fuel_ledger.models.record import (
    ChartPoint,
    FuelRecord,
    SortMode,
    VehicleStats,
    ViewState,
)
from fuel_ledger.queries import (
    DEFAULT_SORT_MODE,
    chart_series,
    compute_stats,
    order_records,
    recent_activity,
)
from fuel_ledger.services.image import ImageRejectedError, ReceiptImageService
from fuel_ledger.services.recognition import (
    GeminiReceiptService,
    ReceiptRecognizer,
    RecognitionError,
)
from fuel_ledger.services.storage import JsonFileKeyValueStore, LedgerStore


FAILED_SCAN_MESSAGE = "Failed to parse receipt. Please enter details manually."
DELETE_RECORD_PROMPT = "Are you sure you want to delete this entry?"


ConfirmGate = Callable[[str], bool]


# =============================================================================
# RECEIPT SCANNING
# =============================================================================

class ScanStatus(str, Enum):
    """How a receipt scan ended."""
    APPLIED = "applied"        # Fields were merged into the draft
    EMPTY = "empty"            # Recognition found nothing usable
    REJECTED = "rejected"      # The photo itself was unusable
    FAILED = "failed"          # Recognition failed or timed out
    DISCARDED = "discarded"    # The draft changed before the answer arrived
    BUSY = "busy"              # Another scan is still running


class ScanOutcome(BaseModel):
    """Result of one scan request, for the surface to report."""

    status: ScanStatus
    message: Optional[str] = None
    detail: Optional[str] = Field(
        default=None,
        description="Technical reason, for logs and debug display"
    )
    merged_fields: list[str] = Field(default_factory=list)
    quality_issues: list[str] = Field(default_factory=list)
    correlation_id: Optional[UUID] = None


class ReceiptScanCoordinator:
    """
    Runs at most one receipt recognition at a time.

    FLOW:
    1. Refuse if a scan is already in flight (BUSY)
    2. Prepare the photo; an unusable photo ends the scan (REJECTED)
    3. Remember which draft started the scan
    4. Run recognition as a task, bounded by a timeout
    5. Merge the answer ONLY if the same draft is still active

    `cancel()` is called whenever the draft is reset; a cancelled scan
    ends as DISCARDED and never touches the new draft.
    """

    def __init__(
        self,
        editor: DraftEditor,
        recognizer: ReceiptRecognizer,
        image_service: Optional[ReceiptImageService] = None,
        audit_logger: Optional[AuditLogger] = None,
        timeout_seconds: float = 30.0,
    ):
        self._editor = editor
        self._recognizer = recognizer
        self._image_service = image_service or ReceiptImageService()
        self._audit_logger = audit_logger or AuditLogger()
        self._timeout = timeout_seconds
        self._task: Optional[asyncio.Task] = None
        # Recognition tasks stopped by `cancel()`, as opposed to the caller being cancelled
        self._cancelled: set[asyncio.Task] = set()

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> bool:
        """
        Cancel the in-flight scan, if any. Returns True if one was cancelled.

        The coordinator is free for a new scan immediately; the cancelled
        one still ends as DISCARDED once its coroutine resumes.
        """
        task = self._task
        if task is None or task.done():
            return False
        self._cancelled.add(task)
        self._task = None
        task.cancel()
        return True

    async def scan(self, image_bytes: bytes, filename: Optional[str] = None) -> ScanOutcome:
        """
        Scan a receipt photo into the active draft.

        Never raises for recognition problems; they come back as a
        FAILED outcome with the advisory message.
        """
        if self.is_busy:
            return ScanOutcome(
                status=ScanStatus.BUSY,
                message="A receipt is already being scanned.",
            )

        correlation_id = create_correlation_id()
        draft_id = self._editor.draft.draft_id

        try:
            prepared = self._image_service.prepare(image_bytes, filename)
        except ImageRejectedError as e:
            self._audit_logger.log_receipt_scan_failed(draft_id, str(e), correlation_id)
            return ScanOutcome(
                status=ScanStatus.REJECTED,
                message=str(e),
                correlation_id=correlation_id,
            )

        self._audit_logger.log_receipt_scan_started(draft_id, prepared.size_bytes, correlation_id)

        task = asyncio.ensure_future(
            self._recognizer.recognize(prepared.data, prepared.mime_type)
        )
        self._task = task

        try:
            receipt = await asyncio.wait_for(task, timeout=self._timeout)
        except asyncio.CancelledError:
            if task not in self._cancelled:
                raise
            self._audit_logger.log_receipt_scan_discarded(draft_id, correlation_id)
            return ScanOutcome(status=ScanStatus.DISCARDED, correlation_id=correlation_id)
        except asyncio.TimeoutError:
            return self._failed(draft_id, correlation_id, "Recognition timed out")
        except RecognitionError as e:
            return self._failed(draft_id, correlation_id, str(e))
        except Exception as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                reason=str(e),
                correlation_id=correlation_id,
            )
            return self._failed(draft_id, correlation_id, str(e))
        finally:
            if self._task is task:
                self._task = None
            self._cancelled.discard(task)

        if self._editor.draft.draft_id != draft_id:
            self._audit_logger.log_receipt_scan_discarded(draft_id, correlation_id)
            return ScanOutcome(status=ScanStatus.DISCARDED, correlation_id=correlation_id)

        merged = self._editor.merge_receipt(receipt)
        self._audit_logger.log_receipt_scan_completed(draft_id, merged, correlation_id)

        return ScanOutcome(
            status=ScanStatus.APPLIED if merged else ScanStatus.EMPTY,
            message=None if merged else "No details could be read from this receipt.",
            merged_fields=merged,
            quality_issues=prepared.quality_issues,
            correlation_id=correlation_id,
        )

    def _failed(self, draft_id: UUID, correlation_id: UUID, detail: str) -> ScanOutcome:
        self._audit_logger.log_receipt_scan_failed(draft_id, detail, correlation_id)
        return ScanOutcome(
            status=ScanStatus.FAILED,
            message=FAILED_SCAN_MESSAGE,
            detail=detail,
            correlation_id=correlation_id,
        )


# =============================================================================
# SESSION
# =============================================================================

class FuelLedgerSession:
    """
    One user's session: current view, the draft, and the derived views.

    Navigation rules:
    - Opening the editor from the tab bar always starts a blank draft
    - Leaving the editor without submitting discards the draft
    - Submit and cancel return to History for an edit, Dashboard otherwise
    """

    def __init__(
        self,
        store: LedgerStore,
        confirm: ConfirmGate,
        recognizer: Optional[ReceiptRecognizer] = None,
        editor: Optional[DraftEditor] = None,
        image_service: Optional[ReceiptImageService] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        scan_timeout_seconds: float = 30.0,
    ):
        self._store = store
        self._confirm = confirm
        self._settings = app_settings or get_settings().app
        self._audit_logger = audit_logger or AuditLogger()

        self.editor = editor or DraftEditor(store, audit_logger=self._audit_logger)
        self.scanner = ReceiptScanCoordinator(
            self.editor,
            recognizer or GeminiReceiptService(),
            image_service=image_service or ReceiptImageService(self._settings),
            audit_logger=self._audit_logger,
            timeout_seconds=scan_timeout_seconds,
        )
        self.stations = StationPicker(store, self.editor, confirm, self._settings)

        self.view = ViewState.DASHBOARD
        self.sort_mode = DEFAULT_SORT_MODE

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def reset_draft(self) -> None:
        self.scanner.cancel()
        self.editor.reset()

    def navigate(self, view: ViewState) -> ViewState:
        """Switch views from the tab bar."""
        view = ViewState(view)
        if view == ViewState.ADD or self.view == ViewState.ADD:
            self.reset_draft()
        self.view = view
        return self.view

    def _return_view(self, was_editing: bool) -> ViewState:
        return ViewState.HISTORY if was_editing else ViewState.DASHBOARD

    def begin_edit(self, record_id: str) -> None:
        """
        Open the editor on an existing record.

        Raises:
            NotFoundError: If the record does not exist
        """
        self.scanner.cancel()
        self.editor.begin_edit(record_id)
        self.view = ViewState.ADD

    def cancel_edit(self) -> ViewState:
        was_editing = self.editor.draft.is_editing
        self.reset_draft()
        self.view = self._return_view(was_editing)
        return self.view

    def submit(self) -> Optional[FuelRecord]:
        """
        Submit the draft.

        Returns the saved record, or None if the draft was rejected
        (see `editor.last_result`); a rejected draft stays in the editor.
        """
        was_editing = self.editor.draft.is_editing
        record = self.editor.submit()
        if record is None:
            return None

        self.scanner.cancel()
        self.view = self._return_view(was_editing)
        return record

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def delete_record(self, record_id: str, confirm: Optional[ConfirmGate] = None) -> bool:
        """Delete a record after confirmation. Returns True if it was removed."""
        gate = confirm or self._confirm
        if not gate(DELETE_RECORD_PROMPT):
            return False
        return self._store.delete(record_id)

    async def scan_receipt(self, image_bytes: bytes, filename: Optional[str] = None) -> ScanOutcome:
        return await self.scanner.scan(image_bytes, filename)

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def records(self) -> list[FuelRecord]:
        return self._store.list_records()

    def stats(self) -> VehicleStats:
        return compute_stats(self.records())

    def chart(self) -> list[ChartPoint]:
        return chart_series(self.records(), window=self._settings.chart_window)

    def recent_activity(self) -> list[FuelRecord]:
        return recent_activity(self.records(), count=self._settings.recent_activity_count)

    def history(self, sort_mode: Optional[SortMode] = None) -> list[FuelRecord]:
        if sort_mode is not None:
            self.sort_mode = SortMode(sort_mode)
        return order_records(self.records(), self.sort_mode)

    def last_odometer_hint(self) -> Optional[float]:
        """Last known odometer, shown as a hint on new drafts only."""
        if self.editor.draft.is_editing or not self.records():
            return None
        return self.stats().last_odometer


def create_app_components(
    confirm: ConfirmGate,
    storage_path: Optional[str] = None,
    keep_history: bool = True,
) -> FuelLedgerSession:
    """
    Build a session over the configured ledger file.

    Args:
        confirm: Confirmation gate for destructive actions
        storage_path: Ledger file; defaults to the configured path
        keep_history: Keep audit events in memory for the settings page

    Returns:
        A ready FuelLedgerSession

    Raises:
        StorageError: If the ledger file exists but cannot be read
    """
    settings = get_settings()
    audit_logger = AuditLogger(keep_history=keep_history)

    try:
        scan_timeout = settings.gemini.request_timeout_seconds
    except ValidationError:
        # No Gemini key: scanning reports itself as unavailable when used
        scan_timeout = 30.0

    kv_store = JsonFileKeyValueStore(storage_path or settings.storage.path)
    store = LedgerStore(
        kv_store,
        storage_settings=settings.storage,
        app_settings=settings.app,
        audit_logger=audit_logger,
    )

    return FuelLedgerSession(
        store,
        confirm=confirm,
        audit_logger=audit_logger,
        app_settings=settings.app,
        scan_timeout_seconds=scan_timeout,
    )

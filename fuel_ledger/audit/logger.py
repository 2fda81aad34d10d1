"""
Audit Logger

Writes `AuditEvent`s as structured JSON log lines through structlog.

The ledger's history is the sequence of these lines: which fill-ups were
recorded, edited or deleted, which stations came and went, and what each
receipt scan did to the draft it was started for.

Audit logging is synchronous, like the ledger mutations it follows, and
a failing log write never fails the mutation itself.
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fuel_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# One JSON object per line, for local log files and the console
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Records ledger events.

    With `keep_history`, events are also kept in `events`, newest last and
    at most `history_limit` of them; the settings page and the tests read it.
    """

    def __init__(self, keep_history: bool = False, history_limit: int = 200):
        self._logger = structlog.get_logger("fuel_ledger.audit")
        self._keep_history = keep_history
        self.events: deque[AuditEvent] = deque(maxlen=history_limit)

    def log(self, event: AuditEvent) -> bool:
        """Write one event. Returns False if the log write failed."""
        if self._keep_history:
            self.events.append(event)

        emit = {
            AuditSeverity.DEBUG: self._logger.debug,
            AuditSeverity.INFO: self._logger.info,
            AuditSeverity.WARNING: self._logger.warning,
            AuditSeverity.ERROR: self._logger.error,
        }[event.severity]

        try:
            emit("audit_event", **event.to_log_dict())
        except Exception:
            # The ledger change already happened; losing its log line must not undo it
            return False
        return True

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def log_record_created(self, record_id: str, total_cost: float) -> None:
        self.log(AuditEventBuilder.record_created(record_id, total_cost))

    def log_record_updated(self, record_id: str) -> None:
        self.log(AuditEventBuilder.record_updated(record_id))

    def log_record_deleted(self, record_id: str) -> None:
        self.log(AuditEventBuilder.record_deleted(record_id))

    def log_record_not_found(self, record_id: str, operation: str) -> None:
        self.log(AuditEventBuilder.record_not_found(record_id, operation))

    def log_submit_rejected(self, draft_id: UUID, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.submit_rejected(draft_id, issues))

    # -------------------------------------------------------------------------
    # Stations and pinned price
    # -------------------------------------------------------------------------

    def log_station_added(self, name: str) -> None:
        self.log(AuditEventBuilder.station_added(name))

    def log_station_deleted(self, name: str) -> None:
        self.log(AuditEventBuilder.station_deleted(name))

    def log_station_not_found(self, name: str) -> None:
        self.log(AuditEventBuilder.station_not_found(name))

    def log_pinned_price_toggled(self, enabled: bool, price_text: str) -> None:
        self.log(AuditEventBuilder.pinned_price_toggled(enabled, price_text))

    # -------------------------------------------------------------------------
    # Receipt scans
    # -------------------------------------------------------------------------

    def log_receipt_scan_started(self, draft_id: UUID, image_size: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.receipt_scan_started(draft_id, image_size, correlation_id))

    def log_receipt_scan_completed(
        self,
        draft_id: UUID,
        merged_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.receipt_scan_completed(draft_id, merged_fields, correlation_id))

    def log_receipt_scan_failed(self, draft_id: UUID, reason: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.receipt_scan_failed(draft_id, reason, correlation_id))

    def log_receipt_scan_discarded(self, draft_id: UUID, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.receipt_scan_discarded(draft_id, correlation_id))

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    def log_storage_error(self, operation: str, reason: str) -> None:
        self.log(AuditEventBuilder.storage_error(operation, reason))

    def log_error(
        self,
        error_type: str,
        reason: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            reason=reason,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """New id shared by all events of one receipt scan."""
    return uuid4()

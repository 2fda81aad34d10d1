"""
Audit Models for Fuel Ledger

Every change to the record collection or the station directory, every
blocked submit and every receipt scan produces one `AuditEvent`.

Events name their SUBJECT: a record id, a station name, or the draft a
submit or scan belonged to. Scan events also share a correlation id, so
started / completed / failed / discarded can be tied back together.

Events are append-only log lines; nothing rewrites them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """What happened."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    RECORD_NOT_FOUND = "record_not_found"
    SUBMIT_REJECTED = "submit_rejected"

    # Station directory
    STATION_ADDED = "station_added"
    STATION_DELETED = "station_deleted"
    STATION_NOT_FOUND = "station_not_found"

    # Form
    PINNED_PRICE_TOGGLED = "pinned_price_toggled"

    # Receipt recognition
    RECEIPT_SCAN_STARTED = "receipt_scan_started"
    RECEIPT_SCAN_COMPLETED = "receipt_scan_completed"
    RECEIPT_SCAN_FAILED = "receipt_scan_failed"
    RECEIPT_SCAN_DISCARDED = "receipt_scan_discarded"

    # Failures outside the user's control
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Log level the event is written at."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


SubjectKind = Literal["record", "station", "draft", "ledger"]


class AuditEvent(BaseModel):
    """One audited occurrence."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC time of the event"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    subject_kind: SubjectKind = "ledger"
    subject_id: Optional[str] = Field(
        default=None,
        description="Record id, station name or draft id"
    )
    correlation_id: Optional[UUID] = None

    summary: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe fields for a structured log line."""
        data = self.model_dump(mode="json", exclude_none=True)
        if not data["details"]:
            del data["details"]
        return data


class AuditEventBuilder:
    """
    Factory methods for every event the ledger emits.

    Usage:
        event = AuditEventBuilder.record_created(record.id, record.total_cost)
        event = AuditEventBuilder.receipt_scan_failed(draft_id, reason, correlation_id)
    """

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    @staticmethod
    def record_created(record_id: str, total_cost: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            subject_kind="record",
            subject_id=record_id,
            summary=f"Fill-up recorded, total {total_cost:.2f}",
            details={"total_cost": total_cost},
        )

    @staticmethod
    def record_updated(record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            subject_kind="record",
            subject_id=record_id,
            summary="Fill-up edited",
        )

    @staticmethod
    def record_deleted(record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            subject_kind="record",
            subject_id=record_id,
            summary="Fill-up deleted",
        )

    @staticmethod
    def record_not_found(record_id: str, operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            subject_kind="record",
            subject_id=record_id,
            summary=f"No fill-up to {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def submit_rejected(draft_id: UUID, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMIT_REJECTED,
            severity=AuditSeverity.WARNING,
            subject_kind="draft",
            subject_id=str(draft_id),
            summary=f"Save blocked: {len(issues)} field(s) need attention",
            details={"issues": issues},
        )

    # -------------------------------------------------------------------------
    # Stations
    # -------------------------------------------------------------------------

    @staticmethod
    def station_added(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATION_ADDED,
            subject_kind="station",
            subject_id=name,
            summary="Station added to the directory",
        )

    @staticmethod
    def station_deleted(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATION_DELETED,
            subject_kind="station",
            subject_id=name,
            summary="Station removed from the directory",
        )

    @staticmethod
    def station_not_found(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATION_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            subject_kind="station",
            subject_id=name,
            summary="No such station to remove",
        )

    @staticmethod
    def pinned_price_toggled(enabled: bool, price_text: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PINNED_PRICE_TOGGLED,
            subject_kind="draft",
            summary="Price pinned" if enabled else "Price unpinned",
            details={"enabled": enabled, "price": price_text},
        )

    # -------------------------------------------------------------------------
    # Receipt scans
    # -------------------------------------------------------------------------

    @staticmethod
    def receipt_scan_started(draft_id: UUID, image_size: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_STARTED,
            subject_kind="draft",
            subject_id=str(draft_id),
            correlation_id=correlation_id,
            summary="Reading receipt photo",
            details={"image_size_bytes": image_size},
        )

    @staticmethod
    def receipt_scan_completed(draft_id: UUID, merged_fields: list[str], correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_COMPLETED,
            subject_kind="draft",
            subject_id=str(draft_id),
            correlation_id=correlation_id,
            summary=f"Receipt filled in {len(merged_fields)} field(s)",
            details={"merged_fields": merged_fields},
        )

    @staticmethod
    def receipt_scan_failed(draft_id: UUID, reason: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_FAILED,
            severity=AuditSeverity.WARNING,
            subject_kind="draft",
            subject_id=str(draft_id),
            correlation_id=correlation_id,
            summary="Receipt could not be read; manual entry needed",
            error=reason,
        )

    @staticmethod
    def receipt_scan_discarded(draft_id: UUID, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_DISCARDED,
            subject_kind="draft",
            subject_id=str(draft_id),
            correlation_id=correlation_id,
            summary="Receipt result dropped: its draft was closed",
        )

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    @staticmethod
    def storage_error(operation: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            summary=f"Ledger write failed during {operation}",
            error=reason,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        reason: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            summary=f"Unexpected {error_type}",
            error=reason,
            details=details or {},
            correlation_id=correlation_id,
        )

"""
Data Models Package

This package contains all Pydantic models used in Fuel Ledger.
All data flowing through the system must conform to these schemas.
"""

from fuel_ledger.models.record import (
    UNKNOWN_STATION,
    ChartPoint,
    FuelRecord,
    FuelRecordFields,
    ReceiptData,
    SortMode,
    ValidationIssue,
    ValidationResult,
    VehicleStats,
    ViewState,
    format_number,
    parse_timestamp,
)
from fuel_ledger.models.draft import FormDraft, RawNumber
from fuel_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "UNKNOWN_STATION",
    "ChartPoint",
    "FuelRecord",
    "FuelRecordFields",
    "ReceiptData",
    "SortMode",
    "ValidationIssue",
    "ValidationResult",
    "VehicleStats",
    "ViewState",
    "format_number",
    "parse_timestamp",
    # Draft models
    "FormDraft",
    "RawNumber",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

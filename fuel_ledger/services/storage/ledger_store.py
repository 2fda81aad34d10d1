"""
Ledger Store

The system of record for fill-up records, the station directory and the
pinned-price slots.

DESIGN DECISION: The store is an explicit object handed to its consumers,
never module-level state. It loads every slot once when constructed and
writes the affected slot wholesale after every mutation. In-memory state
only changes after the write succeeded, so a failed write leaves the
store exactly as it was.

Not-found on update/delete is NOT an error: the call returns False and a
warning is logged, so callers can tell it apart from success.

Stored items the record model cannot read (or that repeat an id) are
hidden from the ledger but never dropped: their raw JSON is written back
at its original position on every save of the records slot.
"""

import json
from typing import Any, Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

from fuel_ledger.audit import AuditLogger
from fuel_ledger.config import AppSettings, StorageSettings, get_settings
from fuel_ledger.models.record import FuelRecord, FuelRecordFields
from fuel_ledger.services.storage.interface import (
    CorruptDataError,
    KeyValueStore,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LedgerStore:
    """
    Owns the persisted record collection and station directory.

    Records keep insertion order; views derive their own orderings
    through `fuel_ledger.queries`.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        storage_settings: Optional[StorageSettings] = None,
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._kv = kv_store
        self._keys = storage_settings or get_settings().storage
        self._app_settings = app_settings or get_settings().app
        self._audit = audit_logger or AuditLogger()

        # (original index, raw item) for stored entries that did not load
        self._unreadable: list[tuple[int, Any]] = []
        self._records: list[FuelRecord] = self._load_records()
        self._stations: list[str] = self._load_stations()
        self._pinned_enabled: bool = self._kv.get(self._keys.pinned_flag_key) == "true"
        self._pinned_text: str = self._kv.get(self._keys.pinned_price_key) or ""

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _load_json_list(self, key: str) -> Optional[list]:
        raw = self._kv.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(key, f"Slot {key!r} is not valid JSON: {e}")
        if not isinstance(data, list):
            raise CorruptDataError(key, f"Slot {key!r} must hold a JSON list")
        return data

    def _load_records(self) -> list[FuelRecord]:
        data = self._load_json_list(self._keys.records_key)
        if data is None:
            return []

        records: list[FuelRecord] = []
        seen: set[str] = set()
        for index, item in enumerate(data):
            try:
                record = FuelRecord.model_validate(item)
            except ValidationError as e:
                logger.warning("record_unreadable", index=index, error=str(e))
                self._unreadable.append((index, item))
                continue
            if record.id in seen:
                logger.warning("duplicate_record_kept_aside", index=index, record_id=record.id)
                self._unreadable.append((index, item))
                continue
            seen.add(record.id)
            records.append(record)
        return records

    @property
    def unreadable_count(self) -> int:
        """Stored entries that are kept in the slot but not shown."""
        return len(self._unreadable)

    def _load_stations(self) -> list[str]:
        data = self._load_json_list(self._keys.stations_key)
        if data is None:
            return list(self._app_settings.default_stations_list)

        stations: list[str] = []
        for item in data:
            if isinstance(item, str) and item and item not in stations:
                stations.append(item)
        return stations

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _write(self, key: str, payload: str, operation: str) -> None:
        try:
            self._kv.set(key, payload)
        except StorageError as e:
            self._audit.log_storage_error(operation, str(e))
            raise

    def _save_records(self, records: list[FuelRecord], operation: str) -> None:
        items: list[Any] = [record.to_storage_dict() for record in records]
        for index, raw in self._unreadable:
            items.insert(min(index, len(items)), raw)
        self._write(self._keys.records_key, json.dumps(items), operation)
        self._records = records

    def _save_stations(self, stations: list[str], operation: str) -> None:
        self._write(self._keys.stations_key, json.dumps(stations), operation)
        self._stations = stations

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def list_records(self) -> list[FuelRecord]:
        """The whole collection, in insertion order. Returns a copy."""
        return list(self._records)

    def get(self, record_id: str) -> Optional[FuelRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def require(self, record_id: str) -> FuelRecord:
        """Like `get`, but raises NotFoundError."""
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(f"Fuel record not found: {record_id}")
        return record

    def _new_id(self) -> str:
        existing = {record.id for record in self._records}
        while True:
            candidate = str(uuid4())
            if candidate not in existing:
                return candidate

    def create(self, fields: FuelRecordFields) -> FuelRecord:
        """Add a record under a fresh id and persist the collection."""
        record = FuelRecord.from_fields(fields, record_id=self._new_id())
        self._save_records([*self._records, record], "create_record")
        self._audit.log_record_created(record.id, record.total_cost)
        return record

    def update(self, record_id: str, fields: FuelRecordFields) -> bool:
        """
        Replace the user fields of a record, keeping its id and position.

        Returns False (and changes nothing) if the record does not exist.
        """
        for index, record in enumerate(self._records):
            if record.id == record_id:
                records = list(self._records)
                records[index] = record.with_fields(fields)
                self._save_records(records, "update_record")
                self._audit.log_record_updated(record_id)
                return True

        self._audit.log_record_not_found(record_id, "update")
        return False

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it does not exist."""
        records = [record for record in self._records if record.id != record_id]
        if len(records) == len(self._records):
            self._audit.log_record_not_found(record_id, "delete")
            return False

        self._save_records(records, "delete_record")
        self._audit.log_record_deleted(record_id)
        return True

    # -------------------------------------------------------------------------
    # Station directory
    # -------------------------------------------------------------------------

    def stations(self) -> list[str]:
        """Station names in directory order. Returns a copy."""
        return list(self._stations)

    def has_station(self, name: str) -> bool:
        return name in self._stations

    def add_station(self, name: str) -> bool:
        """
        Add a station name (case-sensitive) and re-sort the directory.

        Returns False when the trimmed name is blank or already present.
        """
        name = name.strip()
        if not name or name in self._stations:
            return False

        self._save_stations(sorted([*self._stations, name]), "add_station")
        self._audit.log_station_added(name)
        return True

    def delete_station(self, name: str) -> bool:
        """Remove a station name. Records keep their stored name."""
        if name not in self._stations:
            self._audit.log_station_not_found(name)
            return False

        self._save_stations([s for s in self._stations if s != name], "delete_station")
        self._audit.log_station_deleted(name)
        return True

    # -------------------------------------------------------------------------
    # Pinned price slots
    # -------------------------------------------------------------------------

    @property
    def pinned_price_enabled(self) -> bool:
        return self._pinned_enabled

    def set_pinned_price_enabled(self, enabled: bool) -> None:
        self._write(self._keys.pinned_flag_key, "true" if enabled else "false", "set_pinned_flag")
        self._pinned_enabled = enabled

    @property
    def pinned_price_text(self) -> str:
        return self._pinned_text

    def set_pinned_price_text(self, text: str) -> None:
        self._write(self._keys.pinned_price_key, text, "set_pinned_price")
        self._pinned_text = text

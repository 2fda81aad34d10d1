"""
Shared fixtures.

Everything runs against in-memory storage with explicit settings objects,
so tests never read a real ledger file or need a Gemini key.
"""

from datetime import datetime

import pytest

from fuel_ledger.audit import AuditLogger
from fuel_ledger.config import AppSettings, StorageSettings
from fuel_ledger.forms import DraftEditor
from fuel_ledger.models.record import FuelRecordFields
from fuel_ledger.services.storage import InMemoryKeyValueStore, LedgerStore
from fuel_ledger.validation import DraftValidator


FIXED_NOW = datetime(2024, 3, 10, 14, 30)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def storage_settings():
    return StorageSettings()


@pytest.fixture
def audit_logger():
    return AuditLogger(keep_history=True)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv, storage_settings, app_settings, audit_logger):
    return LedgerStore(
        kv,
        storage_settings=storage_settings,
        app_settings=app_settings,
        audit_logger=audit_logger,
    )


@pytest.fixture
def editor(store, app_settings, audit_logger):
    return DraftEditor(
        store,
        validator=DraftValidator(app_settings),
        audit_logger=audit_logger,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def make_fields():
    """Factory for valid record fields; override any field by keyword."""
    def _make(**overrides) -> FuelRecordFields:
        values = {
            "timestamp": "2024-01-05T10:00:00",
            "odometer": 1000.0,
            "price_per_unit": 0.25,
            "volume": 40.0,
            "total_cost": 10.0,
            "station_name": "Shell",
        }
        values.update(overrides)
        return FuelRecordFields(**values)
    return _make

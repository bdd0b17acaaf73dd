"""Pytest configuration for gradeledger_data tests."""

import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from gradeledger_data import (  # noqa: E402
    GradingRecord,
    Identity,
    InMemoryRemoteStore,
    InMemoryStorage,
    LocalRecordStore,
    StaticEntitlementGate,
    SyncEngine,
    SyncSettings,
)


@pytest.fixture
def make_record():
    """Factory for records with a fixed id and timestamp."""

    def _make(record_id, timestamp, question_key="q1", score=5, **kwargs):
        kwargs.setdefault("student_name", f"student-{record_id}")
        kwargs.setdefault("max_score", 10)
        return GradingRecord(
            id=record_id,
            score=score,
            timestamp=timestamp,
            question_key=question_key,
            **kwargs,
        )

    return _make


@pytest.fixture
def identity():
    return Identity(device_id="device-1", activation_code="CODE-123")


@pytest.fixture
def settings():
    return SyncSettings()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage, settings):
    return LocalRecordStore(storage, settings)


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def engine(store, remote, settings):
    return SyncEngine(store, remote, StaticEntitlementGate(), settings)

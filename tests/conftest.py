# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# - make_raw_record(...)   → randomuser.me shaped raw record
# - FakeSource             → async source gateway returning canned pages
# - MemoryPersistence      → dict-backed gateway that records save() calls
# - store                  → RecordStore wired to the two fakes
#
# NOTES:
# ------
# - Async tests use pytest-asyncio (@pytest.mark.asyncio)
# - Use tmp_path for the file backend
# ==============================================

import copy

import pytest

from user_directory.config import AppConfig
from user_directory.record_store import RecordStore


def make_raw_record(user_id="123", first="john", last="doe", gender="male", **overrides):
    record = {
        "gender": gender,
        "name": {"title": "Mr", "first": first, "last": last},
        "location": {
            "street": {"number": 42, "name": "Main Street"},
            "city": "Springfield",
            "state": "Oregon",
            "country": "United States",
            "postcode": 97477,
        },
        "email": f"{first}.{last}@example.com",
        "dob": {"date": "1990-01-01T00:00:00.000Z", "age": 34},
        "phone": "(555) 010-1234",
        "id": {"name": "SSN", "value": user_id},
        "picture": {
            "large": f"https://example.com/large/{user_id}.jpg",
            "medium": f"https://example.com/med/{user_id}.jpg",
            "thumbnail": f"https://example.com/thumb/{user_id}.jpg",
        },
    }
    record.update(overrides)
    return record


class FakeSource:
    """Async source gateway. pages[n] is returned for page n (1-based)."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.calls = []
        self.gate = None

    async def fetch_page(self, page, page_size):
        self.calls.append((page, page_size))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.pages.get(page, []))


class MemoryPersistence:
    """Key-value gateway kept in a dict; values round-trip like JSON would."""

    def __init__(self, data=None):
        self.data = copy.deepcopy(data) if data else {}
        self.saves = []

    def save(self, key, value):
        self.saves.append(key)
        self.data[key] = copy.deepcopy(value)

    def load(self, key):
        return copy.deepcopy(self.data.get(key))

    def delete(self, key):
        return self.data.pop(key, None) is not None


@pytest.fixture
def raw_record():
    """A single well-formed raw record for id '123'."""
    return make_raw_record()


@pytest.fixture
def source():
    return FakeSource(pages={
        1: [make_raw_record("1", "john", "doe"), make_raw_record("2", "jane", "smith", gender="female")],
        2: [make_raw_record("3", "ALICE", "cooper", gender="female")],
    })


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def store(source, persistence):
    return RecordStore(source, persistence)


@pytest.fixture
def app_config(tmp_path):
    """Configuration pointing the file backend at a temp directory."""
    config = AppConfig()
    config.persistence.data_dir = str(tmp_path / "data")
    config.persistence.quiet_period_seconds = 0.05
    return config

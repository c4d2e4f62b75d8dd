"""
Pytest Fixtures and Test Configuration
Provides source trackers, table ids, commit times and an in-memory offset store
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

import pytest

from pgcdc.cdc.source_info import SourceInfo
from pgcdc.models.offset import TableId

# 2024-01-15T10:30:00.000123Z
COMMIT_TIME = datetime(2024, 1, 15, 10, 30, 0, 123, tzinfo=timezone.utc)
COMMIT_MICROS = 1705314600000123


class InMemoryOffsetStore:
    """
    Stands in for the external checkpoint storage

    Offsets are serialized to JSON on write, so a loaded offset has gone
    through the same round trip as one read back from a real store.
    """

    def __init__(self):
        self._offsets: Dict[str, str] = {}

    @staticmethod
    def _key(partition: Dict[str, str]) -> str:
        return json.dumps(partition, sort_keys=True)

    def write(self, partition: Dict[str, str], offset: Dict[str, Any]) -> None:
        self._offsets[self._key(partition)] = json.dumps(offset)

    def read(self, partition: Dict[str, str]) -> Optional[Dict[str, Any]]:
        raw = self._offsets.get(self._key(partition))
        return json.loads(raw) if raw is not None else None

    def __len__(self) -> int:
        return len(self._offsets)


@pytest.fixture
def commit_time() -> datetime:
    """Commit time of the sample transaction"""
    return COMMIT_TIME


@pytest.fixture
def commit_micros() -> int:
    """COMMIT_TIME in microseconds since epoch"""
    return COMMIT_MICROS


@pytest.fixture
def orders_table() -> TableId:
    return TableId(schema="public", table="orders")


@pytest.fixture
def customers_table() -> TableId:
    return TableId(schema="sales", table="customers")


@pytest.fixture
def source_info() -> SourceInfo:
    """Fresh tracker for server pg1, database inventory"""
    return SourceInfo("pg1", "inventory")


@pytest.fixture
def unique_server_name() -> str:
    """Server name not shared with any other test (keeps metric samples apart)"""
    return f"pg-{uuid4().hex[:12]}"


@pytest.fixture
def offset_store() -> InMemoryOffsetStore:
    return InMemoryOffsetStore()

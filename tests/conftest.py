import os
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.components.analytics import PageViewEvent
from tests.helpers import FixedClock

MIGRATIONS_DIR = "migrations"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def test_data_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture
def db_path(test_data_dir) -> str:
    """SQLite database with all migrations applied."""
    path = os.path.join(test_data_dir, "site.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def make_event() -> Callable[..., PageViewEvent]:
    """Factory for stored page views with sensible defaults."""

    def _make(**overrides: Any) -> PageViewEvent:
        values: dict[str, Any] = {
            "id": uuid4(),
            "site_id": "acme",
            "page_id": "home",
            "visitor_id": "u1",
            "session_id": "u1",
            "is_new_visitor": False,
            "timestamp": datetime(2025, 6, 15, 10, 0, tzinfo=UTC),
            "device_type": "desktop",
            "browser": "Chrome",
            "operating_system": "Windows",
            "referrer_source": "direct",
            "ip_address": "203.0.113.7",
        }
        values.update(overrides)
        if "session_id" not in overrides:
            values["session_id"] = values["visitor_id"]
        return PageViewEvent(**values)

    return _make

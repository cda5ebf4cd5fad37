"""
Analytics component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import EventQuery, GeoLocation, GroupRow, PageViewEvent

# Columns a repository may group or filter on.
GROUPABLE_FIELDS: frozenset[str] = frozenset(
    {
        "page_id",
        "visitor_id",
        "session_id",
        "device_type",
        "browser",
        "operating_system",
        "referrer",
        "referrer_source",
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "country",
        "city",
        "region",
    }
)


class PageViewRepoPort(Protocol):
    """Append-only page view store with a small aggregate query surface."""

    def save(self, event: PageViewEvent) -> PageViewEvent:
        """Persist a new event."""
        ...

    def count(self, query: EventQuery) -> int:
        """Count matching events."""
        ...

    def count_distinct(self, query: EventQuery, field_name: str) -> int:
        """Count distinct values of a field over matching events."""
        ...

    def group_by(
        self,
        query: EventQuery,
        fields: tuple[str, ...],
        limit: int | None = None,
    ) -> list[GroupRow]:
        """
        Group matching events by fields.

        Rows sorted by views descending, then key ascending.
        """
        ...

    def bucket_series(self, query: EventQuery, label_format: str) -> list[GroupRow]:
        """
        Group matching events by strftime label of their UTC timestamp.

        Rows sorted by label ascending; key is (label,).
        """
        ...

    def engagement(self, query: EventQuery) -> GroupRow:
        """Averages of time on page and scroll depth over matching events."""
        ...

    def recent(self, query: EventQuery, limit: int) -> list[PageViewEvent]:
        """Most recent matching events, newest first."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class GeoResolverPort(Protocol):
    """Optional IP to location lookup."""

    def resolve(self, ip_address: str) -> GeoLocation | None:
        """Resolve an IP address. None when unknown."""
        ...


class RulesPort(Protocol):
    """Port for analytics rules configuration."""

    def get_default_window_days(self) -> int:
        """Report window used when start is omitted."""
        ...

    def get_top_limits(self) -> dict[str, int]:
        """Row limits per truncated breakdown."""
        ...

    def get_realtime_config(self) -> dict[str, int]:
        """Real-time windows (minutes/hours) and recent row limit."""
        ...

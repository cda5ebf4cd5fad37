"""
Analytics component input/output models.

Page-view events, classification results, report sections and the
real-time/sources/geography outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

# --- Validation Error ---


@dataclass(frozen=True)
class AnalyticsValidationError:
    """Analytics validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Enums ---


DeviceType = Literal["mobile", "tablet", "desktop", "unknown"]
Granularity = Literal["hourly", "daily", "weekly", "monthly"]

GRANULARITIES: tuple[str, ...] = ("hourly", "daily", "weekly", "monthly")


# --- Classification ---


@dataclass(frozen=True)
class UTMParams:
    """UTM tags taken from the page URL query string."""

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None
    term: str | None = None

    def has_any(self) -> bool:
        """Check if any UTM parameter is present."""
        return any([self.source, self.medium, self.campaign, self.content, self.term])


@dataclass(frozen=True)
class RequestMeta:
    """Raw request metadata the classifier works from."""

    user_agent: str = ""
    referrer: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    peer_address: str | None = None


@dataclass(frozen=True)
class RequestClassification:
    """Everything derived from a request at ingestion time."""

    user_agent: str
    device_type: DeviceType
    browser: str
    operating_system: str
    referrer: str
    referrer_source: str
    utm: UTMParams
    ip_address: str


# --- Page View Event ---


@dataclass(frozen=True)
class PageViewEvent:
    """Stored page view. Never mutated after ingestion."""

    id: UUID
    site_id: str
    page_id: str
    visitor_id: str
    session_id: str
    is_new_visitor: bool
    timestamp: datetime
    device_type: DeviceType = "unknown"
    browser: str = "Unknown"
    operating_system: str = "Unknown"
    referrer: str | None = None
    referrer_source: str = "direct"
    user_agent: str | None = None
    page_url: str | None = None
    page_title: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_content: str | None = None
    utm_term: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    ip_address: str | None = None
    time_on_page_seconds: float | None = None
    scroll_depth_percent: float | None = None


@dataclass(frozen=True)
class GeoLocation:
    """Location returned by an optional geo resolver."""

    country: str | None = None
    city: str | None = None
    region: str | None = None


# --- Query Models ---


@dataclass(frozen=True)
class EventQuery:
    """
    Filter over stored page views.

    Matches events of one site with start <= timestamp <= end. Fields in
    `require` must be present (not null, not empty string).
    """

    site_id: str
    start: datetime | None = None
    end: datetime | None = None
    require: tuple[str, ...] = ()
    new_only: bool = False
    min_time_on_page: float | None = None

    def requiring(self, *fields: str) -> EventQuery:
        """Copy of this query with extra required-present fields."""
        return EventQuery(
            site_id=self.site_id,
            start=self.start,
            end=self.end,
            require=self.require + tuple(f for f in fields if f not in self.require),
            new_only=self.new_only,
            min_time_on_page=self.min_time_on_page,
        )


@dataclass(frozen=True)
class GroupRow:
    """Aggregated values for one group key."""

    key: tuple[Any, ...]
    views: int
    unique_visitors: int = 0
    new_visitors: int = 0
    avg_time_on_page: float | None = None
    avg_scroll_depth: float | None = None


# --- Input Models ---


@dataclass(frozen=True)
class RecordPageViewInput:
    """Input for recording a page view."""

    data: dict[str, Any]
    meta: RequestMeta = field(default_factory=RequestMeta)


@dataclass(frozen=True)
class ReportInput:
    """Input for the full analytics report."""

    site_id: str
    start: datetime | None = None
    end: datetime | None = None
    granularity: Granularity = "daily"


@dataclass(frozen=True)
class RealtimeInput:
    """Input for the real-time view."""

    site_id: str


@dataclass(frozen=True)
class BreakdownInput:
    """Input for the narrowed sources/geography breakdowns."""

    site_id: str
    start: datetime | None = None
    end: datetime | None = None


# --- Report Sections ---


@dataclass(frozen=True)
class CountItem:
    """Single group in a count breakdown."""

    key: str | None
    count: int


@dataclass(frozen=True)
class CityItem:
    """Views for one (city, country) pair."""

    city: str
    country: str | None
    views: int
    unique_visitors: int


@dataclass(frozen=True)
class CountryItem:
    """Views for one country."""

    country: str
    views: int
    unique_visitors: int


@dataclass(frozen=True)
class TimeBucket:
    """One time bucket of the views-over-time series."""

    bucket: str
    views: int
    new_visitors: int
    unique_visitors: int


@dataclass(frozen=True)
class EngagementStats:
    """Averages over events that reported time on page."""

    avg_time_on_page: float = 0.0
    avg_scroll_depth: float = 0.0
    total_engaged_sessions: int = 0


@dataclass(frozen=True)
class CampaignItem:
    """UTM campaign performance row."""

    campaign: str
    source: str | None
    medium: str | None
    views: int
    unique_visitors: int


@dataclass(frozen=True)
class SourceStats:
    """Detailed per-source metrics."""

    source: str
    views: int
    unique_visitors: int
    new_visitors: int
    avg_time_on_page: float | None
    avg_scroll_depth: float | None


@dataclass(frozen=True)
class RecentView:
    """Trimmed event shown in the real-time feed."""

    page_id: str
    timestamp: datetime
    visitor_id: str
    is_new_visitor: bool
    referrer_source: str
    device_type: str
    country: str | None


@dataclass(frozen=True)
class MinuteActivity:
    """Distinct visitors seen in one minute."""

    minute: str
    count: int


# --- Output Models ---


@dataclass(frozen=True)
class RecordOutput:
    """Output for a recorded page view."""

    event: PageViewEvent | None
    accepted: bool
    errors: list[AnalyticsValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class AnalyticsReport:
    """Full report over one site and time window."""

    site_id: str
    start: datetime
    end: datetime
    granularity: str
    total_views: int = 0
    new_visitors: int = 0
    unique_visitors: int = 0
    returning_visitors: int = 0
    views_by_page: tuple[CountItem, ...] = ()
    views_by_source: tuple[CountItem, ...] = ()
    views_by_device: tuple[CountItem, ...] = ()
    views_by_browser: tuple[CountItem, ...] = ()
    views_by_country: tuple[CountItem, ...] = ()
    views_by_city: tuple[CityItem, ...] = ()
    views_over_time: tuple[TimeBucket, ...] = ()
    engagement: EngagementStats = field(default_factory=EngagementStats)
    top_referrers: tuple[CountItem, ...] = ()
    utm_campaigns: tuple[CampaignItem, ...] = ()
    degraded_sections: tuple[str, ...] = ()


@dataclass(frozen=True)
class RealtimeOutput:
    """Trailing-window activity."""

    site_id: str
    recent_views: tuple[RecentView, ...] = ()
    active_visitors: int = 0
    active_by_minute: tuple[MinuteActivity, ...] = ()
    degraded_sections: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourcesOutput:
    """Per-source breakdown."""

    site_id: str
    start: datetime
    end: datetime
    sources: tuple[SourceStats, ...] = ()
    degraded_sections: tuple[str, ...] = ()


@dataclass(frozen=True)
class GeographyOutput:
    """Country and city breakdown."""

    site_id: str
    start: datetime
    end: datetime
    by_country: tuple[CountryItem, ...] = ()
    by_city: tuple[CityItem, ...] = ()
    degraded_sections: tuple[str, ...] = ()

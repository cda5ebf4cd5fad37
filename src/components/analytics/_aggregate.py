"""
AnalyticsReportService - report aggregation over stored page views.

Key behaviors:
- Every section is an independent aggregate over the same filtered events
- A failing section is logged and degraded to its empty value; its name is
  reported in degraded_sections instead of failing the whole report
- Breakdowns sort by count descending, ties by key ascending, so repeated
  queries over an unchanged store give identical output
- returning_visitors = unique_visitors - new_visitors and may go negative
  when clients report is_new_visitor inconsistently
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TypeVar

from ._impl import DefaultTimePort, to_utc
from .models import (
    AnalyticsReport,
    CampaignItem,
    CityItem,
    CountItem,
    CountryItem,
    EngagementStats,
    EventQuery,
    GeographyOutput,
    GroupRow,
    MinuteActivity,
    RealtimeOutput,
    RecentView,
    SourcesOutput,
    SourceStats,
    TimeBucket,
)
from .ports import PageViewRepoPort, TimePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

# --- Bucket Formats ---

GRANULARITY_FORMATS: dict[str, str] = {
    "hourly": "%Y-%m-%d %H:00",
    "daily": "%Y-%m-%d",
    "weekly": "%Y-W%U",
    "monthly": "%Y-%m",
}

MINUTE_FORMAT = "%Y-%m-%d %H:%M"


def bucket_format(granularity: str) -> str:
    """strftime label format for a granularity."""
    try:
        return GRANULARITY_FORMATS[granularity]
    except KeyError:
        msg = f"Unknown granularity: {granularity}"
        raise ValueError(msg) from None


# --- Configuration ---


@dataclass(frozen=True)
class ReportConfig:
    """Report configuration."""

    default_window_days: int = 30

    # Row limits for truncated breakdowns
    top_pages: int = 10
    top_countries: int = 10
    top_cities: int = 20
    top_referrers: int = 10
    top_campaigns: int = 10

    # Real-time windows
    realtime_window_hours: int = 24
    realtime_recent_limit: int = 100
    active_window_minutes: int = 5
    activity_window_minutes: int = 60


DEFAULT_CONFIG = ReportConfig()


class StoreUnavailableError(Exception):
    """Raised when no section of a report could be computed."""


# --- Row Mapping ---


def _count_items(rows: list[GroupRow]) -> tuple[CountItem, ...]:
    return tuple(CountItem(key=r.key[0], count=r.views) for r in rows)


def _city_items(rows: list[GroupRow]) -> tuple[CityItem, ...]:
    return tuple(
        CityItem(city=r.key[0], country=r.key[1], views=r.views, unique_visitors=r.unique_visitors)
        for r in rows
    )


class _Sections:
    """Runs report sections, collecting the names of those that failed."""

    def __init__(self) -> None:
        self.attempted = 0
        self.failed: list[str] = []

    def run(self, name: str, compute: Callable[[], T], default: T) -> T:
        """Compute one section; degrade to default on failure."""
        self.attempted += 1
        try:
            return compute()
        except Exception:
            logger.exception("Analytics section '%s' failed", name)
            self.failed.append(name)
            return default

    def check_outage(self) -> None:
        """Raise when every attempted section failed."""
        if self.attempted and len(self.failed) == self.attempted:
            raise StoreUnavailableError("All analytics sections failed")


# --- Report Service ---


class AnalyticsReportService:
    """
    Analytics report service.

    Read-only: issues queries against the page view repository.
    """

    def __init__(
        self,
        repo: PageViewRepoPort,
        time_port: TimePort | None = None,
        config: ReportConfig | None = None,
    ) -> None:
        """Initialize service."""
        self._repo = repo
        self._time = time_port or DefaultTimePort()
        self._config = config or DEFAULT_CONFIG

    def resolve_window(
        self,
        start: datetime | None,
        end: datetime | None,
    ) -> tuple[datetime, datetime]:
        """Fill in the default window (trailing N days ending now)."""
        end_dt = to_utc(end) if end else self._time.now_utc()
        start_dt = (
            to_utc(start) if start else end_dt - timedelta(days=self._config.default_window_days)
        )
        return start_dt, end_dt

    # --- Full Report ---

    def build_report(
        self,
        site_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        granularity: str = "daily",
    ) -> AnalyticsReport:
        """
        Build the full report for a site and window.

        Raises:
            ValueError: unknown granularity.
            StoreUnavailableError: every section failed.
        """
        label_format = bucket_format(granularity)
        start_dt, end_dt = self.resolve_window(start, end)
        query = EventQuery(site_id=site_id, start=start_dt, end=end_dt)
        cfg = self._config
        repo = self._repo
        sections = _Sections()

        total_views = sections.run("total_views", lambda: repo.count(query), 0)

        new_visitors = sections.run(
            "new_visitors",
            lambda: repo.count(
                EventQuery(site_id=site_id, start=start_dt, end=end_dt, new_only=True)
            ),
            0,
        )

        unique_visitors = sections.run(
            "unique_visitors",
            lambda: repo.count_distinct(query, "visitor_id"),
            0,
        )

        views_by_page = sections.run(
            "views_by_page",
            lambda: _count_items(repo.group_by(query, ("page_id",), cfg.top_pages)),
            (),
        )

        views_by_source = sections.run(
            "views_by_source",
            lambda: _count_items(repo.group_by(query, ("referrer_source",))),
            (),
        )

        views_by_device = sections.run(
            "views_by_device",
            lambda: _count_items(repo.group_by(query, ("device_type",))),
            (),
        )

        views_by_browser = sections.run(
            "views_by_browser",
            lambda: _count_items(repo.group_by(query, ("browser",))),
            (),
        )

        views_by_country = sections.run(
            "views_by_country",
            lambda: _count_items(
                repo.group_by(query.requiring("country"), ("country",), cfg.top_countries)
            ),
            (),
        )

        views_by_city = sections.run(
            "views_by_city",
            lambda: _city_items(
                repo.group_by(
                    query.requiring("country", "city"), ("city", "country"), cfg.top_cities
                )
            ),
            (),
        )

        views_over_time = sections.run(
            "views_over_time",
            lambda: self._time_series(query, label_format),
            (),
        )

        engagement = sections.run(
            "engagement",
            lambda: self._engagement(query),
            EngagementStats(),
        )

        top_referrers = sections.run(
            "top_referrers",
            lambda: _count_items(
                repo.group_by(query.requiring("referrer"), ("referrer",), cfg.top_referrers)
            ),
            (),
        )

        utm_campaigns = sections.run(
            "utm_campaigns",
            lambda: self._campaigns(query),
            (),
        )

        sections.check_outage()

        # returning_visitors is only meaningful when both inputs were computed
        returning = 0
        if "unique_visitors" not in sections.failed and "new_visitors" not in sections.failed:
            returning = unique_visitors - new_visitors

        return AnalyticsReport(
            site_id=site_id,
            start=start_dt,
            end=end_dt,
            granularity=granularity,
            total_views=total_views,
            new_visitors=new_visitors,
            unique_visitors=unique_visitors,
            returning_visitors=returning,
            views_by_page=views_by_page,
            views_by_source=views_by_source,
            views_by_device=views_by_device,
            views_by_browser=views_by_browser,
            views_by_country=views_by_country,
            views_by_city=views_by_city,
            views_over_time=views_over_time,
            engagement=engagement,
            top_referrers=top_referrers,
            utm_campaigns=utm_campaigns,
            degraded_sections=tuple(sections.failed),
        )

    def _time_series(self, query: EventQuery, label_format: str) -> tuple[TimeBucket, ...]:
        return tuple(
            TimeBucket(
                bucket=r.key[0],
                views=r.views,
                new_visitors=r.new_visitors,
                unique_visitors=r.unique_visitors,
            )
            for r in self._repo.bucket_series(query, label_format)
        )

    def _engagement(self, query: EventQuery) -> EngagementStats:
        engaged = EventQuery(
            site_id=query.site_id,
            start=query.start,
            end=query.end,
            require=query.require,
            min_time_on_page=0,
        )
        row = self._repo.engagement(engaged)
        if row.views == 0:
            return EngagementStats()
        return EngagementStats(
            avg_time_on_page=row.avg_time_on_page or 0.0,
            avg_scroll_depth=row.avg_scroll_depth or 0.0,
            total_engaged_sessions=row.views,
        )

    def _campaigns(self, query: EventQuery) -> tuple[CampaignItem, ...]:
        rows = self._repo.group_by(
            query.requiring("utm_campaign"),
            ("utm_campaign", "utm_source", "utm_medium"),
            self._config.top_campaigns,
        )
        return tuple(
            CampaignItem(
                campaign=r.key[0],
                source=r.key[1],
                medium=r.key[2],
                views=r.views,
                unique_visitors=r.unique_visitors,
            )
            for r in rows
        )

    # --- Real-time ---

    def realtime(self, site_id: str) -> RealtimeOutput:
        """
        Trailing-window activity for a site.

        Windows and row limits are fixed by configuration, not by the caller.
        """
        cfg = self._config
        now = self._time.now_utc()
        sections = _Sections()

        recent_query = EventQuery(
            site_id=site_id,
            start=now - timedelta(hours=cfg.realtime_window_hours),
        )
        active_query = EventQuery(
            site_id=site_id,
            start=now - timedelta(minutes=cfg.active_window_minutes),
        )
        activity_query = EventQuery(
            site_id=site_id,
            start=now - timedelta(minutes=cfg.activity_window_minutes),
        )

        recent_views = sections.run(
            "recent_views",
            lambda: tuple(
                RecentView(
                    page_id=e.page_id,
                    timestamp=e.timestamp,
                    visitor_id=e.visitor_id,
                    is_new_visitor=e.is_new_visitor,
                    referrer_source=e.referrer_source,
                    device_type=e.device_type,
                    country=e.country,
                )
                for e in self._repo.recent(recent_query, cfg.realtime_recent_limit)
            ),
            (),
        )

        active_visitors = sections.run(
            "active_visitors",
            lambda: self._repo.count_distinct(active_query, "visitor_id"),
            0,
        )

        active_by_minute = sections.run(
            "active_by_minute",
            lambda: tuple(
                MinuteActivity(minute=r.key[0], count=r.unique_visitors)
                for r in self._repo.bucket_series(activity_query, MINUTE_FORMAT)
            ),
            (),
        )

        sections.check_outage()

        return RealtimeOutput(
            site_id=site_id,
            recent_views=recent_views,
            active_visitors=active_visitors,
            active_by_minute=active_by_minute,
            degraded_sections=tuple(sections.failed),
        )

    # --- Narrowed Breakdowns ---

    def sources(
        self,
        site_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> SourcesOutput:
        """Per-source metrics for a site and window."""
        start_dt, end_dt = self.resolve_window(start, end)
        query = EventQuery(site_id=site_id, start=start_dt, end=end_dt)
        sections = _Sections()

        sources = sections.run(
            "sources",
            lambda: tuple(
                SourceStats(
                    source=r.key[0],
                    views=r.views,
                    unique_visitors=r.unique_visitors,
                    new_visitors=r.new_visitors,
                    avg_time_on_page=r.avg_time_on_page,
                    avg_scroll_depth=r.avg_scroll_depth,
                )
                for r in self._repo.group_by(query, ("referrer_source",))
            ),
            (),
        )

        sections.check_outage()

        return SourcesOutput(
            site_id=site_id,
            start=start_dt,
            end=end_dt,
            sources=sources,
            degraded_sections=tuple(sections.failed),
        )

    def geography(
        self,
        site_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> GeographyOutput:
        """Country and city breakdown for a site and window."""
        start_dt, end_dt = self.resolve_window(start, end)
        query = EventQuery(site_id=site_id, start=start_dt, end=end_dt, require=("country",))
        sections = _Sections()

        by_country = sections.run(
            "by_country",
            lambda: tuple(
                CountryItem(country=r.key[0], views=r.views, unique_visitors=r.unique_visitors)
                for r in self._repo.group_by(query, ("country",))
            ),
            (),
        )

        by_city = sections.run(
            "by_city",
            lambda: _city_items(
                self._repo.group_by(
                    query.requiring("city"), ("city", "country"), self._config.top_cities
                )
            ),
            (),
        )

        sections.check_outage()

        return GeographyOutput(
            site_id=site_id,
            start=start_dt,
            end=end_dt,
            by_country=by_country,
            by_city=by_city,
            degraded_sections=tuple(sections.failed),
        )


# --- Factory ---


def create_report_service(
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    config: ReportConfig | None = None,
) -> AnalyticsReportService:
    """Create an AnalyticsReportService."""
    return AnalyticsReportService(
        repo=repo,
        time_port=time_port,
        config=config,
    )

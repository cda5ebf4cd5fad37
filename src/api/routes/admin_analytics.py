"""
Admin Analytics API.

Report endpoints for the site owner. All routes require an admin token.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict

from src.api.deps import (
    AdminUser,
    get_analytics_rules,
    get_clock,
    get_current_admin,
    get_page_view_repo,
)
from src.components.analytics import (
    GRANULARITIES,
    BreakdownInput,
    PageViewRepoPort,
    RealtimeInput,
    ReportInput,
    RulesPort,
    StoreUnavailableError,
    TimePort,
    run_geography,
    run_realtime,
    run_report,
    run_sources,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Response Models ---


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CountItemResponse(_FromAttributes):
    key: str | None
    count: int


class CityItemResponse(_FromAttributes):
    city: str
    country: str | None
    views: int
    unique_visitors: int


class CountryItemResponse(_FromAttributes):
    country: str
    views: int
    unique_visitors: int


class TimeBucketResponse(_FromAttributes):
    bucket: str
    views: int
    new_visitors: int
    unique_visitors: int


class EngagementResponse(_FromAttributes):
    avg_time_on_page: float
    avg_scroll_depth: float
    total_engaged_sessions: int


class CampaignItemResponse(_FromAttributes):
    campaign: str
    source: str | None
    medium: str | None
    views: int
    unique_visitors: int


class ReportResponse(_FromAttributes):
    """Full report."""

    site_id: str
    start: datetime
    end: datetime
    granularity: str
    total_views: int
    new_visitors: int
    unique_visitors: int
    returning_visitors: int
    views_by_page: list[CountItemResponse]
    views_by_source: list[CountItemResponse]
    views_by_device: list[CountItemResponse]
    views_by_browser: list[CountItemResponse]
    views_by_country: list[CountItemResponse]
    views_by_city: list[CityItemResponse]
    views_over_time: list[TimeBucketResponse]
    engagement: EngagementResponse
    top_referrers: list[CountItemResponse]
    utm_campaigns: list[CampaignItemResponse]
    degraded_sections: list[str]


class RecentViewResponse(_FromAttributes):
    page_id: str
    timestamp: datetime
    visitor_id: str
    is_new_visitor: bool
    referrer_source: str
    device_type: str
    country: str | None


class MinuteActivityResponse(_FromAttributes):
    minute: str
    count: int


class RealtimeResponse(_FromAttributes):
    """Trailing-window activity."""

    site_id: str
    recent_views: list[RecentViewResponse]
    active_visitors: int
    active_by_minute: list[MinuteActivityResponse]
    degraded_sections: list[str]


class SourceStatsResponse(_FromAttributes):
    source: str
    views: int
    unique_visitors: int
    new_visitors: int
    avg_time_on_page: float | None
    avg_scroll_depth: float | None


class SourcesResponse(_FromAttributes):
    site_id: str
    start: datetime
    end: datetime
    sources: list[SourceStatsResponse]
    degraded_sections: list[str]


class GeographyResponse(_FromAttributes):
    site_id: str
    start: datetime
    end: datetime
    by_country: list[CountryItemResponse]
    by_city: list[CityItemResponse]
    degraded_sections: list[str]


# --- Helper Functions ---


def parse_datetime(dt_str: str) -> datetime:
    """Parse datetime string to datetime object."""
    try:
        # Try ISO format with Z
        if dt_str.endswith("Z"):
            dt_str = dt_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(dt_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid datetime format: {dt_str}",
        ) from e


def parse_window(
    start: str | None, end: str | None
) -> tuple[datetime | None, datetime | None]:
    """Parse optional window bounds; rejects start after end."""
    start_dt = parse_datetime(start) if start else None
    end_dt = parse_datetime(end) if end else None
    if start_dt is not None and end_dt is not None and start_dt > end_dt:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    return start_dt, end_dt


def parse_granularity(granularity: str) -> str:
    value = granularity.lower()
    if value not in GRANULARITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Invalid granularity: {granularity}. "
                f"Must be one of: {', '.join(GRANULARITIES)}"
            ),
        )
    return value


def store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    logger.error("Analytics store unavailable: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Analytics store unavailable",
    )


# --- Routes ---


@router.get("/stats/{site_id}", response_model=ReportResponse)
def get_stats(
    site_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    granularity: str = Query("daily", description="hourly, daily, weekly or monthly"),
    repo: PageViewRepoPort = Depends(get_page_view_repo),
    clock: TimePort = Depends(get_clock),
    rules: RulesPort = Depends(get_analytics_rules),
    admin: AdminUser = Depends(get_current_admin),
) -> ReportResponse:
    """
    Full analytics report for a site.

    Defaults to the trailing configured window when start/end are omitted.
    """
    start_dt, end_dt = parse_window(start, end)
    inp = ReportInput(
        site_id=site_id,
        start=start_dt,
        end=end_dt,
        granularity=parse_granularity(granularity),  # type: ignore[arg-type]
    )

    try:
        report = run_report(inp, repo=repo, time_port=clock, rules=rules)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e

    return ReportResponse.model_validate(report)


@router.get("/realtime/{site_id}", response_model=RealtimeResponse)
def get_realtime(
    site_id: str,
    repo: PageViewRepoPort = Depends(get_page_view_repo),
    clock: TimePort = Depends(get_clock),
    rules: RulesPort = Depends(get_analytics_rules),
    admin: AdminUser = Depends(get_current_admin),
) -> RealtimeResponse:
    """Recent views, active visitors and per-minute activity."""
    try:
        output = run_realtime(
            RealtimeInput(site_id=site_id), repo=repo, time_port=clock, rules=rules
        )
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e

    return RealtimeResponse.model_validate(output)


@router.get("/sources/{site_id}", response_model=SourcesResponse)
def get_sources(
    site_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    repo: PageViewRepoPort = Depends(get_page_view_repo),
    clock: TimePort = Depends(get_clock),
    rules: RulesPort = Depends(get_analytics_rules),
    admin: AdminUser = Depends(get_current_admin),
) -> SourcesResponse:
    """Per-source traffic breakdown."""
    start_dt, end_dt = parse_window(start, end)
    try:
        output = run_sources(
            BreakdownInput(site_id=site_id, start=start_dt, end=end_dt),
            repo=repo,
            time_port=clock,
            rules=rules,
        )
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e

    return SourcesResponse.model_validate(output)


@router.get("/geography/{site_id}", response_model=GeographyResponse)
def get_geography(
    site_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    repo: PageViewRepoPort = Depends(get_page_view_repo),
    clock: TimePort = Depends(get_clock),
    rules: RulesPort = Depends(get_analytics_rules),
    admin: AdminUser = Depends(get_current_admin),
) -> GeographyResponse:
    """Country and city breakdown."""
    start_dt, end_dt = parse_window(start, end)
    try:
        output = run_geography(
            BreakdownInput(site_id=site_id, start=start_dt, end=end_dt),
            repo=repo,
            time_port=clock,
            rules=rules,
        )
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e

    return GeographyResponse.model_validate(output)

"""
PageViewRecorder - page view ingestion with validation and enrichment.

Key behaviors:
- site_id, page_id and visitor_id are required and non-empty
- Timestamp is always server time, never client supplied
- Device/browser/OS/source/UTM/IP are derived once here and stored;
  later rule changes do not reclassify stored events
- No dedupe: a retried submission stores a second event
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from ._classify import classify_request
from .models import (
    AnalyticsValidationError,
    EventQuery,
    GroupRow,
    PageViewEvent,
    RequestMeta,
)
from .ports import GeoResolverPort, PageViewRepoPort, TimePort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class RecorderConfig:
    """Page view recorder configuration."""

    enabled: bool = True
    required_fields: tuple[str, ...] = ("site_id", "page_id", "visitor_id")
    max_id_length: int = 200


DEFAULT_CONFIG = RecorderConfig()


# --- Time Helpers ---


def to_utc(ts: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def format_bucket(ts: datetime, label_format: str) -> str:
    """Format a timestamp into a sortable UTC bucket label."""
    return to_utc(ts).strftime(label_format)


# --- Default Implementations ---


class DefaultTimePort:
    """Default time provider."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        return datetime.now(UTC)


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def _group_sort_key(key: tuple[Any, ...]) -> tuple[tuple[bool, str], ...]:
    # Nulls first, matching SQL ascending order
    return tuple((v is not None, "" if v is None else str(v)) for v in key)


def _avg(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


class InMemoryPageViewRepo:
    """In-memory page view repository for testing/dev."""

    def __init__(self) -> None:
        self._events: list[PageViewEvent] = []

    def save(self, event: PageViewEvent) -> PageViewEvent:
        """Store an event."""
        self._events.append(event)
        return event

    def get_all(self) -> list[PageViewEvent]:
        """Get all stored events (for testing)."""
        return list(self._events)

    def _select(self, query: EventQuery) -> list[PageViewEvent]:
        start = to_utc(query.start) if query.start else None
        end = to_utc(query.end) if query.end else None
        results = []

        for event in self._events:
            if event.site_id != query.site_id:
                continue

            ts = to_utc(event.timestamp)
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue

            if not all(_has_value(getattr(event, f)) for f in query.require):
                continue

            if query.new_only and not event.is_new_visitor:
                continue

            if query.min_time_on_page is not None:
                if (
                    event.time_on_page_seconds is None
                    or event.time_on_page_seconds <= query.min_time_on_page
                ):
                    continue

            results.append(event)

        return results

    def _summarize(self, key: tuple[Any, ...], events: list[PageViewEvent]) -> GroupRow:
        return GroupRow(
            key=key,
            views=len(events),
            unique_visitors=len({e.visitor_id for e in events}),
            new_visitors=sum(1 for e in events if e.is_new_visitor),
            avg_time_on_page=_avg(
                [e.time_on_page_seconds for e in events if e.time_on_page_seconds is not None]
            ),
            avg_scroll_depth=_avg(
                [e.scroll_depth_percent for e in events if e.scroll_depth_percent is not None]
            ),
        )

    def count(self, query: EventQuery) -> int:
        """Count matching events."""
        return len(self._select(query))

    def count_distinct(self, query: EventQuery, field_name: str) -> int:
        """Count distinct non-null values of a field."""
        values = {getattr(e, field_name) for e in self._select(query)}
        values.discard(None)
        return len(values)

    def group_by(
        self,
        query: EventQuery,
        fields: tuple[str, ...],
        limit: int | None = None,
    ) -> list[GroupRow]:
        """Group matching events by fields."""
        groups: dict[tuple[Any, ...], list[PageViewEvent]] = {}
        for event in self._select(query):
            key = tuple(getattr(event, f) for f in fields)
            groups.setdefault(key, []).append(event)

        rows = [self._summarize(key, events) for key, events in groups.items()]
        rows.sort(key=lambda r: _group_sort_key(r.key))
        rows.sort(key=lambda r: r.views, reverse=True)

        return rows[:limit] if limit is not None else rows

    def bucket_series(self, query: EventQuery, label_format: str) -> list[GroupRow]:
        """Group matching events by time bucket label."""
        groups: dict[str, list[PageViewEvent]] = {}
        for event in self._select(query):
            label = format_bucket(event.timestamp, label_format)
            groups.setdefault(label, []).append(event)

        return [self._summarize((label,), groups[label]) for label in sorted(groups)]

    def engagement(self, query: EventQuery) -> GroupRow:
        """Averages over matching events."""
        return self._summarize((), self._select(query))

    def recent(self, query: EventQuery, limit: int) -> list[PageViewEvent]:
        """Most recent matching events, newest first."""
        events = list(reversed(self._select(query)))
        events.sort(key=lambda e: to_utc(e.timestamp), reverse=True)
        return events[:limit]

    def clear(self) -> None:
        """Clear all events."""
        self._events.clear()


# --- Validation Functions ---


def validate_required_fields(
    data: dict[str, Any],
    config: RecorderConfig = DEFAULT_CONFIG,
) -> list[AnalyticsValidationError]:
    """Required identifiers must be non-empty strings."""
    errors: list[AnalyticsValidationError] = []

    for field_name in config.required_fields:
        value = data.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(
                AnalyticsValidationError(
                    code="field_required",
                    message=f"Field '{field_name}' is required",
                    field_name=field_name,
                )
            )
        elif not isinstance(value, str):
            errors.append(
                AnalyticsValidationError(
                    code="invalid_type",
                    message=f"Field '{field_name}' must be a string",
                    field_name=field_name,
                )
            )
        elif len(value) > config.max_id_length:
            errors.append(
                AnalyticsValidationError(
                    code="field_too_long",
                    message=f"Field '{field_name}' exceeds {config.max_id_length} characters",
                    field_name=field_name,
                )
            )

    return errors


def parse_metric(value: Any, field_name: str) -> tuple[float | None, list[AnalyticsValidationError]]:
    """Parse an optional numeric engagement metric."""
    if value is None:
        return None, []

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None, [
            AnalyticsValidationError(
                code="invalid_number",
                message=f"Field '{field_name}' must be a number",
                field_name=field_name,
            )
        ]

    if value < 0:
        return None, [
            AnalyticsValidationError(
                code="negative_number",
                message=f"Field '{field_name}' must not be negative",
                field_name=field_name,
            )
        ]

    return float(value), []


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# --- Page View Recorder ---


class PageViewRecorder:
    """
    Page view recorder.

    Validates the payload, classifies the request and appends one event.
    """

    def __init__(
        self,
        repo: PageViewRepoPort,
        time_port: TimePort | None = None,
        geo_resolver: GeoResolverPort | None = None,
        config: RecorderConfig | None = None,
    ) -> None:
        """Initialize service."""
        self._repo = repo
        self._time = time_port or DefaultTimePort()
        self._geo = geo_resolver
        self._config = config or DEFAULT_CONFIG

    def record(
        self,
        data: dict[str, Any],
        meta: RequestMeta | None = None,
    ) -> tuple[PageViewEvent | None, list[AnalyticsValidationError]]:
        """
        Validate, enrich and store a page view.

        Returns:
            Tuple of (event, errors). Event is None if validation fails.
        """
        if not self._config.enabled:
            return None, [
                AnalyticsValidationError(
                    code="analytics_disabled",
                    message="Analytics tracking is disabled",
                )
            ]

        meta = meta or RequestMeta()
        errors = validate_required_fields(data, self._config)

        time_on_page, metric_errors = parse_metric(data.get("time_on_page"), "time_on_page")
        errors.extend(metric_errors)

        scroll_depth, metric_errors = parse_metric(data.get("scroll_depth"), "scroll_depth")
        errors.extend(metric_errors)

        if errors:
            logger.debug("Rejected page view: %s", [e.code for e in errors])
            return None, errors

        page_url = _optional_str(data.get("page_url"))
        classified = classify_request(meta, page_url)

        country = city = region = None
        if self._geo is not None and classified.ip_address != "unknown":
            location = self._geo.resolve(classified.ip_address)
            if location is not None:
                country, city, region = location.country, location.city, location.region

        visitor_id = data["visitor_id"].strip()

        event = PageViewEvent(
            id=uuid4(),
            site_id=data["site_id"].strip(),
            page_id=data["page_id"].strip(),
            visitor_id=visitor_id,
            session_id=_optional_str(data.get("session_id")) or visitor_id,
            is_new_visitor=bool(data.get("is_new_visitor") or False),
            timestamp=self._time.now_utc(),
            device_type=classified.device_type,
            browser=classified.browser,
            operating_system=classified.operating_system,
            referrer=classified.referrer or None,
            referrer_source=classified.referrer_source,
            user_agent=classified.user_agent or None,
            page_url=page_url,
            page_title=_optional_str(data.get("page_title")),
            utm_source=classified.utm.source,
            utm_medium=classified.utm.medium,
            utm_campaign=classified.utm.campaign,
            utm_content=classified.utm.content,
            utm_term=classified.utm.term,
            country=country,
            city=city,
            region=region,
            ip_address=classified.ip_address,
            time_on_page_seconds=time_on_page,
            scroll_depth_percent=scroll_depth,
        )

        self._repo.save(event)

        return event, []


# --- Factory ---


def create_page_view_recorder(
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    geo_resolver: GeoResolverPort | None = None,
    config: RecorderConfig | None = None,
) -> PageViewRecorder:
    """Create a PageViewRecorder."""
    return PageViewRecorder(
        repo=repo,
        time_port=time_port,
        geo_resolver=geo_resolver,
        config=config,
    )

"""
Tests for PageViewRecorder.

Covers required-field validation, metric parsing, enrichment at ingestion
and the no-dedupe behavior.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from src.components.analytics import (
    GeoLocation,
    InMemoryPageViewRepo,
    PageViewRecorder,
    RecorderConfig,
    RecordPageViewInput,
    RequestMeta,
    create_page_view_recorder,
    parse_metric,
    run_record,
    validate_required_fields,
)
from tests.helpers import FixedClock

IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class StubGeoResolver:
    """Resolves every address to a fixed location."""

    def __init__(self, location: GeoLocation | None) -> None:
        self.location = location
        self.calls: list[str] = []

    def resolve(self, ip_address: str) -> GeoLocation | None:
        self.calls.append(ip_address)
        return self.location


# --- Fixtures ---


@pytest.fixture
def repo() -> InMemoryPageViewRepo:
    """Fresh page view repository."""
    return InMemoryPageViewRepo()


@pytest.fixture
def recorder(repo: InMemoryPageViewRepo, clock: FixedClock) -> PageViewRecorder:
    """Recorder with fixed time."""
    return create_page_view_recorder(repo=repo, time_port=clock)


def valid_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {"site_id": "acme", "page_id": "home", "visitor_id": "u1"}
    payload.update(overrides)
    return payload


# --- Validation ---


class TestRequiredFields:
    """site_id, page_id and visitor_id are mandatory."""

    def test_valid_payload_has_no_errors(self) -> None:
        assert validate_required_fields(valid_payload()) == []

    @pytest.mark.parametrize("missing", ["site_id", "page_id", "visitor_id"])
    def test_missing_field_rejected(self, missing: str) -> None:
        payload = valid_payload()
        del payload[missing]

        errors = validate_required_fields(payload)

        assert len(errors) == 1
        assert errors[0].code == "field_required"
        assert errors[0].field_name == missing

    def test_blank_string_counts_as_missing(self) -> None:
        errors = validate_required_fields(valid_payload(page_id="   "))
        assert [e.code for e in errors] == ["field_required"]

    def test_non_string_rejected(self) -> None:
        errors = validate_required_fields(valid_payload(visitor_id=42))
        assert [e.code for e in errors] == ["invalid_type"]

    def test_overlong_id_rejected(self) -> None:
        config = RecorderConfig(max_id_length=5)
        errors = validate_required_fields(valid_payload(site_id="toolong"), config)
        assert [e.code for e in errors] == ["field_too_long"]

    def test_all_missing_reports_each_field(self) -> None:
        errors = validate_required_fields({})
        assert {e.field_name for e in errors} == {"site_id", "page_id", "visitor_id"}


class TestParseMetric:
    """Optional engagement metrics."""

    def test_absent_is_none(self) -> None:
        assert parse_metric(None, "time_on_page") == (None, [])

    def test_int_and_float_accepted(self) -> None:
        assert parse_metric(12, "time_on_page") == (12.0, [])
        assert parse_metric(55.5, "scroll_depth") == (55.5, [])

    def test_zero_accepted(self) -> None:
        assert parse_metric(0, "time_on_page") == (0.0, [])

    def test_string_rejected(self) -> None:
        value, errors = parse_metric("12", "time_on_page")
        assert value is None
        assert errors[0].code == "invalid_number"

    def test_bool_rejected(self) -> None:
        _, errors = parse_metric(True, "scroll_depth")
        assert errors[0].code == "invalid_number"

    def test_negative_rejected(self) -> None:
        _, errors = parse_metric(-1, "time_on_page")
        assert errors[0].code == "negative_number"


# --- Recording ---


class TestRecord:
    """Validation, enrichment and storage."""

    def test_rejected_payload_stores_nothing(
        self, recorder: PageViewRecorder, repo: InMemoryPageViewRepo
    ) -> None:
        event, errors = recorder.record({"site_id": "acme"})

        assert event is None
        assert len(errors) == 2
        assert repo.get_all() == []

    def test_bad_metric_stores_nothing(
        self, recorder: PageViewRecorder, repo: InMemoryPageViewRepo
    ) -> None:
        event, errors = recorder.record(valid_payload(time_on_page="long"))

        assert event is None
        assert errors[0].field_name == "time_on_page"
        assert repo.get_all() == []

    def test_minimal_payload_defaults(
        self, recorder: PageViewRecorder, repo: InMemoryPageViewRepo, clock: FixedClock
    ) -> None:
        event, errors = recorder.record(valid_payload())

        assert errors == []
        assert event is not None
        assert event.session_id == "u1"
        assert event.is_new_visitor is False
        assert event.timestamp == clock.now_utc()
        assert event.device_type == "unknown"
        assert event.browser == "Unknown"
        assert event.operating_system == "Unknown"
        assert event.referrer_source == "direct"
        assert event.ip_address == "unknown"
        assert event.time_on_page_seconds is None
        assert repo.get_all() == [event]

    def test_enriches_from_request(self, recorder: PageViewRecorder) -> None:
        meta = RequestMeta(
            user_agent=IPHONE_SAFARI,
            referrer="https://www.google.com/search?q=acme",
            headers={"X-Forwarded-For": "198.51.100.1"},
        )
        data = valid_payload(
            session_id="s9",
            is_new_visitor=True,
            page_url="https://acme.test/?utm_source=news&utm_campaign=spring",
            page_title="Home",
            time_on_page=30,
            scroll_depth=80,
        )

        event, _ = recorder.record(data, meta)

        assert event is not None
        assert event.session_id == "s9"
        assert event.is_new_visitor is True
        assert event.device_type == "mobile"
        assert event.browser == "Safari"
        assert event.referrer == "https://www.google.com/search?q=acme"
        assert event.referrer_source == "google"
        assert event.utm_source == "news"
        assert event.utm_campaign == "spring"
        assert event.utm_medium is None
        assert event.ip_address == "198.51.100.1"
        assert event.page_title == "Home"
        assert event.time_on_page_seconds == 30.0
        assert event.scroll_depth_percent == 80.0

    def test_client_timestamp_ignored(
        self, recorder: PageViewRecorder, clock: FixedClock
    ) -> None:
        event, _ = recorder.record(valid_payload(timestamp="1999-01-01T00:00:00Z"))

        assert event is not None
        assert event.timestamp == clock.now_utc()

    def test_no_dedupe(self, recorder: PageViewRecorder, repo: InMemoryPageViewRepo) -> None:
        recorder.record(valid_payload())
        recorder.record(valid_payload())

        events = repo.get_all()
        assert len(events) == 2
        assert events[0].id != events[1].id

    def test_geo_resolver_fills_location(
        self, repo: InMemoryPageViewRepo, clock: FixedClock
    ) -> None:
        geo = StubGeoResolver(GeoLocation(country="US", city="Austin", region="TX"))
        recorder = PageViewRecorder(repo=repo, time_port=clock, geo_resolver=geo)

        event, _ = recorder.record(valid_payload(), RequestMeta(peer_address="192.0.2.5"))

        assert event is not None
        assert (event.country, event.city, event.region) == ("US", "Austin", "TX")
        assert geo.calls == ["192.0.2.5"]

    def test_geo_resolver_skipped_for_unknown_ip(
        self, repo: InMemoryPageViewRepo, clock: FixedClock
    ) -> None:
        geo = StubGeoResolver(GeoLocation(country="US"))
        recorder = PageViewRecorder(repo=repo, time_port=clock, geo_resolver=geo)

        event, _ = recorder.record(valid_payload())

        assert event is not None
        assert event.country is None
        assert geo.calls == []

    def test_disabled_recorder_rejects(self, repo: InMemoryPageViewRepo) -> None:
        recorder = PageViewRecorder(repo=repo, config=RecorderConfig(enabled=False))

        event, errors = recorder.record(valid_payload())

        assert event is None
        assert errors[0].code == "analytics_disabled"
        assert repo.get_all() == []


class TestRunRecord:
    """Component entry point."""

    def test_success_output(self, repo: InMemoryPageViewRepo, clock: FixedClock) -> None:
        out = run_record(RecordPageViewInput(data=valid_payload()), repo=repo, time_port=clock)

        assert out.success
        assert out.accepted
        assert out.event is not None
        assert out.event.timestamp == datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

    def test_failure_output(self, repo: InMemoryPageViewRepo) -> None:
        out = run_record(RecordPageViewInput(data={}), repo=repo)

        assert not out.success
        assert not out.accepted
        assert out.event is None
        assert len(out.errors) == 3

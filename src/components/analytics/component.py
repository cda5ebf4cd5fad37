"""
Analytics component - page view recording and report aggregation.

Records one enriched page view per tracked page load and builds reports
over stored views on demand.

Invariants:
- I1: site_id, page_id and visitor_id required; nothing stored on rejection
- I2: Classification happens once, at ingestion
- I3: Stored events are never mutated or deleted here
- I4: Report sections fail independently; one bad section never voids the rest
"""

from __future__ import annotations

from ._aggregate import AnalyticsReportService, ReportConfig
from ._impl import PageViewRecorder, RecorderConfig
from .models import (
    AnalyticsReport,
    BreakdownInput,
    GeographyOutput,
    RealtimeInput,
    RealtimeOutput,
    RecordOutput,
    RecordPageViewInput,
    ReportInput,
    SourcesOutput,
)
from .ports import GeoResolverPort, PageViewRepoPort, RulesPort, TimePort


def _build_config(rules: RulesPort | None) -> ReportConfig:
    """Build report config from rules port."""
    if rules is None:
        return ReportConfig()

    limits = rules.get_top_limits()
    realtime = rules.get_realtime_config()

    return ReportConfig(
        default_window_days=rules.get_default_window_days(),
        top_pages=limits.get("pages", 10),
        top_countries=limits.get("countries", 10),
        top_cities=limits.get("cities", 20),
        top_referrers=limits.get("referrers", 10),
        top_campaigns=limits.get("campaigns", 10),
        realtime_window_hours=realtime.get("window_hours", 24),
        realtime_recent_limit=realtime.get("recent_limit", 100),
        active_window_minutes=realtime.get("active_minutes", 5),
        activity_window_minutes=realtime.get("activity_minutes", 60),
    )


def _report_service(
    repo: PageViewRepoPort,
    time_port: TimePort | None,
    rules: RulesPort | None,
) -> AnalyticsReportService:
    return AnalyticsReportService(repo=repo, time_port=time_port, config=_build_config(rules))


# --- Component Entry Points ---


def run_record(
    inp: RecordPageViewInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    geo_resolver: GeoResolverPort | None = None,
    config: RecorderConfig | None = None,
) -> RecordOutput:
    """
    Record a page view.

    Args:
        inp: Payload plus request metadata.
        repo: Page view repository port.
        time_port: Optional time port.
        geo_resolver: Optional IP geolocation port.
        config: Optional recorder config.

    Returns:
        RecordOutput with the stored event or validation errors.
    """
    recorder = PageViewRecorder(
        repo=repo, time_port=time_port, geo_resolver=geo_resolver, config=config
    )
    event, errors = recorder.record(inp.data, inp.meta)

    return RecordOutput(
        event=event,
        accepted=event is not None,
        errors=errors,
        success=len(errors) == 0,
    )


def run_report(
    inp: ReportInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    rules: RulesPort | None = None,
) -> AnalyticsReport:
    """
    Build the full analytics report.

    Raises:
        ValueError: unknown granularity.
        StoreUnavailableError: no section could be computed.
    """
    service = _report_service(repo, time_port, rules)
    return service.build_report(
        site_id=inp.site_id,
        start=inp.start,
        end=inp.end,
        granularity=inp.granularity,
    )


def run_realtime(
    inp: RealtimeInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    rules: RulesPort | None = None,
) -> RealtimeOutput:
    """Trailing-window activity for a site."""
    return _report_service(repo, time_port, rules).realtime(inp.site_id)


def run_sources(
    inp: BreakdownInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    rules: RulesPort | None = None,
) -> SourcesOutput:
    """Per-source breakdown."""
    return _report_service(repo, time_port, rules).sources(inp.site_id, inp.start, inp.end)


def run_geography(
    inp: BreakdownInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    rules: RulesPort | None = None,
) -> GeographyOutput:
    """Country and city breakdown."""
    return _report_service(repo, time_port, rules).geography(inp.site_id, inp.start, inp.end)


def run(
    inp: RecordPageViewInput | ReportInput | RealtimeInput,
    *,
    repo: PageViewRepoPort,
    time_port: TimePort | None = None,
    rules: RulesPort | None = None,
) -> RecordOutput | AnalyticsReport | RealtimeOutput:
    """
    Main entry point for the analytics component.

    Dispatches to appropriate handler based on input type. The narrowed
    breakdowns share BreakdownInput and are called directly.
    """
    if isinstance(inp, RecordPageViewInput):
        return run_record(inp, repo=repo, time_port=time_port)
    elif isinstance(inp, ReportInput):
        return run_report(inp, repo=repo, time_port=time_port, rules=rules)
    elif isinstance(inp, RealtimeInput):
        return run_realtime(inp, repo=repo, time_port=time_port, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")

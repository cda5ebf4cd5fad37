"""
Analytics component - Page view recording, classification and reporting.
"""

from ._aggregate import (
    GRANULARITY_FORMATS,
    MINUTE_FORMAT,
    AnalyticsReportService,
    ReportConfig,
    StoreUnavailableError,
    bucket_format,
    create_report_service,
)
from ._classify import (
    BROWSER_RULES,
    DEVICE_RULES,
    OS_RULES,
    REFERRER_RULES,
    classify_browser,
    classify_device,
    classify_os,
    classify_referrer_source,
    classify_request,
    extract_utm_params,
    resolve_client_ip,
)
from ._impl import (
    DefaultTimePort,
    InMemoryPageViewRepo,
    PageViewRecorder,
    RecorderConfig,
    create_page_view_recorder,
    format_bucket,
    parse_metric,
    to_utc,
    validate_required_fields,
)
from .component import (
    run,
    run_geography,
    run_realtime,
    run_record,
    run_report,
    run_sources,
)
from .models import (
    GRANULARITIES,
    AnalyticsReport,
    AnalyticsValidationError,
    BreakdownInput,
    CampaignItem,
    CityItem,
    CountItem,
    CountryItem,
    DeviceType,
    EngagementStats,
    EventQuery,
    GeographyOutput,
    GeoLocation,
    Granularity,
    GroupRow,
    MinuteActivity,
    PageViewEvent,
    RealtimeInput,
    RealtimeOutput,
    RecentView,
    RecordOutput,
    RecordPageViewInput,
    ReportInput,
    RequestClassification,
    RequestMeta,
    SourcesOutput,
    SourceStats,
    TimeBucket,
    UTMParams,
)
from .ports import (
    GROUPABLE_FIELDS,
    GeoResolverPort,
    PageViewRepoPort,
    RulesPort,
    TimePort,
)

__all__ = [
    # Entry points
    "run",
    "run_geography",
    "run_realtime",
    "run_record",
    "run_report",
    "run_sources",
    # Input models
    "BreakdownInput",
    "EventQuery",
    "RealtimeInput",
    "RecordPageViewInput",
    "ReportInput",
    "RequestMeta",
    # Output models
    "AnalyticsReport",
    "AnalyticsValidationError",
    "CampaignItem",
    "CityItem",
    "CountItem",
    "CountryItem",
    "DeviceType",
    "EngagementStats",
    "GeographyOutput",
    "GeoLocation",
    "Granularity",
    "GRANULARITIES",
    "GroupRow",
    "MinuteActivity",
    "PageViewEvent",
    "RealtimeOutput",
    "RecentView",
    "RecordOutput",
    "RequestClassification",
    "SourcesOutput",
    "SourceStats",
    "TimeBucket",
    "UTMParams",
    # Ports
    "GROUPABLE_FIELDS",
    "GeoResolverPort",
    "PageViewRepoPort",
    "RulesPort",
    "TimePort",
    # Classifier
    "BROWSER_RULES",
    "DEVICE_RULES",
    "OS_RULES",
    "REFERRER_RULES",
    "classify_browser",
    "classify_device",
    "classify_os",
    "classify_referrer_source",
    "classify_request",
    "extract_utm_params",
    "resolve_client_ip",
    # Recorder
    "DefaultTimePort",
    "InMemoryPageViewRepo",
    "PageViewRecorder",
    "RecorderConfig",
    "create_page_view_recorder",
    "format_bucket",
    "parse_metric",
    "to_utc",
    "validate_required_fields",
    # Reports
    "AnalyticsReportService",
    "GRANULARITY_FORMATS",
    "MINUTE_FORMAT",
    "ReportConfig",
    "StoreUnavailableError",
    "bucket_format",
    "create_report_service",
]

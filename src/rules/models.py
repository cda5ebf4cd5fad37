from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class TopLimitsRules(BaseModel):
    pages: int = Field(default=10, ge=1)
    countries: int = Field(default=10, ge=1)
    cities: int = Field(default=20, ge=1)
    referrers: int = Field(default=10, ge=1)
    campaigns: int = Field(default=10, ge=1)

class RealtimeRules(BaseModel):
    window_hours: int = Field(default=24, ge=1)
    recent_limit: int = Field(default=100, ge=1)
    active_minutes: int = Field(default=5, ge=1)
    activity_minutes: int = Field(default=60, ge=1)

class AnalyticsRules(BaseModel):
    enabled: bool = True
    default_window_days: int = Field(default=30, ge=1)
    default_granularity: Literal["hourly", "daily", "weekly", "monthly"] = "daily"
    max_id_length: int = Field(default=200, ge=1)
    top_limits: TopLimitsRules = TopLimitsRules()
    realtime: RealtimeRules = RealtimeRules()

class ContentRules(BaseModel):
    allowed_types: list[str]
    max_content_length: int = Field(default=100_000, ge=1)

class SessionCookieRules(BaseModel):
    secure: bool
    http_only: bool
    same_site: str

class AuthRules(BaseModel):
    algorithm: str = "HS256"
    token_ttl_minutes: int = Field(ge=1)
    cookie: SessionCookieRules

class OpsRules(BaseModel):
    data_dir_required: bool
    required_env: list[str]
    cors_origins: list[str] = []

class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules
    content: ContentRules
    auth: AuthRules
    ops: OpsRules

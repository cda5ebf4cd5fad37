import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.adapters.clock import SystemClock
from src.adapters.sqlite_db import (
    SQLiteContentBlockRepo,
    SQLitePageRepo,
    SQLitePageViewRepo,
)
from src.api.auth_utils import decode_access_token
from src.components.analytics import (
    PageViewRepoPort,
    RecorderConfig,
    RulesPort,
)
from src.components.content import ContentBlockRepoPort, ContentConfig, PageRepoPort
from src.rules.loader import AnalyticsRulesAdapter, load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("SITE_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "site.db")
        self.rules_path = self.base_dir / "rules.yaml"
        self.migrations_dir = str(self.base_dir / "migrations")
        self.admin_username = os.environ.get("ADMIN_USERNAME", "")
        self.admin_password = os.environ.get("ADMIN_PASSWORD", "")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_analytics_rules(rules: Rules = Depends(get_rules)) -> RulesPort:
    return AnalyticsRulesAdapter(rules)


def get_recorder_config(rules: Rules = Depends(get_rules)) -> RecorderConfig:
    return RecorderConfig(
        enabled=rules.analytics.enabled,
        max_id_length=rules.analytics.max_id_length,
    )


def get_content_config(rules: Rules = Depends(get_rules)) -> ContentConfig:
    return ContentConfig(
        allowed_types=tuple(rules.content.allowed_types),
        max_content_length=rules.content.max_content_length,
    )


# --- Repos ---
def get_page_view_repo(settings: Settings = Depends(get_settings)) -> PageViewRepoPort:
    return SQLitePageViewRepo(settings.db_path)


def get_content_block_repo(
    settings: Settings = Depends(get_settings),
) -> ContentBlockRepoPort:
    return SQLiteContentBlockRepo(settings.db_path)


def get_page_repo(settings: Settings = Depends(get_settings)) -> PageRepoPort:
    return SQLitePageRepo(settings.db_path)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# --- Auth ---
@dataclass(frozen=True)
class AdminUser:
    username: str
    role: str = "admin"


ACCESS_TOKEN_COOKIE = "access_token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def extract_token(request: Request, header_token: str | None) -> str | None:
    """Token from the HttpOnly cookie if present, else the bearer header."""
    cookie_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token:
        return cookie_token.removeprefix("Bearer ").strip() or None
    return header_token


async def get_current_admin(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    rules: Annotated[Rules, Depends(get_rules)],
) -> AdminUser:
    token = extract_token(request, token)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token, algorithm=rules.auth.algorithm)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = payload.get("sub")
    if not isinstance(username, str) or payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return AdminUser(username=username)

"""
Tests for the admin analytics API.

Report, real-time, sources and geography endpoints over an in-memory store.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.deps import AdminUser, get_clock, get_current_admin, get_page_view_repo
from src.api.routes import admin_analytics
from src.components.analytics import EventQuery, InMemoryPageViewRepo, PageViewEvent
from tests.helpers import FixedClock

# --- Test Setup ---


class DownRepo(InMemoryPageViewRepo):
    """Repository where every query fails."""

    def _select(self, query: EventQuery) -> list[PageViewEvent]:
        raise RuntimeError("store down")


@pytest.fixture
def repo() -> InMemoryPageViewRepo:
    """Fresh page view repository."""
    return InMemoryPageViewRepo()


@pytest.fixture
def app(repo: InMemoryPageViewRepo, clock: FixedClock) -> FastAPI:
    """Test FastAPI app with admin analytics routes, authenticated as admin."""
    app = FastAPI()
    app.include_router(admin_analytics.router, prefix="/analytics")

    app.dependency_overrides[get_page_view_repo] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_admin] = lambda: AdminUser(username="admin")

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client."""
    return TestClient(app)


@pytest.fixture
def seeded(repo: InMemoryPageViewRepo, make_event: Callable[..., PageViewEvent]) -> None:
    repo.save(
        make_event(
            visitor_id="u1",
            is_new_visitor=True,
            timestamp=datetime(2025, 6, 14, 10, 0, tzinfo=UTC),
            referrer_source="google",
            country="US",
            city="Austin",
            time_on_page_seconds=30.0,
            scroll_depth_percent=50.0,
        )
    )
    repo.save(
        make_event(
            visitor_id="u1",
            timestamp=datetime(2025, 6, 15, 11, 58, tzinfo=UTC),
            country="US",
            city="Austin",
        )
    )
    repo.save(
        make_event(
            page_id="about",
            visitor_id="u2",
            is_new_visitor=True,
            timestamp=datetime(2025, 6, 15, 10, 30, tzinfo=UTC),
            device_type="mobile",
            referrer_source="facebook",
            country="GB",
            city="London",
        )
    )


# --- Stats ---


class TestStats:
    """GET /analytics/stats/{site_id}"""

    def test_full_report(self, client: TestClient, seeded: None) -> None:
        response = client.get("/analytics/stats/acme")

        assert response.status_code == 200
        data = response.json()
        assert data["site_id"] == "acme"
        assert data["granularity"] == "daily"
        assert data["total_views"] == 3
        assert data["unique_visitors"] == 2
        assert data["new_visitors"] == 2
        assert data["returning_visitors"] == 0
        assert data["views_by_page"] == [
            {"key": "home", "count": 2},
            {"key": "about", "count": 1},
        ]
        assert data["views_by_city"][0] == {
            "city": "Austin",
            "country": "US",
            "views": 2,
            "unique_visitors": 1,
        }
        assert [b["bucket"] for b in data["views_over_time"]] == ["2025-06-14", "2025-06-15"]
        assert data["engagement"] == {
            "avg_time_on_page": 30.0,
            "avg_scroll_depth": 50.0,
            "total_engaged_sessions": 1,
        }
        assert data["degraded_sections"] == []

    def test_empty_site(self, client: TestClient) -> None:
        response = client.get("/analytics/stats/nobody")

        assert response.status_code == 200
        data = response.json()
        assert data["total_views"] == 0
        assert data["views_by_page"] == []
        assert data["engagement"]["total_engaged_sessions"] == 0

    def test_window_and_granularity(self, client: TestClient, seeded: None) -> None:
        response = client.get(
            "/analytics/stats/acme",
            params={
                "start": "2025-06-15T00:00:00Z",
                "end": "2025-06-15T23:59:59Z",
                "granularity": "HOURLY",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_views"] == 2
        assert data["granularity"] == "hourly"
        assert [b["bucket"] for b in data["views_over_time"]] == [
            "2025-06-15 10:00",
            "2025-06-15 11:00",
        ]

    def test_invalid_granularity(self, client: TestClient) -> None:
        response = client.get("/analytics/stats/acme", params={"granularity": "yearly"})

        assert response.status_code == 400
        assert "Invalid granularity" in response.json()["detail"]

    def test_invalid_datetime(self, client: TestClient) -> None:
        response = client.get("/analytics/stats/acme", params={"start": "yesterday"})

        assert response.status_code == 400
        assert "Invalid datetime" in response.json()["detail"]

    def test_start_after_end(self, client: TestClient) -> None:
        response = client.get(
            "/analytics/stats/acme",
            params={"start": "2025-06-15T00:00:00Z", "end": "2025-06-01T00:00:00Z"},
        )

        assert response.status_code == 400

    def test_store_down_returns_503(self, app: FastAPI, client: TestClient) -> None:
        app.dependency_overrides[get_page_view_repo] = lambda: DownRepo()

        response = client.get("/analytics/stats/acme")

        assert response.status_code == 503
        assert response.json()["detail"] == "Analytics store unavailable"


# --- Real-time ---


class TestRealtime:
    """GET /analytics/realtime/{site_id}"""

    def test_realtime(self, client: TestClient, seeded: None) -> None:
        response = client.get("/analytics/realtime/acme")

        assert response.status_code == 200
        data = response.json()
        assert [v["visitor_id"] for v in data["recent_views"]] == ["u1", "u2"]
        assert data["recent_views"][0]["country"] == "US"
        assert data["active_visitors"] == 1
        assert data["active_by_minute"] == [{"minute": "2025-06-15 11:58", "count": 1}]

    def test_store_down_returns_503(self, app: FastAPI, client: TestClient) -> None:
        app.dependency_overrides[get_page_view_repo] = lambda: DownRepo()

        assert client.get("/analytics/realtime/acme").status_code == 503


# --- Sources / Geography ---


class TestBreakdowns:
    """GET /analytics/sources/{site_id} and /analytics/geography/{site_id}"""

    def test_sources(self, client: TestClient, seeded: None) -> None:
        response = client.get("/analytics/sources/acme")

        assert response.status_code == 200
        sources = {s["source"]: s for s in response.json()["sources"]}
        assert set(sources) == {"direct", "facebook", "google"}
        assert sources["google"]["avg_time_on_page"] == 30.0
        assert sources["facebook"]["avg_time_on_page"] is None

    def test_geography(self, client: TestClient, seeded: None) -> None:
        response = client.get("/analytics/geography/acme")

        assert response.status_code == 200
        data = response.json()
        assert data["by_country"] == [
            {"country": "US", "views": 2, "unique_visitors": 1},
            {"country": "GB", "views": 1, "unique_visitors": 1},
        ]
        assert [c["city"] for c in data["by_city"]] == ["Austin", "London"]

    def test_geography_window(self, client: TestClient, seeded: None) -> None:
        response = client.get(
            "/analytics/geography/acme", params={"start": "2025-06-15T11:00:00"}
        )

        assert response.status_code == 200
        assert response.json()["by_country"] == [
            {"country": "US", "views": 1, "unique_visitors": 1}
        ]


# --- Auth ---


class TestRequiresAdmin:
    """Every report route rejects anonymous callers."""

    @pytest.fixture
    def anon_client(self, repo: InMemoryPageViewRepo, clock: FixedClock) -> TestClient:
        app = FastAPI()
        app.include_router(admin_analytics.router, prefix="/analytics")
        app.dependency_overrides[get_page_view_repo] = lambda: repo
        app.dependency_overrides[get_clock] = lambda: clock
        return TestClient(app)

    @pytest.mark.parametrize("route", ["stats", "realtime", "sources", "geography"])
    def test_unauthenticated(self, anon_client: TestClient, route: str) -> None:
        response = anon_client.get(f"/analytics/{route}/acme")

        assert response.status_code == 401

    def test_bad_token(self, anon_client: TestClient) -> None:
        response = anon_client.get(
            "/analytics/stats/acme", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401

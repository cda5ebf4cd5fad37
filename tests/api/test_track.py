"""
Tests for the public tracking endpoint.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.deps import get_clock, get_page_view_repo, get_recorder_config
from src.api.routes import analytics
from src.components.analytics import InMemoryPageViewRepo, RecorderConfig
from tests.helpers import FixedClock

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@pytest.fixture
def repo() -> InMemoryPageViewRepo:
    return InMemoryPageViewRepo()


@pytest.fixture
def app(repo: InMemoryPageViewRepo, clock: FixedClock) -> FastAPI:
    app = FastAPI()
    app.include_router(analytics.router, prefix="/analytics")

    app.dependency_overrides[get_page_view_repo] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_recorder_config] = lambda: RecorderConfig()

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestTrack:
    """POST /analytics/track"""

    def test_records_enriched_event(
        self, client: TestClient, repo: InMemoryPageViewRepo, clock: FixedClock
    ) -> None:
        response = client.post(
            "/analytics/track",
            json={
                "site_id": "acme",
                "page_id": "home",
                "visitor_id": "u1",
                "is_new_visitor": True,
                "page_url": "https://acme.test/?utm_source=news&utm_campaign=spring",
                "time_on_page": 12.5,
            },
            headers={
                "User-Agent": CHROME_WINDOWS,
                "Referer": "https://www.google.com/",
                "X-Forwarded-For": "198.51.100.1, 10.0.0.1",
            },
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

        [event] = repo.get_all()
        assert event.site_id == "acme"
        assert event.is_new_visitor is True
        assert event.browser == "Chrome"
        assert event.operating_system == "Windows"
        assert event.device_type == "desktop"
        assert event.referrer_source == "google"
        assert event.utm_campaign == "spring"
        assert event.ip_address == "198.51.100.1"
        assert event.time_on_page_seconds == 12.5
        assert event.timestamp == clock.now_utc()

    def test_missing_required_fields(
        self, client: TestClient, repo: InMemoryPageViewRepo
    ) -> None:
        response = client.post("/analytics/track", json={"site_id": "acme"})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert {e["field"] for e in body["errors"]} == {"page_id", "visitor_id"}
        assert all(e["code"] == "field_required" for e in body["errors"])
        assert repo.get_all() == []

    def test_invalid_metric(self, client: TestClient, repo: InMemoryPageViewRepo) -> None:
        response = client.post(
            "/analytics/track",
            json={"site_id": "acme", "page_id": "home", "visitor_id": "u1", "scroll_depth": "x"},
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "scroll_depth"
        assert repo.get_all() == []

    def test_no_dedupe(self, client: TestClient, repo: InMemoryPageViewRepo) -> None:
        payload = {"site_id": "acme", "page_id": "home", "visitor_id": "u1"}

        client.post("/analytics/track", json=payload)
        client.post("/analytics/track", json=payload)

        assert len(repo.get_all()) == 2

    def test_disabled(self, app: FastAPI, client: TestClient, repo: InMemoryPageViewRepo) -> None:
        app.dependency_overrides[get_recorder_config] = lambda: RecorderConfig(enabled=False)

        response = client.post(
            "/analytics/track", json={"site_id": "acme", "page_id": "home", "visitor_id": "u1"}
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "analytics_disabled"
        assert repo.get_all() == []

    def test_non_object_body_rejected(self, client: TestClient) -> None:
        response = client.post("/analytics/track", json=["not", "an", "object"])

        assert response.status_code == 422

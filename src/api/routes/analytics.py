"""
Analytics Ingestion API Routes.

Public endpoint called by the tracking snippet on each page load.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.deps import get_clock, get_page_view_repo, get_recorder_config
from src.components.analytics import (
    PageViewRepoPort,
    RecordPageViewInput,
    RecorderConfig,
    RequestMeta,
    TimePort,
    run_record,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class TrackResponse(BaseModel):
    """Success response."""

    ok: bool = True


class ErrorResponse(BaseModel):
    """Error response."""

    ok: bool = False
    errors: list[dict[str, Any]]


# --- Helper Functions ---


def request_meta(request: Request) -> RequestMeta:
    """Collect the request attributes the classifier reads."""
    return RequestMeta(
        user_agent=request.headers.get("user-agent", ""),
        referrer=request.headers.get("referer", "") or request.headers.get("referrer", ""),
        headers=dict(request.headers),
        peer_address=request.client.host if request.client else None,
    )


# --- Routes ---


@router.post(
    "/track",
    response_model=TrackResponse,
    responses={400: {"model": ErrorResponse}},
)
def track_page_view(
    request: Request,
    body: dict[str, Any] = Body(...),
    repo: PageViewRepoPort = Depends(get_page_view_repo),
    clock: TimePort = Depends(get_clock),
    config: RecorderConfig = Depends(get_recorder_config),
) -> TrackResponse | JSONResponse:
    """
    Record one page view.

    Required body fields: site_id, page_id, visitor_id. Optional:
    session_id, is_new_visitor, page_url, page_title, time_on_page,
    scroll_depth. Device, browser, OS, source, UTM and IP are derived from
    the request.
    """
    result = run_record(
        RecordPageViewInput(data=body, meta=request_meta(request)),
        repo=repo,
        time_port=clock,
        config=config,
    )

    if not result.success:
        error_body = ErrorResponse(
            errors=[
                {"code": e.code, "message": e.message, "field": e.field_name}
                for e in result.errors
            ]
        )
        return JSONResponse(status_code=400, content=error_body.model_dump())

    return TrackResponse(ok=True)

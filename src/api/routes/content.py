"""
Content API Routes.

Public read of page overrides; admin-only writes and page registry.
The `/pages/{site_id}` routes are declared before `/{site_id}/{page_id}` so
they are not shadowed.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.api.deps import (
    AdminUser,
    get_clock,
    get_content_block_repo,
    get_content_config,
    get_current_admin,
    get_page_repo,
)
from src.components.content import (
    ContentBlockRepoPort,
    ContentConfig,
    ContentValidationError,
    DeleteBlockInput,
    GetPageContentInput,
    ListPagesInput,
    Page,
    PageRepoPort,
    TimePort,
    UpsertBlockInput,
    UpsertPageInput,
    run_delete_block,
    run_get_page_content,
    run_list_pages,
    run_upsert_block,
    run_upsert_page,
)

router = APIRouter()


# --- Request/Response Models ---


class ContentUpdateRequest(BaseModel):
    content: str | None = None
    content_type: str | None = None


class PageRequest(BaseModel):
    page_id: str | None = None
    page_name: str | None = None
    page_url: str | None = None


class ContentEntry(BaseModel):
    content: str
    content_type: str
    updated_at: datetime


class PageResponse(BaseModel):
    id: str
    site_id: str
    page_id: str
    page_name: str
    page_url: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


def _page_response(page: Page) -> PageResponse:
    return PageResponse(
        id=str(page.id),
        site_id=page.site_id,
        page_id=page.page_id,
        page_name=page.page_name,
        page_url=page.page_url,
        is_active=page.is_active,
        created_at=page.created_at,
        updated_at=page.updated_at,
    )


def _validation_failed(errors: list[ContentValidationError]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "errors": [{"field": e.field, "code": e.code, "message": e.message} for e in errors]
        },
    )


# --- Pages (admin) ---


@router.get("/pages/{site_id}", response_model=list[PageResponse])
def list_pages(
    site_id: str,
    repo: PageRepoPort = Depends(get_page_repo),
    admin: AdminUser = Depends(get_current_admin),
) -> list[PageResponse]:
    """Active pages of a site."""
    output = run_list_pages(ListPagesInput(site_id=site_id), repo=repo)
    return [_page_response(p) for p in output.pages]


@router.post("/pages/{site_id}")
def upsert_page(
    site_id: str,
    body: PageRequest,
    repo: PageRepoPort = Depends(get_page_repo),
    clock: TimePort = Depends(get_clock),
    admin: AdminUser = Depends(get_current_admin),
) -> dict[str, Any]:
    """Create or update a page."""
    output = run_upsert_page(
        UpsertPageInput(
            site_id=site_id,
            page_id=body.page_id,
            page_name=body.page_name,
            page_url=body.page_url,
        ),
        repo=repo,
        time_port=clock,
    )
    if not output.success or output.page is None:
        raise _validation_failed(output.errors)

    return {"success": True, "page": _page_response(output.page)}


# --- Content blocks ---


@router.get("/{site_id}/{page_id}", response_model=dict[str, ContentEntry])
def get_page_content(
    site_id: str,
    page_id: str,
    repo: ContentBlockRepoPort = Depends(get_content_block_repo),
) -> dict[str, ContentEntry]:
    """All overrides for a page keyed by element id. Public."""
    output = run_get_page_content(
        GetPageContentInput(site_id=site_id, page_id=page_id), repo=repo
    )
    return {
        element_id: ContentEntry(
            content=block.content,
            content_type=block.content_type,
            updated_at=block.updated_at,
        )
        for element_id, block in output.blocks.items()
    }


@router.put("/{site_id}/{page_id}/{element_id}")
def update_content(
    site_id: str,
    page_id: str,
    element_id: str,
    body: ContentUpdateRequest,
    repo: ContentBlockRepoPort = Depends(get_content_block_repo),
    clock: TimePort = Depends(get_clock),
    config: ContentConfig = Depends(get_content_config),
    admin: AdminUser = Depends(get_current_admin),
) -> dict[str, Any]:
    """Create or replace an element override."""
    output = run_upsert_block(
        UpsertBlockInput(
            site_id=site_id,
            page_id=page_id,
            element_id=element_id,
            content=body.content,
            content_type=body.content_type,
            updated_by=admin.username,
        ),
        repo=repo,
        time_port=clock,
        config=config,
    )
    if not output.success or output.block is None:
        raise _validation_failed(output.errors)

    block = output.block
    return {
        "success": True,
        "content_block": {
            "element_id": block.element_id,
            "content": block.content,
            "content_type": block.content_type,
            "updated_at": block.updated_at.isoformat(),
        },
    }


@router.delete("/{site_id}/{page_id}/{element_id}")
def delete_content(
    site_id: str,
    page_id: str,
    element_id: str,
    repo: ContentBlockRepoPort = Depends(get_content_block_repo),
    admin: AdminUser = Depends(get_current_admin),
) -> dict[str, Any]:
    """Revert an element to its default."""
    output = run_delete_block(
        DeleteBlockInput(site_id=site_id, page_id=page_id, element_id=element_id),
        repo=repo,
    )
    if not output.deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    return {"success": True, "message": "Content reverted to default"}

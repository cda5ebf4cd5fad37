"""
Content component - inline-editable page content.

Stores per-element overrides for static pages and the registry of editable
pages. Deleting an override reverts the element to the page default.

Invariants:
- At most one block per (site, page, element); writes replace in place
- content_type is one of the allowed types
- Upserts keep the original id and created_at
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import uuid4

from .models import (
    CONTENT_TYPES,
    BlockOutput,
    ContentBlock,
    ContentValidationError,
    DeleteBlockInput,
    DeleteBlockOutput,
    GetPageContentInput,
    ListPagesInput,
    ListPagesOutput,
    Page,
    PageContentOutput,
    PageOutput,
    UpsertBlockInput,
    UpsertPageInput,
)
from .ports import ContentBlockRepoPort, PageRepoPort, TimePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentConfig:
    """Content validation configuration."""

    allowed_types: tuple[str, ...] = CONTENT_TYPES
    max_content_length: int = 100_000


DEFAULT_CONFIG = ContentConfig()


def _now(time_port: TimePort | None) -> datetime:
    return time_port.now_utc() if time_port is not None else datetime.now(UTC)


def _require(value: str | None, field_name: str) -> list[ContentValidationError]:
    if value is None or not str(value).strip():
        return [
            ContentValidationError(
                field=field_name,
                code="required",
                message=f"Field '{field_name}' is required",
            )
        ]
    return []


# --- Validation Functions ---


def validate_block(
    inp: UpsertBlockInput,
    config: ContentConfig = DEFAULT_CONFIG,
) -> list[ContentValidationError]:
    """Validate an upsert request."""
    errors = _require(inp.content, "content") + _require(inp.content_type, "content_type")
    if errors:
        return errors

    if inp.content_type not in config.allowed_types:
        errors.append(
            ContentValidationError(
                field="content_type",
                code="invalid_value",
                message=f"content_type must be one of: {', '.join(config.allowed_types)}",
            )
        )

    if inp.content is not None and len(inp.content) > config.max_content_length:
        errors.append(
            ContentValidationError(
                field="content",
                code="max_length",
                message=f"content must not exceed {config.max_content_length} characters",
            )
        )

    return errors


def validate_page(inp: UpsertPageInput) -> list[ContentValidationError]:
    """Validate a page upsert request."""
    return (
        _require(inp.page_id, "page_id")
        + _require(inp.page_name, "page_name")
        + _require(inp.page_url, "page_url")
    )


# --- Component Entry Points ---


def run_get_page_content(
    inp: GetPageContentInput,
    *,
    repo: ContentBlockRepoPort,
) -> PageContentOutput:
    """Get all overrides for a page, keyed by element id."""
    blocks = repo.list_for_page(inp.site_id, inp.page_id)
    return PageContentOutput(blocks={b.element_id: b for b in blocks})


def run_upsert_block(
    inp: UpsertBlockInput,
    *,
    repo: ContentBlockRepoPort,
    time_port: TimePort | None = None,
    config: ContentConfig | None = None,
) -> BlockOutput:
    """
    Create or replace an element override.

    Args:
        inp: Element address plus new content.
        repo: Content block repository port.
        time_port: Optional time port.
        config: Optional validation config.

    Returns:
        BlockOutput with the saved block or validation errors.
    """
    errors = validate_block(inp, config or DEFAULT_CONFIG)
    if errors:
        return BlockOutput(block=None, errors=errors, success=False)

    assert inp.content is not None and inp.content_type is not None
    now = _now(time_port)
    existing = repo.get(inp.site_id, inp.page_id, inp.element_id)

    if existing is not None:
        block = replace(
            existing,
            content=inp.content,
            content_type=inp.content_type,
            updated_by=inp.updated_by,
            updated_at=now,
        )
    else:
        block = ContentBlock(
            id=uuid4(),
            site_id=inp.site_id,
            page_id=inp.page_id,
            element_id=inp.element_id,
            content_type=inp.content_type,
            content=inp.content,
            created_at=now,
            updated_at=now,
            updated_by=inp.updated_by,
        )

    saved = repo.upsert(block)
    logger.info(
        "Content updated: %s/%s/%s (%s)",
        inp.site_id,
        inp.page_id,
        inp.element_id,
        inp.content_type,
    )
    return BlockOutput(block=saved)


def run_delete_block(
    inp: DeleteBlockInput,
    *,
    repo: ContentBlockRepoPort,
) -> DeleteBlockOutput:
    """Revert an element to its default by removing the override."""
    existing = repo.get(inp.site_id, inp.page_id, inp.element_id)
    if existing is None:
        return DeleteBlockOutput(deleted=False)

    deleted = repo.delete(inp.site_id, inp.page_id, inp.element_id)
    if deleted:
        logger.info("Content reverted: %s/%s/%s", inp.site_id, inp.page_id, inp.element_id)
    return DeleteBlockOutput(deleted=deleted, removed=existing if deleted else None)


def run_list_pages(
    inp: ListPagesInput,
    *,
    repo: PageRepoPort,
) -> ListPagesOutput:
    """Active pages of a site."""
    return ListPagesOutput(pages=repo.list_active(inp.site_id))


def run_upsert_page(
    inp: UpsertPageInput,
    *,
    repo: PageRepoPort,
    time_port: TimePort | None = None,
) -> PageOutput:
    """Register or update a page. Upserting always reactivates it."""
    errors = validate_page(inp)
    if errors:
        return PageOutput(page=None, errors=errors, success=False)

    assert inp.page_id is not None and inp.page_name is not None and inp.page_url is not None
    now = _now(time_port)
    existing = repo.get(inp.site_id, inp.page_id)

    if existing is not None:
        page = replace(
            existing,
            page_name=inp.page_name,
            page_url=inp.page_url,
            is_active=True,
            updated_at=now,
        )
    else:
        page = Page(
            id=uuid4(),
            site_id=inp.site_id,
            page_id=inp.page_id,
            page_name=inp.page_name,
            page_url=inp.page_url,
            created_at=now,
            updated_at=now,
        )

    return PageOutput(page=repo.upsert(page))

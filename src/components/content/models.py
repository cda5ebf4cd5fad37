"""
Content component input/output models.

Content blocks are per-element overrides of a static page; a missing block
means the page shows its built-in default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

CONTENT_TYPES: tuple[str, ...] = ("text", "image", "video", "background-image")


@dataclass(frozen=True)
class ContentValidationError:
    """Validation error with actionable message."""

    field: str
    code: str
    message: str


# --- Entities ---


@dataclass(frozen=True)
class ContentBlock:
    """One editable element override, unique per (site, page, element)."""

    id: UUID
    site_id: str
    page_id: str
    element_id: str
    content_type: str
    content: str
    created_at: datetime
    updated_at: datetime
    updated_by: str | None = None


@dataclass(frozen=True)
class Page:
    """A registered editable page, unique per (site, page)."""

    id: UUID
    site_id: str
    page_id: str
    page_name: str
    page_url: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True


# --- Inputs ---


@dataclass(frozen=True)
class GetPageContentInput:
    """Input for loading all overrides of a page."""

    site_id: str
    page_id: str


@dataclass(frozen=True)
class UpsertBlockInput:
    """Input for creating or replacing an element override."""

    site_id: str
    page_id: str
    element_id: str
    content: str | None
    content_type: str | None
    updated_by: str | None = None


@dataclass(frozen=True)
class DeleteBlockInput:
    """Input for reverting an element to its default."""

    site_id: str
    page_id: str
    element_id: str


@dataclass(frozen=True)
class ListPagesInput:
    """Input for listing active pages of a site."""

    site_id: str


@dataclass(frozen=True)
class UpsertPageInput:
    """Input for registering or updating a page."""

    site_id: str
    page_id: str | None
    page_name: str | None
    page_url: str | None


# --- Outputs ---


@dataclass(frozen=True)
class PageContentOutput:
    """Overrides keyed by element id."""

    blocks: dict[str, ContentBlock] = field(default_factory=dict)


@dataclass(frozen=True)
class BlockOutput:
    """Output from an upsert."""

    block: ContentBlock | None
    errors: list[ContentValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeleteBlockOutput:
    """Output from a delete."""

    deleted: bool
    removed: ContentBlock | None = None


@dataclass(frozen=True)
class ListPagesOutput:
    pages: list[Page] = field(default_factory=list)


@dataclass(frozen=True)
class PageOutput:
    """Output from a page upsert."""

    page: Page | None
    errors: list[ContentValidationError] = field(default_factory=list)
    success: bool = True

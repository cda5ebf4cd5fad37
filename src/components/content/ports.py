"""
Content component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import ContentBlock, Page


class ContentBlockRepoPort(Protocol):
    """Repository interface for content blocks."""

    def get(self, site_id: str, page_id: str, element_id: str) -> ContentBlock | None:
        """Get a single block, or None."""
        ...

    def list_for_page(self, site_id: str, page_id: str) -> list[ContentBlock]:
        """All blocks of a page ordered by element id."""
        ...

    def upsert(self, block: ContentBlock) -> ContentBlock:
        """Insert or replace the block for its (site, page, element)."""
        ...

    def delete(self, site_id: str, page_id: str, element_id: str) -> bool:
        """Delete a block. Returns False if none existed."""
        ...


class PageRepoPort(Protocol):
    """Repository interface for pages."""

    def get(self, site_id: str, page_id: str) -> Page | None:
        ...

    def list_active(self, site_id: str) -> list[Page]:
        """Active pages of a site ordered by page id."""
        ...

    def upsert(self, page: Page) -> Page:
        """Insert or replace the page for its (site, page)."""
        ...


class TimePort(Protocol):
    """Port for time operations."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

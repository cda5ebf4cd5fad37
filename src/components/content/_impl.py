"""
In-memory content repositories for testing/dev.
"""

from __future__ import annotations

from .models import ContentBlock, Page


class InMemoryContentBlockRepo:
    """In-memory content block repository."""

    def __init__(self) -> None:
        self._blocks: dict[tuple[str, str, str], ContentBlock] = {}

    def get(self, site_id: str, page_id: str, element_id: str) -> ContentBlock | None:
        return self._blocks.get((site_id, page_id, element_id))

    def list_for_page(self, site_id: str, page_id: str) -> list[ContentBlock]:
        blocks = [
            b for (s, p, _), b in self._blocks.items() if s == site_id and p == page_id
        ]
        return sorted(blocks, key=lambda b: b.element_id)

    def upsert(self, block: ContentBlock) -> ContentBlock:
        self._blocks[(block.site_id, block.page_id, block.element_id)] = block
        return block

    def delete(self, site_id: str, page_id: str, element_id: str) -> bool:
        return self._blocks.pop((site_id, page_id, element_id), None) is not None


class InMemoryPageRepo:
    """In-memory page repository."""

    def __init__(self) -> None:
        self._pages: dict[tuple[str, str], Page] = {}

    def get(self, site_id: str, page_id: str) -> Page | None:
        return self._pages.get((site_id, page_id))

    def list_active(self, site_id: str) -> list[Page]:
        pages = [p for p in self._pages.values() if p.site_id == site_id and p.is_active]
        return sorted(pages, key=lambda p: p.page_id)

    def upsert(self, page: Page) -> Page:
        self._pages[(page.site_id, page.page_id)] = page
        return page

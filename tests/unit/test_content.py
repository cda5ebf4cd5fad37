"""
Tests for the content component.

Covers element overrides (upsert, validation, revert) and the page registry.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from src.components.content import (
    ContentConfig,
    DeleteBlockInput,
    GetPageContentInput,
    InMemoryContentBlockRepo,
    InMemoryPageRepo,
    ListPagesInput,
    UpsertBlockInput,
    UpsertPageInput,
    run_delete_block,
    run_get_page_content,
    run_list_pages,
    run_upsert_block,
    run_upsert_page,
    validate_block,
)
from tests.helpers import FixedClock


@pytest.fixture
def blocks() -> InMemoryContentBlockRepo:
    return InMemoryContentBlockRepo()


@pytest.fixture
def pages() -> InMemoryPageRepo:
    return InMemoryPageRepo()


def block_input(**overrides: object) -> UpsertBlockInput:
    values: dict[str, object] = {
        "site_id": "acme",
        "page_id": "home",
        "element_id": "hero-title",
        "content": "Welcome",
        "content_type": "text",
        "updated_by": "admin",
    }
    values.update(overrides)
    return UpsertBlockInput(**values)  # type: ignore[arg-type]


class TestValidateBlock:
    """Upsert validation."""

    def test_valid(self) -> None:
        assert validate_block(block_input()) == []

    def test_missing_content(self) -> None:
        errors = validate_block(block_input(content=None))
        assert [(e.field, e.code) for e in errors] == [("content", "required")]

    def test_missing_content_type(self) -> None:
        errors = validate_block(block_input(content_type=" "))
        assert [(e.field, e.code) for e in errors] == [("content_type", "required")]

    def test_unknown_content_type(self) -> None:
        errors = validate_block(block_input(content_type="audio"))
        assert [(e.field, e.code) for e in errors] == [("content_type", "invalid_value")]

    @pytest.mark.parametrize("content_type", ["text", "image", "video", "background-image"])
    def test_allowed_types(self, content_type: str) -> None:
        assert validate_block(block_input(content_type=content_type)) == []

    def test_content_too_long(self) -> None:
        config = ContentConfig(max_content_length=5)
        errors = validate_block(block_input(content="too long"), config)
        assert [(e.field, e.code) for e in errors] == [("content", "max_length")]


class TestUpsertBlock:
    """Create and replace element overrides."""

    def test_creates_block(self, blocks: InMemoryContentBlockRepo, clock: FixedClock) -> None:
        out = run_upsert_block(block_input(), repo=blocks, time_port=clock)

        assert out.success
        assert out.block is not None
        assert out.block.content == "Welcome"
        assert out.block.updated_by == "admin"
        assert out.block.created_at == clock.now_utc()
        assert out.block.updated_at == clock.now_utc()

    def test_replace_keeps_identity(
        self, blocks: InMemoryContentBlockRepo, clock: FixedClock
    ) -> None:
        first = run_upsert_block(block_input(), repo=blocks, time_port=clock).block
        assert first is not None

        clock.set_now(clock.now_utc() + timedelta(hours=1))
        second = run_upsert_block(
            block_input(content="/img/hero.png", content_type="image", updated_by="editor"),
            repo=blocks,
            time_port=clock,
        ).block

        assert second is not None
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.updated_at == datetime(2025, 6, 15, 13, 0, tzinfo=UTC)
        assert second.content_type == "image"
        assert second.updated_by == "editor"
        assert len(blocks.list_for_page("acme", "home")) == 1

    def test_invalid_stores_nothing(self, blocks: InMemoryContentBlockRepo) -> None:
        out = run_upsert_block(block_input(content_type="audio"), repo=blocks)

        assert not out.success
        assert out.block is None
        assert blocks.get("acme", "home", "hero-title") is None


class TestGetPageContent:
    """Overrides keyed by element id."""

    def test_keyed_by_element(self, blocks: InMemoryContentBlockRepo) -> None:
        run_upsert_block(block_input(element_id="a"), repo=blocks)
        run_upsert_block(block_input(element_id="b", content="Two"), repo=blocks)
        run_upsert_block(block_input(page_id="about", element_id="c"), repo=blocks)

        out = run_get_page_content(GetPageContentInput("acme", "home"), repo=blocks)

        assert sorted(out.blocks) == ["a", "b"]
        assert out.blocks["b"].content == "Two"

    def test_no_overrides(self, blocks: InMemoryContentBlockRepo) -> None:
        out = run_get_page_content(GetPageContentInput("acme", "home"), repo=blocks)
        assert out.blocks == {}

    def test_site_isolation(self, blocks: InMemoryContentBlockRepo) -> None:
        run_upsert_block(block_input(site_id="other"), repo=blocks)

        out = run_get_page_content(GetPageContentInput("acme", "home"), repo=blocks)

        assert out.blocks == {}


class TestDeleteBlock:
    """Reverting to the default."""

    def test_deletes_existing(self, blocks: InMemoryContentBlockRepo) -> None:
        created = run_upsert_block(block_input(), repo=blocks).block

        out = run_delete_block(DeleteBlockInput("acme", "home", "hero-title"), repo=blocks)

        assert out.deleted
        assert out.removed == created
        assert blocks.get("acme", "home", "hero-title") is None

    def test_missing_is_not_deleted(self, blocks: InMemoryContentBlockRepo) -> None:
        out = run_delete_block(DeleteBlockInput("acme", "home", "nope"), repo=blocks)

        assert not out.deleted
        assert out.removed is None


class TestPages:
    """Page registry."""

    def test_register_and_list(self, pages: InMemoryPageRepo, clock: FixedClock) -> None:
        run_upsert_page(
            UpsertPageInput("acme", "home", "Home", "/"), repo=pages, time_port=clock
        )
        run_upsert_page(
            UpsertPageInput("acme", "about", "About", "/about"), repo=pages, time_port=clock
        )

        out = run_list_pages(ListPagesInput("acme"), repo=pages)

        assert [p.page_id for p in out.pages] == ["about", "home"]

    def test_update_keeps_identity(self, pages: InMemoryPageRepo, clock: FixedClock) -> None:
        first = run_upsert_page(
            UpsertPageInput("acme", "home", "Home", "/"), repo=pages, time_port=clock
        ).page
        clock.set_now(clock.now_utc() + timedelta(days=1))

        second = run_upsert_page(
            UpsertPageInput("acme", "home", "Homepage", "/index"), repo=pages, time_port=clock
        ).page

        assert first is not None and second is not None
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.page_name == "Homepage"
        assert second.page_url == "/index"

    def test_upsert_reactivates(self, pages: InMemoryPageRepo, clock: FixedClock) -> None:
        page = run_upsert_page(
            UpsertPageInput("acme", "home", "Home", "/"), repo=pages, time_port=clock
        ).page
        assert page is not None
        pages.upsert(replace(page, is_active=False))
        assert run_list_pages(ListPagesInput("acme"), repo=pages).pages == []

        run_upsert_page(UpsertPageInput("acme", "home", "Home", "/"), repo=pages)

        assert len(run_list_pages(ListPagesInput("acme"), repo=pages).pages) == 1

    def test_missing_fields_rejected(self, pages: InMemoryPageRepo) -> None:
        out = run_upsert_page(UpsertPageInput("acme", "home", None, ""), repo=pages)

        assert not out.success
        assert {e.field for e in out.errors} == {"page_name", "page_url"}
        assert pages.get("acme", "home") is None

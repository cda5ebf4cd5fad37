"""
SQLite Database Adapter.

Implements the analytics and content repository ports using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns), except for
the `bucket_label` function registered on each connection for time buckets.

Timestamps are stored as UTC ISO-8601 text with a fixed microsecond width,
so lexical comparison in SQL equals chronological comparison.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any
from uuid import UUID

from src.components.analytics import (
    GROUPABLE_FIELDS,
    EventQuery,
    GroupRow,
    PageViewEvent,
    format_bucket,
    to_utc,
)
from src.components.content import ContentBlock, Page

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime) -> str:
    """Format a datetime for storage (UTC, fixed width)."""
    return to_utc(dt).isoformat(timespec="microseconds")


def _bucket_label(ts: str | None, label_format: str) -> str | None:
    if not ts:
        return None
    return format_bucket(datetime.fromisoformat(ts), label_format)


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Page View Repository
# -----------------------------------------------------------------------------

PAGE_VIEW_COLUMNS: tuple[str, ...] = (
    "id",
    "site_id",
    "page_id",
    "visitor_id",
    "session_id",
    "is_new_visitor",
    "timestamp",
    "device_type",
    "browser",
    "operating_system",
    "referrer",
    "referrer_source",
    "user_agent",
    "page_url",
    "page_title",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "country",
    "city",
    "region",
    "ip_address",
    "time_on_page_seconds",
    "scroll_depth_percent",
)

_SUMMARY_SELECT = """
    COUNT(*) AS views,
    COUNT(DISTINCT visitor_id) AS unique_visitors,
    COALESCE(SUM(CASE WHEN is_new_visitor = 1 THEN 1 ELSE 0 END), 0) AS new_visitors,
    AVG(time_on_page_seconds) AS avg_time_on_page,
    AVG(scroll_depth_percent) AS avg_scroll_depth
"""


def _column(field_name: str) -> str:
    """Whitelist a groupable column name before it is put into SQL."""
    if field_name not in GROUPABLE_FIELDS:
        raise ValueError(f"Field not groupable: {field_name}")
    return field_name


class SQLitePageViewRepo(SQLiteRepoBase):
    """SQLite implementation of PageViewRepoPort."""

    def _get_conn(self) -> sqlite3.Connection:
        conn = super()._get_conn()
        conn.create_function("bucket_label", 2, _bucket_label, deterministic=True)
        return conn

    def save(self, event: PageViewEvent) -> PageViewEvent:
        conn = self._get_conn()
        try:
            placeholders = ", ".join("?" for _ in PAGE_VIEW_COLUMNS)
            conn.execute(
                f"INSERT INTO page_views ({', '.join(PAGE_VIEW_COLUMNS)}) "
                f"VALUES ({placeholders})",
                (
                    str(event.id),
                    event.site_id,
                    event.page_id,
                    event.visitor_id,
                    event.session_id,
                    1 if event.is_new_visitor else 0,
                    format_dt(event.timestamp),
                    event.device_type,
                    event.browser,
                    event.operating_system,
                    event.referrer,
                    event.referrer_source,
                    event.user_agent,
                    event.page_url,
                    event.page_title,
                    event.utm_source,
                    event.utm_medium,
                    event.utm_campaign,
                    event.utm_content,
                    event.utm_term,
                    event.country,
                    event.city,
                    event.region,
                    event.ip_address,
                    event.time_on_page_seconds,
                    event.scroll_depth_percent,
                ),
            )
            if self._should_close():
                conn.commit()
            return event
        finally:
            if self._should_close():
                conn.close()

    def _where(self, query: EventQuery) -> tuple[str, list[Any]]:
        clauses = ["site_id = ?"]
        params: list[Any] = [query.site_id]

        if query.start is not None:
            clauses.append("timestamp >= ?")
            params.append(format_dt(query.start))
        if query.end is not None:
            clauses.append("timestamp <= ?")
            params.append(format_dt(query.end))

        for field_name in query.require:
            col = _column(field_name)
            clauses.append(f"{col} IS NOT NULL AND {col} != ''")

        if query.new_only:
            clauses.append("is_new_visitor = 1")

        if query.min_time_on_page is not None:
            clauses.append("time_on_page_seconds > ?")
            params.append(query.min_time_on_page)

        return " AND ".join(clauses), params

    @staticmethod
    def _summary_row(key: tuple[Any, ...], row: dict[str, Any]) -> GroupRow:
        return GroupRow(
            key=key,
            views=row["views"],
            unique_visitors=row["unique_visitors"],
            new_visitors=row["new_visitors"],
            avg_time_on_page=row["avg_time_on_page"],
            avg_scroll_depth=row["avg_scroll_depth"],
        )

    def count(self, query: EventQuery) -> int:
        conn = self._get_conn()
        try:
            where, params = self._where(query)
            row = conn.execute(
                f"SELECT COUNT(*) AS total FROM page_views WHERE {where}", params
            ).fetchone()
            return row["total"] if row else 0
        finally:
            if self._should_close():
                conn.close()

    def count_distinct(self, query: EventQuery, field_name: str) -> int:
        conn = self._get_conn()
        try:
            col = _column(field_name)
            where, params = self._where(query)
            row = conn.execute(
                f"SELECT COUNT(DISTINCT {col}) AS total FROM page_views WHERE {where}",
                params,
            ).fetchone()
            return row["total"] if row else 0
        finally:
            if self._should_close():
                conn.close()

    def group_by(
        self,
        query: EventQuery,
        fields: tuple[str, ...],
        limit: int | None = None,
    ) -> list[GroupRow]:
        conn = self._get_conn()
        try:
            cols = [_column(f) for f in fields]
            where, params = self._where(query)
            sql = (
                f"SELECT {', '.join(cols)}, {_SUMMARY_SELECT} "
                f"FROM page_views WHERE {where} "
                f"GROUP BY {', '.join(cols)} "
                f"ORDER BY views DESC, {', '.join(f'{c} ASC' for c in cols)}"
            )
            if limit is not None:
                sql += " LIMIT ?"
                params.append(limit)

            rows = conn.execute(sql, params).fetchall()
            return [self._summary_row(tuple(r[c] for c in cols), r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def bucket_series(self, query: EventQuery, label_format: str) -> list[GroupRow]:
        conn = self._get_conn()
        try:
            where, params = self._where(query)
            rows = conn.execute(
                f"SELECT bucket_label(timestamp, ?) AS bucket, {_SUMMARY_SELECT} "
                f"FROM page_views WHERE {where} "
                "GROUP BY bucket ORDER BY bucket ASC",
                [label_format, *params],
            ).fetchall()
            return [self._summary_row((r["bucket"],), r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def engagement(self, query: EventQuery) -> GroupRow:
        conn = self._get_conn()
        try:
            where, params = self._where(query)
            row = conn.execute(
                f"SELECT {_SUMMARY_SELECT} FROM page_views WHERE {where}", params
            ).fetchone()
            return self._summary_row((), row)
        finally:
            if self._should_close():
                conn.close()

    def recent(self, query: EventQuery, limit: int) -> list[PageViewEvent]:
        conn = self._get_conn()
        try:
            where, params = self._where(query)
            rows = conn.execute(
                f"SELECT * FROM page_views WHERE {where} "
                "ORDER BY timestamp DESC, rowid DESC LIMIT ?",
                [*params, limit],
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> PageViewEvent:
        values = {col: row[col] for col in PAGE_VIEW_COLUMNS}
        values["id"] = UUID(row["id"])
        values["is_new_visitor"] = bool(row["is_new_visitor"])
        values["timestamp"] = datetime.fromisoformat(row["timestamp"])
        return PageViewEvent(**values)


# -----------------------------------------------------------------------------
# Content Repositories
# -----------------------------------------------------------------------------


class SQLiteContentBlockRepo(SQLiteRepoBase):
    """SQLite implementation of ContentBlockRepoPort."""

    def get(self, site_id: str, page_id: str, element_id: str) -> ContentBlock | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM content_blocks "
                "WHERE site_id = ? AND page_id = ? AND element_id = ?",
                (site_id, page_id, element_id),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_for_page(self, site_id: str, page_id: str) -> list[ContentBlock]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM content_blocks WHERE site_id = ? AND page_id = ? "
                "ORDER BY element_id",
                (site_id, page_id),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def upsert(self, block: ContentBlock) -> ContentBlock:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO content_blocks (
                    id, site_id, page_id, element_id, content_type, content,
                    updated_by, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(site_id, page_id, element_id) DO UPDATE SET
                    content_type=excluded.content_type,
                    content=excluded.content,
                    updated_by=excluded.updated_by,
                    updated_at=excluded.updated_at
                """,
                (
                    str(block.id),
                    block.site_id,
                    block.page_id,
                    block.element_id,
                    block.content_type,
                    block.content,
                    block.updated_by,
                    format_dt(block.created_at),
                    format_dt(block.updated_at),
                ),
            )
            if self._should_close():
                conn.commit()
            return block
        finally:
            if self._should_close():
                conn.close()

    def delete(self, site_id: str, page_id: str, element_id: str) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM content_blocks "
                "WHERE site_id = ? AND page_id = ? AND element_id = ?",
                (site_id, page_id, element_id),
            )
            if self._should_close():
                conn.commit()
            return cursor.rowcount > 0
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ContentBlock:
        return ContentBlock(
            id=UUID(row["id"]),
            site_id=row["site_id"],
            page_id=row["page_id"],
            element_id=row["element_id"],
            content_type=row["content_type"],
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            updated_by=row["updated_by"],
        )


class SQLitePageRepo(SQLiteRepoBase):
    """SQLite implementation of PageRepoPort."""

    def get(self, site_id: str, page_id: str) -> Page | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM pages WHERE site_id = ? AND page_id = ?",
                (site_id, page_id),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_active(self, site_id: str) -> list[Page]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM pages WHERE site_id = ? AND is_active = 1 ORDER BY page_id",
                (site_id,),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def upsert(self, page: Page) -> Page:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO pages (
                    id, site_id, page_id, page_name, page_url, is_active,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(site_id, page_id) DO UPDATE SET
                    page_name=excluded.page_name,
                    page_url=excluded.page_url,
                    is_active=excluded.is_active,
                    updated_at=excluded.updated_at
                """,
                (
                    str(page.id),
                    page.site_id,
                    page.page_id,
                    page.page_name,
                    page.page_url,
                    1 if page.is_active else 0,
                    format_dt(page.created_at),
                    format_dt(page.updated_at),
                ),
            )
            if self._should_close():
                conn.commit()
            return page
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Page:
        return Page(
            id=UUID(row["id"]),
            site_id=row["site_id"],
            page_id=row["page_id"],
            page_name=row["page_name"],
            page_url=row["page_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            is_active=bool(row["is_active"]),
        )

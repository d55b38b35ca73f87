"""Persistence for public content: announcements, gallery, contact and uploads."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from gema.models import (
    Announcement,
    ContactSubmission,
    GalleryItem,
    UploadRecord,
    decode_tags,
)

_ANNOUNCEMENT_COLUMNS = (
    "id, slug, title, body, starts_at, ends_at, is_pinned, created_at, updated_at"
)
_GALLERY_COLUMNS = "id, slug, title, caption, image_path, tags, created_at, updated_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _paging(page: int, page_size: int) -> tuple[str, list[Any]]:
    if page_size <= 0:
        return "", []
    page = page if page > 0 else 1
    return " LIMIT ? OFFSET ?", [page_size, (page - 1) * page_size]


def _row_to_announcement(row: sqlite3.Row) -> Announcement:
    return Announcement(
        id=row["id"],
        slug=row["slug"] or "",
        title=row["title"],
        body=row["body"],
        starts_at=row["starts_at"],
        ends_at=row["ends_at"],
        is_pinned=bool(row["is_pinned"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_gallery_item(row: sqlite3.Row) -> GalleryItem:
    return GalleryItem(
        id=row["id"],
        slug=row["slug"] or "",
        title=row["title"],
        caption=row["caption"] or "",
        image_path=row["image_path"],
        tags=decode_tags(row["tags"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class AnnouncementRepository:
    """Stores announcements and lists the ones currently on display."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list_active(self, page: int = 0, page_size: int = 0) -> tuple[list[Announcement], int]:
        """Pinned or currently running announcements, pinned first then newest start."""
        now = _now()
        where = (
            " WHERE is_pinned = 1 OR "
            "(starts_at <= ? AND (ends_at IS NULL OR ends_at >= ?))"
        )
        params: list[Any] = [now, now]
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM announcements{where}", params
        ).fetchone()[0]
        limit, limit_params = _paging(page, page_size)
        rows = self._conn.execute(
            f"SELECT {_ANNOUNCEMENT_COLUMNS} FROM announcements{where} "
            f"ORDER BY is_pinned DESC, starts_at DESC, id DESC{limit}",
            [*params, *limit_params],
        ).fetchall()
        return [_row_to_announcement(row) for row in rows], total

    def upsert_batch(self, items: Iterable[Announcement]) -> int:
        """Insert the items, updating those whose slug already exists."""
        items = list(items)
        if not items:
            return 0
        affected = 0
        with self._conn:
            for item in items:
                now = _now()
                if item.created_at is None:
                    item.created_at = now
                item.updated_at = now
                cursor = self._conn.execute(
                    "INSERT INTO announcements "
                    "(slug, title, body, starts_at, ends_at, is_pinned, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(slug) DO UPDATE SET "
                    "title = excluded.title, body = excluded.body, "
                    "starts_at = excluded.starts_at, ends_at = excluded.ends_at, "
                    "is_pinned = excluded.is_pinned, updated_at = excluded.updated_at",
                    (
                        item.slug,
                        item.title,
                        item.body,
                        item.starts_at,
                        item.ends_at,
                        bool(item.is_pinned),
                        item.created_at,
                        item.updated_at,
                    ),
                )
                affected += max(cursor.rowcount, 0)
                row = self._conn.execute(
                    "SELECT id FROM announcements WHERE slug = ?", (item.slug,)
                ).fetchone()
                if row is not None:
                    item.id = row["id"]
        return affected


@dataclass
class GalleryFilter:
    """Narrows a public gallery listing."""

    tags: list[str] = field(default_factory=list)
    search: str = ""
    page: int = 0
    page_size: int = 0


class GalleryRepository:
    """Stores and queries gallery items."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, query: GalleryFilter) -> tuple[list[GalleryItem], int]:
        """Items carrying every requested tag and matching the search, newest first."""
        clauses: list[str] = []
        params: list[Any] = []
        for tag in query.tags:
            trimmed = tag.lower().strip()
            if not trimmed:
                continue
            clauses.append("tags LIKE ?")
            params.append(f"%|{trimmed}|%")
        if query.search:
            pattern = f"%{query.search.lower()}%"
            clauses.append("(LOWER(title) LIKE ? OR LOWER(caption) LIKE ?)")
            params.extend([pattern, pattern])

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM gallery_items{where}", params
        ).fetchone()[0]
        limit, limit_params = _paging(query.page, query.page_size)
        rows = self._conn.execute(
            f"SELECT {_GALLERY_COLUMNS} FROM gallery_items{where} "
            f"ORDER BY created_at DESC, id DESC{limit}",
            [*params, *limit_params],
        ).fetchall()
        return [_row_to_gallery_item(row) for row in rows], total

    def upsert_batch(self, items: Iterable[GalleryItem]) -> int:
        """Insert the items, updating those whose slug already exists."""
        items = list(items)
        if not items:
            return 0
        affected = 0
        with self._conn:
            for item in items:
                now = _now()
                if item.created_at is None:
                    item.created_at = now
                item.updated_at = now
                cursor = self._conn.execute(
                    "INSERT INTO gallery_items "
                    "(slug, title, caption, image_path, tags, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(slug) DO UPDATE SET "
                    "title = excluded.title, caption = excluded.caption, "
                    "image_path = excluded.image_path, tags = excluded.tags, "
                    "updated_at = excluded.updated_at",
                    (
                        item.slug,
                        item.title,
                        item.caption,
                        item.image_path,
                        item.tags_raw,
                        item.created_at,
                        item.updated_at,
                    ),
                )
                affected += max(cursor.rowcount, 0)
                row = self._conn.execute(
                    "SELECT id FROM gallery_items WHERE slug = ?", (item.slug,)
                ).fetchone()
                if row is not None:
                    item.id = row["id"]
        return affected


class ContactRepository:
    """Stores contact form submissions."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create(self, submission: ContactSubmission) -> ContactSubmission:
        """Insert the submission, filling in its id and timestamps."""
        now = _now()
        if submission.created_at is None:
            submission.created_at = now
        if submission.updated_at is None:
            submission.updated_at = now
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO contact_submissions "
                "(reference_id, name, email, message, source, status, checksum, "
                "created_at, updated_at, delivered_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    submission.reference_id,
                    submission.name,
                    submission.email,
                    submission.message,
                    submission.source,
                    submission.status,
                    submission.checksum,
                    submission.created_at,
                    submission.updated_at,
                    submission.delivered_at,
                ),
            )
        submission.id = cursor.lastrowid
        return submission

    def update_status(self, submission_id: int, status: str) -> None:
        """Set the status of a stored submission."""
        with self._conn:
            self._conn.execute(
                "UPDATE contact_submissions SET status = ?, updated_at = ? WHERE id = ?",
                (status, _now(), submission_id),
            )


class UploadRepository:
    """Stores metadata about uploaded files."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create(self, record: UploadRecord) -> UploadRecord:
        """Insert the record, filling in its id and creation time."""
        if record.created_at is None:
            record.created_at = _now()
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO upload_records "
                "(user_id, file_name, url, mime_type, size_bytes, checksum, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.user_id,
                    record.file_name,
                    record.url,
                    record.mime_type,
                    record.size_bytes,
                    record.checksum,
                    record.created_at,
                ),
            )
        record.id = cursor.lastrowid
        return record
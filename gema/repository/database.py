"""SQLite connection setup and the schema of the persisted records."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from os import PathLike
from typing import Any


class RecordNotFound(LookupError):
    """Raised when a lookup matches no row."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


SCHEMA = """
CREATE TABLE IF NOT EXISTS students (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    class TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'active',
    flagged BOOLEAN NOT NULL DEFAULT 0,
    notes TEXT NOT NULL DEFAULT '',
    flags JSON,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    deleted_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_students_deleted_at ON students (deleted_at);

CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    due_date TIMESTAMP NOT NULL,
    file_url TEXT NOT NULL DEFAULT '',
    max_score REAL NOT NULL DEFAULT 100,
    rubric JSON,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    assignment_id INTEGER NOT NULL
        REFERENCES assignments (id) ON UPDATE CASCADE ON DELETE CASCADE,
    student_id INTEGER NOT NULL
        REFERENCES students (id) ON UPDATE CASCADE ON DELETE CASCADE,
    file_url TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    grade REAL,
    feedback TEXT NOT NULL DEFAULT '',
    graded_by INTEGER,
    graded_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS submission_grade_histories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    submission_id INTEGER NOT NULL
        REFERENCES submissions (id) ON UPDATE CASCADE ON DELETE CASCADE,
    score REAL NOT NULL,
    feedback TEXT NOT NULL DEFAULT '',
    graded_by INTEGER NOT NULL,
    graded_at TIMESTAMP NOT NULL,
    created_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_grade_histories_submission
    ON submission_grade_histories (submission_id);

CREATE TABLE IF NOT EXISTS activity_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    actor_id INTEGER NOT NULL,
    actor_role TEXT NOT NULL,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id INTEGER,
    metadata JSON,
    created_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS announcements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE,
    title TEXT NOT NULL,
    body TEXT NOT NULL,
    starts_at TIMESTAMP,
    ends_at TIMESTAMP,
    is_pinned BOOLEAN NOT NULL DEFAULT 0,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_announcements_starts_at ON announcements (starts_at);
CREATE INDEX IF NOT EXISTS idx_announcements_ends_at ON announcements (ends_at);
CREATE INDEX IF NOT EXISTS idx_announcements_is_pinned ON announcements (is_pinned);

CREATE TABLE IF NOT EXISTS gallery_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE,
    title TEXT NOT NULL,
    caption TEXT NOT NULL DEFAULT '',
    image_path TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS contact_submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    reference_id TEXT UNIQUE,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    message TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    checksum TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    delivered_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_contact_checksum ON contact_submissions (checksum);

CREATE TABLE IF NOT EXISTS upload_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    file_name TEXT NOT NULL,
    url TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    size_bytes INTEGER NOT NULL,
    checksum TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_upload_user ON upload_records (user_id);
CREATE INDEX IF NOT EXISTS idx_upload_checksum ON upload_records (checksum);
"""


def _adapt_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(sep=" ", timespec="microseconds")


def _convert_timestamp(raw: bytes) -> datetime:
    parsed = datetime.fromisoformat(raw.decode())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _convert_boolean(raw: bytes) -> bool:
    return raw not in (b"0", b"")


def _convert_json(raw: bytes) -> Any:
    return json.loads(raw.decode())


def _register_types() -> None:
    sqlite3.register_adapter(datetime, _adapt_datetime)
    sqlite3.register_converter("TIMESTAMP", _convert_timestamp)
    sqlite3.register_converter("BOOLEAN", _convert_boolean)
    sqlite3.register_converter("JSON", _convert_json)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that does not exist yet."""
    conn.executescript(SCHEMA)


def connect(path: str | PathLike[str] = ":memory:") -> sqlite3.Connection:
    """Open a database with typed columns, foreign keys and the schema in place.

    Timestamps are stored in UTC and read back as aware datetimes, BOOLEAN
    columns come back as bools and JSON columns are decoded on read; values
    for JSON columns are written as JSON text.
    """
    _register_types()
    conn = sqlite3.connect(str(path), detect_types=sqlite3.PARSE_DECLTYPES)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)
    return conn
"""Persistence for the audit trail."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from gema.models import ActivityLog

_COLUMNS = "id, actor_id, actor_role, action, entity_type, entity_id, metadata, created_at"


@dataclass
class ActivityLogFilter:
    """Narrows a paged listing of activity logs."""

    page: int = 0
    page_size: int = 0
    actor_id: Optional[int] = None
    action: str = ""
    entity_type: str = ""


@dataclass
class ActivityLogRecentFilter:
    """Narrows a listing of activity within a time window."""

    since: Optional[datetime] = None
    until: Optional[datetime] = None
    actor_id: Optional[int] = None
    action: str = ""
    entity: str = ""
    page: int = 0
    page_size: int = 0


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _row_to_log(row: sqlite3.Row) -> ActivityLog:
    return ActivityLog(
        id=row["id"],
        actor_id=row["actor_id"],
        actor_role=row["actor_role"],
        action=row["action"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        metadata=row["metadata"] or {},
        created_at=row["created_at"],
    )


class ActivityLogRepository:
    """Stores and queries activity log entries."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create(self, entry: ActivityLog) -> ActivityLog:
        """Insert the entry, filling in its id and creation time."""
        if entry.created_at is None:
            entry.created_at = datetime.now(timezone.utc)
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO activity_logs "
                "(actor_id, actor_role, action, entity_type, entity_id, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.actor_id,
                    entry.actor_role,
                    entry.action,
                    entry.entity_type,
                    entry.entity_id,
                    json.dumps(entry.metadata or {}, default=_json_default),
                    entry.created_at,
                ),
            )
        entry.id = cursor.lastrowid
        return entry

    def list(self, query: ActivityLogFilter) -> tuple[list[ActivityLog], int]:
        """Matching entries, newest first, with the total before paging."""
        clauses: list[str] = []
        params: list[Any] = []
        if query.actor_id is not None:
            clauses.append("actor_id = ?")
            params.append(query.actor_id)
        if query.action:
            clauses.append("action = ?")
            params.append(query.action)
        if query.entity_type:
            clauses.append("entity_type = ?")
            params.append(query.entity_type)
        return self._fetch(clauses, params, query.page, query.page_size)

    def list_recent(self, query: ActivityLogRecentFilter) -> tuple[list[ActivityLog], int]:
        """Entries inside the window, newest first, with the total before paging."""
        clauses: list[str] = []
        params: list[Any] = []
        if query.since is not None:
            clauses.append("created_at >= ?")
            params.append(query.since)
        if query.until is not None:
            clauses.append("created_at <= ?")
            params.append(query.until)
        if query.actor_id is not None:
            clauses.append("actor_id = ?")
            params.append(query.actor_id)
        if query.action:
            clauses.append("action = ?")
            params.append(query.action)
        if query.entity:
            clauses.append("entity_type = ?")
            params.append(query.entity)
        return self._fetch(clauses, params, query.page, query.page_size)

    def _fetch(
        self, clauses: list[str], params: list[Any], page: int, page_size: int
    ) -> tuple[list[ActivityLog], int]:
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM activity_logs{where}", params
        ).fetchone()[0]

        limit = ""
        limit_params: list[Any] = []
        if page_size > 0:
            page = page if page > 0 else 1
            limit = " LIMIT ? OFFSET ?"
            limit_params = [page_size, (page - 1) * page_size]

        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM activity_logs{where} "
            f"ORDER BY created_at DESC, id DESC{limit}",
            [*params, *limit_params],
        ).fetchall()
        return [_row_to_log(row) for row in rows], total
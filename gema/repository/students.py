"""Persistence for student records, including admin management."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from gema.models import Student, StudentStatus
from gema.repository.database import RecordNotFound

_COLUMNS = (
    'id, name, email, "class", status, flagged, notes, flags, '
    "created_at, updated_at, deleted_at"
)
_SORTABLE = frozenset(
    {"id", "name", "email", "class", "status", "flagged", "created_at", "updated_at", "deleted_at"}
)
_UPDATABLE = {
    "name": "name",
    "email": "email",
    "class": "class",
    "class_name": "class",
    "status": "status",
    "flagged": "flagged",
    "notes": "notes",
    "flags": "flags",
}
_DEFAULT_SORT = "created_at DESC"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_student(row: sqlite3.Row) -> Student:
    return Student(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        class_name=row["class"] or "",
        status=row["status"],
        flagged=bool(row["flagged"]),
        notes=row["notes"] or "",
        flags=row["flags"] or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


def _order_clause(sort: str) -> str:
    parts = []
    for term in (sort or _DEFAULT_SORT).split(","):
        tokens = term.split()
        if not tokens or len(tokens) > 2:
            raise ValueError(f"unsupported sort: {sort!r}")
        column = tokens[0].lower()
        direction = tokens[1].upper() if len(tokens) == 2 else "ASC"
        if column not in _SORTABLE or direction not in ("ASC", "DESC"):
            raise ValueError(f"unsupported sort: {sort!r}")
        parts.append(f'"{column}" {direction}')
    return ", ".join(parts)


def _get_active(conn: sqlite3.Connection, student_id: int) -> Student:
    row = conn.execute(
        f"SELECT {_COLUMNS} FROM students WHERE id = ? AND deleted_at IS NULL",
        (student_id,),
    ).fetchone()
    if row is None:
        raise RecordNotFound(f"student {student_id} not found")
    return _row_to_student(row)


@dataclass
class AdminStudentFilter:
    """Filters for the admin student listing."""

    search: str = ""
    class_name: str = ""
    status: str = ""
    sort: str = ""
    page: int = 0
    page_size: int = 0
    include_deleted: bool = False


class AdminStudentRepository:
    """Student queries and changes made from the admin panel."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, query: AdminStudentFilter) -> tuple[list[Student], int]:
        """Matching students in the requested order, with the total before paging."""
        clauses: list[str] = []
        params: list[Any] = []
        if not query.include_deleted:
            clauses.append("deleted_at IS NULL")
        if query.search:
            like = f"%{query.search.lower()}%"
            clauses.append("(LOWER(name) LIKE ? OR LOWER(email) LIKE ?)")
            params.extend([like, like])
        if query.class_name:
            clauses.append('"class" = ?')
            params.append(query.class_name)
        if query.status:
            clauses.append("status = ?")
            params.append(str(query.status))

        order = _order_clause(query.sort)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        total = self._conn.execute(f"SELECT COUNT(*) FROM students{where}", params).fetchone()[0]

        limit = ""
        limit_params: list[Any] = []
        if query.page_size > 0:
            page = query.page if query.page > 0 else 1
            limit = " LIMIT ? OFFSET ?"
            limit_params = [query.page_size, (page - 1) * query.page_size]

        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM students{where} ORDER BY {order}{limit}",
            [*params, *limit_params],
        ).fetchall()
        return [_row_to_student(row) for row in rows], total

    def get_by_id(self, student_id: int) -> Student:
        """The student with this id; RecordNotFound when missing or deleted."""
        return _get_active(self._conn, student_id)

    def update(self, student_id: int, updates: Mapping[str, Any]) -> Student:
        """Apply column updates to a live student and return the stored result."""
        assignments: list[str] = []
        params: list[Any] = []
        for key, value in updates.items():
            column = _UPDATABLE.get(key)
            if column is None:
                raise ValueError(f"unsupported student field: {key!r}")
            if column == "flags":
                value = json.dumps(value or {})
            elif column == "status":
                value = str(value)
            assignments.append(f'"{column}" = ?')
            params.append(value)

        if assignments:
            assignments.append("updated_at = ?")
            params.append(_now())
            with self._conn:
                self._conn.execute(
                    f"UPDATE students SET {', '.join(assignments)} "
                    "WHERE id = ? AND deleted_at IS NULL",
                    [*params, student_id],
                )
        return self.get_by_id(student_id)

    def soft_delete(self, student_id: int) -> None:
        """Archive and mark a live student deleted; RecordNotFound otherwise."""
        now = _now()
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE students SET status = ?, updated_at = ? "
                "WHERE id = ? AND deleted_at IS NULL",
                (StudentStatus.ARCHIVED.value, now, student_id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFound(f"student {student_id} not found")
            self._conn.execute(
                "UPDATE students SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (now, student_id),
            )


class StudentRepository:
    """Read access to student records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_by_id(self, student_id: int) -> Student:
        """The student with this id; RecordNotFound when missing or deleted."""
        return _get_active(self._conn, student_id)
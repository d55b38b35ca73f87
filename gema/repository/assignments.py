"""Persistence for assignments, submissions, grading history and analytics."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from gema.models import (
    Assignment,
    Student,
    StudentStatus,
    Submission,
    SubmissionGradeHistory,
)
from gema.repository.database import RecordNotFound
from gema.repository.students import _row_to_student

_SUBMISSION_FIELDS = (
    "assignment_id",
    "student_id",
    "file_url",
    "status",
    "grade",
    "feedback",
    "graded_by",
    "graded_at",
    "created_at",
    "updated_at",
)
_ASSIGNMENT_FIELDS = (
    "title",
    "description",
    "due_date",
    "file_url",
    "max_score",
    "rubric",
    "created_at",
    "updated_at",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _upsert_sql(table: str, fields: tuple[str, ...]) -> str:
    columns = ", ".join(("id", *fields))
    updates = ", ".join(f"{name} = excluded.{name}" for name in fields)
    return (
        f"INSERT INTO {table} ({columns}) VALUES ({_placeholders(len(fields) + 1)}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


def _insert_sql(table: str, fields: tuple[str, ...]) -> str:
    return (
        f"INSERT INTO {table} ({', '.join(fields)}) "
        f"VALUES ({_placeholders(len(fields))})"
    )


def _row_to_assignment(row: sqlite3.Row) -> Assignment:
    return Assignment(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        due_date=row["due_date"],
        file_url=row["file_url"] or "",
        max_score=row["max_score"],
        rubric=row["rubric"] or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_submission(row: sqlite3.Row) -> Submission:
    return Submission(
        id=row["id"],
        assignment_id=row["assignment_id"],
        student_id=row["student_id"],
        file_url=row["file_url"] or "",
        status=row["status"],
        grade=row["grade"],
        feedback=row["feedback"] or "",
        graded_by=row["graded_by"],
        graded_at=row["graded_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_history(row: sqlite3.Row) -> SubmissionGradeHistory:
    return SubmissionGradeHistory(
        id=row["id"],
        submission_id=row["submission_id"],
        score=row["score"],
        feedback=row["feedback"] or "",
        graded_by=row["graded_by"],
        graded_at=row["graded_at"],
        created_at=row["created_at"],
    )


def _assignment_values(assignment: Assignment) -> tuple[Any, ...]:
    return (
        assignment.title,
        assignment.description,
        assignment.due_date,
        assignment.file_url,
        assignment.max_score,
        json.dumps(assignment.rubric or {}),
        assignment.created_at,
        assignment.updated_at,
    )


def _submission_values(submission: Submission) -> tuple[Any, ...]:
    return (
        submission.assignment_id,
        submission.student_id,
        submission.file_url,
        str(submission.status),
        submission.grade,
        submission.feedback,
        submission.graded_by,
        submission.graded_at,
        submission.created_at,
        submission.updated_at,
    )


def _insert_submission(conn: sqlite3.Connection, submission: Submission) -> Submission:
    now = _now()
    if submission.created_at is None:
        submission.created_at = now
    if submission.updated_at is None:
        submission.updated_at = now
    with conn:
        cursor = conn.execute(
            _insert_sql("submissions", _SUBMISSION_FIELDS), _submission_values(submission)
        )
    submission.id = cursor.lastrowid
    return submission


def _save_submission(conn: sqlite3.Connection, submission: Submission) -> Submission:
    if not submission.id:
        return _insert_submission(conn, submission)
    now = _now()
    if submission.created_at is None:
        submission.created_at = now
    submission.updated_at = now
    with conn:
        conn.execute(
            _upsert_sql("submissions", _SUBMISSION_FIELDS),
            (submission.id, *_submission_values(submission)),
        )
    return submission


def _attach_parents(conn: sqlite3.Connection, submissions: list[Submission]) -> None:
    assignment_ids = sorted({s.assignment_id for s in submissions})
    student_ids = sorted({s.student_id for s in submissions})
    assignments: dict[int, Assignment] = {}
    students: dict[int, Student] = {}
    if assignment_ids:
        rows = conn.execute(
            f"SELECT * FROM assignments WHERE id IN ({_placeholders(len(assignment_ids))})",
            assignment_ids,
        ).fetchall()
        assignments = {row["id"]: _row_to_assignment(row) for row in rows}
    if student_ids:
        rows = conn.execute(
            f"SELECT * FROM students WHERE deleted_at IS NULL "
            f"AND id IN ({_placeholders(len(student_ids))})",
            student_ids,
        ).fetchall()
        students = {row["id"]: _row_to_student(row) for row in rows}
    for submission in submissions:
        submission.assignment = assignments.get(submission.assignment_id, Assignment())
        submission.student = students.get(submission.student_id, Student())


def _load_submissions(
    conn: sqlite3.Connection,
    clauses: Iterable[str] = (),
    params: Iterable[Any] = (),
    order: str = "created_at DESC, id DESC",
    limit: Optional[int] = None,
) -> list[Submission]:
    clauses = list(clauses)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    limit_sql = f" LIMIT {int(limit)}" if limit is not None else ""
    rows = conn.execute(
        f"SELECT * FROM submissions{where} ORDER BY {order}{limit_sql}", list(params)
    ).fetchall()
    submissions = [_row_to_submission(row) for row in rows]
    _attach_parents(conn, submissions)
    return submissions


def _load_submission(conn: sqlite3.Connection, submission_id: int) -> Submission:
    found = _load_submissions(conn, ["id = ?"], [submission_id], limit=1)
    if not found:
        raise RecordNotFound(f"submission {submission_id} not found")
    return found[0]


class AssignmentRepository:
    """Stores assignment definitions."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self) -> list[Assignment]:
        """Every assignment, earliest due date first."""
        rows = self._conn.execute(
            "SELECT * FROM assignments ORDER BY due_date ASC, id ASC"
        ).fetchall()
        return [_row_to_assignment(row) for row in rows]

    def get_by_id(self, assignment_id: int) -> Assignment:
        """The assignment with this id; RecordNotFound when missing."""
        row = self._conn.execute(
            "SELECT * FROM assignments WHERE id = ?", (assignment_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFound(f"assignment {assignment_id} not found")
        return _row_to_assignment(row)

    def create(self, assignment: Assignment) -> Assignment:
        """Insert the assignment, filling in its id and timestamps."""
        now = _now()
        if assignment.created_at is None:
            assignment.created_at = now
        if assignment.updated_at is None:
            assignment.updated_at = now
        with self._conn:
            cursor = self._conn.execute(
                _insert_sql("assignments", _ASSIGNMENT_FIELDS), _assignment_values(assignment)
            )
        assignment.id = cursor.lastrowid
        return assignment

    def update(self, assignment: Assignment) -> Assignment:
        """Save every field of the assignment, inserting it when it has no row yet."""
        if not assignment.id:
            return self.create(assignment)
        now = _now()
        if assignment.created_at is None:
            assignment.created_at = now
        assignment.updated_at = now
        with self._conn:
            self._conn.execute(
                _upsert_sql("assignments", _ASSIGNMENT_FIELDS),
                (assignment.id, *_assignment_values(assignment)),
            )
        return assignment

    def delete(self, assignment_id: int) -> None:
        """Remove the assignment; RecordNotFound when nothing was deleted."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM assignments WHERE id = ?", (assignment_id,)
            )
        if cursor.rowcount == 0:
            raise RecordNotFound(f"assignment {assignment_id} not found")


@dataclass
class SubmissionFilter:
    """Narrows a submission listing."""

    assignment_id: Optional[int] = None
    student_id: Optional[int] = None
    status: Optional[str] = None


class SubmissionRepository:
    """Stores submissions and loads them with their assignment and student."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, query: SubmissionFilter) -> list[Submission]:
        """Matching submissions, newest first."""
        clauses: list[str] = []
        params: list[Any] = []
        if query.assignment_id is not None:
            clauses.append("assignment_id = ?")
            params.append(query.assignment_id)
        if query.student_id is not None:
            clauses.append("student_id = ?")
            params.append(query.student_id)
        if query.status is not None:
            clauses.append("status = ?")
            params.append(str(query.status))
        return _load_submissions(self._conn, clauses, params)

    def get_by_id(self, submission_id: int) -> Submission:
        """The submission with this id; RecordNotFound when missing."""
        return _load_submission(self._conn, submission_id)

    def get_by_assignment_and_student(self, assignment_id: int, student_id: int) -> Submission:
        """The newest submission of a student for an assignment."""
        found = _load_submissions(
            self._conn,
            ["assignment_id = ?", "student_id = ?"],
            [assignment_id, student_id],
            limit=1,
        )
        if not found:
            raise RecordNotFound(
                f"no submission for assignment {assignment_id} by student {student_id}"
            )
        return found[0]

    def create(self, submission: Submission) -> Submission:
        """Insert the submission, filling in its id and timestamps."""
        return _insert_submission(self._conn, submission)

    def update(self, submission: Submission) -> Submission:
        """Save every field of the submission."""
        return _save_submission(self._conn, submission)


class AdminSubmissionRepository:
    """Submission access for grading workflows."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_by_id(self, submission_id: int) -> Submission:
        """The submission with its assignment, student and newest-first history."""
        submission = _load_submission(self._conn, submission_id)
        rows = self._conn.execute(
            "SELECT * FROM submission_grade_histories WHERE submission_id = ? "
            "ORDER BY graded_at DESC, id DESC",
            (submission_id,),
        ).fetchall()
        submission.history = [_row_to_history(row) for row in rows]
        return submission

    def update(self, submission: Submission) -> Submission:
        """Save every field of the submission."""
        return _save_submission(self._conn, submission)

    def create_history(self, history: SubmissionGradeHistory) -> SubmissionGradeHistory:
        """Insert a grading history entry, filling in its id and creation time."""
        if history.created_at is None:
            history.created_at = _now()
        if history.graded_at is None:
            history.graded_at = history.created_at
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO submission_grade_histories "
                "(submission_id, score, feedback, graded_by, graded_at, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    history.submission_id,
                    history.score,
                    history.feedback,
                    history.graded_by,
                    history.graded_at,
                    history.created_at,
                ),
            )
        history.id = cursor.lastrowid
        return history


class AdminAnalyticsRepository:
    """Data for the administrator analytics dashboard."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def count_active_students(self) -> int:
        """Number of active students that are not soft deleted."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM students WHERE status = ? AND deleted_at IS NULL",
            (StudentStatus.ACTIVE.value,),
        ).fetchone()[0]

    def list_submissions_with_assignments(self) -> list[Submission]:
        """Every submission with its assignment and student."""
        return _load_submissions(self._conn, order="id ASC")

    def list_submissions_since(self, since: datetime) -> list[Submission]:
        """Submissions created at or after ``since``."""
        return _load_submissions(self._conn, ["created_at >= ?"], [since], order="id ASC")
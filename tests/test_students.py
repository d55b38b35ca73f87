from datetime import datetime, timedelta, timezone

import pytest

from gema.models import StudentStatus
from gema.repository.database import RecordNotFound, connect
from gema.repository.students import (
    AdminStudentFilter,
    AdminStudentRepository,
    StudentRepository,
)


@pytest.fixture
def conn():
    connection = connect(":memory:")
    yield connection
    connection.close()


def _add_student(conn, name, email, class_name="", status="active", created_at=None):
    created_at = created_at or datetime.now(timezone.utc)
    with conn:
        cursor = conn.execute(
            'INSERT INTO students (name, email, "class", status, created_at, updated_at) '
            "VALUES (?, ?, ?, ?, ?, ?)",
            (name, email, class_name, status, created_at, created_at),
        )
    return cursor.lastrowid


@pytest.fixture
def seeded(conn):
    now = datetime.now(timezone.utc)
    alice = _add_student(conn, "Alice Johnson", "alice@example.com", "A",
                         StudentStatus.ACTIVE.value, now - timedelta(hours=2))
    bob = _add_student(conn, "Bob Stone", "bob@example.com", "B",
                       StudentStatus.INACTIVE.value, now - timedelta(hours=1))
    return alice, bob


def test_list_filters_and_sorts(conn, seeded):
    repo = AdminStudentRepository(conn)

    students, total = repo.list(AdminStudentFilter(search="alice", page_size=10))
    assert total == 1
    assert len(students) == 1
    assert students[0].name == "Alice Johnson"

    students, total = repo.list(AdminStudentFilter(page_size=10))
    assert total == 2
    assert students[0].name == "Bob Stone"


def test_list_by_class_and_status(conn, seeded):
    repo = AdminStudentRepository(conn)
    by_class, _ = repo.list(AdminStudentFilter(class_name="B"))
    assert [s.name for s in by_class] == ["Bob Stone"]
    by_status, _ = repo.list(AdminStudentFilter(status="active"))
    assert [s.name for s in by_status] == ["Alice Johnson"]


def test_list_custom_sort_and_pagination(conn, seeded):
    repo = AdminStudentRepository(conn)
    first, total = repo.list(AdminStudentFilter(sort="name ASC", page=1, page_size=1))
    second, _ = repo.list(AdminStudentFilter(sort="name ASC", page=2, page_size=1))
    assert total == 2
    assert [s.name for s in first + second] == ["Alice Johnson", "Bob Stone"]


def test_list_rejects_unknown_sort(conn, seeded):
    repo = AdminStudentRepository(conn)
    with pytest.raises(ValueError):
        repo.list(AdminStudentFilter(sort="name; DROP TABLE students"))


def test_get_by_id_missing(conn):
    with pytest.raises(RecordNotFound):
        AdminStudentRepository(conn).get_by_id(999)


def test_update_changes_fields(conn, seeded):
    alice, _ = seeded
    repo = AdminStudentRepository(conn)
    updated = repo.update(alice, {"name": "Alice J.", "class": "C", "flagged": True,
                                  "flags": {"late": True}})
    assert updated.name == "Alice J."
    assert updated.class_name == "C"
    assert updated.flagged is True
    assert updated.flags == {"late": True}
    assert repo.get_by_id(alice) == updated


def test_update_rejects_unknown_field(conn, seeded):
    alice, _ = seeded
    with pytest.raises(ValueError):
        AdminStudentRepository(conn).update(alice, {"password_hash": "password"})


def test_soft_delete_archives_and_hides(conn, seeded):
    alice, bob = seeded
    repo = AdminStudentRepository(conn)
    repo.soft_delete(alice)

    with pytest.raises(RecordNotFound):
        repo.get_by_id(alice)
    with pytest.raises(RecordNotFound):
        StudentRepository(conn).get_by_id(alice)
    with pytest.raises(RecordNotFound):
        repo.soft_delete(alice)
    with pytest.raises(RecordNotFound):
        repo.update(alice, {"name": "Ghost"})

    visible, total = repo.list(AdminStudentFilter())
    assert [s.id for s in visible] == [bob]
    assert total == 1

    everyone, _ = repo.list(AdminStudentFilter(include_deleted=True))
    archived = next(s for s in everyone if s.id == alice)
    assert archived.status == StudentStatus.ARCHIVED
    assert archived.deleted_at is not None
    assert not archived.is_active()


def test_student_repository_get_by_id(conn, seeded):
    alice, _ = seeded
    student = StudentRepository(conn).get_by_id(alice)
    assert student.email == "alice@example.com"
    assert student.is_active()
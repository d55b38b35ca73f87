from datetime import datetime, timedelta, timezone

import pytest

from gema.models import ActivityLog
from gema.repository.activity_log import (
    ActivityLogFilter,
    ActivityLogRecentFilter,
    ActivityLogRepository,
)
from gema.repository.database import connect

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def repo():
    conn = connect(":memory:")
    yield ActivityLogRepository(conn)
    conn.close()


def _seed(repo):
    specs = [
        (1, "admin", "student.updated", "student"),
        (2, "teacher", "assignment.created", "assignment"),
        (1, "admin", "assignment.created", "assignment"),
        (3, "teacher", "submission.graded", "submission"),
    ]
    created = []
    for hours, (actor, role, action, entity) in enumerate(specs):
        entry = ActivityLog(
            actor_id=actor,
            actor_role=role,
            action=action,
            entity_type=entity,
            created_at=BASE + timedelta(hours=hours),
        )
        created.append(repo.create(entry))
    return created


def test_create_assigns_id_and_timestamp(repo):
    entry = repo.create(ActivityLog(actor_id=5, actor_role="admin", action="a", entity_type="e"))
    assert entry.id > 0
    assert entry.created_at is not None
    items, total = repo.list(ActivityLogFilter())
    assert total == len(items) == 1
    assert items[0].id == entry.id
    assert items[0].created_at == entry.created_at


def test_metadata_round_trip(repo):
    metadata = {"student_id": 4, "fields": ["name", "status"], "flagged": True}
    entry = repo.create(
        ActivityLog(actor_id=1, actor_role="admin", action="a", entity_type="e",
                    entity_id=4, metadata=metadata)
    )
    items, _ = repo.list(ActivityLogFilter())
    assert items[0].metadata == metadata
    assert items[0].entity_id == entry.entity_id


def test_list_orders_newest_first(repo):
    created = _seed(repo)
    items, total = repo.list(ActivityLogFilter())
    assert total == len(created)
    assert [item.id for item in items] == [entry.id for entry in reversed(created)]


def test_list_filters(repo):
    created = _seed(repo)
    by_actor, total = repo.list(ActivityLogFilter(actor_id=1))
    assert total == len([e for e in created if e.actor_id == 1])
    assert {item.actor_id for item in by_actor} == {1}

    by_action, _ = repo.list(ActivityLogFilter(action="assignment.created"))
    assert {item.action for item in by_action} == {"assignment.created"}

    combined, total = repo.list(ActivityLogFilter(actor_id=1, entity_type="assignment"))
    assert total == len(combined)
    assert [item.id for item in combined] == [created[2].id]


def test_list_pagination_keeps_total(repo):
    created = _seed(repo)
    first, total = repo.list(ActivityLogFilter(page=1, page_size=3))
    second, total_again = repo.list(ActivityLogFilter(page=2, page_size=3))
    assert total == total_again == len(created)
    assert len(first) == 3
    assert {i.id for i in first} | {i.id for i in second} == {e.id for e in created}
    assert not {i.id for i in first} & {i.id for i in second}


def test_list_page_zero_means_first_page(repo):
    _seed(repo)
    zero, _ = repo.list(ActivityLogFilter(page=0, page_size=2))
    one, _ = repo.list(ActivityLogFilter(page=1, page_size=2))
    assert [i.id for i in zero] == [i.id for i in one]


def test_list_recent_window_is_inclusive(repo):
    created = _seed(repo)
    items, total = repo.list_recent(
        ActivityLogRecentFilter(since=created[1].created_at, until=created[2].created_at)
    )
    assert total == len(items)
    assert {i.id for i in items} == {created[1].id, created[2].id}


def test_list_recent_filters_entity_and_actor(repo):
    created = _seed(repo)
    items, _ = repo.list_recent(
        ActivityLogRecentFilter(since=BASE, entity="assignment", actor_id=2)
    )
    assert [i.id for i in items] == [created[1].id]
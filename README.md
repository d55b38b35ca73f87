# gema

The domain core of a learning-platform API, built as a library. It covers:

- **Models** (`gema.models`). These are dataclasses for students, assignments,
  submissions with grade history, announcements, gallery items, contact
  submissions, upload records and activity logs. The module also holds the
  `StudentStatus` and `SubmissionStatus` enums and the tag helpers
  `encode_tags` / `decode_tags`.
- **Repositories** (`gema.repository`). They store data in SQLite through the
  standard library's `sqlite3`:
  - `database`: `connect`, `create_schema` and `RecordNotFound`;
  - `activity_log`: `ActivityLogRepository`;
  - `students`: `AdminStudentRepository` and `StudentRepository`;
  - `content`: `AnnouncementRepository`, `GalleryRepository`,
    `ContactRepository` and `UploadRepository`;
  - `assignments`: `AssignmentRepository`, `SubmissionRepository`,
    `AdminSubmissionRepository` and `AdminAnalyticsRepository`.
- **Request helpers** (`gema.middleware`). These do not depend on any web
  framework:
  - `correlation`: correlation IDs held in a context variable;
  - `auth`: JWT bearer authentication, built on `pyjwt`;
  - `rbac`: role checks;
  - `observability`: metrics and logging for requests under `/api/admin`.
- **Metrics** (`gema.metrics`). In-process counters, gauges and histograms,
  rendered in the Prometheus text format.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Storage

`connect(path)` opens a SQLite database. The default path is `":memory:"`.
`connect` also:

- turns on foreign keys;
- creates every table that does not exist yet;
- returns rows as `sqlite3.Row`.

Timestamps are stored in UTC and read back as timezone-aware datetimes.
`create_schema(conn)` creates the tables on a connection you opened yourself.
It is safe to call more than once.

A lookup that matches nothing raises `RecordNotFound`, a subclass of
`LookupError`.

```python
from datetime import datetime, timedelta, timezone

from gema.models import Assignment
from gema.repository.database import RecordNotFound, connect
from gema.repository.assignments import AssignmentRepository

conn = connect()
assignments = AssignmentRepository(conn)

created = assignments.create(
    Assignment(
        title="Midterm",
        description="Solve the problems",
        due_date=datetime.now(timezone.utc) + timedelta(days=7),
        max_score=120,
        rubric={"logic": 40, "structure": 60},
    )
)
print(assignments.get_by_id(created.id).title)

assignments.delete(created.id)
try:
    assignments.get_by_id(created.id)
except RecordNotFound:
    print("gone")
```

### Listings and paging

Listing methods return `(items, total)`. `total` counts the matches before
paging. Paging applies only when `page_size` is greater than 0. A `page` of 0
or less is treated as page 1.

```python
from gema.repository.content import GalleryFilter, GalleryRepository
from gema.models import GalleryItem

gallery = GalleryRepository(conn)
gallery.upsert_batch([
    GalleryItem(slug="art", title="Art Show", image_path="art.jpg", tags=["Art"]),
])
items, total = gallery.list(GalleryFilter(tags=[" art "], page=1, page_size=10))
print(total, items[0].tags)   # 1 ['art']
```

How the listings behave:

- **Gallery tags** are stored lower-cased in the form `|a|b|`. A tag filter
  matches only items that carry every requested tag.
- **`AnnouncementRepository.list_active`** returns announcements that are
  pinned, and announcements that have started and have not yet ended. Pinned
  ones come first, then the most recent start.
- **`upsert_batch`**, on both announcements and the gallery, updates rows whose
  slug already exists. It returns the number of rows affected.

### Students

The student repositories read and change student rows, but they do not insert
them. To add students, insert rows into the `students` table directly.

`AdminStudentRepository` provides the following:

- **`list`** takes an `AdminStudentFilter`:
  - `search` is matched against name and email, ignoring case;
  - `class_name` and `status` filter on those fields;
  - `sort` accepts a column with `ASC` or `DESC`, for example
    `"created_at DESC"`. That is also the default.
- **`get_by_id`** returns a live student.
- **`update`** takes a mapping of fields to new values.
- **`soft_delete`** sets the status to `archived` and stamps `deleted_at`.
  Soft-deleted students are hidden unless `include_deleted` is set.

### Submissions and analytics

`SubmissionRepository` and `AdminSubmissionRepository` load each submission
with its `assignment` and `student` attached. `AdminSubmissionRepository.get_by_id`
also loads the grading `history`, newest first.

`AdminAnalyticsRepository` provides the following:

- **`count_active_students`** counts the active students.
- **`list_submissions_with_assignments`** returns every submission, with its
  assignment and student attached.
- **`list_submissions_since`** returns the submissions created at or after a
  given time.

## Authentication and roles

```python
from gema.middleware.auth import AuthenticationError, authenticate
from gema.middleware.rbac import PermissionDenied, require_role

check = require_role("admin", "teacher")
try:
    identity = authenticate("Bearer token", "secret")
    check(identity.role)
except AuthenticationError as exc:
    print(exc.status, exc.message)   # 401
except PermissionDenied as exc:
    print(exc.status, exc.message)   # 403
```

`authenticate` accepts HS256, HS384 and HS512 tokens, and it checks `exp` and
`nbf`. It returns an `Identity` with two fields:

- `user_id` is the first usable value among the `sub`, `user_id` and `id`
  claims;
- `role` is the first non-empty value of `role` or `roles`, lower-cased.

## Correlation IDs and admin request logging

```python
from gema.middleware.correlation import correlation_scope, resolve_correlation_id
from gema.middleware.observability import record_admin_request

cid = resolve_correlation_id({"X-Request-ID": "abc"})
with correlation_scope(cid):
    fields = record_admin_request(
        "GET", "/api/admin/students/4", "/api/admin/students/:id", 200, 0.012
    )
print(fields["latency_bucket"])   # <=25ms
```

`resolve_correlation_id` takes `X-Correlation-ID`. If that is absent it falls
back to `X-Request-ID`, and if both are absent it generates a new UUID.

`record_admin_request` does nothing for paths outside `/api/admin` and returns
`None`. For admin paths it does three things:

- updates the admin request, latency and error metrics;
- logs the request to the `gema.admin` logger, or to a logger you pass in;
- returns the logged fields.

## Metrics

```python
from gema.metrics import get_metrics

metrics = get_metrics()
print(metrics.admin_requests.get("GET", "/api/admin/students/:id", "200"))
print(metrics.registry.render())
```

## What this package does not do

This package contains no HTTP server, routing or request handlers. It has no
command-line entry point.

The `gema.services` package contains no modules yet. Use cases such as grading,
analytics summaries, activity feeds, caching and announcement sanitising are
not provided. Callers build them on top of the repositories.

Storage is SQLite only.
from datetime import datetime, timedelta, timezone

from gema.models import (
    Assignment,
    GalleryItem,
    Student,
    StudentStatus,
    Submission,
    SubmissionStatus,
    decode_tags,
    encode_tags,
)

NOW = datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_encode_tags_lowercases_and_drops_blanks():
    assert encode_tags(["  Robotics", "STEM", " "]) == "|robotics|stem|"


def test_encode_tags_empty_inputs():
    assert encode_tags([]) == ""
    assert encode_tags(["   ", ""]) == ""
    assert encode_tags(None) == ""


def test_decode_tags_empty_inputs():
    assert decode_tags("") == []
    assert decode_tags("|||") == []


def test_decode_tags_skips_empty_segments():
    assert decode_tags("|a||b|") == ["a", "b"]


def test_tags_round_trip():
    tags = ["Art", " Science ", "", "music"]
    decoded = decode_tags(encode_tags(tags))
    assert decoded == [t.strip().lower() for t in tags if t.strip()]


def test_gallery_item_tags_raw_matches_encoding():
    item = GalleryItem(slug="art", tags=["Art", "Paint"])
    assert item.tags_raw == encode_tags(item.tags)
    assert decode_tags(item.tags_raw) == ["art", "paint"]


def test_assignment_past_due():
    assignment = Assignment(title="Quiz", due_date=NOW)
    assert assignment.is_past_due(NOW + timedelta(seconds=1)) is True
    assert assignment.is_past_due(NOW) is False
    assert assignment.is_past_due(NOW - timedelta(hours=1)) is False


def test_assignment_without_deadline_is_past_due():
    assert Assignment(title="Open").is_past_due(NOW) is True


def test_assignment_default_max_score():
    assert Assignment().max_score == 100


def test_student_is_active():
    student = Student(name="Alice", email="alice@example.com")
    assert student.status == StudentStatus.ACTIVE
    assert student.is_active() is True


def test_student_soft_deleted_or_inactive_is_not_active():
    deleted = Student(name="Bob", email="bob@example.com", deleted_at=NOW)
    inactive = Student(status=StudentStatus.INACTIVE.value)
    assert deleted.is_active() is False
    assert inactive.is_active() is False


def test_submission_is_graded():
    assert Submission(status=SubmissionStatus.GRADED.value).is_graded() is True
    assert Submission(status=SubmissionStatus.SUBMITTED.value).is_graded() is False


def test_submission_defaults_are_independent():
    first = Submission()
    second = Submission()
    first.history.append(object())
    assert second.history == []
    assert first.assignment is not second.assignment
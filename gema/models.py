"""Domain records shared by the repositories and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class StudentStatus(str, Enum):
    """Lifecycle states of a student record."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"
    SUSPENDED = "suspended"

    def __str__(self) -> str:
        return self.value


class SubmissionStatus(str, Enum):
    """Grading states of an assignment submission."""

    SUBMITTED = "submitted"
    GRADED = "graded"

    def __str__(self) -> str:
        return self.value


@dataclass(kw_only=True)
class ActivityLog:
    """An auditable event triggered by an administrator or teacher."""

    id: int = 0
    actor_id: int = 0
    actor_role: str = ""
    action: str = ""
    entity_type: str = ""
    entity_id: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Assignment:
    """A tutorial assignment definition."""

    id: int = 0
    title: str = ""
    description: str = ""
    due_date: Optional[datetime] = None
    file_url: str = ""
    max_score: float = 100.0
    rubric: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submissions: list[Submission] = field(default_factory=list)

    def is_past_due(self, reference: datetime) -> bool:
        """Return True when ``reference`` lies after the deadline.

        An assignment without a deadline counts as past due.
        """
        if self.due_date is None:
            return True
        return reference > self.due_date


@dataclass(kw_only=True)
class Announcement:
    """A broadcast message displayed to end users."""

    id: int = 0
    slug: str = ""
    title: str = ""
    body: str = ""
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_pinned: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(kw_only=True)
class GalleryItem:
    """Media published in the public gallery."""

    id: int = 0
    slug: str = ""
    title: str = ""
    caption: str = ""
    image_path: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def tags_raw(self) -> str:
        """The tag list in its stored, pipe-delimited form."""
        return encode_tags(self.tags)


@dataclass(kw_only=True)
class ContactSubmission:
    """An inbound enquiry from the contact form."""

    id: int = 0
    reference_id: str = ""
    name: str = ""
    email: str = ""
    message: str = ""
    source: str = ""
    status: str = ""
    checksum: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


@dataclass(kw_only=True)
class UploadRecord:
    """Metadata about an uploaded file."""

    id: int = 0
    user_id: Optional[int] = None
    file_name: str = ""
    url: str = ""
    mime_type: str = ""
    size_bytes: int = 0
    checksum: str = ""
    created_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Student:
    """A learner that can submit assignments."""

    id: int = 0
    name: str = ""
    email: str = ""
    class_name: str = ""
    status: str = StudentStatus.ACTIVE.value
    flagged: bool = False
    notes: str = ""
    flags: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    def is_active(self) -> bool:
        """True when the student is active and not soft deleted."""
        return self.status == StudentStatus.ACTIVE and self.deleted_at is None


@dataclass(kw_only=True)
class SubmissionGradeHistory:
    """One grading decision in the history of a submission."""

    id: int = 0
    submission_id: int = 0
    score: float = 0.0
    feedback: str = ""
    graded_by: int = 0
    graded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Submission:
    """A file submitted by a student for an assignment."""

    id: int = 0
    assignment_id: int = 0
    student_id: int = 0
    file_url: str = ""
    status: str = ""
    grade: Optional[float] = None
    feedback: str = ""
    graded_by: Optional[int] = None
    graded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assignment: Assignment = field(default_factory=Assignment)
    student: Student = field(default_factory=Student)
    history: list[SubmissionGradeHistory] = field(default_factory=list)

    def is_graded(self) -> bool:
        """True when the submission has a final grade."""
        return self.status == SubmissionStatus.GRADED


def encode_tags(tags: list[str] | None) -> str:
    """Encode tags as ``|a|b|``, lower-cased, dropping blank entries."""
    cleaned = [tag.lower().strip() for tag in tags or ()]
    cleaned = [tag for tag in cleaned if tag]
    if not cleaned:
        return ""
    return "|" + "|".join(cleaned) + "|"


def decode_tags(raw: str | None) -> list[str]:
    """Decode the pipe-delimited tag form back into a list."""
    trimmed = (raw or "").strip("|")
    if not trimmed:
        return []
    return [part.strip() for part in trimmed.split("|") if part.strip()]
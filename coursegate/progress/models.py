"""Course progress record.

One row per (student, course), created in zero state when an entitlement
is granted. Watching and completion updates belong to the content side of
the platform; the engine only guarantees the record exists.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# Partition per student so "my courses" progress is a single read
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    student_id UUID,
    course_id UUID,
    videos_watched SET<UUID>,
    completion_percentage DECIMAL,
    last_accessed_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((student_id), course_id)
)
"""

PROGRESS_TABLES_CQL = [COURSE_PROGRESS_TABLE_CQL]


@dataclass
class CourseProgress:
    """Progress of one student in one course."""

    student_id: UUID
    course_id: UUID
    videos_watched: set[UUID] = field(default_factory=set)
    completion_percentage: Decimal = Decimal(0)
    last_accessed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgress":
        """Create instance from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_id=row.course_id,
            videos_watched=set(row.videos_watched or ()),
            completion_percentage=row.completion_percentage or Decimal(0),
            last_accessed_at=ensure_utc_aware(row.last_accessed_at)
            or datetime.now(UTC),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
        )

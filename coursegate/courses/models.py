"""Course and course-content schema.

Courses and their content are authored elsewhere; the engine reads the
owner, price and preview flags and maintains the ``students_enrolled``
side of the entitlement relationship.

Tables:
- courses: one row per course, enrollment set included
- course_resources: resource lookup by id
- resources_by_course: resources of a course, for listings
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID


COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    teacher_id UUID,
    price DECIMAL,
    is_published BOOLEAN,
    students_enrolled SET<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_RESOURCES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_resources (
    id UUID PRIMARY KEY,
    course_id UUID,
    kind TEXT,
    title TEXT,
    is_preview BOOLEAN,
    location TEXT,
    created_at TIMESTAMP
)
"""

RESOURCES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.resources_by_course (
    course_id UUID,
    kind TEXT,
    id UUID,
    title TEXT,
    is_preview BOOLEAN,
    location TEXT,
    PRIMARY KEY ((course_id), kind, id)
)
"""

COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSE_RESOURCES_TABLE_CQL,
    RESOURCES_BY_COURSE_TABLE_CQL,
]


@dataclass
class Course:
    """Course fields relevant to entitlement decisions."""

    id: UUID
    teacher_id: UUID
    title: str = ""
    price: Decimal = Decimal(0)
    students_enrolled: set[UUID] = field(default_factory=set)

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            teacher_id=row.teacher_id,
            title=row.title or "",
            price=row.price if row.price is not None else Decimal(0),
            students_enrolled=set(row.students_enrolled or ()),
        )

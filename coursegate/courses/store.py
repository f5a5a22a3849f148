# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course store: resource descriptors and the entitlement pair.

An entitlement is stored twice, as the student's id in the course's
``students_enrolled`` set and as the course's id in the student's
``enrolled_courses`` set. ``grant_entitlement`` writes both in one logged
batch; set additions are idempotent, so replaying a grant never duplicates
a member.
"""

import json
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursegate.access.models import ResourceDescriptor, ResourceKind
from coursegate.core.logging import get_logger
from coursegate.core.redis import resource_cache_key

from .models import Course


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = get_logger(__name__)


class CourseStore(Protocol):
    """What the engine needs from course storage."""

    async def get_course(self, course_id: UUID) -> Course | None: ...

    async def get_resource(self, resource_id: UUID) -> ResourceDescriptor | None: ...

    async def list_course_resources(self, course_id: UUID) -> list[ResourceDescriptor]: ...

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool: ...

    async def has_entitlement(self, course_id: UUID, student_id: UUID) -> bool: ...

    async def add_enrollment(self, course_id: UUID, student_id: UUID) -> None: ...

    async def add_enrolled_course(self, student_id: UUID, course_id: UUID) -> None: ...

    async def grant_entitlement(self, course_id: UUID, student_id: UUID) -> None: ...


class CassandraCourseStore:
    """Course store backed by Cassandra, with optional Redis metadata cache.

    Only the immutable part of a resource (course, kind, preview flag,
    location) is cached. Owner and enrollment set are always read fresh.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = 300,
    ):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_course = self.session.prepare(f"""
            SELECT id, title, teacher_id, price, students_enrolled
            FROM {self.keyspace}.courses
            WHERE id = ?
        """)

        self._get_resource = self.session.prepare(f"""
            SELECT id, course_id, kind, is_preview, location
            FROM {self.keyspace}.course_resources
            WHERE id = ?
        """)

        self._get_course_resources = self.session.prepare(f"""
            SELECT id, kind, is_preview, location
            FROM {self.keyspace}.resources_by_course
            WHERE course_id = ?
        """)

        self._get_enrolled_courses = self.session.prepare(f"""
            SELECT enrolled_courses FROM {self.keyspace}.users
            WHERE id = ?
        """)

        self._add_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET students_enrolled = students_enrolled + ?
            WHERE id = ?
        """)

        self._add_enrolled_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET enrolled_courses = enrolled_courses + ?
            WHERE id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_resource(self, resource_id: UUID) -> ResourceDescriptor | None:
        """Build the descriptor for one resource, or None if unknown."""
        meta = await self._get_resource_meta(resource_id)
        if meta is None:
            return None

        course = await self.get_course(UUID(meta["course_id"]))
        if course is None:
            logger.warning(
                "resource_orphaned",
                resource_id=str(resource_id),
                course_id=meta["course_id"],
            )
            return None

        return _descriptor(resource_id, meta, course)

    async def list_course_resources(self, course_id: UUID) -> list[ResourceDescriptor]:
        course = await self.get_course(course_id)
        if course is None:
            return []

        rows = await self.session.aexecute(self._get_course_resources, [course_id])
        return [
            _descriptor(
                row.id,
                {
                    "kind": row.kind,
                    "is_preview": bool(row.is_preview),
                    "location": row.location,
                },
                course,
            )
            for row in rows
        ]

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        """Course-side membership, the authoritative entitlement signal."""
        course = await self.get_course(course_id)
        return course is not None and student_id in course.students_enrolled

    async def has_entitlement(self, course_id: UUID, student_id: UUID) -> bool:
        """True only when both sides of the entitlement pair are present."""
        if not await self.is_enrolled(course_id, student_id):
            return False
        result = await self.session.aexecute(self._get_enrolled_courses, [student_id])
        row = result.one()
        return row is not None and course_id in (row.enrolled_courses or ())

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def add_enrollment(self, course_id: UUID, student_id: UUID) -> None:
        await self.session.aexecute(self._add_enrollment, [{student_id}, course_id])

    async def add_enrolled_course(self, student_id: UUID, course_id: UUID) -> None:
        await self.session.aexecute(self._add_enrolled_course, [{course_id}, student_id])

    async def grant_entitlement(self, course_id: UUID, student_id: UUID) -> None:
        """Write both sides of the entitlement in one logged batch."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._add_enrollment, [{student_id}, course_id])
        batch.add(self._add_enrolled_course, [{course_id}, student_id])
        await self.session.aexecute(batch)

    # ==========================================================================
    # Private Helpers
    # ==========================================================================

    async def _get_resource_meta(self, resource_id: UUID) -> dict[str, Any] | None:
        cache_key = resource_cache_key(str(resource_id))
        if self.redis:
            cached = await self.redis.get(cache_key)
            if cached is not None:
                return json.loads(cached)

        result = await self.session.aexecute(self._get_resource, [resource_id])
        row = result.one()
        if not row:
            return None

        meta = {
            "course_id": str(row.course_id),
            "kind": row.kind,
            "is_preview": bool(row.is_preview),
            "location": row.location,
        }
        if self.redis:
            await self.redis.setex(cache_key, self.cache_ttl_seconds, json.dumps(meta))

        return meta


def _descriptor(resource_id: UUID, meta: dict[str, Any], course: Course) -> ResourceDescriptor:
    return ResourceDescriptor(
        id=resource_id,
        kind=ResourceKind(meta["kind"]),
        course_id=course.id,
        owner_id=course.teacher_id,
        enrolled_principal_ids=frozenset(course.students_enrolled),
        is_preview=meta["is_preview"],
        location=meta.get("location"),
    )

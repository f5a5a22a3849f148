# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Progress ledger.

``ensure_progress_record`` is an insert-if-absent: replaying it after a
crash, or calling it for a student who already made progress, leaves the
existing record untouched.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from coursegate.core.logging import get_logger

from .models import CourseProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


class ProgressLedger(Protocol):
    """What the enrollment flow needs from progress tracking."""

    async def ensure_progress_record(self, student_id: UUID, course_id: UUID) -> bool: ...

    async def get_progress(self, student_id: UUID, course_id: UUID) -> CourseProgress | None: ...


class CassandraProgressLedger:
    """Progress ledger backed by the ``course_progress`` table."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_if_absent = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (student_id, course_id, videos_watched, completion_percentage,
             last_accessed_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE student_id = ? AND course_id = ?
        """)

    async def ensure_progress_record(self, student_id: UUID, course_id: UUID) -> bool:
        """Create the zero-state record if missing.

        Returns:
            True if a record was created, False if one already existed
        """
        now = datetime.now(UTC)
        result = await self.session.aexecute(
            self._insert_if_absent,
            [student_id, course_id, set(), Decimal(0), now, now],
        )

        created = result.was_applied
        logger.info(
            "progress_record_ensured",
            student_id=str(student_id),
            course_id=str(course_id),
            created=created,
        )
        return created

    async def get_progress(self, student_id: UUID, course_id: UUID) -> CourseProgress | None:
        result = await self.session.aexecute(self._get_progress, [student_id, course_id])
        row = result.one()
        return CourseProgress.from_row(row) if row else None

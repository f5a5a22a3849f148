"""Pydantic schemas for progress queries."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import CourseProgress


class CourseProgressResponse(BaseModel):
    """Progress of the current student in one course."""

    student_id: UUID
    course_id: UUID
    videos_watched: list[UUID] = Field(default_factory=list)
    completion_percentage: Decimal = Field(..., ge=0, le=100)
    last_accessed_at: datetime
    created_at: datetime

    @classmethod
    def from_progress(cls, progress: CourseProgress) -> "CourseProgressResponse":
        """Create response from CourseProgress entity."""
        return cls(
            student_id=progress.student_id,
            course_id=progress.course_id,
            videos_watched=sorted(progress.videos_watched, key=str),
            completion_percentage=progress.completion_percentage,
            last_accessed_at=progress.last_accessed_at,
            created_at=progress.created_at,
        )

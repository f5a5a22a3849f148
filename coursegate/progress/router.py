"""Progress query endpoint.

Provides:
- GET /v1/progress/{course_id} - Current student's progress in a course
"""

from uuid import UUID

from fastapi import APIRouter

from coursegate.auth.dependencies import CurrentPrincipal
from coursegate.core.errors import NotFoundError

from .dependencies import ProgressLedgerDep
from .schemas import CourseProgressResponse


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.get(
    "/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get my progress in a course",
)
async def get_course_progress(
    course_id: UUID,
    ledger: ProgressLedgerDep,
    principal: CurrentPrincipal,
) -> CourseProgressResponse:
    """Return the caller's progress record for a course.

    The record exists once the caller is enrolled.
    """
    progress = await ledger.get_progress(principal.id, course_id)
    if progress is None:
        raise NotFoundError("Progress not found for this course", "progress_not_found")
    return CourseProgressResponse.from_progress(progress)

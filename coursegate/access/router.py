"""HTTP endpoints for access checks and stream tokens.

Provides:
- GET  /v1/access/resources/{resource_id} - Access verdict
- POST /v1/access/resources/{resource_id}/stream-token - Issue stream token
- GET  /v1/access/stream/validate - Validate a stream token
- GET  /v1/access/courses/{course_id}/resources - Redacted content listing
"""

from uuid import UUID

from fastapi import APIRouter

from coursegate.auth.dependencies import OptionalPrincipal

from .dependencies import AccessServiceDep, StreamTokenDep
from .schemas import (
    ResourceListingItem,
    ResourceListingResponse,
    StreamTokenResponse,
    StreamValidationResponse,
    VerdictResponse,
)


router = APIRouter(prefix="/v1/access", tags=["access"])


@router.get(
    "/resources/{resource_id}",
    response_model=VerdictResponse,
    summary="Check access to a resource",
)
async def check_resource_access(
    resource_id: UUID,
    service: AccessServiceDep,
    principal: OptionalPrincipal,
) -> VerdictResponse:
    """Return the access verdict for the caller, anonymous callers included."""
    verdict = await service.can_access(principal, resource_id)
    return VerdictResponse.from_verdict(resource_id, verdict)


@router.post(
    "/resources/{resource_id}/stream-token",
    response_model=StreamTokenResponse,
    summary="Issue a stream token",
)
async def issue_stream_token(
    resource_id: UUID,
    service: AccessServiceDep,
    principal: OptionalPrincipal,
) -> StreamTokenResponse:
    """Issue a short-lived token for streaming a video or live class.

    Preview content needs no token and gets an empty response.
    """
    token = await service.issue_stream_token(principal, resource_id)
    return StreamTokenResponse.from_token(token)


@router.get(
    "/stream/validate",
    response_model=StreamValidationResponse,
    summary="Validate a stream token",
)
async def validate_stream_token(
    token: StreamTokenDep,
    service: AccessServiceDep,
) -> StreamValidationResponse:
    """Resolve a stream token from X-Video-Token or ?token=.

    A missing, unknown or expired token is answered with 403 rather than
    401: the caller holds a session but lacks a valid capability.
    """
    grant = await service.validate_stream_token(token)
    return StreamValidationResponse.from_grant(grant)


@router.get(
    "/courses/{course_id}/resources",
    response_model=ResourceListingResponse,
    summary="List course content",
)
async def list_course_resources(
    course_id: UUID,
    service: AccessServiceDep,
    principal: OptionalPrincipal,
) -> ResourceListingResponse:
    """List a course's content; locations of inaccessible items are hidden."""
    listing = await service.list_course_resources(principal, course_id)
    return ResourceListingResponse(
        course_id=course_id,
        items=[ResourceListingItem.from_listing(r, v) for r, v in listing],
    )

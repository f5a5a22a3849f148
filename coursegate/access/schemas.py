"""Pydantic schemas for access checks and stream tokens."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from coursegate.stream_tokens import CapabilityToken, TokenGrant

from .models import AccessReason, ResourceDescriptor, ResourceKind, Verdict


class VerdictResponse(BaseModel):
    """Access decision for one resource."""

    resource_id: UUID
    allowed: bool
    reason: AccessReason
    can_edit_content: bool = False
    message: str = ""

    @classmethod
    def from_verdict(cls, resource_id: UUID, verdict: Verdict) -> "VerdictResponse":
        return cls(
            resource_id=resource_id,
            allowed=verdict.allowed,
            reason=verdict.reason,
            can_edit_content=verdict.can_edit_content,
            message=verdict.message,
        )


class StreamTokenResponse(BaseModel):
    """Stream capability token; empty for preview content."""

    stream_token: str | None = Field(None, description="Send as X-Video-Token")
    expires_in: int = Field(0, description="Seconds until the token expires")
    expires_at: datetime | None = None

    @classmethod
    def from_token(cls, token: CapabilityToken | None) -> "StreamTokenResponse":
        if token is None:
            return cls()
        return cls(
            stream_token=token.token,
            expires_in=token.ttl_seconds,
            expires_at=token.expires_at_datetime,
        )


class StreamValidationResponse(BaseModel):
    """What a valid stream token grants."""

    valid: bool = True
    resource_id: UUID
    principal_id: UUID

    @classmethod
    def from_grant(cls, grant: TokenGrant) -> "StreamValidationResponse":
        return cls(resource_id=grant.resource_id, principal_id=grant.principal_id)


class ResourceListingItem(BaseModel):
    """One entry of a course content listing."""

    id: UUID
    kind: ResourceKind
    is_preview: bool
    location: str | None = Field(None, description="Hidden when access is denied")
    allowed: bool

    @classmethod
    def from_listing(
        cls, resource: ResourceDescriptor, verdict: Verdict
    ) -> "ResourceListingItem":
        return cls(
            id=resource.id,
            kind=resource.kind,
            is_preview=resource.is_preview,
            location=resource.location,
            allowed=verdict.allowed,
        )


class ResourceListingResponse(BaseModel):
    course_id: UUID
    items: list[ResourceListingItem]

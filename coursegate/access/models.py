"""Access decision types.

The engine reasons over a logical view of course content; where the bytes
and metadata actually live is the course store's business.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class ResourceKind(str, Enum):
    """Kinds of course content guarded by the engine."""

    VIDEO = "video"
    MATERIAL = "material"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    LIVE_CLASS = "liveClass"


# Kinds delivered through a stream URL that needs a capability token
STREAMABLE_KINDS = frozenset({ResourceKind.VIDEO, ResourceKind.LIVE_CLASS})


class AccessReason(str, Enum):
    """Why a verdict came out the way it did."""

    PREVIEW = "preview"  # Preview content, open to everyone
    ADMIN_ROLE = "admin_role"  # Admin viewing any course
    COURSE_OWNER = "course_owner"  # Teacher viewing their own course
    ENROLLED = "enrolled"  # Student with entitlement
    AUTHENTICATION_REQUIRED = "authentication_required"
    ACCOUNT_BLOCKED = "account_blocked"
    ENROLLMENT_REQUIRED = "enrollment_required"


DENIAL_MESSAGES: dict[AccessReason, str] = {
    AccessReason.AUTHENTICATION_REQUIRED: "authentication required",
    AccessReason.ACCOUNT_BLOCKED: "account blocked",
    AccessReason.ENROLLMENT_REQUIRED: "enrollment required",
}


@dataclass(frozen=True)
class ResourceDescriptor:
    """Logical view of one piece of course content.

    Attributes:
        id: Resource ID
        kind: Content kind
        course_id: Parent course
        owner_id: Teacher who created the parent course (immutable)
        enrolled_principal_ids: Principals entitled to the parent course
        is_preview: Preview content bypasses enrollment checks
        location: Where the content is served from (URL or storage key)
    """

    id: UUID
    kind: ResourceKind
    course_id: UUID
    owner_id: UUID
    enrolled_principal_ids: frozenset[UUID] = field(default_factory=frozenset)
    is_preview: bool = False
    location: str | None = None

    @property
    def is_streamable(self) -> bool:
        return self.kind in STREAMABLE_KINDS


@dataclass(frozen=True)
class Verdict:
    """Outcome of an access decision."""

    allowed: bool
    reason: AccessReason
    can_edit_content: bool = False

    @property
    def message(self) -> str:
        """Human readable reason; empty for granted verdicts."""
        return DENIAL_MESSAGES.get(self.reason, "")

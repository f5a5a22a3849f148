"""Entitlement evaluation.

One precedence order decides access for every resource kind; callers must
not re-implement any part of it. First match wins:

1. Preview resource: allowed, authenticated or not
2. No principal: denied (authentication required)
3. Inactive principal: denied (account blocked), overriding ownership,
   admin role and enrollment
4. Admin: allowed, may edit
5. Teacher who owns the parent course: allowed, may edit
6. Student enrolled in the parent course: allowed, read-only
7. Anyone else: denied (enrollment required)
"""

from coursegate.auth.permissions import Role
from coursegate.auth.principal import PrincipalContext

from .models import AccessReason, ResourceDescriptor, Verdict


def evaluate(
    principal: PrincipalContext | None,
    resource: ResourceDescriptor,
) -> Verdict:
    """Decide whether ``principal`` may access ``resource``.

    Pure function: never raises, never touches a store.
    """
    if resource.is_preview:
        return Verdict(allowed=True, reason=AccessReason.PREVIEW)

    if principal is None:
        return Verdict(allowed=False, reason=AccessReason.AUTHENTICATION_REQUIRED)

    if not principal.active:
        return Verdict(allowed=False, reason=AccessReason.ACCOUNT_BLOCKED)

    if principal.role == Role.ADMIN:
        return Verdict(
            allowed=True, reason=AccessReason.ADMIN_ROLE, can_edit_content=True
        )

    if principal.role == Role.TEACHER and principal.id == resource.owner_id:
        return Verdict(
            allowed=True, reason=AccessReason.COURSE_OWNER, can_edit_content=True
        )

    if (
        principal.role == Role.STUDENT
        and principal.id in resource.enrolled_principal_ids
    ):
        return Verdict(allowed=True, reason=AccessReason.ENROLLED)

    return Verdict(allowed=False, reason=AccessReason.ENROLLMENT_REQUIRED)

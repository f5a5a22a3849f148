"""Tests for the entitlement evaluator precedence order."""

from uuid import uuid4

import pytest

from coursegate.access.evaluator import evaluate
from coursegate.access.models import AccessReason, ResourceDescriptor, ResourceKind
from coursegate.auth.permissions import Role
from coursegate.auth.principal import PrincipalContext


OWNER_ID = uuid4()
ENROLLED_ID = uuid4()


def make_resource(
    kind: ResourceKind = ResourceKind.VIDEO,
    is_preview: bool = False,
) -> ResourceDescriptor:
    return ResourceDescriptor(
        id=uuid4(),
        kind=kind,
        course_id=uuid4(),
        owner_id=OWNER_ID,
        enrolled_principal_ids=frozenset({ENROLLED_ID}),
        is_preview=is_preview,
    )


ALL_PRINCIPALS = [
    None,
    PrincipalContext(id=uuid4(), role=Role.STUDENT),
    PrincipalContext(id=ENROLLED_ID, role=Role.STUDENT),
    PrincipalContext(id=OWNER_ID, role=Role.TEACHER),
    PrincipalContext(id=uuid4(), role=Role.TEACHER),
    PrincipalContext(id=uuid4(), role=Role.ADMIN),
    PrincipalContext(id=uuid4(), role=Role.ADMIN, active=False),
    PrincipalContext(id=ENROLLED_ID, role=Role.STUDENT, active=False),
]


class TestPreview:
    """Preview content is open to everyone."""

    @pytest.mark.parametrize("principal", ALL_PRINCIPALS)
    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_preview_always_allowed(self, principal, kind) -> None:
        """Any caller, including anonymous and blocked ones, may view preview content."""
        verdict = evaluate(principal, make_resource(kind=kind, is_preview=True))
        assert verdict.allowed is True
        assert verdict.reason == AccessReason.PREVIEW
        assert verdict.can_edit_content is False


class TestDenials:
    """Denied verdicts and their reasons."""

    def test_anonymous_requires_authentication(self) -> None:
        verdict = evaluate(None, make_resource())
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.AUTHENTICATION_REQUIRED
        assert verdict.message == "authentication required"

    @pytest.mark.parametrize(
        "principal",
        [
            PrincipalContext(id=uuid4(), role=Role.ADMIN, active=False),
            PrincipalContext(id=OWNER_ID, role=Role.TEACHER, active=False),
            PrincipalContext(id=ENROLLED_ID, role=Role.STUDENT, active=False),
            PrincipalContext(id=uuid4(), role=Role.STUDENT, active=False),
        ],
    )
    def test_inactive_principal_always_denied(self, principal) -> None:
        """Blocking overrides admin role, ownership and enrollment."""
        verdict = evaluate(principal, make_resource())
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.ACCOUNT_BLOCKED
        assert verdict.can_edit_content is False

    def test_blocked_owner_cannot_access_own_course(self) -> None:
        """A teacher marked inactive loses access to content they own."""
        teacher = PrincipalContext(id=OWNER_ID, role=Role.TEACHER)
        resource = make_resource()
        assert evaluate(teacher, resource).allowed is True

        blocked = PrincipalContext(id=OWNER_ID, role=Role.TEACHER, active=False)
        verdict = evaluate(blocked, resource)
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.ACCOUNT_BLOCKED

    def test_student_not_enrolled_denied(self) -> None:
        verdict = evaluate(PrincipalContext(id=uuid4(), role=Role.STUDENT), make_resource())
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.ENROLLMENT_REQUIRED
        assert verdict.message == "enrollment required"

    def test_other_teacher_denied(self) -> None:
        """A teacher viewing someone else's course is treated as not enrolled."""
        verdict = evaluate(PrincipalContext(id=uuid4(), role=Role.TEACHER), make_resource())
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.ENROLLMENT_REQUIRED

    def test_teacher_in_enrollment_set_still_denied(self) -> None:
        """Enrollment only grants access to the student role."""
        teacher = PrincipalContext(id=ENROLLED_ID, role=Role.TEACHER)
        assert evaluate(teacher, make_resource()).allowed is False


class TestGrants:
    """Allowed verdicts and edit capability."""

    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_admin_allowed_and_may_edit(self, kind) -> None:
        verdict = evaluate(
            PrincipalContext(id=uuid4(), role=Role.ADMIN), make_resource(kind=kind)
        )
        assert verdict.allowed is True
        assert verdict.reason == AccessReason.ADMIN_ROLE
        assert verdict.can_edit_content is True

    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_owner_allowed_and_may_edit(self, kind) -> None:
        verdict = evaluate(
            PrincipalContext(id=OWNER_ID, role=Role.TEACHER), make_resource(kind=kind)
        )
        assert verdict.allowed is True
        assert verdict.reason == AccessReason.COURSE_OWNER
        assert verdict.can_edit_content is True

    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_enrolled_student_read_only(self, kind) -> None:
        verdict = evaluate(
            PrincipalContext(id=ENROLLED_ID, role=Role.STUDENT), make_resource(kind=kind)
        )
        assert verdict.allowed is True
        assert verdict.reason == AccessReason.ENROLLED
        assert verdict.can_edit_content is False
        assert verdict.message == ""

"""Tests for AccessService: verdict loading, stream tokens and listings."""

from uuid import uuid4

import pytest

from coursegate.access.models import AccessReason, ResourceKind
from coursegate.access.service import AccessService
from coursegate.core.errors import (
    AuthenticationError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
)


@pytest.fixture
def enrolled_student(student, paid_course):
    paid_course.students_enrolled.add(student.id)
    return student


class TestCanAccess:
    """Tests for can_access."""

    @pytest.mark.asyncio
    async def test_unknown_resource_not_found(self, access_service, student) -> None:
        with pytest.raises(NotFoundError):
            await access_service.can_access(student, uuid4())

    @pytest.mark.asyncio
    async def test_enrolled_student_allowed(
        self, access_service, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, ResourceKind.MATERIAL)
        verdict = await access_service.can_access(enrolled_student, resource_id)
        assert verdict.allowed is True
        assert verdict.reason == AccessReason.ENROLLED

    @pytest.mark.asyncio
    async def test_denial_is_a_verdict_not_an_error(
        self, access_service, course_store, paid_course, student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, ResourceKind.QUIZ)
        verdict = await access_service.can_access(student, resource_id)
        assert verdict.allowed is False
        assert verdict.reason == AccessReason.ENROLLMENT_REQUIRED


class TestIssueStreamToken:
    """Tests for issue_stream_token."""

    @pytest.mark.asyncio
    async def test_issues_token_for_enrolled_video(
        self, access_service, token_cache, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, ResourceKind.VIDEO)
        token = await access_service.issue_stream_token(enrolled_student, resource_id)

        assert token is not None
        assert token.resource_id == resource_id
        assert token.principal_id == enrolled_student.id
        assert token.ttl_seconds == 3600
        assert len(token_cache) == 1

    @pytest.mark.asyncio
    async def test_live_class_is_streamable(
        self, access_service, course_store, paid_course, teacher
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, ResourceKind.LIVE_CLASS)
        token = await access_service.issue_stream_token(teacher, resource_id)
        assert token is not None

    @pytest.mark.asyncio
    async def test_preview_needs_no_token(
        self, access_service, token_cache, course_store, paid_course
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, is_preview=True)
        assert await access_service.issue_stream_token(None, resource_id) is None
        assert len(token_cache) == 0

    @pytest.mark.asyncio
    async def test_anonymous_raises_authentication_error(
        self, access_service, course_store, paid_course
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id)
        with pytest.raises(AuthenticationError):
            await access_service.issue_stream_token(None, resource_id)

    @pytest.mark.asyncio
    async def test_not_enrolled_raises_authorization_error(
        self, access_service, token_cache, course_store, paid_course, student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id)
        with pytest.raises(AuthorizationError) as exc_info:
            await access_service.issue_stream_token(student, resource_id)

        assert exc_info.value.code == AccessReason.ENROLLMENT_REQUIRED.value
        assert len(token_cache) == 0

    @pytest.mark.asyncio
    async def test_non_streamable_kind_rejected(
        self, access_service, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id, ResourceKind.ASSIGNMENT)
        with pytest.raises(InvalidStateError):
            await access_service.issue_stream_token(enrolled_student, resource_id)


class TestValidateStreamToken:
    """Tests for validate_stream_token."""

    @pytest.mark.asyncio
    async def test_valid_token_resolves_grant(
        self, access_service, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id)
        token = await access_service.issue_stream_token(enrolled_student, resource_id)

        grant = await access_service.validate_stream_token(token.token)
        assert grant.resource_id == resource_id
        assert grant.principal_id == enrolled_student.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "not-a-token"])
    async def test_unknown_token_denied(self, access_service, token) -> None:
        with pytest.raises(AuthorizationError) as exc_info:
            await access_service.validate_stream_token(token)
        assert exc_info.value.code == "stream_token_invalid"

    @pytest.mark.asyncio
    async def test_expired_and_unknown_fail_identically(
        self, access_service, clock, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id)
        token = await access_service.issue_stream_token(enrolled_student, resource_id)
        clock.advance(3600)

        with pytest.raises(AuthorizationError) as expired:
            await access_service.validate_stream_token(token.token)
        with pytest.raises(AuthorizationError) as unknown:
            await access_service.validate_stream_token("unknown")

        assert expired.value.code == unknown.value.code
        assert expired.value.message == unknown.value.message

    @pytest.mark.asyncio
    async def test_blocked_principal_token_revoked(
        self, access_service, users, course_store, paid_course, enrolled_student
    ) -> None:
        resource_id = course_store.add_resource(paid_course.id)
        token = await access_service.issue_stream_token(enrolled_student, resource_id)
        users.block(enrolled_student.id)

        with pytest.raises(AuthorizationError) as exc_info:
            await access_service.validate_stream_token(token.token)
        assert exc_info.value.code == "stream_token_invalid"

    @pytest.mark.asyncio
    async def test_blocked_principal_token_kept_without_recheck(
        self, course_store, token_cache, verifier, users, paid_course, enrolled_student
    ) -> None:
        """With the re-check disabled a token lives until its TTL."""
        service = AccessService(
            courses=course_store,
            tokens=token_cache,
            verifier=verifier,
            recheck_principal=False,
        )
        resource_id = course_store.add_resource(paid_course.id)
        token = await service.issue_stream_token(enrolled_student, resource_id)
        users.block(enrolled_student.id)

        grant = await service.validate_stream_token(token.token)
        assert grant.principal_id == enrolled_student.id


class TestListing:
    """Tests for course content listings."""

    @pytest.mark.asyncio
    async def test_locations_hidden_when_denied(
        self, access_service, course_store, paid_course, student
    ) -> None:
        preview_id = course_store.add_resource(
            paid_course.id, is_preview=True, location="media/intro.mp4"
        )
        locked_id = course_store.add_resource(paid_course.id, location="media/secret.mp4")

        listing = await access_service.list_course_resources(student, paid_course.id)
        by_id = {resource.id: (resource, verdict) for resource, verdict in listing}

        assert by_id[preview_id][0].location == "media/intro.mp4"
        assert by_id[preview_id][1].allowed is True
        assert by_id[locked_id][0].location is None
        assert by_id[locked_id][1].allowed is False

    @pytest.mark.asyncio
    async def test_locations_visible_to_owner(
        self, access_service, course_store, paid_course, teacher
    ) -> None:
        course_store.add_resource(paid_course.id, location="media/secret.mp4")
        listing = await access_service.list_course_resources(teacher, paid_course.id)
        assert [resource.location for resource, _ in listing] == ["media/secret.mp4"]

    @pytest.mark.asyncio
    async def test_unknown_course_not_found(self, access_service, student) -> None:
        with pytest.raises(NotFoundError):
            await access_service.list_course_resources(student, uuid4())

"""Access service: loads descriptors and applies the evaluator.

Every access check in the application goes through here, so video,
material, quiz, assignment and live-class endpoints share one policy.
"""

from dataclasses import replace
from uuid import UUID

from coursegate.auth.principal import PrincipalContext
from coursegate.auth.service import CredentialVerifier
from coursegate.core.errors import (
    AuthenticationError,
    AuthorizationError,
    EngineError,
    InvalidStateError,
    NotFoundError,
)
from coursegate.core.logging import get_logger
from coursegate.courses.store import CourseStore
from coursegate.stream_tokens import CapabilityToken, CapabilityTokenCache, TokenGrant

from .evaluator import evaluate
from .models import AccessReason, ResourceDescriptor, Verdict


logger = get_logger(__name__)

INVALID_STREAM_TOKEN_MESSAGE = "Invalid or expired video access token"


class AccessService:
    """Entitlement checks and stream token issuance."""

    def __init__(
        self,
        courses: CourseStore,
        tokens: CapabilityTokenCache,
        verifier: CredentialVerifier,
        recheck_principal: bool = True,
    ):
        self.courses = courses
        self.tokens = tokens
        self.verifier = verifier
        self.recheck_principal = recheck_principal

    # ==========================================================================
    # Entitlement
    # ==========================================================================

    async def can_access(
        self, principal: PrincipalContext | None, resource_id: UUID
    ) -> Verdict:
        """Verdict for ``principal`` on a resource.

        Raises:
            NotFoundError: Resource does not exist
        """
        resource = await self._get_resource(resource_id)
        return self._evaluate(principal, resource)

    async def authorize(
        self, principal: PrincipalContext | None, resource_id: UUID
    ) -> ResourceDescriptor:
        """Load a resource the principal may access, or raise the denial.

        Raises:
            NotFoundError: Resource does not exist
            AuthenticationError: Anonymous caller on protected content
            AuthorizationError: Any other denial
        """
        resource = await self._get_resource(resource_id)
        verdict = self._evaluate(principal, resource)
        if not verdict.allowed:
            raise denial_error(verdict)
        return resource

    async def list_course_resources(
        self, principal: PrincipalContext | None, course_id: UUID
    ) -> list[tuple[ResourceDescriptor, Verdict]]:
        """Course content listing with locations hidden where access is denied."""
        if await self.courses.get_course(course_id) is None:
            raise NotFoundError("Course not found", "course_not_found")

        resources = await self.courses.list_course_resources(course_id)
        return self.redact_listing(principal, resources)

    def redact_listing(
        self,
        principal: PrincipalContext | None,
        resources: list[ResourceDescriptor],
    ) -> list[tuple[ResourceDescriptor, Verdict]]:
        """Pair each resource with its verdict, dropping denied locations."""
        listing = []
        for resource in resources:
            verdict = evaluate(principal, resource)
            if not verdict.allowed:
                resource = replace(resource, location=None)
            listing.append((resource, verdict))
        return listing

    # ==========================================================================
    # Stream Tokens
    # ==========================================================================

    async def issue_stream_token(
        self, principal: PrincipalContext | None, resource_id: UUID
    ) -> CapabilityToken | None:
        """Issue a capability token for streaming a protected resource.

        Returns:
            The token, or None for preview content which streams without one

        Raises:
            NotFoundError: Resource does not exist
            AuthenticationError / AuthorizationError: Access denied
            InvalidStateError: Resource is not streamed (material, quiz, ...)
        """
        resource = await self.authorize(principal, resource_id)

        if resource.is_preview:
            return None

        if not resource.is_streamable:
            raise InvalidStateError(
                f"Stream tokens are not issued for {resource.kind.value} content",
                "not_streamable",
            )

        # Non-preview access always has a principal
        token = self.tokens.issue(resource.id, principal.id)
        logger.info(
            "stream_token_issued",
            resource_id=str(resource.id),
            principal_id=str(principal.id),
            expires_at=token.expires_at_datetime.isoformat(),
        )
        return token

    async def validate_stream_token(self, token: str | None) -> TokenGrant:
        """Resolve a presented stream token.

        Unknown, expired and revoked-principal tokens all fail the same way.

        Raises:
            AuthorizationError: Token is not valid
        """
        grant = self.tokens.validate(token) if token else None
        if grant is None:
            logger.info("stream_token_rejected", token_present=bool(token))
            raise AuthorizationError(INVALID_STREAM_TOKEN_MESSAGE, "stream_token_invalid")

        if self.recheck_principal and not await self._principal_still_active(
            grant.principal_id
        ):
            logger.warning(
                "stream_token_principal_inactive",
                principal_id=str(grant.principal_id),
                resource_id=str(grant.resource_id),
            )
            raise AuthorizationError(INVALID_STREAM_TOKEN_MESSAGE, "stream_token_invalid")

        return grant

    # ==========================================================================
    # Private Helpers
    # ==========================================================================

    async def _get_resource(self, resource_id: UUID) -> ResourceDescriptor:
        resource = await self.courses.get_resource(resource_id)
        if resource is None:
            raise NotFoundError("Resource not found", "resource_not_found")
        return resource

    def _evaluate(
        self, principal: PrincipalContext | None, resource: ResourceDescriptor
    ) -> Verdict:
        verdict = evaluate(principal, resource)
        if not verdict.allowed:
            logger.info(
                "access_denied",
                resource_id=str(resource.id),
                resource_kind=resource.kind.value,
                principal_id=str(principal.id) if principal else None,
                reason=verdict.reason.value,
            )
        return verdict

    async def _principal_still_active(self, principal_id: UUID) -> bool:
        try:
            principal = await self.verifier.load_principal(principal_id)
        except AuthenticationError:
            return False
        return principal.active


def denial_error(verdict: Verdict) -> EngineError:
    """Typed error for a denied verdict."""
    if verdict.reason is AccessReason.AUTHENTICATION_REQUIRED:
        return AuthenticationError("Authentication required", verdict.reason.value)
    return AuthorizationError(
        f"Not authorized: {verdict.message}", verdict.reason.value
    )

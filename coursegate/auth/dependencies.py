"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Bearer token extraction
- Principal resolution (required and optional)
- Role checks for admin endpoints
"""

from typing import Annotated

from fastapi import Depends, Request

from coursegate.core.context import set_principal
from coursegate.core.errors import AuthenticationError, AuthorizationError
from coursegate.core.logging import get_logger

from .permissions import Role
from .principal import PrincipalContext
from .service import CredentialVerifier


logger = get_logger(__name__)

# Module-level reference to be overridden by main.py
_verifier_getter = None


def set_verifier_getter(getter):
    """Set the credential verifier getter function.

    Called by main.py during app initialization.
    """
    global _verifier_getter  # noqa: PLW0603 - Required for DI pattern
    _verifier_getter = getter


def get_credential_verifier() -> CredentialVerifier:
    """Get the CredentialVerifier configured at startup."""
    if _verifier_getter is None:
        raise RuntimeError(
            "CredentialVerifier not configured - call set_verifier_getter first"
        )
    return _verifier_getter()


CredentialVerifierDep = Annotated[CredentialVerifier, Depends(get_credential_verifier)]


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
    verifier: CredentialVerifierDep,
) -> PrincipalContext:
    """Resolve the authenticated principal.

    Raises:
        AuthenticationError: If the credential is missing or invalid
        AuthorizationError: If the account is blocked
    """
    principal = await verifier.verify(token)
    set_principal(principal.id, principal.role.value)

    if not principal.active:
        logger.warning("blocked_principal_rejected")
        raise AuthorizationError(
            "Your account has been blocked. Please contact administrator.",
            "account_blocked",
        )

    return principal


async def get_optional_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
    verifier: CredentialVerifierDep,
) -> PrincipalContext | None:
    """Resolve the principal if a valid credential is present.

    Invalid credentials and blocked accounts are treated as anonymous.
    """
    if not token:
        return None

    try:
        principal = await verifier.verify(token)
    except AuthenticationError:
        return None

    if not principal.active:
        return None

    set_principal(principal.id, principal.role.value)
    return principal


def require_role(*allowed_roles: Role):
    """Create a dependency requiring one of ``allowed_roles`` (exact match)."""

    async def role_checker(
        principal: Annotated[PrincipalContext, Depends(get_current_principal)],
    ) -> PrincipalContext:
        if principal.role not in allowed_roles:
            raise AuthorizationError("Insufficient permission", "role_required")
        return principal

    return role_checker


CurrentPrincipal = Annotated[PrincipalContext, Depends(get_current_principal)]
OptionalPrincipal = Annotated[PrincipalContext | None, Depends(get_optional_principal)]
AdminPrincipal = Annotated[PrincipalContext, Depends(require_role(Role.ADMIN))]
StudentPrincipal = Annotated[PrincipalContext, Depends(require_role(Role.STUDENT))]

"""Typed error taxonomy for the entitlement engine.

Every failure raised by the engine is one of five categories. The HTTP
status attached to each class is only consumed by the transport layer.
"""

from fastapi import status


class EngineError(Exception):
    """Base engine error."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "engine_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class AuthenticationError(EngineError):
    """No credential, or the credential could not be verified."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "authentication_required"

    def __init__(self, message: str = "Authentication required", code: str | None = None):
        super().__init__(message, code)


class AuthorizationError(EngineError):
    """Valid principal without entitlement to the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "not_authorized"

    def __init__(self, message: str = "Not authorized", code: str | None = None):
        super().__init__(message, code)


class ConflictError(EngineError):
    """Request would violate a uniqueness or entitlement invariant."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class NotFoundError(EngineError):
    """Referenced resource, course or payment does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class InvalidStateError(EngineError):
    """Transition not permitted from the current state."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "invalid_state"

# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Credential verification and principal lookup."""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from jose import JWTError

from coursegate.core.errors import AuthenticationError
from coursegate.core.logging import get_logger

from .models import UserRecord
from .principal import PrincipalContext
from .security import decode_access_token


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


class UserDirectory(Protocol):
    """Read access to the account store."""

    async def get_user(self, user_id: UUID) -> UserRecord | None: ...


class CassandraUserDirectory:
    """User directory backed by the ``users`` table."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._get_user = self.session.prepare(f"""
            SELECT id, role, is_active, enrolled_courses
            FROM {self.keyspace}.users
            WHERE id = ?
        """)

    async def get_user(self, user_id: UUID) -> UserRecord | None:
        result = await self.session.aexecute(self._get_user, [user_id])
        row = result.one()
        return UserRecord.from_row(row) if row else None


class CredentialVerifier:
    """Turns a bearer token into a PrincipalContext.

    The role and active flag come from the user directory, not from the
    token claims, so a block or role change takes effect on the next
    request instead of when the token expires.
    """

    def __init__(self, directory: UserDirectory):
        self.directory = directory

    async def verify(self, bearer_token: str | None) -> PrincipalContext:
        """Verify a bearer token and resolve the principal.

        Raises:
            AuthenticationError: Missing, malformed, expired token, or unknown user
        """
        if not bearer_token:
            raise AuthenticationError("Access token not provided", "token_missing")

        try:
            payload = decode_access_token(bearer_token)
            user_id = UUID(str(payload["sub"]))
        except (JWTError, ValueError) as e:
            raise AuthenticationError("Invalid or expired token", "token_invalid") from e

        return await self.load_principal(user_id)

    async def load_principal(self, user_id: UUID) -> PrincipalContext:
        """Resolve the current principal state for ``user_id``.

        Raises:
            AuthenticationError: If the user does not exist
        """
        user = await self.directory.get_user(user_id)
        if user is None:
            logger.warning("principal_not_found", principal_id=str(user_id))
            raise AuthenticationError("User not found", "principal_not_found")

        return user.to_principal()

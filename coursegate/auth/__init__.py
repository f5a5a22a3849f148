"""Authentication module.

Resolves the caller's PrincipalContext from a bearer credential:
- Role: STUDENT, TEACHER, ADMIN
- Active flag read from the user directory on every request
"""

from .permissions import Role, has_permission
from .principal import PrincipalContext
from .service import CassandraUserDirectory, CredentialVerifier, UserDirectory


__all__ = [
    "CassandraUserDirectory",
    "CredentialVerifier",
    "PrincipalContext",
    "Role",
    "UserDirectory",
    "has_permission",
]

"""User directory schema.

The user directory is owned by the account service; the engine reads the
role and active flag and maintains the ``enrolled_courses`` side of the
entitlement relationship.
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from .permissions import Role
from .principal import PrincipalContext


USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    role TEXT,
    is_active BOOLEAN,
    enrolled_courses SET<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

AUTH_TABLES_CQL = [USERS_TABLE_CQL]


@dataclass
class UserRecord:
    """Slice of a user row the engine cares about."""

    id: UUID
    role: Role
    is_active: bool = True
    enrolled_courses: set[UUID] = field(default_factory=set)

    @classmethod
    def from_row(cls, row: Any) -> "UserRecord":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            role=Role(row.role),
            # NULL means the flag was never written: accounts start active
            is_active=row.is_active is not False,
            enrolled_courses=set(row.enrolled_courses or ()),
        )

    def to_principal(self) -> PrincipalContext:
        return PrincipalContext(id=self.id, role=self.role, active=self.is_active)

"""Authenticated caller identity."""

from dataclasses import dataclass
from uuid import UUID

from .permissions import Role


@dataclass(frozen=True)
class PrincipalContext:
    """Identity and role of the caller for the duration of one request.

    Built from a verified credential and never persisted. Inactive
    principals are treated as unauthenticated by every access decision.
    """

    id: UUID
    role: Role
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

"""Roles for course platform principals.

Hierarchical levels:
- ADMIN (level 2): Full system access, may edit any course content
- TEACHER (level 1): Owns and edits their own courses
- STUDENT (level 0): Accesses courses they are enrolled in
"""

from enum import Enum


class Role(str, Enum):
    """Principal roles with hierarchical levels."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[Role, int] = {
    Role.STUDENT: 0,
    Role.TEACHER: 1,
    Role.ADMIN: 2,
}


def get_role_level(role: Role | str) -> int:
    """Get the permission level for a role.

    Unknown role strings get level -1, below every real role.
    """
    if isinstance(role, str):
        try:
            role = Role(role)
        except ValueError:
            return -1
    return ROLE_HIERARCHY.get(role, -1)


def has_permission(role: Role | str, required_role: Role | str) -> bool:
    """Check if ``role`` is at least ``required_role``.

    Examples:
        >>> has_permission(Role.ADMIN, Role.TEACHER)
        True
        >>> has_permission("student", "teacher")
        False
    """
    return get_role_level(role) >= get_role_level(required_role) >= 0


def is_admin(role: Role | str) -> bool:
    """Check if role is ADMIN."""
    return role == Role.ADMIN or role == Role.ADMIN.value


def is_teacher(role: Role | str) -> bool:
    """Check if role is TEACHER."""
    return role == Role.TEACHER or role == Role.TEACHER.value


def is_student(role: Role | str) -> bool:
    """Check if role is STUDENT."""
    return role == Role.STUDENT or role == Role.STUDENT.value

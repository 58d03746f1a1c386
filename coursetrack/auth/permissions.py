"""Roles and role checks.

There are two roles and they do not form a hierarchy: a teacher manages the
courses they own, a student enrolls in courses and records progress. A role
is chosen at registration and never changes afterwards.
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles."""

    STUDENT = "student"
    TEACHER = "teacher"


def parse_role(role: UserRole | str) -> UserRole | None:
    """Return the matching role, or None for unknown values."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def has_role(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check that a caller holds exactly the required role.

    Examples:
        >>> has_role("teacher", UserRole.TEACHER)
        True
        >>> has_role(UserRole.TEACHER, "student")
        False
        >>> has_role("admin", "teacher")
        False
    """
    parsed = parse_role(user_role)
    return parsed is not None and parsed == parse_role(required_role)


def is_teacher(role: UserRole | str) -> bool:
    """Check if role is TEACHER."""
    return has_role(role, UserRole.TEACHER)


def is_student(role: UserRole | str) -> bool:
    """Check if role is STUDENT."""
    return has_role(role, UserRole.STUDENT)

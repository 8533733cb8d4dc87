"""User roles and permissions."""

from enum import Enum


class Role(str, Enum):
    """User roles in the back office."""

    ADMIN = "ADMIN"  # Full access, manages accounts and the catalog
    USER = "USER"  # Day-to-day operations: students, enrollments, payments


# Permissions by role
ROLE_PERMISSIONS = {
    Role.ADMIN: [
        "users:write",
        "students:write",
        "students:delete",
        "students:import",
        "courses:write",
        "enrollments:write",
        "enrollments:delete",
        "payments:write",
        "payments:delete",
    ],
    Role.USER: [
        "students:write",
        "students:import",
        "enrollments:write",
        "payments:write",
    ],
}


def has_permission(role: Role, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(Role(role), [])

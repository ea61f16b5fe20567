# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

This module contains pure functions mapping account roles to permissions and
checking an actor's role or ownership before a state-changing operation.
"""

from typing import List, Dict, Iterable, Optional
from dataclasses import dataclass, field

from models.entities import UserContext
from models.enums import UserRole


_COMMON_PERMISSIONS = [
    "user:read",
    "wallet:read",
    "resource:read",
    "resource_request:read",
    "resource_request:update",
    "donation:create",
    "donation:read",
    "donation:update",
    "volunteer:read",
    "emergency:read",
    "notification:read",
    "notification:update",
]

ROLE_PERMISSIONS: Dict[UserRole, List[str]] = {
    UserRole.RESIDENT: _COMMON_PERMISSIONS + [
        "volunteer:create",
    ],
    UserRole.FIRE_STATION: _COMMON_PERMISSIONS + [
        "resource_request:create",
        "emergency:create",
        "emergency:update",
        "volunteer:update",
        "resource:manage",
    ],
    UserRole.NGO: _COMMON_PERMISSIONS + [
        "resource:manage",
    ],
}


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = field(default_factory=list)


def permissions_for_role(role: str) -> List[str]:
    """
    Resolve the permission list for a role.

    Args:
        role: Role value or UserRole member

    Returns:
        Sorted list of permission strings

    Raises:
        ValueError: If the role is not a known UserRole
    """
    user_role = UserRole(role)
    return sorted(set(ROLE_PERMISSIONS[user_role]))


def check_permission(user_context: UserContext, required_permission: str) -> AuthorizationResult:
    """
    Check if user has a specific permission.

    Args:
        user_context: User context with permissions
        required_permission: Permission string to check

    Returns:
        AuthorizationResult indicating if permission is granted
    """
    if required_permission in user_context.permissions:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Role {user_context.role} is not allowed to perform {required_permission}",
        missing_permissions=[required_permission]
    )


def check_role(user_context: UserContext, allowed_roles: Iterable[UserRole]) -> AuthorizationResult:
    """Check the actor holds one of the given roles."""
    allowed = [UserRole(role).value for role in allowed_roles]
    if user_context.role in allowed:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Only {' or '.join(allowed)} accounts may perform this operation"
    )


def check_ownership(user_context: UserContext, owner_id: str, subject: str) -> AuthorizationResult:
    """Check the actor is the owner of an entity."""
    if user_context.user_id == owner_id:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Only the {subject} may perform this operation"
    )

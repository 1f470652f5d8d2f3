"""Centralised capability checks for mutating operations."""

from typing import Iterable, Optional
from uuid import UUID

from ..models.user import User, UserRole
from .exceptions import AuthorizationError


def authorize(
    requester: User,
    owner_id: Optional[UUID] = None,
    required_role: Optional[UserRole] = None,
) -> None:
    """
    Check that ``requester`` may act on a resource.

    Admins always pass. Otherwise the requester passes when they own the
    resource, or when no owner is given and they hold ``required_role``.

    Args:
        requester: Authenticated user
        owner_id: Owner of the target resource, if it has one
        required_role: Role that grants access without ownership

    Raises:
        AuthorizationError: If none of the rules grant access
    """
    if requester.role == UserRole.ADMIN:
        return

    if owner_id is not None and requester.id == owner_id:
        return

    if owner_id is None and required_role is not None and requester.role == required_role:
        return

    raise AuthorizationError(
        "Not authorized to perform this action",
        required_role=required_role.value if required_role else None,
    )


def require_role(requester: User, roles: Iterable[UserRole]) -> None:
    """Require one of ``roles``; admins always pass."""
    allowed = list(roles)
    if requester.role == UserRole.ADMIN or any(requester.role == role for role in allowed):
        return

    raise AuthorizationError(
        "Insufficient role for this action",
        required_role=",".join(sorted(role.value for role in allowed)),
    )

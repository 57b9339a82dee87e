"""
core.domain.access — Permission guards shared by every service layer.

Views stay thin: they pass ``request.user`` into the service, and the
service calls ``require_permission`` before touching any data.  Role
names are informational only (JWT claims, API payloads, logs); access
control always goes through ``user.has_perm()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User


def require_permission(user: User, *perms: str, message: str = "") -> None:
    """
    Raise ``PermissionDenied`` unless the user holds at least one of
    ``perms`` (OR-logic).

    Example::

        require_permission(user, f"pings.{PingsPerms.CAN_APPROVE_CLAIM}")
    """
    if user is not None and user.is_authenticated:
        for perm in perms:
            if user.has_perm(perm):
                return
    raise PermissionDenied(
        message or f"Missing required permission: {', '.join(perms)}."
    )

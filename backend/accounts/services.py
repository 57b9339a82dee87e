"""
Accounts Service Layer.

Views stay thin: they validate input through serializers, call a
service method, and wrap the result in a DRF ``Response``.

- ``AuthenticationService``  — login bookkeeping.
- ``UserManagementService``  — list / create / re-role / delete operators.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.audit import record_action
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.models import AuditAction
from core.permissions_constants import AccountsPerms, perm

from .models import Role

User = get_user_model()
logger = logging.getLogger(__name__)

_MANAGE_USERS = perm("accounts", AccountsPerms.CAN_MANAGE_USERS)


# ═══════════════════════════════════════════════════════════════════
#  Authentication Service
# ═══════════════════════════════════════════════════════════════════


class AuthenticationService:
    """Post-authentication bookkeeping for successful logins."""

    @staticmethod
    @transaction.atomic
    def record_login(user: User) -> None:
        """Stamp ``last_login`` and append a LOGIN audit entry."""
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        record_action(
            actor=user,
            action=AuditAction.LOGIN,
            entity="user",
            entity_id=user.pk,
        )
        logger.info("User %s logged in", user.username)


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on operator accounts.

    Every method requires ``accounts.can_manage_users`` and writes one
    audit entry per mutation.
    """

    @staticmethod
    def list_users(actor: User) -> QuerySet[User]:
        require_permission(actor, _MANAGE_USERS)
        return User.objects.select_related("role").order_by("username")

    @staticmethod
    def get_user(user_id: int) -> User:
        try:
            return User.objects.select_related("role").get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    @transaction.atomic
    def create_user(validated_data: dict[str, Any], actor: User) -> User:
        """
        Create an operator with the given role.

        Raises
        ------
        Conflict
            If the username is already taken.
        """
        require_permission(actor, _MANAGE_USERS)

        role = Role.objects.get(pk=validated_data["role_id"])
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=validated_data["username"],
                    password=validated_data["password"],
                    email=validated_data.get("email", ""),
                )
        except IntegrityError:
            raise Conflict(f"Username '{validated_data['username']}' is already taken.")

        user.role = role
        user.save(update_fields=["role"])

        record_action(
            actor=actor,
            action=AuditAction.CREATE,
            entity="user",
            entity_id=user.pk,
            details={"username": user.username, "role": role.name},
        )
        logger.info("User %s created with role %s by %s", user.username, role.name, actor)
        return user

    @staticmethod
    @transaction.atomic
    def assign_role(*, user_id: int, role_id: int, performed_by: User) -> User:
        require_permission(performed_by, _MANAGE_USERS)

        target_user = UserManagementService.get_user(user_id)
        try:
            new_role = Role.objects.get(pk=role_id)
        except Role.DoesNotExist:
            raise NotFound(f"Role with id {role_id} not found.")

        previous = target_user.role.name if target_user.role else None
        target_user.role = new_role
        target_user.save(update_fields=["role"])

        # Invalidate permission cache
        if hasattr(target_user, "_perm_cache"):
            del target_user._perm_cache

        record_action(
            actor=performed_by,
            action=AuditAction.UPDATE,
            entity="user",
            entity_id=target_user.pk,
            details={"role": {"from": previous, "to": new_role.name}},
        )
        return target_user

    @staticmethod
    @transaction.atomic
    def delete_user(*, user_id: int, performed_by: User) -> None:
        require_permission(performed_by, _MANAGE_USERS)

        target_user = UserManagementService.get_user(user_id)
        if target_user.pk == performed_by.pk:
            raise DomainError("You cannot delete your own account.")

        username = target_user.username
        target_user.delete()
        record_action(
            actor=performed_by,
            action=AuditAction.DELETE,
            entity="user",
            entity_id=user_id,
            details={"username": username},
        )
        logger.info("User %s deleted by %s", username, performed_by)

"""
Accounts app serializers.

Request and Response serializers for the accounts API.  Serializers
handle field definitions and input validation only; domain rules live
in ``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    SimpleJWT serializer that injects RBAC claims (``role``,
    ``hierarchy_level``, ``permissions_list``) into the token payload
    and exposes the authenticated user as ``self.user`` for the view.
    """

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role.name if user.role else None
        token["hierarchy_level"] = user.role.hierarchy_level if user.role else 0
        token["permissions_list"] = user.permissions_list
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        user = authenticate(
            request=self.context.get("request"),
            username=attrs.get(self.username_field),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  Role / User Serializers
# ═══════════════════════════════════════════════════════════════════


class RoleListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ["id", "name", "description", "hierarchy_level"]
        read_only_fields = fields


class UserListSerializer(serializers.ModelSerializer):
    """Row shape for the admin user list."""

    role_name = serializers.CharField(
        source="role.name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "is_active",
            "is_superuser",
            "role",
            "role_name",
            "date_joined",
            "last_login",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (login response, ``me``, user management).

    ``permissions`` is a flat list such as
    ``['pings.add_ping', 'pings.can_approve_claim', ...]`` that the
    admin UI uses to show or hide controls.
    """

    role_detail = RoleListSerializer(source="role", read_only=True)
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "is_active",
            "is_superuser",
            "date_joined",
            "role",
            "role_detail",
            "permissions",
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
    )
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    role_id = serializers.IntegerField()

    def validate_role_id(self, value: int) -> int:
        if not Role.objects.filter(pk=value).exists():
            raise serializers.ValidationError(f"Role with id {value} does not exist.")
        return value


class AssignRoleSerializer(serializers.Serializer):
    role_id = serializers.IntegerField(
        help_text="PK of the Role to assign to this user.",
    )

    def validate_role_id(self, value: int) -> int:
        if not Role.objects.filter(pk=value).exists():
            raise serializers.ValidationError(f"Role with id {value} does not exist.")
        return value

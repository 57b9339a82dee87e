"""
Accounts app views.

Thin views: validate input via serializers, delegate to the service
layer, return the result wrapped in a DRF ``Response``.

View Map
--------
- ``LoginView``    — POST /auth/login/
- ``MeView``       — GET /me/
- ``UserViewSet``  — /users/  (list, create, destroy, role)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    AssignRoleSerializer,
    CustomTokenObtainPairSerializer,
    UserCreateSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from .services import AuthenticationService, UserManagementService


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Returns ``{"access", "refresh", "user"}`` on
    success, 400 ``"Invalid credentials."`` otherwise.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: OpenApiResponse(description="Token pair plus user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)
        AuthenticationService.record_login(serializer.user)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


class MeView(APIView):
    """GET /api/accounts/me/ → current user with role and permissions."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        return Response(UserDetailSerializer(request.user).data)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Operator management; every action requires
    ``accounts.can_manage_users`` (checked in the service layer).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List operators",
        responses={200: UserListSerializer(many=True)},
        tags=["Users"],
    )
    def list(self, request: Request) -> Response:
        users = UserManagementService.list_users(request.user)
        return Response(UserListSerializer(users, many=True).data)

    @extend_schema(
        summary="Create an operator",
        request=UserCreateSerializer,
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="User created."),
            409: OpenApiResponse(description="Username already taken."),
        },
        tags=["Users"],
    )
    def create(self, request: Request) -> Response:
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.create_user(serializer.validated_data, request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Delete an operator",
        responses={
            204: OpenApiResponse(description="Deleted."),
            400: OpenApiResponse(description="Cannot delete yourself."),
        },
        tags=["Users"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        UserManagementService.delete_user(user_id=int(pk), performed_by=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Change an operator's role",
        request=AssignRoleSerializer,
        responses={200: UserDetailSerializer},
        tags=["Users"],
    )
    @action(detail=True, methods=["patch"], url_path="role")
    def role(self, request: Request, pk: str = None) -> Response:
        serializer = AssignRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.assign_role(
            user_id=int(pk),
            role_id=serializer.validated_data["role_id"],
            performed_by=request.user,
        )
        return Response(UserDetailSerializer(user).data)

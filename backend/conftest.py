"""
Pytest fixtures shared by the plain-pytest test modules.

``TestCase`` suites build their data with ``tests.factories``; these
fixtures cover the function-style tests that only need a client and an
operator account.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Build operator accounts: ``create_user(username="ops", role=editor)``.
    Unnamed calls get ``operator1``, ``operator2``, ...
    """
    from accounts.models import User

    created = 0

    def _build(
        *,
        username: str | None = None,
        password: str = "Operator!Pass1",
        role=None,
        is_active: bool = True,
        **extra,
    ) -> User:
        nonlocal created
        created += 1
        username = username or f"operator{created}"
        extra.setdefault("email", f"{username}@pinghunt.test")
        return User.objects.create_user(
            username=username,
            password=password,
            role=role,
            is_active=is_active,
            **extra,
        )

    return _build


@pytest.fixture()
def auth_header(create_user):
    """
    Create an operator and return ``{"Authorization": "Bearer <access>"}``
    for it.  Accepts the same keyword arguments as ``create_user``.
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _bearer(**user_kwargs) -> dict[str, str]:
        user = create_user(**user_kwargs)
        return {"Authorization": f"Bearer {AccessToken.for_user(user)}"}

    return _bearer

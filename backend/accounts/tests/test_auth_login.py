"""
Integration tests — operator login and the ``me`` endpoint.

Endpoints under test:
    POST /api/accounts/auth/login/   (accounts:login)
    GET  /api/accounts/me/           (accounts:me)
"""

from __future__ import annotations

import pytest
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from core.models import AuditAction, AuditLog
from tests.factories import PASSWORD, make_user, seed_roles


class TestLogin(TestCase):

    @classmethod
    def setUpTestData(cls):
        admin_role, _ = seed_roles()
        cls.user = make_user("login_admin", admin_role)

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("accounts:login")

    def _login(self, username, password):
        return self.client.post(self.url, {"username": username, "password": password}, format="json")

    def test_login_returns_token_pair_and_user(self):
        resp = self._login("login_admin", PASSWORD)

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)
        self.assertEqual(resp.data["user"]["username"], "login_admin")
        self.assertEqual(resp.data["user"]["role_detail"]["name"], "Admin")

    def test_access_token_carries_role_claims(self):
        resp = self._login("login_admin", PASSWORD)

        token = AccessToken(resp.data["access"])
        self.assertEqual(token["role"], "Admin")
        self.assertIn("pings.can_approve_claim", token["permissions_list"])

    def test_login_is_audited(self):
        self._login("login_admin", PASSWORD)

        entry = AuditLog.objects.get(action=AuditAction.LOGIN)
        self.assertEqual(entry.actor_id, self.user.pk)
        self.assertEqual(entry.entity, "user")
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_wrong_password_is_rejected(self):
        resp = self._login("login_admin", "wrong-password")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Invalid credentials.", str(resp.data))
        self.assertFalse(AuditLog.objects.filter(action=AuditAction.LOGIN).exists())

    def test_unknown_user_is_rejected(self):
        resp = self._login("nobody", PASSWORD)

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_fields_are_rejected(self):
        resp = self.client.post(self.url, {"username": "login_admin"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class TestMe(TestCase):

    @classmethod
    def setUpTestData(cls):
        _, editor_role = seed_roles()
        cls.user = make_user("me_editor", editor_role)

    def setUp(self):
        self.client = APIClient()

    def test_me_with_bearer_token(self):
        login = self.client.post(
            reverse("accounts:login"),
            {"username": "me_editor", "password": PASSWORD},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        resp = self.client.get(reverse("accounts:me"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["username"], "me_editor")
        self.assertIn("pings.add_ping", resp.data["permissions"])
        self.assertNotIn("pings.can_approve_claim", resp.data["permissions"])

    def test_me_requires_authentication(self):
        resp = self.client.get(reverse("accounts:me"))

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


@pytest.mark.django_db
def test_me_accepts_plain_access_token(api_client, auth_header):
    header = auth_header(username="token_only")
    api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])

    resp = api_client.get(reverse("accounts:me"))

    assert resp.status_code == status.HTTP_200_OK
    assert resp.data["username"] == "token_only"
    assert resp.data["role"] is None
    assert resp.data["permissions"] == []


@pytest.mark.django_db
def test_inactive_user_cannot_log_in(api_client, create_user):
    create_user(username="dormant", password="Dormant!Pass1", is_active=False)

    resp = api_client.post(
        reverse("accounts:login"),
        {"username": "dormant", "password": "Dormant!Pass1"},
        format="json",
    )

    assert resp.status_code == status.HTTP_400_BAD_REQUEST

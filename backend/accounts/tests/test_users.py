"""
Integration tests — operator management under /api/accounts/users/.

Only Admins (``accounts.can_manage_users``) may list, create, re-role
or delete operators; every mutation leaves an audit row.
"""

from __future__ import annotations

import json

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.models import AuditAction, AuditLog
from tests.factories import make_user, seed_roles

User = get_user_model()


class TestUserManagement(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin_role, cls.editor_role = seed_roles()
        cls.admin = make_user("ops_admin", cls.admin_role)
        cls.editor = make_user("ops_editor", cls.editor_role)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def test_list_users(self):
        resp = self.client.get(reverse("accounts:user-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["username"] for row in resp.data], ["ops_admin", "ops_editor"])
        self.assertEqual(resp.data[1]["role_name"], "Editor")

    def test_create_user(self):
        resp = self.client.post(
            reverse("accounts:user-list"),
            {"username": "new_editor", "password": "L0ngEnough!", "role_id": self.editor_role.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        created = User.objects.get(username="new_editor")
        self.assertEqual(created.role, self.editor_role)
        self.assertTrue(created.check_password("L0ngEnough!"))
        self.assertNotIn("password", resp.data)
        entry = AuditLog.objects.get(action=AuditAction.CREATE, entity="user")
        self.assertEqual(entry.entity_id, str(created.pk))
        self.assertEqual(json.loads(entry.details)["role"], "Editor")

    def test_duplicate_username_conflicts(self):
        resp = self.client.post(
            reverse("accounts:user-list"),
            {"username": "ops_editor", "password": "L0ngEnough!", "role_id": self.editor_role.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_short_password_is_rejected(self):
        resp = self.client.post(
            reverse("accounts:user-list"),
            {"username": "shorty", "password": "abc", "role_id": self.editor_role.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", resp.data)

    def test_unknown_role_is_rejected(self):
        resp = self.client.post(
            reverse("accounts:user-list"),
            {"username": "roleless", "password": "L0ngEnough!", "role_id": 9999},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("role_id", resp.data)

    def test_change_role(self):
        target = make_user("promote_me", self.editor_role)

        resp = self.client.patch(
            reverse("accounts:user-role", args=[target.pk]),
            {"role_id": self.admin_role.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        target.refresh_from_db()
        self.assertEqual(target.role, self.admin_role)
        entry = AuditLog.objects.get(action=AuditAction.UPDATE, entity="user")
        self.assertEqual(json.loads(entry.details)["role"], {"from": "Editor", "to": "Admin"})

    def test_change_role_of_unknown_user(self):
        resp = self.client.patch(
            reverse("accounts:user-role", args=[9999]),
            {"role_id": self.admin_role.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_user(self):
        target = make_user("delete_me", self.editor_role)

        resp = self.client.delete(reverse("accounts:user-detail", args=[target.pk]))

        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=target.pk).exists())
        entry = AuditLog.objects.get(action=AuditAction.DELETE, entity="user")
        self.assertEqual(json.loads(entry.details), {"username": "delete_me"})

    def test_cannot_delete_self(self):
        resp = self.client.delete(reverse("accounts:user-detail", args=[self.admin.pk]))

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())

    def test_editor_is_forbidden(self):
        self.client.force_authenticate(self.editor)

        self.assertEqual(self.client.get(reverse("accounts:user-list")).status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.delete(reverse("accounts:user-detail", args=[self.admin.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(AuditLog.objects.filter(action=AuditAction.DELETE).exists())

    def test_anonymous_is_unauthorized(self):
        self.client.force_authenticate(None)

        resp = self.client.get(reverse("accounts:user-list"))

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

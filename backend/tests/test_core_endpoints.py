"""
Integration tests for the core endpoints.

- GET /api/core/health/
- GET /api/core/audit-logs/
"""

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

import pinghunt
from core.domain.audit import record_action
from core.domain.exceptions import Conflict
from core.models import AuditAction, AuditLog

from .factories import make_role, make_user, seed_roles


class TestHealth(TestCase):

    def test_health_is_public(self):
        resp = APIClient().get(reverse("core:health"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["ok"])
        self.assertEqual(resp.data["service"], "pinghunt")
        self.assertEqual(resp.data["version"], pinghunt.__version__)
        self.assertIn("timestamp", resp.data)

    def test_health_ignores_bad_credentials(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        resp = client.get(reverse("core:health"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)


class TestAuditLogEndpoint(TestCase):

    @classmethod
    def setUpTestData(cls):
        admin_role, editor_role = seed_roles()
        cls.admin = make_user("audit_admin", admin_role)
        cls.editor = make_user("audit_editor", editor_role)
        cls.nobody = make_user("audit_nobody", make_role("Observer"))

        record_action(actor=cls.admin, action=AuditAction.CREATE, entity="ping", entity_id=1)
        record_action(actor=cls.admin, action=AuditAction.UPDATE, entity="ping", entity_id=1)
        record_action(actor=cls.admin, action=AuditAction.REVEAL_KEY, entity="ping", entity_id=1)
        record_action(actor=cls.editor, action=AuditAction.LOGIN, entity="user", entity_id=cls.editor.pk)

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("core:audit-logs")

    def test_admin_reads_newest_first(self):
        self.client.force_authenticate(self.admin)

        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 4)
        ids = [row["id"] for row in resp.data["results"]]
        self.assertEqual(ids, sorted(ids, reverse=True))

    def test_pagination(self):
        self.client.force_authenticate(self.admin)

        resp = self.client.get(self.url, {"limit": 2, "offset": 1})

        self.assertEqual(resp.data["count"], 4)
        self.assertEqual(len(resp.data["results"]), 2)

    def test_filter_by_entity_and_action(self):
        self.client.force_authenticate(self.admin)

        resp = self.client.get(self.url, {"entity": "ping", "action": AuditAction.REVEAL_KEY})

        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["results"][0]["actor_username"], "audit_admin")

    def test_invalid_limit_is_rejected(self):
        self.client.force_authenticate(self.admin)

        resp = self.client.get(self.url, {"limit": 0})

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_role_without_audit_permission_is_forbidden(self):
        self.client.force_authenticate(self.nobody)

        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_unauthorized(self):
        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_entries_are_append_only(self):
        entry = AuditLog.objects.first()
        entry.details = "tampered"

        with self.assertRaises(Conflict):
            entry.save()

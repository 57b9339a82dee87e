"""
Core app services.

- ``AuditLogQueryService`` — paginated read of the audit trail.
- ``HealthService``        — liveness payload for load balancers.
"""

from __future__ import annotations

from typing import Any

from django.db.models import QuerySet
from django.utils import timezone

import pinghunt

from core.domain.access import require_permission
from core.models import AuditLog
from core.permissions_constants import CorePerms, perm

_VIEW_AUDIT = perm("core", CorePerms.VIEW_AUDITLOG)


class AuditLogQueryService:

    @staticmethod
    def list_entries(
        actor,
        *,
        limit: int = 50,
        offset: int = 0,
        entity: str | None = None,
        action: str | None = None,
    ) -> tuple[QuerySet[AuditLog], int]:
        """Newest first.  Returns ``(page, total)``."""
        require_permission(actor, _VIEW_AUDIT)
        qs = AuditLog.objects.select_related("actor")
        if entity:
            qs = qs.filter(entity=entity)
        if action:
            qs = qs.filter(action=action)
        return qs[offset:offset + limit], qs.count()


class HealthService:

    SERVICE_NAME = "pinghunt"

    @staticmethod
    def status() -> dict[str, Any]:
        return {
            "ok": True,
            "service": HealthService.SERVICE_NAME,
            "version": pinghunt.__version__,
            "timestamp": timezone.now(),
        }

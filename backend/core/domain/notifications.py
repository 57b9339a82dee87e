"""
core.domain.notifications — Broadcast of domain events.

Centralises event emission so every app uses one entry-point rather
than talking to a transport directly.

Design decisions
----------------
* **Pluggable backend** — the transport is resolved from
  ``settings.NOTIFICATION_BACKEND`` (dotted path).  The default
  ``LoggingNotificationBackend`` only writes a log line; a websocket or
  push backend can be dropped in without touching the services.
* **Fire after commit** — ``broadcast`` schedules delivery with
  ``transaction.on_commit`` so rolled-back work never notifies anyone.
* **Never fatal** — a failing backend is logged and swallowed; the
  mutation that triggered the event has already been committed.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.broadcast(
        event_type="claim_submitted",
        payload={"ping_id": ping.id},
    )
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

# ── Event-type → human-readable titles ───────────────────────────────
_EVENT_TEMPLATES: dict[str, str] = {
    "ping_created":    "New Ping Created",
    "ping_promoted":   "Next Ping Is Live",
    "claim_submitted": "Claim Submitted",
    "claim_approved":  "Claim Approved",
}


class LoggingNotificationBackend:
    """Default backend: records each event in the application log."""

    def send(self, *, event_type: str, title: str, payload: dict[str, Any]) -> None:
        logger.info("Event [%s] %s payload=%s", event_type, title, payload)


class NotificationService:
    """
    Stateless helper for broadcasting domain events.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def get_backend(cls):
        path = getattr(
            settings,
            "NOTIFICATION_BACKEND",
            "core.domain.notifications.LoggingNotificationBackend",
        )
        return import_string(path)()

    @classmethod
    def broadcast(cls, *, event_type: str, payload: dict[str, Any] | None = None) -> None:
        """
        Schedule delivery of ``event_type`` once the current transaction
        commits (immediately when no transaction is open).

        ``payload`` must only carry public data: ids, titles, statuses.
        """
        payload = dict(payload or {})
        title = _EVENT_TEMPLATES.get(event_type, event_type.replace("_", " ").title())

        def _deliver() -> None:
            try:
                cls.get_backend().send(event_type=event_type, title=title, payload=payload)
            except Exception:
                logger.exception("Notification backend failed for event_type=%s", event_type)

        transaction.on_commit(_deliver)

"""
Core app models.

Provides abstract base models and the append-only administrative audit
trail shared by every app.
"""

from django.conf import settings
from django.db import models

from core.domain.exceptions import Conflict


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class AuditAction(models.TextChoices):
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"
    DELETE = "DELETE", "Delete"
    APPROVE = "APPROVE", "Approve Claim"
    REVEAL_KEY = "REVEAL_KEY", "Reveal Prize Key"
    FUND_RETRY = "FUND_RETRY", "Retry Funding"
    LOGIN = "LOGIN", "Login"


class AuditLog(models.Model):
    """
    Append-only record of an administrative action.

    Rows are written by ``core.domain.audit.record_action`` and are never
    updated or deleted afterwards; ``save`` refuses to modify an existing
    row and ``delete`` always raises.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
        verbose_name="Actor",
    )
    # Kept alongside the FK so the entry stays readable after the user is gone.
    actor_username = models.CharField(
        max_length=150,
        blank=True,
        default="",
        verbose_name="Actor Username",
    )
    action = models.CharField(
        max_length=20,
        choices=AuditAction.choices,
        verbose_name="Action",
    )
    entity = models.CharField(max_length=50, verbose_name="Entity")
    entity_id = models.CharField(max_length=64, verbose_name="Entity ID")
    details = models.TextField(blank=True, default="", verbose_name="Details")
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Created At",
    )

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["entity", "entity_id"]),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.actor_username} {self.action} {self.entity}#{self.entity_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise Conflict("Audit log entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise Conflict("Audit log entries are append-only.")

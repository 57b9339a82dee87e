"""
Treasury app models.

``TreasuryTransferLog`` is the idempotency guard for on-chain funding:
at most one row exists per (ping, transfer_type), enforced by a database
unique constraint, so concurrent approvals can never move funds twice.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel
from core.permissions_constants import TreasuryPerms


class TransferType(models.TextChoices):
    FUNDING = "funding", "Prize Funding"


class TransferStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"


class TreasuryTransferLog(TimeStampedModel):
    ping = models.ForeignKey(
        "pings.Ping",
        on_delete=models.CASCADE,
        related_name="transfer_logs",
    )
    transfer_type = models.CharField(
        max_length=20,
        choices=TransferType.choices,
        default=TransferType.FUNDING,
    )
    lamports = models.BigIntegerField()
    destination = models.CharField(max_length=64)
    status = models.CharField(
        max_length=10,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
    )
    tx_sig = models.CharField(max_length=128, blank=True, default="")
    error = models.TextField(blank=True, default="")
    # Moves forward on every retry; the daily cap is computed on this date.
    reserved_at = models.DateTimeField(default=timezone.now, db_index=True)
    initiated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        verbose_name = "Treasury Transfer"
        verbose_name_plural = "Treasury Transfers"
        ordering = ["-created_at"]
        permissions = [
            (TreasuryPerms.CAN_RETRY_FUNDING, "Can re-trigger a failed funding transfer"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["ping", "transfer_type"],
                name="unique_transfer_per_ping_type",
            ),
        ]

    def __str__(self):
        return f"{self.transfer_type} for Ping #{self.ping_id}: {self.lamports} lamports [{self.status}]"

"""
Pings app models.

A ``Ping`` is a located, time-bounded prize.  Each one owns a freshly
generated prize wallet (public key in clear, secret encrypted at rest),
moves one way through ``unclaimed → pending → claimed``, and while
unclaimed holds a slot in the gap-free queue (``queue_position`` 1..N).

``ProximityCheck`` stores every location sample a claimant reports so
the anti-teleport heuristic can compare consecutive readings.
"""

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import TimeStampedModel
from core.permissions_constants import PingsPerms

HINT_LEVELS = (1, 2, 3)
MIN_PROXIMITY_RADIUS_M = 1
MAX_PROXIMITY_RADIUS_M = 20


class ClaimType(models.TextChoices):
    NFC = "nfc", "NFC Tap"
    PROXIMITY = "proximity", "GPS Proximity"


class ClaimStatus(models.TextChoices):
    UNCLAIMED = "unclaimed", "Unclaimed"
    PENDING = "pending", "Pending Approval"
    CLAIMED = "claimed", "Claimed"


class FundStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


def default_end_date():
    return timezone.now() + timedelta(days=365 * 100)


class Ping(TimeStampedModel):
    """
    A prize hunt location.

    ``prize`` is the display amount in SOL; ``prize_lamports`` is the
    canonical integer amount moved by the treasury.  The two are kept in
    step by the service layer (``round(prize * 10**9)``).
    """

    # ── Description ──────────────────────────────────────────────────
    title = models.CharField(max_length=200, verbose_name="Title")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    image_url = models.URLField(max_length=500, blank=True, default="", verbose_name="Image URL")
    location_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        verbose_name="Location Name",
        help_text="Resolved from the coordinates by the geocoding service.",
    )

    # ── Location ─────────────────────────────────────────────────────
    lat = models.DecimalField(max_digits=9, decimal_places=6, verbose_name="Latitude")
    lng = models.DecimalField(max_digits=9, decimal_places=6, verbose_name="Longitude")

    # ── Prize ────────────────────────────────────────────────────────
    prize = models.DecimalField(
        max_digits=20,
        decimal_places=9,
        default=0,
        verbose_name="Prize (SOL)",
    )
    prize_lamports = models.BigIntegerField(default=0, verbose_name="Prize (lamports)")

    # ── Claim rules ──────────────────────────────────────────────────
    claim_type = models.CharField(
        max_length=10,
        choices=ClaimType.choices,
        default=ClaimType.NFC,
        verbose_name="Claim Type",
    )
    proximity_radius = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        verbose_name="Proximity Radius (m)",
    )
    start_date = models.DateTimeField(default=timezone.now, verbose_name="Start Date")
    end_date = models.DateTimeField(default=default_end_date, verbose_name="End Date")
    active = models.BooleanField(default=True, verbose_name="Active")

    # ── Queue / claim state ──────────────────────────────────────────
    queue_position = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Queue Position",
        help_text="1 is the live ping.  NULL once claimed.",
    )
    claim_status = models.CharField(
        max_length=10,
        choices=ClaimStatus.choices,
        default=ClaimStatus.UNCLAIMED,
        verbose_name="Claim Status",
    )
    claimed_by = models.CharField(max_length=128, blank=True, default="", verbose_name="Claimed By")
    claim_submitted_at = models.DateTimeField(null=True, blank=True, verbose_name="Claim Submitted At")
    claimed_at = models.DateTimeField(null=True, blank=True, verbose_name="Claimed At")
    proof_url = models.URLField(max_length=500, blank=True, default="", verbose_name="Proof URL")
    claim_lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    claim_lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    claim_distance_m = models.FloatField(null=True, blank=True, verbose_name="Claim Distance (m)")

    # ── Prize wallet ─────────────────────────────────────────────────
    prize_public_key = models.CharField(max_length=64, blank=True, default="", verbose_name="Prize Wallet")
    prize_secret_enc = models.TextField(blank=True, default="", verbose_name="Encrypted Prize Secret")
    wallet_created_at = models.DateTimeField(null=True, blank=True)

    # ── Funding ──────────────────────────────────────────────────────
    fund_status = models.CharField(
        max_length=10,
        choices=FundStatus.choices,
        default=FundStatus.PENDING,
        verbose_name="Fund Status",
    )
    fund_tx_sig = models.CharField(max_length=128, blank=True, default="", verbose_name="Funding Tx")
    funded_at = models.DateTimeField(null=True, blank=True)

    # ── Hints ────────────────────────────────────────────────────────
    first_hint_free = models.BooleanField(default=False)
    hint1_text = models.TextField(blank=True, default="")
    hint2_text = models.TextField(blank=True, default="")
    hint3_text = models.TextField(blank=True, default="")
    hint1_price_usd = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    hint2_price_usd = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    hint3_price_usd = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_pings",
    )

    class Meta:
        verbose_name = "Ping"
        verbose_name_plural = "Pings"
        ordering = ["-active", "-created_at"]
        permissions = [
            (PingsPerms.CAN_APPROVE_CLAIM, "Can approve a pending claim"),
            (PingsPerms.CAN_REVEAL_PRIZE_KEY, "Can reveal a prize wallet secret"),
        ]
        indexes = [
            models.Index(fields=["active", "-created_at"]),
            models.Index(fields=["claim_status"]),
            models.Index(fields=["active", "claim_status"]),
            models.Index(fields=["queue_position"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        claim_type=ClaimType.PROXIMITY,
                        proximity_radius__gte=MIN_PROXIMITY_RADIUS_M,
                        proximity_radius__lte=MAX_PROXIMITY_RADIUS_M,
                    )
                    | Q(claim_type=ClaimType.NFC, proximity_radius__isnull=True)
                ),
                name="ping_radius_matches_claim_type",
            ),
        ]

    def __str__(self):
        return f"Ping #{self.pk}: {self.title} [{self.claim_status}]"

    # ── Hint helpers ─────────────────────────────────────────────────

    def hint_text(self, level: int) -> str:
        return getattr(self, f"hint{level}_text") or ""

    def hint_price_usd(self, level: int):
        return getattr(self, f"hint{level}_price_usd")

    def hint_is_free(self, level: int) -> bool:
        return level == 1 and self.first_hint_free

    def is_live(self, at=None) -> bool:
        """True when the ping is inside its start/end window."""
        at = at or timezone.now()
        return self.start_date <= at <= self.end_date


class ProximityCheck(models.Model):
    """One reported claimant location, accepted or not."""

    ping = models.ForeignKey(
        Ping,
        on_delete=models.CASCADE,
        related_name="proximity_checks",
    )
    claimant = models.CharField(
        max_length=128,
        db_index=True,
        help_text="Wallet address or handle; client IP when anonymous.",
    )
    lat = models.DecimalField(max_digits=9, decimal_places=6)
    lng = models.DecimalField(max_digits=9, decimal_places=6)
    distance_m = models.FloatField(null=True, blank=True)
    accepted = models.BooleanField(default=False)
    suspicious = models.BooleanField(default=False)
    reason = models.CharField(max_length=255, blank=True, default="")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Proximity Check"
        verbose_name_plural = "Proximity Checks"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["claimant", "-created_at"]),
        ]

    def __str__(self):
        verdict = "ok" if self.accepted else "rejected"
        return f"{self.claimant} @ Ping #{self.ping_id}: {verdict}"

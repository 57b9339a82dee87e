"""
Hints app models.

``HintSettings`` is a singleton (pk=1) holding the two payment
destinations and the token mint.  ``HintPurchase`` is an append-only
record of an unlocked hint; purchases are never revoked or refunded.
"""

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from pings.models import Ping


class HintSettings(models.Model):
    """Where hint payments go.  Always read through ``HintSettings.load()``."""

    SINGLETON_PK = 1

    treasury_wallet = models.CharField(max_length=64, blank=True, default="", verbose_name="Treasury Wallet")
    burn_wallet = models.CharField(max_length=64, blank=True, default="", verbose_name="Burn Wallet")
    token_mint = models.CharField(max_length=64, blank=True, default="", verbose_name="Token Mint")
    token_decimals = models.PositiveSmallIntegerField(
        default=6,
        help_text="Display only; on-chain amounts carry their own decimals.",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Hint Settings"
        verbose_name_plural = "Hint Settings"

    def __str__(self):
        return "Hint Settings"

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls) -> "HintSettings":
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj

    @property
    def is_configured(self) -> bool:
        return bool(self.treasury_wallet and self.burn_wallet and self.token_mint)


class HintPurchase(models.Model):
    ping = models.ForeignKey(
        Ping,
        on_delete=models.CASCADE,
        related_name="hint_purchases",
    )
    wallet_address = models.CharField(max_length=64, db_index=True)
    hint_level = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(3)],
    )
    paid_amount = models.DecimalField(
        max_digits=30,
        decimal_places=9,
        default=0,
        help_text="Token units actually transferred (0 for free hints).",
    )
    paid_usd = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tx_sig = models.CharField(max_length=128, null=True, blank=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Hint Purchase"
        verbose_name_plural = "Hint Purchases"
        ordering = ["hint_level", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["wallet_address", "ping", "hint_level"],
                name="unique_hint_purchase_per_wallet",
            ),
        ]
        indexes = [
            models.Index(fields=["wallet_address", "ping"]),
        ]

    def __str__(self):
        return f"{self.wallet_address} → Ping #{self.ping_id} hint {self.hint_level}"

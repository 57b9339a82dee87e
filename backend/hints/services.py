"""
Hints Service Layer.

- ``HintSettingsService`` — payment destinations and token mint.
- ``HintPurchaseService`` — progressive, idempotent hint unlocks paid
  for with an on-chain token transfer (or free for a flagged level 1).

Purchases are permanent.  A payment transaction can unlock exactly one
hint (``HintPurchase.tx_sig`` is unique).
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.db import IntegrityError, transaction

from core.domain.access import require_permission
from core.domain.audit import record_action
from core.domain.exceptions import Conflict, DomainError, ExternalServiceUnavailable, NotFound
from core.models import AuditAction
from core.permissions_constants import HintsPerms, perm
from pings.models import HINT_LEVELS, Ping

from . import oracle, verification
from .models import HintPurchase, HintSettings

logger = logging.getLogger(__name__)

_CHANGE_SETTINGS = perm("hints", HintsPerms.CHANGE_HINTSETTINGS)

SETTINGS_FIELDS = ("treasury_wallet", "burn_wallet", "token_mint", "token_decimals")


class HintSettingsService:

    @staticmethod
    def get_settings() -> HintSettings:
        return HintSettings.load()

    @staticmethod
    @transaction.atomic
    def update_settings(validated_data: dict[str, Any], actor) -> HintSettings:
        require_permission(actor, _CHANGE_SETTINGS)

        obj = HintSettings.load()
        changed = []
        for field in SETTINGS_FIELDS:
            if field in validated_data and getattr(obj, field) != validated_data[field]:
                setattr(obj, field, validated_data[field])
                changed.append(field)

        if changed:
            obj.save()
            record_action(
                actor=actor,
                action=AuditAction.UPDATE,
                entity="hint_settings",
                entity_id=obj.pk,
                details={"fields": changed},
            )
            logger.info("Hint settings updated by %s: %s", actor, ", ".join(changed))
        return obj


class HintPurchaseService:

    @staticmethod
    def purchase(
        ping_id: int,
        *,
        wallet_address: str,
        hint_level: int,
        tx_sig: str | None = None,
    ) -> dict[str, Any]:
        """
        Unlock ``hint_level`` of a ping for ``wallet_address``.

        Returns ``{"hint_level", "hint", "already_purchased"}``.  Buying a
        hint twice returns it again without charging or erroring.

        Raises:
            NotFound:                    unknown ping, or no hint at that level.
            Conflict:                    previous level not unlocked, or
                                         ``tx_sig`` already used.
            DomainError:                 paid hint without ``tx_sig``.
            ExternalVerificationFailure: the payment does not match.
            ExternalServiceUnavailable:  oracle/RPC down, or payments not
                                         configured.
        """
        if hint_level not in HINT_LEVELS:
            raise DomainError(f"Hint level must be one of {', '.join(map(str, HINT_LEVELS))}.")
        try:
            ping = Ping.objects.get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound("Ping not found.")

        text = ping.hint_text(hint_level)
        if not text:
            raise NotFound(f"Hint {hint_level} is not available for this ping.")

        owned = HintPurchase.objects.filter(ping=ping, wallet_address=wallet_address)
        if owned.filter(hint_level=hint_level).exists():
            return _unlocked(hint_level, text, already_purchased=True)

        if hint_level > 1 and not owned.filter(hint_level=hint_level - 1).exists():
            raise Conflict(f"Hint {hint_level - 1} must be purchased first.")

        if ping.hint_is_free(hint_level):
            return _record(ping, wallet_address, hint_level, text)

        if not tx_sig:
            raise DomainError("A payment transaction signature is required for this hint.")
        if HintPurchase.objects.filter(tx_sig=tx_sig).exists():
            raise Conflict("This transaction has already been used to purchase a hint.")

        price_usd = ping.hint_price_usd(hint_level)
        if price_usd is None or price_usd <= 0:
            raise DomainError(f"Hint {hint_level} has no price configured.")

        config = HintSettings.load()
        if not config.is_configured:
            raise ExternalServiceUnavailable("Hint payments are not configured.")

        token_price = oracle.fetch_token_price_usd(config.token_mint)
        expected = Decimal(price_usd) / token_price
        payment = verification.verify_payment(
            tx_sig,
            treasury_wallet=config.treasury_wallet,
            burn_wallet=config.burn_wallet,
            token_mint=config.token_mint,
            expected_amount=expected,
        )
        return _record(
            ping,
            wallet_address,
            hint_level,
            text,
            paid_amount=payment.total,
            paid_usd=price_usd,
            tx_sig=tx_sig,
        )

    @staticmethod
    def list_purchased(ping_id: int, wallet_address: str) -> list[dict[str, Any]]:
        """Per-level unlock state; texts only for purchased levels."""
        try:
            ping = Ping.objects.get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound("Ping not found.")

        purchased = set()
        if wallet_address:
            purchased = set(
                HintPurchase.objects
                .filter(ping=ping, wallet_address=wallet_address)
                .values_list("hint_level", flat=True)
            )

        levels = []
        for level in HINT_LEVELS:
            price = ping.hint_price_usd(level)
            owned = level in purchased
            levels.append({
                "level": level,
                "exists": bool(ping.hint_text(level)),
                "purchased": owned,
                "text": ping.hint_text(level) if owned else None,
                "price_usd": None if price is None else str(price),
                "free": ping.hint_is_free(level),
            })
        return levels


def _unlocked(level: int, text: str, *, already_purchased: bool) -> dict[str, Any]:
    return {"hint_level": level, "hint": text, "already_purchased": already_purchased}


def _record(
    ping: Ping,
    wallet_address: str,
    level: int,
    text: str,
    *,
    paid_amount: Decimal = Decimal(0),
    paid_usd: Decimal = Decimal(0),
    tx_sig: str | None = None,
) -> dict[str, Any]:
    try:
        with transaction.atomic():
            HintPurchase.objects.create(
                ping=ping,
                wallet_address=wallet_address,
                hint_level=level,
                paid_amount=paid_amount.quantize(Decimal("0.000000001"), rounding=ROUND_HALF_UP),
                paid_usd=paid_usd,
                tx_sig=tx_sig,
            )
    except IntegrityError:
        # Either the same purchase landed first or the
        # signature was used for another hint in the meantime.
        if HintPurchase.objects.filter(ping=ping, wallet_address=wallet_address, hint_level=level).exists():
            return _unlocked(level, text, already_purchased=True)
        raise Conflict("This transaction has already been used to purchase a hint.")

    logger.info(
        "Hint %s of Ping #%s unlocked for %s (%s)",
        level,
        ping.pk,
        wallet_address,
        tx_sig or "free",
    )
    return _unlocked(level, text, already_purchased=False)

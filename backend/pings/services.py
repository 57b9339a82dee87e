"""
Pings Service Layer.

Single source of truth for ping business rules.  Views validate input,
call one method here, and serialize the result.

- ``PingAdminService``   — create / update / delete, admin listings,
                           explicit prize-key reveal.
- ``PingPublicService``  — the publicly visible queue head, status
                           polling and pre-claim proximity checks.
- ``ClaimService``       — the claim state machine
                           (``unclaimed → pending → claimed``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.audit import record_action
from core.domain.exceptions import Conflict, DomainError, InvalidTransition, NotFound
from core.domain.notifications import NotificationService
from core.domain.transactions import atomic_transition, lock_for_update
from core.models import AuditAction
from core.permissions_constants import PingsPerms, perm
from treasury.models import TransferStatus, TreasuryTransferLog
from treasury.services import FundingOutcome, TreasuryFundingService

from . import geocoding
from .models import (
    HINT_LEVELS,
    MAX_PROXIMITY_RADIUS_M,
    MIN_PROXIMITY_RADIUS_M,
    ClaimStatus,
    ClaimType,
    FundStatus,
    Ping,
    ProximityCheck,
)
from .proximity import LocationSample, ProximityResult, validate_proximity
from .queue import QueueManager
from .wallet import PrizeWalletService, sol_to_lamports

logger = logging.getLogger(__name__)

_VIEW = perm("pings", PingsPerms.VIEW_PING)
_ADD = perm("pings", PingsPerms.ADD_PING)
_CHANGE = perm("pings", PingsPerms.CHANGE_PING)
_DELETE = perm("pings", PingsPerms.DELETE_PING)
_APPROVE = perm("pings", PingsPerms.CAN_APPROVE_CLAIM)
_REVEAL = perm("pings", PingsPerms.CAN_REVEAL_PRIZE_KEY)

_COORD_QUANTUM = Decimal("0.000001")
_HISTORY_SAMPLES = 10

# Fields an admin may write.  Wallet, queue and claim fields are service-owned.
EDITABLE_FIELDS = (
    "title", "description", "image_url",
    "lat", "lng", "prize",
    "claim_type", "proximity_radius",
    "start_date", "end_date", "active",
    "first_hint_free",
    "hint1_text", "hint2_text", "hint3_text",
    "hint1_price_usd", "hint2_price_usd", "hint3_price_usd",
)
# Frozen once a ping has been claimed.
FROZEN_WHEN_CLAIMED = ("prize", "lat", "lng", "claim_type", "proximity_radius")


def quantize_coordinate(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(_COORD_QUANTUM, rounding=ROUND_HALF_UP)


def public_queryset() -> QuerySet[Ping]:
    """Pings visible to the public: the active queue head, if not claimed."""
    return (
        Ping.objects
        .filter(queue_position=1, active=True)
        .exclude(claim_status=ClaimStatus.CLAIMED)
    )


# ═══════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════


def _normalize(state: dict[str, Any]) -> dict[str, Any]:
    """
    Apply cross-field rules to the merged ping state and return the
    normalized copy.  Raises ``DomainError`` on the first violation.
    """
    state = dict(state)

    for axis, bound in (("lat", 90), ("lng", 180)):
        value = state.get(axis)
        if value is None:
            raise DomainError(f"'{axis}' is required.")
        value = quantize_coordinate(value)
        if not -bound <= value <= bound:
            raise DomainError(f"'{axis}' must be between -{bound} and {bound}.")
        state[axis] = value

    start, end = state.get("start_date"), state.get("end_date")
    if start and end and end <= start:
        raise DomainError("'end_date' must be after 'start_date'.")

    prize = Decimal(str(state.get("prize") or 0))
    if prize < 0:
        raise DomainError("'prize' cannot be negative.")
    state["prize"] = prize

    if state.get("claim_type") == ClaimType.PROXIMITY:
        radius = state.get("proximity_radius")
        if radius is None:
            radius = settings.PROXIMITY_DEFAULT_RADIUS_M
        if not MIN_PROXIMITY_RADIUS_M <= radius <= MAX_PROXIMITY_RADIUS_M:
            raise DomainError(
                f"'proximity_radius' must be between {MIN_PROXIMITY_RADIUS_M} "
                f"and {MAX_PROXIMITY_RADIUS_M} meters."
            )
        state["proximity_radius"] = radius
    else:
        state["claim_type"] = ClaimType.NFC
        state["proximity_radius"] = None

    for level in HINT_LEVELS:
        text = (state.get(f"hint{level}_text") or "").strip()
        state[f"hint{level}_text"] = text
        if not text:
            continue
        if level > 1 and not state.get(f"hint{level - 1}_text"):
            raise DomainError(f"Hint {level} requires hint {level - 1}.")
        if level == 1 and state.get("first_hint_free"):
            state["hint1_price_usd"] = None
            continue
        price = state.get(f"hint{level}_price_usd")
        if price is None or Decimal(str(price)) <= 0:
            raise DomainError(f"Hint {level} needs a positive USD price.")

    return state


# ═══════════════════════════════════════════════════════════════════
#  Admin operations
# ═══════════════════════════════════════════════════════════════════


class PingAdminService:

    @staticmethod
    def create_ping(validated_data: dict[str, Any], actor) -> Ping:
        """
        Create a ping, generate and encrypt its prize wallet, and append
        it to the queue.  Funds are not moved until a claim is approved.
        """
        require_permission(actor, _ADD)

        state = _normalize({f: validated_data.get(f) for f in EDITABLE_FIELDS if f in validated_data})
        state.setdefault("active", True)

        wallet = PrizeWalletService.generate()
        secret_enc = PrizeWalletService.store(wallet.secret)
        location_name = geocoding.resolve_location_name(state["lat"], state["lng"])

        with transaction.atomic():
            position = QueueManager.next_position()
            ping = Ping.objects.create(
                **{k: v for k, v in state.items() if v is not None or k in ("proximity_radius",)},
                prize_lamports=sol_to_lamports(state["prize"]),
                location_name=location_name,
                prize_public_key=wallet.public_key,
                prize_secret_enc=secret_enc,
                wallet_created_at=timezone.now(),
                queue_position=position,
                claim_status=ClaimStatus.UNCLAIMED,
                fund_status=FundStatus.PENDING,
                created_by=actor,
            )
            record_action(
                actor=actor,
                action=AuditAction.CREATE,
                entity="ping",
                entity_id=ping.pk,
                details={"title": ping.title, "queue_position": position},
            )
            if position == 1 and ping.active:
                NotificationService.broadcast(
                    event_type="ping_created",
                    payload={"ping_id": ping.pk, "title": ping.title},
                )

        logger.info(
            "Ping #%s created by %s at queue position %s (wallet %s)",
            ping.pk,
            actor,
            position,
            ping.prize_public_key,
        )
        return ping

    @staticmethod
    def update_ping(ping_id: int, validated_data: dict[str, Any], actor) -> Ping:
        require_permission(actor, _CHANGE)

        changes = {f: validated_data[f] for f in EDITABLE_FIELDS if f in validated_data}

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)

            current = {f: getattr(ping, f) for f in EDITABLE_FIELDS}
            state = _normalize({**current, **changes})
            changed = [f for f in EDITABLE_FIELDS if state[f] != current[f]]

            if ping.claim_status == ClaimStatus.CLAIMED:
                frozen = [f for f in changed if f in FROZEN_WHEN_CLAIMED]
                if frozen:
                    raise Conflict(
                        f"Claimed pings cannot change: {', '.join(sorted(frozen))}."
                    )

            if not changed:
                return ping

            for field in changed:
                setattr(ping, field, state[field])
            update_fields = set(changed) | {"updated_at"}

            if "prize" in changed:
                ping.prize_lamports = sol_to_lamports(ping.prize)
                update_fields.add("prize_lamports")

            if "lat" in changed or "lng" in changed:
                ping.location_name = geocoding.resolve_location_name(ping.lat, ping.lng)
                update_fields.add("location_name")

            ping.save(update_fields=list(update_fields))
            record_action(
                actor=actor,
                action=AuditAction.UPDATE,
                entity="ping",
                entity_id=ping.pk,
                details={"fields": sorted(changed)},
            )

        logger.info("Ping #%s updated by %s: %s", ping.pk, actor, ", ".join(changed))
        return ping

    @staticmethod
    def delete_ping(ping_id: int, actor) -> None:
        """
        Delete a ping and close the gap it leaves in the queue.

        Pings with an in-flight or successful funding transfer are kept so
        funded history is never lost.
        """
        require_permission(actor, _DELETE)

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)

            funded = TreasuryTransferLog.objects.filter(
                ping=ping,
                status__in=[TransferStatus.PENDING, TransferStatus.SUCCESS],
            ).exists()
            if funded:
                raise Conflict("Pings with an in-flight or completed funding transfer cannot be deleted.")

            previous_head = QueueManager.head()
            title = ping.title
            ping.delete()
            head = QueueManager.resequence()

            record_action(
                actor=actor,
                action=AuditAction.DELETE,
                entity="ping",
                entity_id=ping_id,
                details={"title": title},
            )
            _announce_promotion(previous_head, head)

        logger.info("Ping #%s deleted by %s", ping_id, actor)

    # ── Listings ─────────────────────────────────────────────────────

    @staticmethod
    def list_admin(
        actor,
        *,
        claim_status: str | None = None,
        active: bool | None = None,
    ) -> QuerySet[Ping]:
        require_permission(actor, _VIEW)
        qs = Ping.objects.order_by("-active", "-created_at")
        if claim_status:
            qs = qs.filter(claim_status=claim_status)
        if active is not None:
            qs = qs.filter(active=active)
        return qs

    @staticmethod
    def list_pending_claims(actor) -> QuerySet[Ping]:
        require_permission(actor, _VIEW)
        return (
            Ping.objects
            .filter(claim_status=ClaimStatus.PENDING)
            .order_by("claim_submitted_at", "id")
        )

    @staticmethod
    def list_claimed(actor, *, limit: int = 20, offset: int = 0) -> tuple[list[Ping], int]:
        require_permission(actor, _VIEW)
        qs = Ping.objects.filter(claim_status=ClaimStatus.CLAIMED).order_by("-claimed_at", "-id")
        return list(qs[offset:offset + limit]), qs.count()

    @staticmethod
    @transaction.atomic
    def reveal_prize_key(ping_id: int, actor) -> dict[str, Any]:
        """Explicit, audited admin read of a prize wallet secret."""
        require_permission(actor, _REVEAL)
        try:
            ping = Ping.objects.get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound(f"Ping with id {ping_id} not found.")

        secret = PrizeWalletService.reveal(ping.prize_secret_enc)
        record_action(
            actor=actor,
            action=AuditAction.REVEAL_KEY,
            entity="ping",
            entity_id=ping.pk,
        )
        logger.info("Prize key for Ping #%s revealed to %s", ping.pk, actor)
        return {
            "ping_id": ping.pk,
            "public_key": ping.prize_public_key,
            "secret_key": secret,
        }


# ═══════════════════════════════════════════════════════════════════
#  Public operations
# ═══════════════════════════════════════════════════════════════════


def _history_for(claimant: str) -> list[LocationSample]:
    rows = (
        ProximityCheck.objects
        .filter(claimant=claimant)
        .order_by("-created_at", "-id")
        .values_list("lat", "lng", "created_at")[:_HISTORY_SAMPLES]
    )
    return [LocationSample(lat=float(lat), lng=float(lng), timestamp=at) for lat, lng, at in rows]


def _run_proximity(ping: Ping, claimant: str, lat, lng, ip_address: str | None) -> ProximityResult:
    """Validate a reported location and persist it as a sample."""
    result = validate_proximity(
        lat,
        lng,
        ping,
        _history_for(claimant),
        now=timezone.now(),
        max_speed_kmh=settings.PROXIMITY_MAX_SPEED_KMH,
        default_radius_m=settings.PROXIMITY_DEFAULT_RADIUS_M,
    )
    if result.invalid_input:
        raise DomainError(result.error)

    ProximityCheck.objects.create(
        ping=ping,
        claimant=claimant,
        lat=quantize_coordinate(lat),
        lng=quantize_coordinate(lng),
        distance_m=result.distance_m,
        accepted=result.valid,
        suspicious=result.suspicious,
        reason=result.suspicious_reason or result.error,
        ip_address=ip_address,
    )
    if result.suspicious:
        logger.warning(
            "Suspicious proximity sample for Ping #%s from %s: %s",
            ping.pk,
            claimant,
            result.suspicious_reason,
        )
    return result


class PingPublicService:

    @staticmethod
    def list_public() -> QuerySet[Ping]:
        return public_queryset()

    @staticmethod
    def retrieve_public(ping_id: int) -> Ping:
        """
        The live head or a claimed ping (status polling after a claim).
        Queued pings further down the line stay hidden.
        """
        visible = Ping.objects.filter(
            Q(pk__in=public_queryset().values("pk")) | Q(claim_status=ClaimStatus.CLAIMED)
        )
        try:
            return visible.get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound("Ping not found.")

    @staticmethod
    def get_visible(ping_id: int) -> Ping:
        try:
            return public_queryset().get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound("Ping not found.")

    @staticmethod
    def check_proximity(
        ping_id: int,
        *,
        claimant: str,
        lat,
        lng,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """Run the proximity validator without submitting a claim."""
        ping = PingPublicService.get_visible(ping_id)
        claimant = claimant or ip_address or "anonymous"
        result = _run_proximity(ping, claimant, lat, lng, ip_address)
        return {
            "ping_id": ping.pk,
            "distance_m": result.distance_m,
            "radius_m": result.radius_m,
            "within_radius": result.valid,
            "suspicious": result.suspicious,
            "message": result.error or None,
        }


# ═══════════════════════════════════════════════════════════════════
#  Claim state machine
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ApprovalResult:
    ping: Ping
    secret_key: str
    funding: FundingOutcome

    def __repr__(self) -> str:
        return f"ApprovalResult(ping={self.ping.pk}, funding={self.funding.status}, secret_key=<redacted>)"


def _announce_promotion(previous_head: Ping | None, head: Ping | None) -> None:
    if head is not None and (previous_head is None or previous_head.pk != head.pk):
        NotificationService.broadcast(
            event_type="ping_promoted",
            payload={"ping_id": head.pk, "title": head.title},
        )


def _require_claimable(ping: Ping) -> None:
    if not ping.active or ping.queue_position != 1:
        raise NotFound("Ping not found.")
    now = timezone.now()
    if now < ping.start_date:
        raise DomainError("This ping has not started yet.")
    if now > ping.end_date:
        raise DomainError("This ping has ended.")


class ClaimService:

    @staticmethod
    def submit_claim(
        ping_id: int,
        *,
        claimant: str = "",
        proof_url: str = "",
        lat=None,
        lng=None,
        ip_address: str | None = None,
    ) -> Ping:
        """
        ``unclaimed → pending``.

        NFC pings need a proof URL; proximity pings need coordinates that
        pass the proximity validator.  Proximity samples are stored even
        when the claim is rejected.
        """
        try:
            ping = Ping.objects.get(pk=ping_id)
        except Ping.DoesNotExist:
            raise NotFound("Ping not found.")

        if ping.claim_status != ClaimStatus.UNCLAIMED:
            raise InvalidTransition(
                current=ping.claim_status,
                target=ClaimStatus.PENDING,
                reason="This ping has already been claimed.",
            )
        _require_claimable(ping)

        updates: dict[str, Any] = {"claim_submitted_at": timezone.now()}

        if ping.claim_type == ClaimType.PROXIMITY:
            if lat is None or lng is None:
                raise DomainError("Latitude and longitude are required for proximity claims.")
            sample_key = claimant or ip_address or "anonymous"
            result = _run_proximity(ping, sample_key, lat, lng, ip_address)
            if not result.valid:
                raise DomainError(result.error)
            updates.update(
                claim_lat=quantize_coordinate(lat),
                claim_lng=quantize_coordinate(lng),
                claim_distance_m=result.distance_m,
            )
        else:
            if not proof_url:
                raise DomainError("A proof URL is required to claim this ping.")
            updates["proof_url"] = proof_url

        updates["claimed_by"] = claimant

        ping = atomic_transition(
            instance=ping,
            status_field="claim_status",
            target_status=ClaimStatus.PENDING,
            allowed_sources={ClaimStatus.UNCLAIMED},
            extra_updates=updates,
            guard=_require_claimable,
        )
        NotificationService.broadcast(
            event_type="claim_submitted",
            payload={"ping_id": ping.pk, "title": ping.title},
        )
        logger.info("Claim submitted for Ping #%s by %s", ping.pk, claimant or "<anonymous>")
        return ping

    @staticmethod
    def approve(ping_id: int, actor) -> ApprovalResult:
        """
        ``pending → claimed``: fund the prize wallet and reveal its secret.

        1. Under the ping's row lock: check state, decrypt the secret and
           reserve the funding transfer (zero prizes finish here).
        2. Outside any transaction: execute the on-chain transfer.
        3. Under the row lock again: mark claimed, resequence the queue,
           audit.

        A concurrent approval finds the reserved transfer and is rejected
        before any funds move or the secret is returned.  A failed
        transfer still completes the claim with ``fund_status=failed``.
        """
        require_permission(actor, _APPROVE)

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)
            ClaimService._require_pending(ping)
            secret = PrizeWalletService.reveal(ping.prize_secret_enc)

            if ping.prize_lamports <= 0:
                ping.fund_status = FundStatus.SKIPPED
                outcome = FundingOutcome(status=FundingOutcome.SKIPPED)
                ClaimService._finalize(ping, actor, outcome)
                return ApprovalResult(ping=ping, secret_key=secret, funding=outcome)

            log, created = TreasuryFundingService.reserve(ping, actor)
            if not created:
                if log.status == TransferStatus.PENDING:
                    raise Conflict("Funding for this ping is already in flight.")
                # The transfer finished but the claim was never finalized.
                outcome = FundingOutcome.from_log(log)
                ping.fund_status = (
                    FundStatus.SUCCESS if log.status == TransferStatus.SUCCESS else FundStatus.FAILED
                )
                ping.fund_tx_sig = log.tx_sig
                ClaimService._finalize(ping, actor, outcome)
                return ApprovalResult(ping=ping, secret_key=secret, funding=outcome)

        outcome = TreasuryFundingService.execute(log)

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)
            ClaimService._require_pending(ping)
            ClaimService._finalize(ping, actor, outcome)

        return ApprovalResult(ping=ping, secret_key=secret, funding=outcome)

    # ── Internals ────────────────────────────────────────────────────

    @staticmethod
    def _require_pending(ping: Ping) -> None:
        if ping.claim_status != ClaimStatus.PENDING:
            raise InvalidTransition(
                current=ping.claim_status,
                target=ClaimStatus.CLAIMED,
                reason="Only pending claims can be approved.",
            )

    @staticmethod
    def _finalize(ping: Ping, actor, outcome: FundingOutcome) -> None:
        """Mark claimed, close the queue gap, audit.  Caller holds the lock."""
        previous_head = QueueManager.head()

        ping.claim_status = ClaimStatus.CLAIMED
        ping.claimed_at = timezone.now()
        ping.queue_position = None
        ping.save(update_fields=[
            "claim_status", "claimed_at", "queue_position",
            "fund_status", "fund_tx_sig", "updated_at",
        ])
        head = QueueManager.resequence()

        record_action(
            actor=actor,
            action=AuditAction.APPROVE,
            entity="ping",
            entity_id=ping.pk,
            details={
                "claimed_by": ping.claimed_by,
                "lamports": ping.prize_lamports,
                "fund_status": outcome.status,
                "fund_tx_sig": outcome.tx_sig,
            },
        )
        NotificationService.broadcast(
            event_type="claim_approved",
            payload={"ping_id": ping.pk, "title": ping.title},
        )
        _announce_promotion(previous_head, head)
        logger.info(
            "Ping #%s approved by %s (funding: %s)",
            ping.pk,
            actor,
            outcome.status,
        )

"""
Treasury Service Layer.

The funding engine moves a ping's prize from the treasury into its prize
wallet.  Funding is split into two phases so callers can hold a row lock
only around the cheap part:

``reserve``
    Cap checks plus insertion of the ``pending`` transfer log row.  Runs
    inside the caller's transaction; the (ping, transfer_type) unique
    constraint makes it the idempotency boundary.

``execute``
    The on-chain transfer (outside any transaction) followed by one
    atomic write of the result to both the log row and the ping.

Failed transfers are never retried automatically; ``retry_funding`` is
the human re-trigger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import QuerySet, Sum
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.audit import record_action
from core.domain.exceptions import (
    CapacityExceeded,
    Conflict,
    ExternalServiceUnavailable,
    InvalidTransition,
)
from core.domain.transactions import lock_for_update
from core.models import AuditAction
from core.permissions_constants import TreasuryPerms, perm
from pings.models import ClaimStatus, FundStatus, Ping

from . import chain
from .models import TransferStatus, TransferType, TreasuryTransferLog

logger = logging.getLogger(__name__)

_RETRY_FUNDING = perm("treasury", TreasuryPerms.CAN_RETRY_FUNDING)
_VIEW_TRANSFERS = perm("treasury", TreasuryPerms.VIEW_TREASURYTRANSFERLOG)

LAMPORTS_PER_SOL = Decimal(1_000_000_000)


@dataclass(frozen=True)
class FundingOutcome:
    """Result of one funding attempt."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    IN_FLIGHT = "in_flight"

    status: str
    lamports: int = 0
    tx_sig: str = ""
    error: str = ""

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "lamports": self.lamports,
            "tx_sig": self.tx_sig or None,
            "error": self.error or None,
        }

    @classmethod
    def from_log(cls, log: TreasuryTransferLog) -> FundingOutcome:
        status = {
            TransferStatus.SUCCESS: cls.SUCCESS,
            TransferStatus.FAILED: cls.FAILED,
        }.get(log.status, cls.IN_FLIGHT)
        return cls(status=status, lamports=log.lamports, tx_sig=log.tx_sig, error=log.error)


class TreasuryFundingService:
    """Capped, idempotent treasury → prize wallet transfers."""

    # ── Capacity ─────────────────────────────────────────────────────

    @staticmethod
    def committed_today() -> int:
        """
        Lamports already committed today: successful transfers plus
        reservations still in flight.
        """
        total = (
            TreasuryTransferLog.objects
            .filter(
                reserved_at__date=timezone.localdate(),
                status__in=[TransferStatus.PENDING, TransferStatus.SUCCESS],
            )
            .aggregate(total=Sum("lamports"))["total"]
        )
        return total or 0

    @staticmethod
    def check_caps(lamports: int) -> None:
        per_ping_cap = settings.TREASURY_MAX_LAMPORTS_PER_PING
        if lamports > per_ping_cap:
            raise CapacityExceeded(
                f"Prize of {lamports} lamports exceeds the per-ping cap of {per_ping_cap}."
            )

        daily_cap = settings.TREASURY_DAILY_CAP_LAMPORTS
        committed = TreasuryFundingService.committed_today()
        if committed + lamports > daily_cap:
            raise CapacityExceeded(
                f"Daily treasury cap reached: {committed} of {daily_cap} lamports "
                f"already committed today, {lamports} requested."
            )

    # ── Two-phase funding ────────────────────────────────────────────

    @staticmethod
    def reserve(ping: Ping, actor=None) -> tuple[TreasuryTransferLog, bool]:
        """
        Reserve the funding transfer for ``ping``.

        Must run inside ``transaction.atomic()`` with the ping locked.
        Returns ``(log, created)``; ``created`` is ``False`` when a log row
        already existed, in which case nothing new was reserved.

        Raises:
            CapacityExceeded:           per-ping or daily cap would be passed.
            ExternalServiceUnavailable: treasury signing key unusable.
        """
        existing = TreasuryTransferLog.objects.filter(
            ping=ping, transfer_type=TransferType.FUNDING
        ).first()
        if existing is not None:
            return existing, False

        chain.get_chain_client().treasury_keypair()
        TreasuryFundingService.check_caps(ping.prize_lamports)

        try:
            with transaction.atomic():
                log = TreasuryTransferLog.objects.create(
                    ping=ping,
                    transfer_type=TransferType.FUNDING,
                    lamports=ping.prize_lamports,
                    destination=ping.prize_public_key,
                    status=TransferStatus.PENDING,
                    initiated_by=actor if getattr(actor, "is_authenticated", False) else None,
                )
        except IntegrityError:
            existing = TreasuryTransferLog.objects.get(
                ping=ping, transfer_type=TransferType.FUNDING
            )
            return existing, False

        logger.info(
            "Reserved funding of %s lamports for Ping #%s (log #%s)",
            log.lamports,
            ping.pk,
            log.pk,
        )
        return log, True

    @staticmethod
    def _record_failure(log: TreasuryTransferLog, error: str) -> FundingOutcome:
        with transaction.atomic():
            TreasuryTransferLog.objects.filter(pk=log.pk).update(
                status=TransferStatus.FAILED,
                error=error,
                updated_at=timezone.now(),
            )
            Ping.objects.filter(pk=log.ping_id).update(
                fund_status=FundStatus.FAILED,
                updated_at=timezone.now(),
            )
        return FundingOutcome(
            status=FundingOutcome.FAILED,
            lamports=log.lamports,
            error=error,
        )

    @staticmethod
    def execute(log: TreasuryTransferLog) -> FundingOutcome:
        """
        Perform the reserved transfer and persist its result.

        Must NOT run inside a transaction: the RPC round-trip can take
        seconds and the result is written in its own atomic block.  Any
        error from the transfer leaves the log and the ping ``failed`` so
        the retry path can pick them up.
        """
        try:
            signature = chain.get_chain_client().transfer_lamports(log.destination, log.lamports)
        except ExternalServiceUnavailable as exc:
            logger.error("Funding for Ping #%s failed: %s", log.ping_id, exc)
            return TreasuryFundingService._record_failure(log, str(exc))
        except BaseException as exc:
            if not chain.is_unexpected_failure(exc):
                raise
            logger.exception("Unexpected error while funding Ping #%s", log.ping_id)
            return TreasuryFundingService._record_failure(
                log, f"Unexpected transfer error: {exc!r}"
            )

        now = timezone.now()
        with transaction.atomic():
            TreasuryTransferLog.objects.filter(pk=log.pk).update(
                status=TransferStatus.SUCCESS,
                tx_sig=signature,
                error="",
                updated_at=now,
            )
            Ping.objects.filter(pk=log.ping_id).update(
                fund_status=FundStatus.SUCCESS,
                fund_tx_sig=signature,
                funded_at=now,
                updated_at=now,
            )
        logger.info("Funded Ping #%s with %s lamports: %s", log.ping_id, log.lamports, signature)
        return FundingOutcome(
            status=FundingOutcome.SUCCESS,
            lamports=log.lamports,
            tx_sig=signature,
        )

    # ── Human-triggered operations ───────────────────────────────────

    @staticmethod
    def fund_ping(ping_id: int, actor) -> FundingOutcome:
        """
        Fund a claimed ping end-to-end.

        Zero-lamport prizes are marked ``skipped``.  An existing log row
        short-circuits: a ``failed`` row is retried, any other row reports
        its current state without moving funds.
        """
        require_permission(actor, _RETRY_FUNDING)

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)
            if ping.claim_status != ClaimStatus.CLAIMED:
                raise InvalidTransition(
                    current=ping.claim_status,
                    target="funded",
                    reason="Only claimed pings can be funded.",
                )
            if ping.prize_lamports <= 0:
                if ping.fund_status != FundStatus.SKIPPED:
                    ping.fund_status = FundStatus.SKIPPED
                    ping.save(update_fields=["fund_status", "updated_at"])
                return FundingOutcome(status=FundingOutcome.SKIPPED)

            log, created = TreasuryFundingService.reserve(ping, actor)

        if not created:
            if log.status == TransferStatus.FAILED:
                return TreasuryFundingService.retry_funding(ping_id, actor)
            return FundingOutcome.from_log(log)
        return TreasuryFundingService.execute(log)

    @staticmethod
    def retry_funding(ping_id: int, actor) -> FundingOutcome:
        """
        Re-trigger a failed funding transfer.

        The ``failed → pending`` flip is a conditional UPDATE, so two
        concurrent retries cannot both proceed to the transfer.
        """
        require_permission(actor, _RETRY_FUNDING)

        with transaction.atomic():
            ping = lock_for_update(Ping, ping_id)
            if ping.claim_status != ClaimStatus.CLAIMED:
                raise InvalidTransition(
                    current=ping.claim_status,
                    target="funded",
                    reason="Only claimed pings can be funded.",
                )
            if ping.fund_status != FundStatus.FAILED:
                raise Conflict(
                    f"Funding is '{ping.fund_status}'; only failed fundings can be retried."
                )

            chain.get_chain_client().treasury_keypair()
            TreasuryFundingService.check_caps(ping.prize_lamports)

            now = timezone.now()
            flipped = TreasuryTransferLog.objects.filter(
                ping=ping,
                transfer_type=TransferType.FUNDING,
                status=TransferStatus.FAILED,
            ).update(
                status=TransferStatus.PENDING,
                error="",
                reserved_at=now,
                updated_at=now,
            )
            if not flipped:
                raise Conflict("Funding for this ping is already in flight.")

            ping.fund_status = FundStatus.PENDING
            ping.save(update_fields=["fund_status", "updated_at"])

            record_action(
                actor=actor,
                action=AuditAction.FUND_RETRY,
                entity="ping",
                entity_id=ping.pk,
                details={"lamports": ping.prize_lamports},
            )
            log = TreasuryTransferLog.objects.get(ping=ping, transfer_type=TransferType.FUNDING)

        logger.info("Retrying funding for Ping #%s by %s", ping_id, actor)
        return TreasuryFundingService.execute(log)


class TreasuryQueryService:
    """Admin reads: transfer logs and wallet balances."""

    @staticmethod
    def list_transfers(
        actor,
        *,
        status: str | None = None,
        ping_id: int | None = None,
    ) -> QuerySet[TreasuryTransferLog]:
        require_permission(actor, _VIEW_TRANSFERS)
        qs = TreasuryTransferLog.objects.select_related("ping")
        if status:
            qs = qs.filter(status=status)
        if ping_id is not None:
            qs = qs.filter(ping_id=ping_id)
        return qs

    @staticmethod
    def wallet_balance(actor, pubkey: str | None = None) -> dict:
        """Balance of ``pubkey``, or of the treasury when omitted."""
        require_permission(actor, _VIEW_TRANSFERS)
        client = chain.get_chain_client()
        target = pubkey or client.treasury_public_key()
        lamports = client.get_balance(target)
        return {
            "pubkey": target,
            "lamports": lamports,
            "sol": str(Decimal(lamports) / LAMPORTS_PER_SOL),
        }

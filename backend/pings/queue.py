"""
pings.queue — Total order over not-yet-claimed pings.

Every ping whose claim status is not ``claimed`` holds a queue position;
together they always form the gap-free sequence 1..N.  Position 1 is the
single publicly live ping.  Both operations lock the queued rows and must
run inside ``transaction.atomic()``.
"""

from __future__ import annotations

import logging

from django.db.models import F

from .models import ClaimStatus, Ping

logger = logging.getLogger(__name__)


def queued_pings():
    return Ping.objects.exclude(claim_status=ClaimStatus.CLAIMED)


class QueueManager:

    @staticmethod
    def head() -> Ping | None:
        return queued_pings().filter(queue_position=1).first()

    @staticmethod
    def next_position() -> int:
        """Position for a newly appended ping: ``max + 1`` (1 when empty)."""
        positions = list(
            queued_pings()
            .select_for_update()
            .values_list("queue_position", flat=True)
        )
        return max((p for p in positions if p is not None), default=0) + 1

    @staticmethod
    def resequence() -> Ping | None:
        """
        Rewrite the positions of all queued pings to 1..N, preserving the
        current order (ties broken by creation time).  Returns the head.
        """
        rows = list(
            queued_pings()
            .select_for_update()
            .order_by(F("queue_position").asc(nulls_last=True), "created_at", "id")
        )
        changed = 0
        for position, ping in enumerate(rows, start=1):
            if ping.queue_position != position:
                Ping.objects.filter(pk=ping.pk).update(queue_position=position)
                ping.queue_position = position
                changed += 1

        if changed:
            logger.info("Queue resequenced: %d of %d position(s) rewritten", changed, len(rows))
        return rows[0] if rows else None

"""
hints.verification — On-chain hint payment checks.

A hint payment is one confirmed transaction that moves the hint token
to exactly two owners: the treasury wallet and the burn wallet, split
roughly 50/50.  ``inspect_payment`` works on the ``jsonParsed``
transaction dict and has no I/O; ``verify_payment`` fetches the
transaction first.

Tolerances (fractions of the expected amount):

``total_tolerance``  |sum − expected| ≤ total_tolerance × expected
``split_tolerance``  |each − expected/2| ≤ split_tolerance × expected/2
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings

from core.domain.exceptions import ExternalVerificationFailure
from treasury import chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenTransfer:
    owner: str
    amount: Decimal


@dataclass(frozen=True)
class PaymentVerification:
    valid: bool
    error: str = ""
    treasury_amount: Decimal = Decimal(0)
    burn_amount: Decimal = Decimal(0)

    @property
    def total(self) -> Decimal:
        return self.treasury_amount + self.burn_amount


def _ui_amount(balance: dict) -> Decimal:
    token_amount = balance.get("uiTokenAmount") or {}
    raw = Decimal(str(token_amount.get("amount", "0")))
    decimals = int(token_amount.get("decimals", 0))
    return raw / (Decimal(10) ** decimals)


def positive_transfers(meta: dict, mint: str) -> list[TokenTransfer]:
    """
    Token accounts of ``mint`` whose balance went up.

    An account with no pre-balance was created by the transaction and
    counts as starting from zero.
    """
    pre_by_index = {b.get("accountIndex"): b for b in meta.get("preTokenBalances") or []}
    transfers = []
    for post in meta.get("postTokenBalances") or []:
        if post.get("mint") != mint:
            continue
        pre = pre_by_index.get(post.get("accountIndex"))
        try:
            before = _ui_amount(pre) if pre else Decimal(0)
            delta = _ui_amount(post) - before
        except (InvalidOperation, TypeError, ValueError):
            continue
        if delta > 0:
            transfers.append(TokenTransfer(owner=post.get("owner") or "", amount=delta))
    return transfers


def inspect_payment(
    tx: dict | None,
    *,
    treasury_wallet: str,
    burn_wallet: str,
    token_mint: str,
    expected_amount: Decimal,
    total_tolerance: Decimal,
    split_tolerance: Decimal,
) -> PaymentVerification:
    if not tx:
        return PaymentVerification(valid=False, error="Transaction not found")

    meta = tx.get("meta")
    if not meta or meta.get("err"):
        return PaymentVerification(valid=False, error="Transaction failed or has no metadata")
    if meta.get("preTokenBalances") is None or meta.get("postTokenBalances") is None:
        return PaymentVerification(valid=False, error="No token balance information in transaction")

    transfers = positive_transfers(meta, token_mint)
    if len(transfers) != 2:
        return PaymentVerification(valid=False, error=f"Expected 2 transfers, found {len(transfers)}")

    treasury = next((t for t in transfers if t.owner == treasury_wallet), None)
    burn = next((t for t in transfers if t.owner == burn_wallet), None)
    if treasury is None:
        return PaymentVerification(valid=False, error="Treasury transfer not found")
    if burn is None:
        return PaymentVerification(valid=False, error="Burn wallet transfer not found")

    total = treasury.amount + burn.amount
    if abs(total - expected_amount) > expected_amount * total_tolerance:
        return PaymentVerification(
            valid=False,
            error=f"Amount mismatch. Expected: {expected_amount:.6f}, Got: {total:.6f}",
        )

    half = expected_amount / 2
    split_limit = half * split_tolerance
    if abs(treasury.amount - half) > split_limit or abs(burn.amount - half) > split_limit:
        return PaymentVerification(valid=False, error="Split not approximately 50/50")

    return PaymentVerification(valid=True, treasury_amount=treasury.amount, burn_amount=burn.amount)


def verify_payment(
    signature: str,
    *,
    treasury_wallet: str,
    burn_wallet: str,
    token_mint: str,
    expected_amount: Decimal,
) -> PaymentVerification:
    """
    Fetch ``signature`` and check it.  Raises ``ExternalVerificationFailure``
    with the reason when the payment does not match.
    """
    tx = chain.get_chain_client().get_parsed_transaction(signature)
    result = inspect_payment(
        tx,
        treasury_wallet=treasury_wallet,
        burn_wallet=burn_wallet,
        token_mint=token_mint,
        expected_amount=expected_amount,
        total_tolerance=Decimal(str(settings.HINT_TOTAL_TOLERANCE)),
        split_tolerance=Decimal(str(settings.HINT_SPLIT_TOLERANCE)),
    )
    if not result.valid:
        logger.warning("Hint payment %s rejected: %s", signature, result.error)
        raise ExternalVerificationFailure(result.error)
    return result

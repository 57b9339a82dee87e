"""
Unit tests — hints.verification.inspect_payment (no network, no database).
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from hints.verification import inspect_payment, positive_transfers
from tests.factories import payment_tx, token_balance

MINT = "PingMint111111111111111111111111111111111111"
PAYER = "Payer11111111111111111111111111111111111111"
TREASURY = "Treasury111111111111111111111111111111111111"
BURN = "Burn111111111111111111111111111111111111111"

EXPECTED = Decimal(100)


def _inspect(tx):
    return inspect_payment(
        tx,
        treasury_wallet=TREASURY,
        burn_wallet=BURN,
        token_mint=MINT,
        expected_amount=EXPECTED,
        total_tolerance=Decimal("0.05"),
        split_tolerance=Decimal("0.10"),
    )


def _tx(treasury_tokens, burn_tokens):
    return payment_tx(
        mint=MINT,
        payer=PAYER,
        treasury=TREASURY,
        burn=BURN,
        treasury_raw=int(treasury_tokens * 10**6),
        burn_raw=int(burn_tokens * 10**6),
    )


class TestInspectPayment:

    def test_exact_split_is_accepted(self):
        result = _inspect(_tx(50, 50))
        assert result.valid
        assert result.total == EXPECTED

    def test_slightly_uneven_split_is_accepted(self):
        result = _inspect(_tx(48, 52))
        assert result.valid
        assert result.treasury_amount == Decimal(48)
        assert result.burn_amount == Decimal(52)

    def test_total_within_five_percent_is_accepted(self):
        assert _inspect(_tx(48.5, 48.5)).valid

    def test_ninety_ten_split_is_rejected(self):
        result = _inspect(_tx(90, 10))
        assert not result.valid
        assert result.error == "Split not approximately 50/50"

    def test_short_total_is_rejected(self):
        result = _inspect(_tx(40, 40))
        assert not result.valid
        assert result.error.startswith("Amount mismatch")

    def test_single_transfer_is_rejected(self):
        tx = _tx(100, 0)
        result = _inspect(tx)
        assert not result.valid
        assert result.error == "Expected 2 transfers, found 1"

    def test_wrong_destination_is_rejected(self):
        tx = payment_tx(
            mint=MINT, payer=PAYER, treasury=TREASURY, burn="Someone1111111111111111111111111111111111",
            treasury_raw=50 * 10**6, burn_raw=50 * 10**6,
        )
        result = _inspect(tx)
        assert not result.valid
        assert result.error == "Burn wallet transfer not found"

    def test_missing_treasury_is_reported_first(self):
        tx = payment_tx(
            mint=MINT, payer=PAYER, treasury="Someone1111111111111111111111111111111111", burn=BURN,
            treasury_raw=50 * 10**6, burn_raw=50 * 10**6,
        )
        assert _inspect(tx).error == "Treasury transfer not found"

    def test_other_mints_are_ignored(self):
        tx = _tx(50, 50)
        tx["meta"]["postTokenBalances"].append(token_balance(4, TREASURY, "OtherMint", 10**9))
        tx["meta"]["preTokenBalances"].append(token_balance(4, TREASURY, "OtherMint", 0))
        assert _inspect(tx).valid

    @pytest.mark.parametrize(
        "tx,error",
        [
            (None, "Transaction not found"),
            ({"meta": None}, "Transaction failed or has no metadata"),
            ({"meta": {"err": {"InstructionError": [0, "Custom"]}}}, "Transaction failed or has no metadata"),
            ({"meta": {"err": None}}, "No token balance information in transaction"),
        ],
    )
    def test_unusable_transactions(self, tx, error):
        result = _inspect(tx)
        assert not result.valid
        assert result.error == error


class TestPositiveTransfers:

    def test_account_created_in_transaction_counts_from_zero(self):
        meta = {
            "preTokenBalances": [],
            "postTokenBalances": [token_balance(2, TREASURY, MINT, 5 * 10**6)],
        }
        transfers = positive_transfers(meta, MINT)
        assert len(transfers) == 1
        assert transfers[0].owner == TREASURY
        assert transfers[0].amount == Decimal(5)

    def test_decreases_are_not_transfers(self):
        meta = {
            "preTokenBalances": [token_balance(1, PAYER, MINT, 10 * 10**6)],
            "postTokenBalances": [token_balance(1, PAYER, MINT, 4 * 10**6)],
        }
        assert positive_transfers(meta, MINT) == []

"""
Integration tests — hint purchases.

Covers free and paid unlocks, progressive unlocking, idempotent
re-purchase, transaction reuse, payment rejection and the settings
endpoint.  The price oracle and Solana RPC are patched at
``hints.oracle.fetch_token_price_usd`` and
``treasury.chain.get_chain_client``.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.domain.exceptions import ExternalServiceUnavailable
from core.models import AuditAction, AuditLog
from hints.models import HintPurchase, HintSettings

from .factories import FakeChainClient, make_ping, make_user, payment_tx, seed_roles

MINT = "PingMint111111111111111111111111111111111111"
TREASURY = "Treasury111111111111111111111111111111111111"
BURN = "Burn111111111111111111111111111111111111111"
PLAYER = "Player1111111111111111111111111111111111111"


def _paid(treasury_tokens: int, burn_tokens: int) -> dict:
    return payment_tx(
        mint=MINT,
        payer=PLAYER,
        treasury=TREASURY,
        burn=BURN,
        treasury_raw=treasury_tokens * 10**6,
        burn_raw=burn_tokens * 10**6,
    )


class TestHintPurchaseFlow(TestCase):

    @classmethod
    def setUpTestData(cls):
        HintSettings.objects.update_or_create(
            pk=HintSettings.SINGLETON_PK,
            defaults={"treasury_wallet": TREASURY, "burn_wallet": BURN, "token_mint": MINT},
        )
        cls.ping = make_ping(
            first_hint_free=True,
            hint1_text="Look for the red door.",
            hint2_text="Second floor.",
            hint2_price_usd=Decimal("1.00"),
            hint3_text="Behind the plant.",
            hint3_price_usd=Decimal("2.00"),
        )

    def setUp(self):
        self.client = APIClient()
        # $0.01 per token → a $1 hint costs 100 tokens.
        self.chain = FakeChainClient(
            transactions={
                "good-sig": _paid(50, 50),
                "skewed-sig": _paid(90, 10),
                "second-good-sig": _paid(100, 100),
            }
        )
        chain_patch = patch("treasury.chain.get_chain_client", return_value=self.chain)
        price_patch = patch("hints.oracle.fetch_token_price_usd", return_value=Decimal("0.01"))
        chain_patch.start()
        self.price = price_patch.start()
        self.addCleanup(chain_patch.stop)
        self.addCleanup(price_patch.stop)

    # ── Helpers ──────────────────────────────────────────────────────

    def _buy(self, level, tx_sig=None, wallet=PLAYER):
        body = {"ping_id": self.ping.pk, "wallet_address": wallet, "hint_level": level}
        if tx_sig:
            body["tx_sig"] = tx_sig
        return self.client.post(reverse("hints:purchase"), body, format="json")

    def _purchased(self, wallet=PLAYER):
        return self.client.get(reverse("hints:purchased", args=[self.ping.pk]), {"wallet": wallet})

    # ── Tests ────────────────────────────────────────────────────────

    def test_free_hint_unlocks_without_payment(self):
        resp = self._buy(1)

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data, {"hint_level": 1, "hint": "Look for the red door.", "already_purchased": False})
        purchase = HintPurchase.objects.get(wallet_address=PLAYER, hint_level=1)
        self.assertEqual(purchase.paid_amount, 0)
        self.assertIsNone(purchase.tx_sig)

    def test_paid_hint_needs_previous_level(self):
        resp = self._buy(2, tx_sig="good-sig")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(HintPurchase.objects.filter(hint_level=2).exists())

    def test_paid_hint_with_valid_payment(self):
        self._buy(1)

        resp = self._buy(2, tx_sig="good-sig")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["hint"], "Second floor.")
        purchase = HintPurchase.objects.get(wallet_address=PLAYER, hint_level=2)
        self.assertEqual(purchase.paid_amount, Decimal(100))
        self.assertEqual(purchase.paid_usd, Decimal("1.00"))
        self.assertEqual(purchase.tx_sig, "good-sig")

    def test_repurchase_is_idempotent(self):
        self._buy(1)
        self._buy(2, tx_sig="good-sig")

        resp = self._buy(2, tx_sig="good-sig")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["already_purchased"])
        self.assertEqual(HintPurchase.objects.filter(hint_level=2).count(), 1)

    def test_transaction_cannot_unlock_two_hints(self):
        self._buy(1)
        self._buy(1, wallet="Other11111111111111111111111111111111111111")
        self._buy(2, tx_sig="good-sig")

        resp = self._buy(2, tx_sig="good-sig", wallet="Other11111111111111111111111111111111111111")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_skewed_split_is_rejected_with_reason(self):
        self._buy(1)

        resp = self._buy(2, tx_sig="skewed-sig")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "Split not approximately 50/50")
        self.assertFalse(HintPurchase.objects.filter(hint_level=2).exists())

    def test_unknown_transaction_is_rejected(self):
        self._buy(1)

        resp = self._buy(2, tx_sig="missing-sig")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "Transaction not found")

    def test_paid_hint_without_signature_is_rejected(self):
        self._buy(1)

        resp = self._buy(2)

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_oracle_outage_is_503(self):
        self._buy(1)
        self.price.side_effect = ExternalServiceUnavailable("Token price is currently unavailable.")

        resp = self._buy(2, tx_sig="good-sig")

        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_missing_hint_level_is_not_found(self):
        ping = make_ping(hint1_text="", first_hint_free=True)

        resp = self.client.post(
            reverse("hints:purchase"),
            {"ping_id": ping.pk, "wallet_address": PLAYER, "hint_level": 1},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_purchased_listing_reveals_only_owned_texts(self):
        self._buy(1)
        self._buy(2, tx_sig="good-sig")

        resp = self._purchased()

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        by_level = {row["level"]: row for row in resp.data}
        self.assertTrue(by_level[1]["purchased"])
        self.assertTrue(by_level[1]["free"])
        self.assertEqual(by_level[2]["text"], "Second floor.")
        self.assertFalse(by_level[3]["purchased"])
        self.assertIsNone(by_level[3]["text"])
        self.assertEqual(by_level[3]["price_usd"], "2.00")

    def test_third_level_scales_with_price(self):
        self._buy(1)
        self._buy(2, tx_sig="good-sig")

        resp = self._buy(3, tx_sig="second-good-sig")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["hint"], "Behind the plant.")


class TestHintSettings(TestCase):

    @classmethod
    def setUpTestData(cls):
        admin_role, editor_role = seed_roles()
        cls.admin = make_user("hints_admin", admin_role)
        cls.editor = make_user("hints_editor", editor_role)

    def setUp(self):
        self.client = APIClient()

    def test_settings_are_public(self):
        resp = self.client.get(reverse("hints:settings"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn("treasury_wallet", resp.data)

    def test_admin_updates_settings_with_audit(self):
        self.client.force_authenticate(self.admin)

        resp = self.client.put(reverse("hints:settings"), {"token_mint": MINT}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(HintSettings.load().token_mint, MINT)
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.UPDATE, entity="hint_settings").exists())

    def test_editor_cannot_update_settings(self):
        self.client.force_authenticate(self.editor)

        resp = self.client.put(reverse("hints:settings"), {"token_mint": MINT}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

"""
Unit tests — pings.wallet (prize wallet generation and encryption at rest).
"""

from __future__ import annotations

from decimal import Decimal

import base58
import pytest
from django.test import override_settings
from solders.keypair import Keypair

from core.domain.exceptions import EncryptionConfigurationError
from pings.wallet import PrizeWalletService, load_encryption_key, sol_to_lamports


class TestSolToLamports:

    @pytest.mark.parametrize(
        "sol,lamports",
        [
            ("1.0", 1_000_000_000),
            ("0", 0),
            ("0.000000001", 1),
            ("2.5", 2_500_000_000),
            (Decimal("0.0000000005"), 1),
        ],
    )
    def test_conversion(self, sol, lamports):
        assert sol_to_lamports(sol) == lamports


class TestEncryptionKey:

    def test_valid_key(self):
        assert len(load_encryption_key("ab" * 32)) == 32

    @pytest.mark.parametrize("raw", ["", "abc", "zz" * 32, "ab" * 31])
    def test_malformed_key_raises(self, raw):
        with pytest.raises(EncryptionConfigurationError):
            load_encryption_key(raw)

    @override_settings(PRIZE_WALLET_ENCRYPTION_KEY="")
    def test_store_without_key_raises(self):
        with pytest.raises(EncryptionConfigurationError):
            PrizeWalletService.store("secret")


class TestPrizeWallet:

    def test_generated_secret_matches_public_key(self):
        wallet = PrizeWalletService.generate()
        keypair = Keypair.from_bytes(base58.b58decode(wallet.secret))
        assert str(keypair.pubkey()) == wallet.public_key

    def test_store_then_reveal_returns_the_secret(self):
        wallet = PrizeWalletService.generate()
        stored = PrizeWalletService.store(wallet.secret)
        assert wallet.secret not in stored
        assert PrizeWalletService.reveal(stored) == wallet.secret

    def test_each_store_uses_a_fresh_iv(self):
        assert PrizeWalletService.store("same") != PrizeWalletService.store("same")

    def test_repr_hides_the_secret(self):
        wallet = PrizeWalletService.generate()
        assert wallet.secret not in repr(wallet)

    @pytest.mark.parametrize("stored", ["", "no-separator", "zz:zz", "00:00", "00" * 16 + ":" + "ab" * 15])
    def test_malformed_ciphertext_raises(self, stored):
        with pytest.raises(EncryptionConfigurationError):
            PrizeWalletService.reveal(stored)

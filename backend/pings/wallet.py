"""
pings.wallet — Prize wallet generation and secret-at-rest encryption.

Each ping receives a brand-new Solana keypair when it is created.  The
public key is stored in clear; the secret key (base58 of the 64-byte
keypair, the format wallet apps import) is encrypted with AES-256-CBC
under ``settings.PRIZE_WALLET_ENCRYPTION_KEY`` using a fresh random IV
per call and stored as ``"<iv_hex>:<ciphertext_hex>"``.

Any problem with the key or a stored ciphertext raises
``EncryptionConfigurationError``; there is no partial result.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import base58
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from django.conf import settings
from solders.keypair import Keypair

from core.domain.exceptions import EncryptionConfigurationError

_KEY_HEX_LENGTH = 64
_IV_BYTES = 16
_BLOCK_BITS = 128

LAMPORTS_PER_SOL = 1_000_000_000


@dataclass(frozen=True)
class GeneratedWallet:
    public_key: str
    secret: str

    def __repr__(self) -> str:
        return f"GeneratedWallet(public_key={self.public_key!r}, secret=<redacted>)"


def sol_to_lamports(sol) -> int:
    """Convert a decimal SOL amount to integer lamports (half-up rounding)."""
    amount = Decimal(str(sol)) * LAMPORTS_PER_SOL
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def load_encryption_key(raw: str | None = None) -> bytes:
    """
    Return the 32-byte AES key.

    Raises:
        EncryptionConfigurationError: key missing, wrong length, or not hex.
    """
    raw = settings.PRIZE_WALLET_ENCRYPTION_KEY if raw is None else raw
    raw = (raw or "").strip()
    if len(raw) != _KEY_HEX_LENGTH:
        raise EncryptionConfigurationError(
            f"PRIZE_WALLET_ENCRYPTION_KEY must be {_KEY_HEX_LENGTH} hex characters."
        )
    try:
        return bytes.fromhex(raw)
    except ValueError:
        raise EncryptionConfigurationError(
            "PRIZE_WALLET_ENCRYPTION_KEY must be hexadecimal."
        )


class PrizeWalletService:
    """Generate, store and reveal prize wallet secrets."""

    @staticmethod
    def generate() -> GeneratedWallet:
        keypair = Keypair()
        return GeneratedWallet(
            public_key=str(keypair.pubkey()),
            secret=base58.b58encode(bytes(keypair)).decode("ascii"),
        )

    @staticmethod
    def store(secret: str) -> str:
        """Encrypt ``secret`` and return ``iv_hex:ciphertext_hex``."""
        key = load_encryption_key()
        iv = os.urandom(_IV_BYTES)

        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(secret.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    @staticmethod
    def reveal(stored: str) -> str:
        """Decrypt a value produced by ``store``."""
        key = load_encryption_key()

        iv_hex, sep, body_hex = (stored or "").partition(":")
        try:
            if not sep:
                raise ValueError("missing separator")
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(body_hex)
            if len(iv) != _IV_BYTES or not ciphertext:
                raise ValueError("bad lengths")

            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except ValueError:
            # Covers malformed hex, bad padding (wrong key) and bad UTF-8.
            raise EncryptionConfigurationError(
                "Stored prize wallet secret could not be decrypted."
            )

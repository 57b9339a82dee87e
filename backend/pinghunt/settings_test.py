"""
Settings used by the pytest suite.

Inherits everything from ``pinghunt.settings`` and pins the values the
tests rely on: an in-memory database, a fixed wallet encryption key,
predictable treasury caps and no outbound network configuration.
"""

from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PRIZE_WALLET_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"

SOLANA_RPC_URL = "http://solana.invalid"
TREASURY_PRIVATE_KEY = ""
TREASURY_MAX_LAMPORTS_PER_PING = 5_000_000_000
TREASURY_DAILY_CAP_LAMPORTS = 8_000_000_000

PRICE_ORACLE_URL = "http://oracle.invalid/price"
GEOCODING_API_KEY = ""

from django.core.checks import Error, register

from core.domain.exceptions import EncryptionConfigurationError

from .wallet import load_encryption_key


@register()
def prize_wallet_key_check(app_configs, **kwargs):
    try:
        load_encryption_key()
    except EncryptionConfigurationError as exc:
        return [
            Error(
                str(exc),
                hint="Set PRIZE_WALLET_ENCRYPTION_KEY to 64 hex characters (32 random bytes).",
                id="pings.E001",
            )
        ]
    return []

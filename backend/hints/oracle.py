"""
hints.oracle — Token/USD price collaborator (Jupiter price API).

Any failure raises ``ExternalServiceUnavailable``: a paid hint cannot be
priced without a current quote, so there is no fallback price.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings

from core.domain.exceptions import ExternalServiceUnavailable

logger = logging.getLogger(__name__)


def fetch_token_price_usd(mint: str) -> Decimal:
    try:
        response = requests.get(
            settings.PRICE_ORACLE_URL,
            params={"ids": mint},
            timeout=settings.EXTERNAL_HTTP_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Price oracle request for %s failed: %s", mint, exc)
        raise ExternalServiceUnavailable("Token price is currently unavailable.")

    entry = (data.get("data") or {}).get(mint) or {}
    try:
        price = Decimal(str(entry["price"]))
    except (KeyError, TypeError, InvalidOperation):
        logger.warning("Price oracle returned no price for %s: %r", mint, entry)
        raise ExternalServiceUnavailable("Token price is currently unavailable.")

    if price <= 0:
        logger.warning("Price oracle returned non-positive price for %s: %s", mint, price)
        raise ExternalServiceUnavailable("Token price is currently unavailable.")
    return price

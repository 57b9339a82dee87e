"""Unit tests — token price oracle (``requests`` patched)."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.domain.exceptions import ExternalServiceUnavailable
from hints.oracle import fetch_token_price_usd

MINT = "PingMint111111111111111111111111111111111111"


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class TestFetchTokenPrice:

    def test_reads_price_for_mint(self):
        payload = {"data": {MINT: {"id": MINT, "price": "0.0125"}}}
        with patch("hints.oracle.requests.get", return_value=_response(payload)) as get:
            assert fetch_token_price_usd(MINT) == Decimal("0.0125")
        assert get.call_args.kwargs["params"] == {"ids": MINT}

    def test_numeric_price(self):
        payload = {"data": {MINT: {"price": 2.5}}}
        with patch("hints.oracle.requests.get", return_value=_response(payload)):
            assert fetch_token_price_usd(MINT) == Decimal("2.5")

    @pytest.mark.parametrize(
        "payload",
        [
            {"data": {}},
            {"data": {MINT: None}},
            {"data": {MINT: {"price": None}}},
            {"data": {MINT: {"price": "0"}}},
            {"data": {MINT: {"price": "-1"}}},
            {},
        ],
    )
    def test_missing_or_bad_price_is_unavailable(self, payload):
        with patch("hints.oracle.requests.get", return_value=_response(payload)):
            with pytest.raises(ExternalServiceUnavailable):
                fetch_token_price_usd(MINT)

    def test_http_error_is_unavailable(self):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("502")
        with patch("hints.oracle.requests.get", return_value=resp):
            with pytest.raises(ExternalServiceUnavailable):
                fetch_token_price_usd(MINT)

    def test_timeout_is_unavailable(self):
        with patch("hints.oracle.requests.get", side_effect=requests.Timeout("slow")):
            with pytest.raises(ExternalServiceUnavailable):
                fetch_token_price_usd(MINT)

"""Unit tests — Solana RPC collaborator, without a network."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from solders.keypair import Keypair

from core.domain.exceptions import DomainError, ExternalServiceUnavailable
from treasury.chain import SolanaRpcClient, get_chain_client, is_unexpected_failure, parse_pubkey


class PanicException(BaseException):
    """Same name and base as the panic type raised by solders."""


def _rpc_response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture()
def client():
    return SolanaRpcClient("http://rpc.invalid", timeout=3)


class TestParsePubkey:

    def test_valid_address(self):
        key = Keypair().pubkey()
        assert parse_pubkey(str(key)) == key

    def test_invalid_address(self):
        with pytest.raises(DomainError):
            parse_pubkey("definitely-not-base58!")


class TestGetParsedTransaction:

    def test_returns_result(self, client):
        tx = {"meta": {"err": None}}
        with patch("treasury.chain.requests.post", return_value=_rpc_response({"result": tx})) as post:
            assert client.get_parsed_transaction("sig") == tx
        body = post.call_args.kwargs["json"]
        assert body["method"] == "getTransaction"
        assert body["params"][0] == "sig"
        assert body["params"][1]["encoding"] == "jsonParsed"
        assert post.call_args.kwargs["timeout"] == 3

    def test_unknown_signature_is_none(self, client):
        with patch("treasury.chain.requests.post", return_value=_rpc_response({"result": None})):
            assert client.get_parsed_transaction("sig") is None

    def test_rpc_error_is_unavailable(self, client):
        payload = {"error": {"code": -32005, "message": "Node is behind"}}
        with patch("treasury.chain.requests.post", return_value=_rpc_response(payload)):
            with pytest.raises(ExternalServiceUnavailable, match="Node is behind"):
                client.get_parsed_transaction("sig")

    def test_network_error_is_unavailable(self, client):
        with patch("treasury.chain.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ExternalServiceUnavailable):
                client.get_parsed_transaction("sig")


class TestTreasuryKey:

    def test_unconfigured_key(self, client):
        with pytest.raises(ExternalServiceUnavailable):
            client.treasury_public_key()

    def test_configured_key(self):
        keypair = Keypair()
        client = SolanaRpcClient("http://rpc.invalid", treasury_secret=str(list(bytes(keypair))))
        assert client.treasury_public_key() == str(keypair.pubkey())

    def test_transfer_without_key_never_reaches_rpc(self, client):
        client._client = MagicMock()
        with pytest.raises(ExternalServiceUnavailable):
            client.transfer_lamports(str(Keypair().pubkey()), 1)
        client._client.send_transaction.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [RuntimeError("bad blockhash"), PanicException("missing field data")],
    )
    def test_failure_before_send_is_unavailable(self, error):
        keypair = Keypair()
        client = SolanaRpcClient("http://rpc.invalid", treasury_secret=str(list(bytes(keypair))))
        client._client = MagicMock()
        client._client.get_latest_blockhash.side_effect = error

        with pytest.raises(ExternalServiceUnavailable, match="Treasury transfer failed"):
            client.transfer_lamports(str(Keypair().pubkey()), 1)
        client._client.send_transaction.assert_not_called()


class TestIsUnexpectedFailure:

    def test_ordinary_errors_and_rust_panics_are_absorbed(self):
        assert is_unexpected_failure(RuntimeError("boom"))
        assert is_unexpected_failure(PanicException("unwrap"))

    def test_interpreter_exits_are_not(self):
        assert not is_unexpected_failure(KeyboardInterrupt())
        assert not is_unexpected_failure(SystemExit(1))


def test_get_chain_client_uses_settings(settings):
    settings.SOLANA_RPC_URL = "http://rpc.invalid"
    settings.EXTERNAL_HTTP_TIMEOUT = 4

    client = get_chain_client()

    assert client.rpc_url == "http://rpc.invalid"
    assert client.timeout == 4

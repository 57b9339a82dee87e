"""
treasury.chain — Solana RPC collaborator.

Wraps ``solana-py`` / ``solders`` behind a small client so that the
funding engine and the hint verifier never touch RPC types directly.
Every RPC or network failure is re-raised as
``ExternalServiceUnavailable``; nothing is retried here.

Tests replace ``get_chain_client`` with a fake.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging

import base58
import requests
from django.conf import settings
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from core.domain.exceptions import DomainError, ExternalServiceUnavailable

logger = logging.getLogger(__name__)

_SECRET_KEY_BYTES = 64
_RPC_ERRORS = (SolanaRpcException, RPCException)
_TRANSFER_ERRORS = _RPC_ERRORS + (UnconfirmedTxError, TransactionExpiredBlockheightExceededError)


def is_unexpected_failure(exc: BaseException) -> bool:
    """
    True for errors a transfer attempt should absorb: any ``Exception``
    and the ``PanicException`` solders raises (a ``BaseException``) when
    it cannot decode an RPC error body.
    """
    return isinstance(exc, Exception) or type(exc).__name__ == "PanicException"


def parse_treasury_secret(raw: str) -> Keypair:
    """
    Build the treasury keypair from ``TREASURY_PRIVATE_KEY``.

    Accepted encodings: JSON byte array (``[12, 34, ...]``), base58 or
    base64 of the 64-byte secret key.
    """
    raw = (raw or "").strip()
    if not raw:
        raise ExternalServiceUnavailable("Treasury signing key is not configured.")

    secret: bytes | None = None
    try:
        if raw.startswith("["):
            secret = bytes(json.loads(raw))
        else:
            try:
                decoded = base58.b58decode(raw)
                if len(decoded) == _SECRET_KEY_BYTES:
                    secret = decoded
            except ValueError:
                pass
            if secret is None:
                secret = base64.b64decode(raw, validate=True)
    except (ValueError, TypeError, binascii.Error):
        secret = None

    if secret is None or len(secret) != _SECRET_KEY_BYTES:
        raise ExternalServiceUnavailable(
            "Invalid TREASURY_PRIVATE_KEY format. Use base58, base64 or a JSON byte array."
        )
    try:
        return Keypair.from_bytes(secret)
    except ValueError:
        raise ExternalServiceUnavailable("TREASURY_PRIVATE_KEY is not a valid Solana keypair.")


def parse_pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError:
        raise DomainError(f"Invalid Solana address: {value!r}.")


class SolanaRpcClient:
    """Synchronous RPC client bound to one endpoint and the treasury key."""

    def __init__(self, rpc_url: str, treasury_secret: str = "", timeout: float = 10):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._treasury_secret = treasury_secret
        self._client = Client(rpc_url, timeout=timeout)

    # ── Treasury ─────────────────────────────────────────────────────

    def treasury_keypair(self) -> Keypair:
        return parse_treasury_secret(self._treasury_secret)

    def treasury_public_key(self) -> str:
        return str(self.treasury_keypair().pubkey())

    def transfer_lamports(self, destination: str, lamports: int) -> str:
        """Send ``lamports`` from the treasury and wait for confirmation."""
        payer = self.treasury_keypair()
        to_pubkey = parse_pubkey(destination)
        instruction = transfer(
            TransferParams(from_pubkey=payer.pubkey(), to_pubkey=to_pubkey, lamports=lamports)
        )
        try:
            blockhash = self._client.get_latest_blockhash(commitment=Confirmed).value.blockhash
            message = Message.new_with_blockhash([instruction], payer.pubkey(), blockhash)
            tx = Transaction([payer], message, blockhash)
        except BaseException as exc:
            if not is_unexpected_failure(exc):
                raise
            logger.error("Could not build treasury transfer to %s: %r", destination, exc)
            raise ExternalServiceUnavailable(f"Treasury transfer failed: {exc}")

        try:
            resp = self._client.send_transaction(
                tx,
                opts=TxOpts(skip_confirmation=False, preflight_commitment=Confirmed),
            )
        except _TRANSFER_ERRORS as exc:
            logger.error("Treasury transfer to %s failed: %s", destination, exc)
            raise ExternalServiceUnavailable(f"Treasury transfer failed: {exc}")

        signature = str(resp.value)
        logger.info("Treasury transfer of %s lamports to %s confirmed: %s", lamports, destination, signature)
        return signature

    # ── Reads ────────────────────────────────────────────────────────

    def get_balance(self, pubkey: str) -> int:
        target = parse_pubkey(pubkey)
        try:
            return self._client.get_balance(target, commitment=Confirmed).value
        except _RPC_ERRORS as exc:
            logger.warning("Balance lookup for %s failed: %s", pubkey, exc)
            raise ExternalServiceUnavailable(f"Balance lookup failed: {exc}")

    def get_parsed_transaction(self, signature: str) -> dict | None:
        """
        Fetch a confirmed transaction in ``jsonParsed`` encoding.

        Returns ``None`` when the node does not know the signature.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getTransaction",
            "params": [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": "confirmed",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        }
        try:
            resp = requests.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("getTransaction %s failed: %s", signature, exc)
            raise ExternalServiceUnavailable(f"Could not fetch transaction: {exc}")

        if data.get("error"):
            logger.warning("getTransaction %s returned error: %s", signature, data["error"])
            raise ExternalServiceUnavailable(
                f"Could not fetch transaction: {data['error'].get('message', data['error'])}"
            )
        return data.get("result")


def get_chain_client() -> SolanaRpcClient:
    return SolanaRpcClient(
        settings.SOLANA_RPC_URL,
        treasury_secret=settings.TREASURY_PRIVATE_KEY,
        timeout=settings.EXTERNAL_HTTP_TIMEOUT,
    )

"""
core.domain.exceptions: errors raised by the pings, treasury and hints
services.

Services never raise DRF exceptions; ``core.domain.exception_handler``
translates these into JSON responses of the form ``{"detail": "..."}``.

Mapping cheatsheet
------------------
┌──────────────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception             │ Meaning                      │ Code │
├──────────────────────────────┼──────────────────────────────┼──────┤
│ DomainError                  │ validation / business rule   │ 400  │
│ PermissionDenied             │ missing admin permission     │ 403  │
│ NotFound                     │ unknown / invisible resource │ 404  │
│ Conflict                     │ state conflict, duplicates   │ 409  │
│ InvalidTransition            │ illegal claim transition     │ 409  │
│ CapacityExceeded             │ funding cap would be passed  │ 422  │
│ ExternalVerificationFailure  │ on-chain payment mismatch    │ 400  │
│ ExternalServiceUnavailable   │ RPC / oracle unreachable     │ 503  │
│ EncryptionConfigurationError │ wallet key misconfigured     │ 500  │
└──────────────────────────────┴──────────────────────────────┴──────┘

Example::

    from core.domain.exceptions import InvalidTransition

    if ping.claim_status != ClaimStatus.PENDING:
        raise InvalidTransition(
            current=ping.claim_status,
            target=ClaimStatus.CLAIMED,
            reason="Only pending claims can be approved.",
        )
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Rejected input or a violated business rule (bad coordinates, missing
    claim proof, unpriced hint).  HTTP 400.
    """

    def __init__(self, message: str = "Request rejected.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The caller lacks the permission the operation requires (for example
    ``pings.can_approve_claim``).  HTTP 403.
    """

    def __init__(self, message: str = "Permission denied.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    Unknown ping, user or role, or a ping that is not publicly visible.
    HTTP 404.
    """

    def __init__(self, message: str = "Not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    Duplicate username, funding already in flight, reused payment
    transaction, missing previous hint level.  HTTP 409.
    """

    def __init__(self, message: str = "Conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    A ``Conflict`` subclass, so also HTTP 409.

    Example::

        raise InvalidTransition(
            current="claimed",
            target="pending",
            reason="Claim status never moves backwards.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"- {reason.rstrip('.')}")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class CapacityExceeded(DomainError):
    """
    A treasury transfer would pass the per-ping or the daily aggregate cap.

    Raised before any transfer is attempted.  Maps to HTTP 422.
    """

    def __init__(self, message: str = "Treasury funding capacity exceeded.") -> None:
        super().__init__(message)


class ExternalVerificationFailure(DomainError):
    """
    Data fetched from an external system (blockchain, price oracle) does
    not satisfy the expected shape.  The message carries the reason so the
    client can show it.

    Maps to HTTP 400.
    """

    def __init__(self, message: str = "External verification failed.") -> None:
        super().__init__(message)


class ExternalServiceUnavailable(ExternalVerificationFailure):
    """
    An external collaborator could not be reached or answered with an
    error.  Never retried automatically; the caller re-issues the request.

    Maps to HTTP 503.
    """

    def __init__(self, message: str = "An external service is unavailable.") -> None:
        super().__init__(message)


class EncryptionConfigurationError(Exception):
    """
    The prize-wallet encryption key is missing or malformed, or a stored
    ciphertext cannot be decrypted with it.

    Not a ``DomainError``: this is an operator fault, reported to clients
    as a generic 500 and never as a partial result.
    """

"""
core.domain.exception_handler: turns service-layer errors into HTTP
responses, so views call services without try/except.

Settings::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    CapacityExceeded,
    Conflict,
    DomainError,
    EncryptionConfigurationError,
    ExternalServiceUnavailable,
    ExternalVerificationFailure,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases.
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:            403,
    NotFound:                    404,
    InvalidTransition:           409,
    Conflict:                    409,
    CapacityExceeded:            422,
    ExternalServiceUnavailable:  503,
    ExternalVerificationFailure: 400,
    DomainError:                 400,
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF's own exceptions (validation, authentication, throttling) keep
    their default rendering.  Domain errors become ``{"detail": message}``
    with the mapped status.  Encryption faults get a generic 500 body.
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, EncryptionConfigurationError):
        logger.error(
            "Wallet encryption failure in %s: %s",
            context.get("view", "unknown"),
            exc,
        )
        return Response(
            {"detail": "Prize wallet encryption is misconfigured."},
            status=500,
        )

    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "%s in %s: %s",
                exc_class.__name__,
                context.get("view", "unknown"),
                exc,
            )
            return Response(
                {"detail": str(exc)},
                status=status_code,
            )

    # Not a domain exception
    return None

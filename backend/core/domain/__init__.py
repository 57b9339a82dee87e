"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
notifications  Pluggable broadcast of domain events.
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
access         Permission guard.
audit          Append-only administrative audit trail writer.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationService
    from core.domain.transactions import atomic_transition, lock_for_update
    from core.domain.access import require_permission
    from core.domain.audit import record_action
"""

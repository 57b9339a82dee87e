"""
core.domain.audit — Append-only administrative audit trail.

Every administrative mutation (ping create/update/delete, claim approval,
key reveal, funding retry, login) writes exactly one ``AuditLog`` row
through ``record_action``.  Callers invoke it inside the same
transaction as the mutation so the entry and the change commit together.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import AuditLog

logger = logging.getLogger(__name__)


def record_action(
    *,
    actor: User | None,
    action: str,
    entity: str,
    entity_id: Any,
    details: dict[str, Any] | str | None = None,
) -> AuditLog:
    """
    Append one audit entry.

    ``details`` may be a dict (stored as compact JSON) or a plain string.
    It must never contain secrets; callers pass identifiers only.
    """
    from core.models import AuditLog  # circular import

    if isinstance(details, dict):
        details = json.dumps(details, sort_keys=True, default=str)

    username = ""
    if actor is not None and getattr(actor, "is_authenticated", False):
        username = actor.get_username()
    else:
        actor = None

    entry = AuditLog.objects.create(
        actor=actor,
        actor_username=username,
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        details=details or "",
    )
    logger.info(
        "Audit: %s %s %s#%s",
        username or "<anonymous>",
        action,
        entity,
        entity_id,
    )
    return entry

"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (services, ``setup_rbac``, tests)
uses one of the constants defined here.

- **Standard CRUD** permissions follow Django's auto-generated naming
  ``<action>_<model_lowercase>``; they are listed so ``setup_rbac`` can
  map them to roles without typos.
- **Custom workflow** permissions map to codenames registered in the
  related model's ``Meta.permissions``.

Constants store the **codename only** (no ``app_label.`` prefix).  Use
``perm(app_label, codename)`` to build the ``has_perm`` string.
"""


def perm(app_label: str, codename: str) -> str:
    """Return the full ``app_label.codename`` string for ``has_perm``."""
    return f"{app_label}.{codename}"


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard CRUD + user-management permissions."""

    # Role
    VIEW_ROLE = "view_role"
    ADD_ROLE = "add_role"
    CHANGE_ROLE = "change_role"
    DELETE_ROLE = "delete_role"

    # User
    VIEW_USER = "view_user"
    ADD_USER = "add_user"
    CHANGE_USER = "change_user"
    DELETE_USER = "delete_user"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """List, create, re-role and delete administrator accounts."""


# ════════════════════════════════════════════════════════════════════
#  CORE APP
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Audit log is append-only: only the view permission is ever granted."""

    VIEW_AUDITLOG = "view_auditlog"


# ════════════════════════════════════════════════════════════════════
#  PINGS APP
# ════════════════════════════════════════════════════════════════════

class PingsPerms:
    """Standard + custom permissions for the pings app."""

    # ── Ping: standard CRUD ─────────────────────────────────────────
    VIEW_PING = "view_ping"
    ADD_PING = "add_ping"
    CHANGE_PING = "change_ping"
    DELETE_PING = "delete_ping"

    # ── ProximityCheck ──────────────────────────────────────────────
    VIEW_PROXIMITYCHECK = "view_proximitycheck"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_APPROVE_CLAIM = "can_approve_claim"
    """Approve a pending claim (funds the prize wallet and reveals its key)."""

    CAN_REVEAL_PRIZE_KEY = "can_reveal_prize_key"
    """Read a prize wallet's secret key outside the approval path."""


# ════════════════════════════════════════════════════════════════════
#  TREASURY APP
# ════════════════════════════════════════════════════════════════════

class TreasuryPerms:
    """Standard + custom permissions for the treasury app."""

    VIEW_TREASURYTRANSFERLOG = "view_treasurytransferlog"

    CAN_RETRY_FUNDING = "can_retry_funding"
    """Re-trigger a failed treasury funding transfer."""


# ════════════════════════════════════════════════════════════════════
#  HINTS APP
# ════════════════════════════════════════════════════════════════════

class HintsPerms:
    """Standard CRUD permissions for the hints app."""

    VIEW_HINTSETTINGS = "view_hintsettings"
    CHANGE_HINTSETTINGS = "change_hintsettings"

    VIEW_HINTPURCHASE = "view_hintpurchase"

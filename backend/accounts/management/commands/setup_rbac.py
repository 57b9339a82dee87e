"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the **Admin** and **Editor** roles and links each to its Django
permissions.

This command does NOT create Permission objects: standard CRUD
permissions come from ``migrate`` and custom workflow permissions from
each model's ``Meta.permissions``.  It is idempotent; existing roles are
updated and their permission sets replaced.

Usage::

    python manage.py migrate
    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role
from core.permissions_constants import (
    AccountsPerms,
    CorePerms,
    HintsPerms,
    PingsPerms,
    TreasuryPerms,
)

# Key:   (role_name, description, hierarchy_level)
# Value: list of codenames from ``core.permissions_constants``
ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[str]] = {

    # ── Admin ───────────────────────────────────────────────────────
    (
        "Admin",
        "Full access: approves claims, reveals keys, funds, manages users.",
        100,
    ): [
        AccountsPerms.VIEW_ROLE, AccountsPerms.VIEW_USER,
        AccountsPerms.ADD_USER, AccountsPerms.CHANGE_USER, AccountsPerms.DELETE_USER,
        AccountsPerms.CAN_MANAGE_USERS,
        CorePerms.VIEW_AUDITLOG,
        PingsPerms.VIEW_PING, PingsPerms.ADD_PING,
        PingsPerms.CHANGE_PING, PingsPerms.DELETE_PING,
        PingsPerms.VIEW_PROXIMITYCHECK,
        PingsPerms.CAN_APPROVE_CLAIM, PingsPerms.CAN_REVEAL_PRIZE_KEY,
        TreasuryPerms.VIEW_TREASURYTRANSFERLOG, TreasuryPerms.CAN_RETRY_FUNDING,
        HintsPerms.VIEW_HINTSETTINGS, HintsPerms.CHANGE_HINTSETTINGS,
        HintsPerms.VIEW_HINTPURCHASE,
    ],

    # ── Editor ──────────────────────────────────────────────────────
    (
        "Editor",
        "Creates and edits pings; read-only on claims and funding.",
        50,
    ): [
        PingsPerms.VIEW_PING, PingsPerms.ADD_PING, PingsPerms.CHANGE_PING,
        PingsPerms.VIEW_PROXIMITYCHECK,
        HintsPerms.VIEW_HINTSETTINGS, HintsPerms.VIEW_HINTPURCHASE,
    ],
}


class Command(BaseCommand):
    help = (
        "Seeds the Admin and Editor roles and maps each to its Django "
        "permissions.  Idempotent.  Run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING("RBAC setup: seeding roles & permissions"))

        all_permissions: dict[str, Permission] = {
            p.codename: p
            for p in Permission.objects.select_related("content_type").all()
        }

        warnings = 0
        for (role_name, description, hierarchy_level), codenames in ROLE_PERMISSIONS_MAP.items():
            role, created = Role.objects.update_or_create(
                name=role_name,
                defaults={
                    "description": description,
                    "hierarchy_level": hierarchy_level,
                },
            )

            resolved: list[Permission] = []
            for codename in codenames:
                permission = all_permissions.get(codename)
                if permission is None:
                    warnings += 1
                    self.stdout.write(self.style.WARNING(
                        f"  Permission '{codename}' not found; skipped for role '{role_name}'."
                    ))
                    continue
                resolved.append(permission)

            role.permissions.set(resolved)

            self.stdout.write(self.style.SUCCESS(
                f"  {'Created' if created else 'Updated'} role: {role_name:<10s} "
                f"(hierarchy={hierarchy_level}, permissions={len(resolved)})"
            ))

        summary = f"Done. {len(ROLE_PERMISSIONS_MAP)} role(s) synced."
        if warnings:
            summary += f" {warnings} permission warning(s)."
        self.stdout.write(self.style.SUCCESS(summary))

"""
Accounts app models.

Defines the dynamic Role system and a custom User model that extends
Django's ``AbstractUser``.  Only operators (admins and editors) hold
accounts; claimants are anonymous and identified by wallet address.
"""

from django.contrib.auth.models import AbstractUser, Permission
from django.db import models

from core.permissions_constants import AccountsPerms


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    ``hierarchy_level`` orders roles for display (Admin > Editor).
    Permissions are linked by the ``setup_rbac`` management command, which
    never creates ``Permission`` rows itself: standard CRUD permissions come
    from ``migrate`` and custom ones from each model's ``Meta.permissions``
    (codenames defined in ``core.permissions_constants``).
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority (Admin=100, Editor=50).",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Operator account.

    Each user holds exactly **one** role at a time (FK to ``Role``); all
    access control goes through ``has_perm`` against the role's
    permission set.  Superusers implicitly hold every permission.
    """

    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Admin-level user management"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """Return the set of ``app_label.codename`` strings the user holds."""
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {
                    f"{p.content_type.app_label}.{p.codename}" for p in perms
                }
            return self._superuser_perm_cache

        if not self.role:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {
                f"{p.content_type.app_label}.{p.codename}" for p in perms
            }
        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return any(p.startswith(f"{app_label}.") for p in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """Sorted permission strings, handed to the admin UI for rendering."""
        return sorted(self.get_all_permissions())

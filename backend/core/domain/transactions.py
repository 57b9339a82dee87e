"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``transaction.atomic`` and ``select_for_update`` into reusable
patterns so that every app's service layer serialises conflicting
writes the same way.

Usage::

    from core.domain.transactions import atomic_transition

    ping = atomic_transition(
        instance=ping,
        status_field="claim_status",
        target_status="pending",
        allowed_sources={"unclaimed"},
        extra_updates={"proof_url": url},
    )

    # Row lock inside an existing atomic block:
    from core.domain.transactions import lock_for_update

    with transaction.atomic():
        ping = lock_for_update(Ping, ping_id)
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from django.db import models, transaction

from core.domain.exceptions import InvalidTransition, NotFound

M = TypeVar("M", bound=models.Model)


def atomic_transition(
    *,
    instance: M,
    status_field: str = "status",
    target_status: str,
    allowed_sources: Iterable[str] | None = None,
    extra_updates: dict[str, Any] | None = None,
    guard: Callable[[M], None] | None = None,
) -> M:
    """
    Atomically move a model instance from one status to another.

    Inside ``transaction.atomic()`` the row is re-fetched with
    ``select_for_update()``, ``guard`` (if any) runs against the locked
    copy, the current status is checked against ``allowed_sources``,
    and then the status plus ``extra_updates`` are written in a single
    ``save(update_fields=...)``.

    Args:
        instance:        The model instance to transition.
        status_field:    Name of the status field on the model.
        target_status:   The desired new value.
        allowed_sources: Status values from which the transition is
                         permitted.  ``None`` accepts any value.
        extra_updates:   Additional ``field -> value`` pairs written in
                         the same save.
        guard:           Optional callable receiving the locked instance;
                         it may raise a domain exception to abort.

    Returns:
        The caller's instance, refreshed from the database.

    Raises:
        NotFound:          If the row no longer exists.
        InvalidTransition: If the current status is not allowed.
    """
    model_class = type(instance)

    with transaction.atomic():
        locked = lock_for_update(model_class, instance.pk)

        if guard is not None:
            guard(locked)

        current = getattr(locked, status_field)
        if allowed_sources is not None and current not in allowed_sources:
            raise InvalidTransition(
                current=str(current),
                target=target_status,
                reason=(
                    f"Allowed source states: "
                    f"{', '.join(str(s) for s in allowed_sources)}"
                ),
            )

        setattr(locked, status_field, target_status)
        update_fields = {status_field}
        for field, value in (extra_updates or {}).items():
            setattr(locked, field, value)
            update_fields.add(field)
        if any(f.name == "updated_at" for f in model_class._meta.concrete_fields):
            update_fields.add("updated_at")

        locked.save(update_fields=list(update_fields))

    instance.refresh_from_db()
    return instance


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on ``model_class`` row ``pk``.

    Must be called inside an ``atomic()`` block.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")

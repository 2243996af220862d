"""Permission evaluation: may this actor perform this action on this tier?

Evaluation of ``has_permission``:
1. Free tier and the actor is not the owner -> deny (the free tier has no
   role system, only owner vs. everyone else)
2. Otherwise -> the role's flag from the role catalog

The derived checks add the ownership escape hatches on top: project owners
may always manage their project, task creators their task. Analytics is
additionally gated on a paid tier, for the owner too.
"""

from __future__ import annotations

from collections.abc import Callable

from teamgate.models import (
    Permission,
    PermissionContext,
    SubscriptionTier,
    UserRole,
    parse_permission,
)
from teamgate.roles.catalog import DEFAULT_ROLE_CATALOG, RoleCatalog


def has_permission(
    context: PermissionContext,
    permission: Permission | str,
    *,
    catalog: RoleCatalog | None = None,
) -> bool:
    """Resolve a role permission for a context, with the free-tier collapse applied.

    No ownership escape hatch is applied here; see ``check_permission``.

    Raises:
        UnknownKeyError: Unknown permission name.
    """
    perm = parse_permission(permission)
    if (
        context.subscription_tier is SubscriptionTier.FREE
        and context.user_role is not UserRole.OWNER
    ):
        return False

    cat = catalog if catalog is not None else DEFAULT_ROLE_CATALOG
    return cat.get(context.user_role).allows(perm)


def can_manage_team(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_MANAGE_TEAM, catalog=catalog)


def can_manage_project(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    """Role permission, or the actor owns the project."""
    return (
        has_permission(context, Permission.CAN_MANAGE_PROJECTS, catalog=catalog)
        or context.is_project_owner
    )


def can_manage_task(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    """Role permission, or the actor created the task."""
    return (
        has_permission(context, Permission.CAN_MANAGE_TASKS, catalog=catalog)
        or context.is_task_creator
    )


def can_manage_members(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_MANAGE_MEMBERS, catalog=catalog)


def can_invite_members(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_INVITE_MEMBERS, catalog=catalog)


def can_remove_members(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_REMOVE_MEMBERS, catalog=catalog)


def can_view_analytics(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    """Analytics needs a paid tier even for the team owner, then the role permission."""
    if context.subscription_tier is SubscriptionTier.FREE:
        return False
    return has_permission(context, Permission.CAN_VIEW_ANALYTICS, catalog=catalog)


def can_manage_billing(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_MANAGE_BILLING, catalog=catalog)


def can_delete_team(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_DELETE_TEAM, catalog=catalog)


def can_manage_settings(context: PermissionContext, *, catalog: RoleCatalog | None = None) -> bool:
    return has_permission(context, Permission.CAN_MANAGE_SETTINGS, catalog=catalog)


# Permissions whose full policy is more than the raw role flag
_DERIVED_CHECKS: dict[Permission, Callable[..., bool]] = {
    Permission.CAN_MANAGE_PROJECTS: can_manage_project,
    Permission.CAN_MANAGE_TASKS: can_manage_task,
    Permission.CAN_VIEW_ANALYTICS: can_view_analytics,
}


def check_permission(
    context: PermissionContext,
    permission: Permission | str,
    *,
    catalog: RoleCatalog | None = None,
) -> bool:
    """Resolve the full policy for a permission, escape hatches and extra gates included.

    This is what a request handler should ask. ``has_permission`` is the raw
    role-and-tier answer underneath it.
    """
    perm = parse_permission(permission)
    derived = _DERIVED_CHECKS.get(perm)
    if derived is not None:
        return derived(context, catalog=catalog)
    return has_permission(context, perm, catalog=catalog)


def effective_permissions(
    context: PermissionContext,
    *,
    catalog: RoleCatalog | None = None,
) -> dict[Permission, bool]:
    """Resolve every permission for a context via ``check_permission``."""
    return {perm: check_permission(context, perm, catalog=catalog) for perm in Permission}

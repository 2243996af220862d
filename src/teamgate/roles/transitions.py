"""Role transition validation: who may move a team member from one role to another.

Rules are checked in order; the first one that applies decides:
1. The owner's role never changes here (ownership transfer is a separate flow)
2. Only the owner may assign the owner role
3. The admin role needs a tier whose max role is admin (any paid tier)
4. Admins may reassign any non-owner role
5. Owners may reassign any role
6. Everyone else is rejected

The vetoes (1, 2) and the tier gate (3) come before actor authority, so an
owner on the free tier still cannot promote anyone to admin.
"""

from __future__ import annotations

from teamgate.models import (
    ROLE_ORDER,
    Permission,
    PermissionContext,
    SubscriptionTier,
    TransitionResult,
    UserRole,
    parse_role,
    parse_tier,
)
from teamgate.roles.catalog import RoleCatalog, get_max_role
from teamgate.roles.permissions import has_permission


class TransitionReason:
    """User-facing rejection messages. UI copy and tests match on these exactly."""

    OWNER_IMMUTABLE = "Cannot change team owner role"
    OWNER_ASSIGNMENT = "Only team owner can assign ownership"
    ADMIN_REQUIRES_PAID = "Admin role requires paid subscription"
    INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


def validate_role_transition(
    from_role: UserRole | str,
    to_role: UserRole | str,
    actor_role: UserRole | str,
    tier: SubscriptionTier | str,
) -> TransitionResult:
    """Decide whether ``actor_role`` may move a member from ``from_role`` to ``to_role``.

    A rejection is returned as ``TransitionResult(valid=False, reason=...)``,
    never raised.

    Raises:
        UnknownKeyError: Unknown role or tier name.
    """
    source = parse_role(from_role)
    target = parse_role(to_role)
    actor = parse_role(actor_role)
    resolved_tier = parse_tier(tier)

    if source is UserRole.OWNER:
        return TransitionResult(valid=False, reason=TransitionReason.OWNER_IMMUTABLE)

    if target is UserRole.OWNER and actor is not UserRole.OWNER:
        return TransitionResult(valid=False, reason=TransitionReason.OWNER_ASSIGNMENT)

    if target is UserRole.ADMIN and get_max_role(resolved_tier) is not UserRole.ADMIN:
        return TransitionResult(valid=False, reason=TransitionReason.ADMIN_REQUIRES_PAID)

    if actor is UserRole.ADMIN:
        return TransitionResult(valid=True)

    if actor is UserRole.OWNER:
        return TransitionResult(valid=True)

    return TransitionResult(valid=False, reason=TransitionReason.INSUFFICIENT_PERMISSIONS)


def assignable_roles(
    current_role: UserRole | str,
    actor_role: UserRole | str,
    tier: SubscriptionTier | str,
) -> list[UserRole]:
    """Roles a member could be moved to by this actor, in catalog order.

    The member's current role is never listed.
    """
    current = parse_role(current_role)
    return [
        role for role in ROLE_ORDER
        if role is not current
        and validate_role_transition(current, role, actor_role, tier).valid
    ]


def can_change_role(
    context: PermissionContext,
    target_role: UserRole | str,
    current_role: UserRole | str,
    *,
    catalog: RoleCatalog | None = None,
) -> bool:
    """Coarse check used to decide whether to offer role editing for a member at all.

    Anything touching the owner role needs the actual team owner. Admins may
    edit other roles; anyone else needs the ``can_change_roles`` permission.
    ``validate_role_transition`` remains the authority for a concrete change.
    """
    target = parse_role(target_role)
    current = parse_role(current_role)

    if target is UserRole.OWNER or current is UserRole.OWNER:
        return context.is_team_owner

    if context.user_role is UserRole.ADMIN:
        return True

    return has_permission(context, Permission.CAN_CHANGE_ROLES, catalog=catalog)

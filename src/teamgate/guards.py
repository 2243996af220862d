"""Raise-on-deny guards for request handlers.

The evaluators answer yes/no. Handlers that prefer to bail out with an
exception call these instead; each raises a subclass of ``AccessDenied``
that carries what the UI needs to render an upgrade prompt or a
permission-denied message. Nothing here should be retried: a denial is a
policy outcome, not a transient failure.

Usage::

    ctx = PermissionContext(user_role=member.role, subscription_tier=account.tier,
                            is_project_owner=project.owner_id == user_id)
    ensure_permission(ctx, Permission.CAN_MANAGE_PROJECTS)
    ensure_below_limit(account.tier, Feature.MAX_TASKS_PER_PROJECT, task_count)
"""

from __future__ import annotations

import logging

from teamgate.models import (
    Feature,
    LimitStatus,
    Permission,
    PermissionContext,
    SubscriptionTier,
    TransitionResult,
    UserRole,
    parse_feature,
    parse_permission,
    parse_tier,
)
from teamgate.roles.catalog import RoleCatalog
from teamgate.roles.permissions import check_permission
from teamgate.roles.transitions import validate_role_transition
from teamgate.tiers.catalog import TierCatalog
from teamgate.tiers.entitlements import (
    can_access_feature,
    check_limit,
    exceeds_upload_limit,
    get_limit,
    minimum_tier_for,
)

logger = logging.getLogger(__name__)


class AccessDenied(Exception):
    """Base for every guard failure. ``reason`` is safe to show to the user."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PermissionDenied(AccessDenied):
    """The actor's role (or the free-tier collapse) does not allow the action."""

    def __init__(self, reason: str, permission: Permission) -> None:
        super().__init__(reason)
        self.permission = permission


class UpgradeRequired(AccessDenied):
    """The account's tier does not include a capability."""

    def __init__(
        self,
        reason: str,
        feature: Feature,
        tier: SubscriptionTier,
        required_tier: SubscriptionTier | None = None,
    ) -> None:
        super().__init__(reason)
        self.feature = feature
        self.tier = tier
        self.required_tier = required_tier


class LimitReached(AccessDenied):
    """Creating one more resource would exceed the tier's cap."""

    def __init__(self, reason: str, status: LimitStatus) -> None:
        super().__init__(reason)
        self.status = status


class RoleTransitionDenied(AccessDenied):
    """A role change was rejected by ``validate_role_transition``."""

    def __init__(self, result: TransitionResult) -> None:
        super().__init__(result.reason or "Invalid role change")
        self.result = result


def ensure_feature(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    *,
    catalog: TierCatalog | None = None,
) -> None:
    """Raise UpgradeRequired unless the tier has the capability flag."""
    if can_access_feature(tier, feature, catalog=catalog):
        return
    resolved_tier = parse_tier(tier)
    feat = parse_feature(feature)
    required = minimum_tier_for(feat, catalog=catalog)
    if required is None:
        reason = f"{feat.value} is not available on any plan"
    else:
        reason = f"This feature requires a {required.value} subscription or higher"
    logger.info("Feature %s denied for tier %s", feat.value, resolved_tier.value)
    raise UpgradeRequired(reason, feat, resolved_tier, required)


def ensure_below_limit(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    current_count: int,
    *,
    catalog: TierCatalog | None = None,
) -> LimitStatus:
    """Raise LimitReached if the tier is at its cap; return the usage otherwise."""
    status = check_limit(tier, feature, current_count, catalog=catalog)
    if status.reached:
        logger.info(
            "Limit %s reached for tier %s (%d/%s)",
            status.feature.value, status.tier.value, status.current, status.limit,
        )
        raise LimitReached(
            f"You've reached your {status.feature.value} limit "
            f"({status.current}/{status.limit})",
            status,
        )
    return status


def ensure_upload_size(
    tier: SubscriptionTier | str,
    size_bytes: int,
    *,
    catalog: TierCatalog | None = None,
) -> None:
    """Raise UpgradeRequired if a single file is larger than the tier allows."""
    if not exceeds_upload_limit(tier, size_bytes, catalog=catalog):
        return
    resolved_tier = parse_tier(tier)
    cap_mb = get_limit(resolved_tier, Feature.MAX_FILE_UPLOAD_MB, catalog=catalog)
    logger.info("Upload of %d bytes denied for tier %s", size_bytes, resolved_tier.value)
    raise UpgradeRequired(
        f"File size exceeds limit of {cap_mb}MB",
        Feature.MAX_FILE_UPLOAD_MB,
        resolved_tier,
    )


def ensure_permission(
    context: PermissionContext,
    permission: Permission | str,
    *,
    catalog: RoleCatalog | None = None,
) -> None:
    """Raise PermissionDenied unless ``check_permission`` allows the action."""
    perm = parse_permission(permission)
    if check_permission(context, perm, catalog=catalog):
        return
    logger.info(
        "Permission %s denied for role %s on tier %s",
        perm.value, context.user_role.value, context.subscription_tier.value,
    )
    raise PermissionDenied(f"Missing permission: {perm.value}", perm)


def ensure_role_transition(
    from_role: UserRole | str,
    to_role: UserRole | str,
    actor_role: UserRole | str,
    tier: SubscriptionTier | str,
) -> None:
    """Raise RoleTransitionDenied if the role change is not allowed."""
    result = validate_role_transition(from_role, to_role, actor_role, tier)
    if result.valid:
        return
    logger.info(
        "Role change %s -> %s by %s rejected: %s",
        from_role, to_role, actor_role, result.reason,
    )
    raise RoleTransitionDenied(result)

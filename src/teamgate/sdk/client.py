"""TeamGate SDK: the single public entry point.

Binds a tier catalog and a role catalog once and exposes every entitlement,
permission and role-transition check as a method, so application code never
has to thread ``catalog=`` through each call.

Usage::

    from teamgate import TeamGate

    gate = TeamGate(tiers="./catalogs/tiers.yaml")
    tier = gate.effective_tier(account.tier, account.status)
    if gate.has_reached_limit(tier, "maxProjects", project_count):
        ...
    ctx = gate.context(role=member.role, tier=tier, is_team_owner=is_owner)
    gate.ensure_permission(ctx, "canInviteMembers")
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from teamgate import guards
from teamgate.config import TeamgateConfig, load_config
from teamgate.errors import ConfigError
from teamgate.models import (
    Feature,
    FeatureLimits,
    LimitStatus,
    Permission,
    PermissionContext,
    SubscriptionStatus,
    SubscriptionTier,
    TransitionResult,
    UserRole,
)
from teamgate.roles import permissions as role_permissions
from teamgate.roles import transitions
from teamgate.roles.catalog import (
    DEFAULT_ROLE_CATALOG,
    RoleCatalog,
    get_max_role,
    get_role_description,
    get_role_display_name,
    load_role_catalog,
)
from teamgate.tiers import entitlements
from teamgate.tiers.catalog import DEFAULT_CATALOG, TierCatalog, load_tier_catalog

logger = logging.getLogger(__name__)


class TeamGate:
    """Public API for teamgate.

    Loads catalogs from disk (or takes them ready-built), then answers
    entitlement and permission questions against them.
    """

    def __init__(
        self,
        tiers: str | Path | TierCatalog | None = None,
        roles: str | Path | RoleCatalog | None = None,
        config: str | Path | None = None,
        auto_discover: bool = True,
    ) -> None:
        """Initialize TeamGate.

        Args:
            tiers: Tier catalog YAML path or ``TierCatalog`` (optional,
                built-in catalog by default).
            roles: Role catalog YAML path or ``RoleCatalog`` (optional,
                built-in catalog by default).
            config: Path to a ``teamgate.yaml`` (optional).
            auto_discover: Search parent directories for ``teamgate.yaml``
                when ``config`` is not given. Explicit ``tiers``/``roles``
                always win over the config file.

        Raises:
            ConfigError: The config file is missing or invalid.
            CatalogError: A catalog file is missing or invalid.
        """
        try:
            cfg = load_config(config, auto_discover=auto_discover)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config: {e}") from e
        self._config = cfg

        self._tiers = self._resolve_tiers(tiers, cfg)
        self._roles = self._resolve_roles(roles, cfg)
        logger.debug("TeamGate ready (config=%s)", cfg.config_path)

    @staticmethod
    def _resolve_tiers(
        tiers: str | Path | TierCatalog | None, cfg: TeamgateConfig,
    ) -> TierCatalog:
        if isinstance(tiers, TierCatalog):
            return tiers
        source = tiers if tiers is not None else cfg.tiers
        if source is None:
            return DEFAULT_CATALOG
        return load_tier_catalog(source)

    @staticmethod
    def _resolve_roles(
        roles: str | Path | RoleCatalog | None, cfg: TeamgateConfig,
    ) -> RoleCatalog:
        if isinstance(roles, RoleCatalog):
            return roles
        source = roles if roles is not None else cfg.roles
        if source is None:
            return DEFAULT_ROLE_CATALOG
        return load_role_catalog(source)

    # --- Catalogs ---

    @property
    def config(self) -> TeamgateConfig:
        return self._config

    @property
    def tier_catalog(self) -> TierCatalog:
        return self._tiers

    @property
    def role_catalog(self) -> RoleCatalog:
        return self._roles

    # --- Entitlements ---

    def limits(self, tier: SubscriptionTier | str) -> FeatureLimits:
        return entitlements.get_feature_limits(tier, catalog=self._tiers)

    def can_access_feature(self, tier: SubscriptionTier | str, feature: Feature | str) -> bool:
        return entitlements.can_access_feature(tier, feature, catalog=self._tiers)

    def get_limit(self, tier: SubscriptionTier | str, feature: Feature | str) -> int | None:
        return entitlements.get_limit(tier, feature, catalog=self._tiers)

    def has_reached_limit(
        self, tier: SubscriptionTier | str, feature: Feature | str, current_count: int,
    ) -> bool:
        return entitlements.has_reached_limit(tier, feature, current_count, catalog=self._tiers)

    def check_limit(
        self, tier: SubscriptionTier | str, feature: Feature | str, current_count: int,
    ) -> LimitStatus:
        return entitlements.check_limit(tier, feature, current_count, catalog=self._tiers)

    def exceeds_upload_limit(self, tier: SubscriptionTier | str, size_bytes: int) -> bool:
        return entitlements.exceeds_upload_limit(tier, size_bytes, catalog=self._tiers)

    def minimum_tier_for(self, feature: Feature | str) -> SubscriptionTier | None:
        return entitlements.minimum_tier_for(feature, catalog=self._tiers)

    def effective_tier(
        self, tier: SubscriptionTier | str, status: SubscriptionStatus | str,
    ) -> SubscriptionTier:
        return entitlements.effective_tier(tier, status)

    def price(self, tier: SubscriptionTier | str) -> int | None:
        return self._tiers.price(tier)

    def tier_for_price_id(self, price_id: str) -> SubscriptionTier:
        return self._tiers.tier_for_price_id(price_id)

    # --- Permissions ---

    @staticmethod
    def context(
        role: UserRole | str,
        tier: SubscriptionTier | str,
        *,
        is_team_owner: bool = False,
        is_project_owner: bool = False,
        is_task_creator: bool = False,
    ) -> PermissionContext:
        """Build a ``PermissionContext`` from plain values."""
        return PermissionContext(
            user_role=role,
            subscription_tier=tier,
            is_team_owner=is_team_owner,
            is_project_owner=is_project_owner,
            is_task_creator=is_task_creator,
        )

    def has_permission(self, context: PermissionContext, permission: Permission | str) -> bool:
        return role_permissions.has_permission(context, permission, catalog=self._roles)

    def check_permission(self, context: PermissionContext, permission: Permission | str) -> bool:
        return role_permissions.check_permission(context, permission, catalog=self._roles)

    def effective_permissions(self, context: PermissionContext) -> dict[Permission, bool]:
        return role_permissions.effective_permissions(context, catalog=self._roles)

    def can_manage_team(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_team(context, catalog=self._roles)

    def can_manage_project(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_project(context, catalog=self._roles)

    def can_manage_task(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_task(context, catalog=self._roles)

    def can_manage_members(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_members(context, catalog=self._roles)

    def can_invite_members(self, context: PermissionContext) -> bool:
        return role_permissions.can_invite_members(context, catalog=self._roles)

    def can_remove_members(self, context: PermissionContext) -> bool:
        return role_permissions.can_remove_members(context, catalog=self._roles)

    def can_view_analytics(self, context: PermissionContext) -> bool:
        return role_permissions.can_view_analytics(context, catalog=self._roles)

    def can_manage_billing(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_billing(context, catalog=self._roles)

    def can_delete_team(self, context: PermissionContext) -> bool:
        return role_permissions.can_delete_team(context, catalog=self._roles)

    def can_manage_settings(self, context: PermissionContext) -> bool:
        return role_permissions.can_manage_settings(context, catalog=self._roles)

    # --- Roles ---

    def validate_role_transition(
        self,
        from_role: UserRole | str,
        to_role: UserRole | str,
        actor_role: UserRole | str,
        tier: SubscriptionTier | str,
    ) -> TransitionResult:
        return transitions.validate_role_transition(from_role, to_role, actor_role, tier)

    def assignable_roles(
        self,
        current_role: UserRole | str,
        actor_role: UserRole | str,
        tier: SubscriptionTier | str,
    ) -> list[UserRole]:
        return transitions.assignable_roles(current_role, actor_role, tier)

    def can_change_role(
        self,
        context: PermissionContext,
        target_role: UserRole | str,
        current_role: UserRole | str,
    ) -> bool:
        return transitions.can_change_role(
            context, target_role, current_role, catalog=self._roles,
        )

    def max_role(self, tier: SubscriptionTier | str) -> UserRole:
        return get_max_role(tier)

    def role_display_name(self, role: UserRole | str) -> str:
        return get_role_display_name(role)

    def role_description(self, role: UserRole | str) -> str:
        return get_role_description(role)

    # --- Guards ---

    def ensure_feature(self, tier: SubscriptionTier | str, feature: Feature | str) -> None:
        guards.ensure_feature(tier, feature, catalog=self._tiers)

    def ensure_below_limit(
        self, tier: SubscriptionTier | str, feature: Feature | str, current_count: int,
    ) -> LimitStatus:
        return guards.ensure_below_limit(tier, feature, current_count, catalog=self._tiers)

    def ensure_upload_size(self, tier: SubscriptionTier | str, size_bytes: int) -> None:
        guards.ensure_upload_size(tier, size_bytes, catalog=self._tiers)

    def ensure_permission(self, context: PermissionContext, permission: Permission | str) -> None:
        guards.ensure_permission(context, permission, catalog=self._roles)

    def ensure_role_transition(
        self,
        from_role: UserRole | str,
        to_role: UserRole | str,
        actor_role: UserRole | str,
        tier: SubscriptionTier | str,
    ) -> None:
        guards.ensure_role_transition(from_role, to_role, actor_role, tier)

"""teamgate: subscription entitlements and team role permissions for multi-tenant SaaS."""

__version__ = "0.1.0"

from teamgate.config import TeamgateConfig, find_config, load_config
from teamgate.errors import (
    CatalogError,
    ConfigError,
    InvalidArgumentError,
    TeamgateError,
    UnknownKeyError,
)
from teamgate.guards import (
    AccessDenied,
    LimitReached,
    PermissionDenied,
    RoleTransitionDenied,
    UpgradeRequired,
)
from teamgate.models import (
    UNLIMITED,
    Feature,
    FeatureLimits,
    LimitStatus,
    Permission,
    PermissionContext,
    RolePermissions,
    SubscriptionStatus,
    SubscriptionTier,
    TransitionResult,
    UserRole,
)
from teamgate.roles.catalog import RoleCatalog, load_role_catalog
from teamgate.roles.permissions import check_permission, has_permission
from teamgate.roles.transitions import TransitionReason, validate_role_transition
from teamgate.sdk.client import TeamGate
from teamgate.tiers.catalog import TierCatalog, load_tier_catalog
from teamgate.tiers.entitlements import (
    can_access_feature,
    check_limit,
    effective_tier,
    get_feature_limits,
    has_reached_limit,
)

__all__ = [
    "AccessDenied",
    "can_access_feature",
    "CatalogError",
    "check_limit",
    "check_permission",
    "ConfigError",
    "effective_tier",
    "Feature",
    "FeatureLimits",
    "find_config",
    "get_feature_limits",
    "has_permission",
    "has_reached_limit",
    "InvalidArgumentError",
    "LimitReached",
    "LimitStatus",
    "load_config",
    "load_role_catalog",
    "load_tier_catalog",
    "Permission",
    "PermissionContext",
    "PermissionDenied",
    "RoleCatalog",
    "RolePermissions",
    "RoleTransitionDenied",
    "SubscriptionStatus",
    "SubscriptionTier",
    "TeamGate",
    "TeamgateConfig",
    "TeamgateError",
    "TierCatalog",
    "TransitionReason",
    "TransitionResult",
    "UNLIMITED",
    "UnknownKeyError",
    "UpgradeRequired",
    "UserRole",
    "validate_role_transition",
    "__version__",
]

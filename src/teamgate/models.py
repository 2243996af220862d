"""Core data models for teamgate.

Defines the schemas for:
- Subscription tiers and billing status
- Features (numeric caps and boolean capability flags) and their limits
- Team roles and per-role permission flags
- Permission context (who is asking, on which tier, what they own)
- Decision results (role transitions, limit checks)

Every enum-valued argument in the public API goes through one of the
``parse_*`` helpers below, so a name outside the closed set raises
``UnknownKeyError`` instead of falling back to a default.
"""

from __future__ import annotations

import enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamgate.errors import UnknownKeyError

UNLIMITED = -1
"""Sentinel cap value meaning "no finite limit"."""

# --- Enums ---


class SubscriptionTier(enum.StrEnum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


TIER_ORDER: tuple[SubscriptionTier, ...] = (
    SubscriptionTier.FREE,
    SubscriptionTier.STARTER,
    SubscriptionTier.PRO,
    SubscriptionTier.ENTERPRISE,
)

PAID_TIERS: frozenset[SubscriptionTier] = frozenset(TIER_ORDER[1:])


class SubscriptionStatus(enum.StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class UserRole(enum.StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


ROLE_ORDER: tuple[UserRole, ...] = (
    UserRole.OWNER,
    UserRole.ADMIN,
    UserRole.MEMBER,
    UserRole.VIEWER,
)


class Feature(enum.StrEnum):
    MAX_TEAMS = "max_teams"
    MAX_PROJECTS = "max_projects"
    MAX_TASKS_PER_PROJECT = "max_tasks_per_project"
    MAX_FILE_UPLOAD_MB = "max_file_upload_mb"
    MAX_STORAGE_GB = "max_storage_gb"
    ANALYTICS_ACCESS = "analytics_access"
    PRIORITY_SUPPORT = "priority_support"
    CUSTOM_INTEGRATIONS = "custom_integrations"
    ADVANCED_SECURITY = "advanced_security"
    TEAM_ROLES = "team_roles"
    API_ACCESS = "api_access"


NUMERIC_FEATURES: frozenset[Feature] = frozenset({
    Feature.MAX_TEAMS,
    Feature.MAX_PROJECTS,
    Feature.MAX_TASKS_PER_PROJECT,
    Feature.MAX_FILE_UPLOAD_MB,
    Feature.MAX_STORAGE_GB,
})

BOOLEAN_FEATURES: frozenset[Feature] = frozenset(Feature) - NUMERIC_FEATURES


class Permission(enum.StrEnum):
    CAN_MANAGE_TEAM = "can_manage_team"
    CAN_MANAGE_PROJECTS = "can_manage_projects"
    CAN_MANAGE_TASKS = "can_manage_tasks"
    CAN_MANAGE_MEMBERS = "can_manage_members"
    CAN_VIEW_ANALYTICS = "can_view_analytics"
    CAN_MANAGE_BILLING = "can_manage_billing"
    CAN_DELETE_TEAM = "can_delete_team"
    CAN_INVITE_MEMBERS = "can_invite_members"
    CAN_REMOVE_MEMBERS = "can_remove_members"
    CAN_CHANGE_ROLES = "can_change_roles"
    CAN_MANAGE_SETTINGS = "can_manage_settings"


# --- Tier catalog schema ---


class FeatureLimits(BaseModel):
    """Numeric caps and capability flags granted by one subscription tier.

    Caps use ``UNLIMITED`` (-1) for "no finite limit". Field aliases are the
    camelCase names used by the web client and by catalog YAML files.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    max_teams: int = Field(..., alias="maxTeams", ge=UNLIMITED, strict=True)
    max_projects: int = Field(..., alias="maxProjects", ge=UNLIMITED, strict=True)
    max_tasks_per_project: int = Field(
        ..., alias="maxTasksPerProject", ge=UNLIMITED, strict=True,
    )
    max_file_upload_mb: int = Field(..., alias="maxFileUploadMB", ge=UNLIMITED, strict=True)
    max_storage_gb: int = Field(..., alias="maxStorageGB", ge=UNLIMITED, strict=True)
    analytics_access: bool = Field(..., alias="analyticsAccess", strict=True)
    priority_support: bool = Field(..., alias="prioritySupport", strict=True)
    custom_integrations: bool = Field(..., alias="customIntegrations", strict=True)
    advanced_security: bool = Field(..., alias="advancedSecurity", strict=True)
    team_roles: bool = Field(..., alias="teamRoles", strict=True)
    api_access: bool = Field(..., alias="apiAccess", strict=True)

    def value(self, feature: Feature) -> int | bool:
        return getattr(self, feature.value)


# --- Role catalog schema ---


class RolePermissions(BaseModel):
    """What a team role may do, before any tier gate is applied."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    can_manage_team: bool = Field(..., alias="canManageTeam", strict=True)
    can_manage_projects: bool = Field(..., alias="canManageProjects", strict=True)
    can_manage_tasks: bool = Field(..., alias="canManageTasks", strict=True)
    can_manage_members: bool = Field(..., alias="canManageMembers", strict=True)
    can_view_analytics: bool = Field(..., alias="canViewAnalytics", strict=True)
    can_manage_billing: bool = Field(..., alias="canManageBilling", strict=True)
    can_delete_team: bool = Field(..., alias="canDeleteTeam", strict=True)
    can_invite_members: bool = Field(..., alias="canInviteMembers", strict=True)
    can_remove_members: bool = Field(..., alias="canRemoveMembers", strict=True)
    can_change_roles: bool = Field(..., alias="canChangeRoles", strict=True)
    can_manage_settings: bool = Field(..., alias="canManageSettings", strict=True)

    def allows(self, permission: Permission) -> bool:
        return getattr(self, permission.value)


# --- Name parsing ---

_E = TypeVar("_E", bound=enum.StrEnum)

_FEATURE_ALIASES: dict[str, Feature] = {
    field.alias: Feature(name)
    for name, field in FeatureLimits.model_fields.items()
    if field.alias
}

_PERMISSION_ALIASES: dict[str, Permission] = {
    field.alias: Permission(name)
    for name, field in RolePermissions.model_fields.items()
    if field.alias
}


def _parse(
    enum_cls: type[_E],
    value: Any,
    label: str,
    aliases: dict[str, _E] | None = None,
) -> _E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        if aliases and value in aliases:
            return aliases[value]
        try:
            return enum_cls(value)
        except ValueError:
            pass
    allowed = ", ".join(m.value for m in enum_cls)
    raise UnknownKeyError(f"Unknown {label}: {value!r} (expected one of: {allowed})")


def parse_tier(value: SubscriptionTier | str) -> SubscriptionTier:
    return _parse(SubscriptionTier, value, "subscription tier")


def parse_status(value: SubscriptionStatus | str) -> SubscriptionStatus:
    return _parse(SubscriptionStatus, value, "subscription status")


def parse_role(value: UserRole | str) -> UserRole:
    return _parse(UserRole, value, "role")


def parse_feature(value: Feature | str) -> Feature:
    """Resolve a feature by enum member, snake_case value or camelCase alias."""
    return _parse(Feature, value, "feature", _FEATURE_ALIASES)


def parse_permission(value: Permission | str) -> Permission:
    """Resolve a permission by enum member, snake_case value or camelCase alias."""
    return _parse(Permission, value, "permission", _PERMISSION_ALIASES)


# --- Permission context ---


class PermissionContext(BaseModel):
    """Request-scoped facts about the actor, built fresh for every check.

    Role and tier must come from one consistent storage snapshot.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_role: UserRole = Field(..., alias="userRole")
    subscription_tier: SubscriptionTier = Field(..., alias="subscriptionTier")
    is_team_owner: bool = Field(False, alias="isTeamOwner")
    is_project_owner: bool = Field(False, alias="isProjectOwner")
    is_task_creator: bool = Field(False, alias="isTaskCreator")

    # UnknownKeyError is not a ValueError, so pydantic lets it propagate
    @field_validator("user_role", mode="before")
    @classmethod
    def _check_role(cls, v: Any) -> UserRole:
        return parse_role(v)

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _check_tier(cls, v: Any) -> SubscriptionTier:
        return parse_tier(v)


# --- Decision results ---


class TransitionResult(BaseModel):
    """Outcome of a role-transition check. A rejection is a value, not an error."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class LimitStatus(BaseModel):
    """Usage of one numeric cap for one tier."""

    model_config = ConfigDict(frozen=True)

    tier: SubscriptionTier
    feature: Feature
    current: int
    limit: int | None = None
    """The finite cap, or None when the tier is unlimited for this feature."""
    reached: bool
    remaining: int | None = None
    near_limit: bool = False

    @property
    def unlimited(self) -> bool:
        return self.limit is None

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["unlimited"] = self.unlimited
        return data

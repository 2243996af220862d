"""Role catalog: team role -> permission flags, display names and descriptions.

Pure data plus lookup. The tier gate that collapses roles on the free tier
lives in ``teamgate.roles.permissions``; this table only says what each role
may do on a paid tier.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError

from teamgate.errors import CatalogError, UnknownKeyError
from teamgate.models import (
    ROLE_ORDER,
    RolePermissions,
    SubscriptionTier,
    UserRole,
    parse_role,
    parse_tier,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE_PERMISSIONS: Mapping[UserRole, RolePermissions] = MappingProxyType({
    UserRole.OWNER: RolePermissions(
        can_manage_team=True,
        can_manage_projects=True,
        can_manage_tasks=True,
        can_manage_members=True,
        can_view_analytics=True,
        can_manage_billing=True,
        can_delete_team=True,
        can_invite_members=True,
        can_remove_members=True,
        can_change_roles=True,
        can_manage_settings=True,
    ),
    UserRole.ADMIN: RolePermissions(
        can_manage_team=True,
        can_manage_projects=True,
        can_manage_tasks=True,
        can_manage_members=True,
        can_view_analytics=True,
        can_manage_billing=False,
        can_delete_team=False,
        can_invite_members=True,
        can_remove_members=True,
        can_change_roles=False,  # admins reassign through validate_role_transition
        can_manage_settings=True,
    ),
    UserRole.MEMBER: RolePermissions(
        can_manage_team=False,
        can_manage_projects=True,
        can_manage_tasks=True,
        can_manage_members=False,
        can_view_analytics=False,
        can_manage_billing=False,
        can_delete_team=False,
        can_invite_members=False,
        can_remove_members=False,
        can_change_roles=False,
        can_manage_settings=False,
    ),
    UserRole.VIEWER: RolePermissions(
        can_manage_team=False,
        can_manage_projects=False,
        can_manage_tasks=False,
        can_manage_members=False,
        can_view_analytics=False,
        can_manage_billing=False,
        can_delete_team=False,
        can_invite_members=False,
        can_remove_members=False,
        can_change_roles=False,
        can_manage_settings=False,
    ),
})

ROLE_DISPLAY_NAMES: Mapping[UserRole, str] = MappingProxyType({
    UserRole.OWNER: "Team Owner",
    UserRole.ADMIN: "Administrator",
    UserRole.MEMBER: "Member",
    UserRole.VIEWER: "Viewer",
})

ROLE_DESCRIPTIONS: Mapping[UserRole, str] = MappingProxyType({
    UserRole.OWNER: "Full access to team, billing, and all features",
    UserRole.ADMIN: "Manage team, projects, and members (except billing)",
    UserRole.MEMBER: "Create and manage projects and tasks",
    UserRole.VIEWER: "Read-only access to team content",
})


class RoleCatalog:
    """Immutable mapping of every team role to its permission flags."""

    def __init__(self, permissions: Mapping[UserRole | str, RolePermissions]) -> None:
        normalized: dict[UserRole, RolePermissions] = {}
        for key, value in permissions.items():
            try:
                normalized[parse_role(key)] = value
            except UnknownKeyError as e:
                raise CatalogError(str(e)) from e

        missing = [r.value for r in ROLE_ORDER if r not in normalized]
        if missing:
            raise CatalogError(f"Role catalog is missing roles: {', '.join(missing)}")

        # Owner holds every permission
        owner = normalized[UserRole.OWNER]
        denied = [name for name, allowed in owner.model_dump().items() if not allowed]
        if denied:
            raise CatalogError(
                f"Owner role must hold every permission, missing: {', '.join(denied)}"
            )

        self._permissions: Mapping[UserRole, RolePermissions] = MappingProxyType(
            {r: normalized[r] for r in ROLE_ORDER}
        )

    @property
    def roles(self) -> list[UserRole]:
        return list(ROLE_ORDER)

    def __iter__(self) -> Iterator[tuple[UserRole, RolePermissions]]:
        return iter(self._permissions.items())

    def __len__(self) -> int:
        return len(self._permissions)

    def get(self, role: UserRole | str) -> RolePermissions:
        return self._permissions[parse_role(role)]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the YAML catalog format (camelCase permission names)."""
        return {
            "roles": {
                role.value: perms.model_dump(by_alias=True)
                for role, perms in self._permissions.items()
            },
        }


DEFAULT_ROLE_CATALOG = RoleCatalog(DEFAULT_ROLE_PERMISSIONS)


def get_role_display_name(role: UserRole | str) -> str:
    return ROLE_DISPLAY_NAMES[parse_role(role)]


def get_role_description(role: UserRole | str) -> str:
    return ROLE_DESCRIPTIONS[parse_role(role)]


def get_max_role(tier: SubscriptionTier | str) -> UserRole:
    """Highest non-owner role a tier lets teams assign.

    The free tier only supports the owner/member split; any paid tier
    unlocks the admin role.
    """
    if parse_tier(tier) is SubscriptionTier.FREE:
        return UserRole.MEMBER
    return UserRole.ADMIN


def load_role_catalog(path: str | Path) -> RoleCatalog:
    """Load and validate a role catalog from a YAML file.

    The file must have a top-level ``roles`` mapping with an entry for every
    role, each listing all eleven permission flags.

    Raises:
        CatalogError: If the file cannot be read, parsed, or validated.
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"Role catalog file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict) or "roles" not in raw:
        raise CatalogError(f"Role catalog must have a top-level 'roles' key: {path}")

    raw_roles: Any = raw["roles"]
    if not isinstance(raw_roles, dict):
        raise CatalogError(f"'roles' must be a mapping: {path}")

    permissions: dict[str, RolePermissions] = {}
    for name, entry in raw_roles.items():
        if not isinstance(entry, dict):
            raise CatalogError(f"Permissions for role '{name}' must be a mapping: {path}")
        try:
            permissions[name] = RolePermissions(**entry)
        except (ValidationError, TypeError) as e:
            raise CatalogError(f"Invalid permissions for role '{name}' in {path}: {e}") from e

    try:
        catalog = RoleCatalog(permissions)
    except CatalogError as e:
        raise CatalogError(f"Error loading {path}: {e}") from e

    logger.debug("Loaded role catalog from %s", path)
    return catalog

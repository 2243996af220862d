"""Tests for the role catalog and permission evaluation."""

from pathlib import Path

import pytest
import yaml

from teamgate.errors import CatalogError, UnknownKeyError
from teamgate.models import (
    PAID_TIERS,
    ROLE_ORDER,
    TIER_ORDER,
    Permission,
    PermissionContext,
    SubscriptionTier,
    UserRole,
)
from teamgate.roles.catalog import (
    DEFAULT_ROLE_CATALOG,
    DEFAULT_ROLE_PERMISSIONS,
    RoleCatalog,
    get_max_role,
    get_role_description,
    get_role_display_name,
    load_role_catalog,
)
from teamgate.roles.permissions import (
    can_delete_team,
    can_invite_members,
    can_manage_billing,
    can_manage_members,
    can_manage_project,
    can_manage_settings,
    can_manage_task,
    can_manage_team,
    can_remove_members,
    can_view_analytics,
    check_permission,
    effective_permissions,
    has_permission,
)

NON_OWNER_ROLES = [r for r in ROLE_ORDER if r is not UserRole.OWNER]


def ctx(role: str, tier: str, **flags) -> PermissionContext:
    return PermissionContext(user_role=role, subscription_tier=tier, **flags)


# --- Role catalog ---


class TestRoleCatalog:
    def test_owner_has_everything(self):
        owner = DEFAULT_ROLE_CATALOG.get("owner")
        assert all(owner.allows(p) for p in Permission)

    def test_admin(self):
        admin = DEFAULT_ROLE_CATALOG.get(UserRole.ADMIN)
        granted = {p for p in Permission if admin.allows(p)}
        assert granted == {
            Permission.CAN_MANAGE_TEAM,
            Permission.CAN_MANAGE_PROJECTS,
            Permission.CAN_MANAGE_TASKS,
            Permission.CAN_MANAGE_MEMBERS,
            Permission.CAN_VIEW_ANALYTICS,
            Permission.CAN_INVITE_MEMBERS,
            Permission.CAN_REMOVE_MEMBERS,
            Permission.CAN_MANAGE_SETTINGS,
        }

    def test_member(self):
        member = DEFAULT_ROLE_CATALOG.get("member")
        granted = {p for p in Permission if member.allows(p)}
        assert granted == {Permission.CAN_MANAGE_PROJECTS, Permission.CAN_MANAGE_TASKS}

    def test_viewer_has_nothing(self):
        viewer = DEFAULT_ROLE_CATALOG.get("viewer")
        assert not any(viewer.allows(p) for p in Permission)

    def test_iteration_order(self):
        assert [r for r, _ in DEFAULT_ROLE_CATALOG] == list(ROLE_ORDER)
        assert len(DEFAULT_ROLE_CATALOG) == 4

    def test_unknown_role(self):
        with pytest.raises(UnknownKeyError):
            DEFAULT_ROLE_CATALOG.get("guest")

    def test_missing_role_rejected(self):
        perms = dict(DEFAULT_ROLE_PERMISSIONS)
        del perms[UserRole.VIEWER]
        with pytest.raises(CatalogError, match="missing roles: viewer"):
            RoleCatalog(perms)

    def test_owner_must_hold_every_permission(self):
        perms = dict(DEFAULT_ROLE_PERMISSIONS)
        perms[UserRole.OWNER] = perms[UserRole.OWNER].model_copy(
            update={"can_manage_billing": False},
        )
        with pytest.raises(CatalogError, match="can_manage_billing"):
            RoleCatalog(perms)

    def test_display_names(self):
        assert get_role_display_name("owner") == "Team Owner"
        assert get_role_display_name("admin") == "Administrator"
        assert get_role_display_name(UserRole.MEMBER) == "Member"
        assert get_role_display_name("viewer") == "Viewer"

    def test_descriptions(self):
        assert get_role_description("viewer") == "Read-only access to team content"
        assert "billing" in get_role_description("admin")

    def test_max_role(self):
        assert get_max_role("free") is UserRole.MEMBER
        for tier in PAID_TIERS:
            assert get_max_role(tier) is UserRole.ADMIN


class TestLoadRoleCatalog:
    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "roles.yaml"
        path.write_text(yaml.safe_dump(DEFAULT_ROLE_CATALOG.to_dict()), encoding="utf-8")
        catalog = load_role_catalog(path)
        for role in ROLE_ORDER:
            assert catalog.get(role) == DEFAULT_ROLE_CATALOG.get(role)

    def test_to_dict_camel_case(self):
        data = DEFAULT_ROLE_CATALOG.to_dict()
        assert data["roles"]["admin"]["canManageBilling"] is False
        assert data["roles"]["owner"]["canDeleteTeam"] is True

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(CatalogError, match="not found"):
            load_role_catalog(tmp_path / "roles.yaml")

    def test_missing_roles_key(self, tmp_path: Path):
        path = tmp_path / "roles.yaml"
        path.write_text("permissions: {}\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="top-level 'roles'"):
            load_role_catalog(path)

    def test_missing_permission_flag(self, tmp_path: Path):
        data = DEFAULT_ROLE_CATALOG.to_dict()
        del data["roles"]["member"]["canManageTasks"]
        path = tmp_path / "roles.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        with pytest.raises(CatalogError, match="Invalid permissions for role 'member'"):
            load_role_catalog(path)

    def test_weakened_owner_rejected(self, tmp_path: Path):
        data = DEFAULT_ROLE_CATALOG.to_dict()
        data["roles"]["owner"]["canDeleteTeam"] = False
        path = tmp_path / "roles.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        with pytest.raises(CatalogError, match="Owner role must hold every permission"):
            load_role_catalog(path)


# --- has_permission ---


class TestHasPermission:
    def test_free_tier_collapse(self):
        for role in NON_OWNER_ROLES:
            for perm in Permission:
                assert has_permission(ctx(role, "free"), perm) is False, (role, perm)

    def test_free_tier_owner_keeps_everything(self):
        for perm in Permission:
            assert has_permission(ctx("owner", "free"), perm) is True

    def test_paid_tier_uses_role_flags(self):
        for tier in PAID_TIERS:
            for role in ROLE_ORDER:
                flags = DEFAULT_ROLE_CATALOG.get(role)
                for perm in Permission:
                    assert has_permission(ctx(role, tier), perm) == flags.allows(perm)

    def test_admin_cannot_manage_billing(self):
        assert has_permission(ctx("admin", "pro"), "canManageBilling") is False
        assert has_permission(ctx("admin", "pro"), "canManageSettings") is True

    def test_no_escape_hatch_here(self):
        context = ctx("viewer", "pro", is_project_owner=True)
        assert has_permission(context, Permission.CAN_MANAGE_PROJECTS) is False

    def test_unknown_permission(self):
        with pytest.raises(UnknownKeyError):
            has_permission(ctx("owner", "pro"), "canFly")

    def test_team_owner_flag_does_not_lift_collapse(self):
        assert has_permission(ctx("member", "free", is_team_owner=True), "canManageTasks") is False


# --- Derived checks ---


class TestDerivedChecks:
    def test_project_owner_escape_hatch(self):
        for tier in TIER_ORDER:
            for role in ROLE_ORDER:
                assert can_manage_project(ctx(role, tier, is_project_owner=True)) is True

    def test_project_escape_hatch_when_role_denies(self):
        context = ctx("viewer", "free", is_project_owner=True)
        assert has_permission(context, "canManageProjects") is False
        assert can_manage_project(context) is True

    def test_task_creator_escape_hatch(self):
        context = ctx("viewer", "starter", is_task_creator=True)
        assert can_manage_task(context) is True
        assert can_manage_task(ctx("viewer", "starter")) is False

    def test_member_on_paid_tier_manages_projects(self):
        assert can_manage_project(ctx("member", "pro")) is True
        assert can_manage_project(ctx("member", "free")) is False

    def test_analytics_needs_paid_tier_even_for_owner(self):
        assert has_permission(ctx("owner", "free"), "canViewAnalytics") is True
        assert can_view_analytics(ctx("owner", "free")) is False

    def test_analytics_on_paid_tier(self):
        assert can_view_analytics(ctx("owner", "starter")) is True
        assert can_view_analytics(ctx("admin", "pro")) is True
        assert can_view_analytics(ctx("member", "enterprise")) is False

    def test_thin_wrappers(self):
        owner = ctx("owner", "pro")
        admin = ctx("admin", "pro")
        assert can_manage_team(admin) is True
        assert can_manage_members(admin) is True
        assert can_invite_members(admin) is True
        assert can_remove_members(admin) is True
        assert can_manage_settings(admin) is True
        assert can_manage_billing(admin) is False
        assert can_delete_team(admin) is False
        assert can_manage_billing(owner) is True
        assert can_delete_team(owner) is True


# --- check_permission / effective_permissions ---


class TestCheckPermission:
    def test_applies_escape_hatches(self):
        context = ctx("viewer", "free", is_project_owner=True, is_task_creator=True)
        assert check_permission(context, "canManageProjects") is True
        assert check_permission(context, "canManageTasks") is True
        assert check_permission(context, "canManageTeam") is False

    def test_applies_analytics_gate(self):
        assert check_permission(ctx("owner", "free"), "canViewAnalytics") is False

    def test_plain_permission_matches_has_permission(self):
        context = ctx("admin", "starter")
        assert check_permission(context, "canInviteMembers") == has_permission(
            context, "canInviteMembers",
        )

    def test_effective_permissions_covers_every_permission(self):
        result = effective_permissions(ctx("member", "pro", is_task_creator=True))
        assert set(result) == set(Permission)
        assert result[Permission.CAN_MANAGE_TASKS] is True
        assert result[Permission.CAN_MANAGE_MEMBERS] is False

    def test_effective_permissions_free_owner(self):
        result = effective_permissions(ctx("owner", SubscriptionTier.FREE))
        assert result[Permission.CAN_VIEW_ANALYTICS] is False
        assert result[Permission.CAN_MANAGE_BILLING] is True

    def test_custom_catalog(self):
        perms = dict(DEFAULT_ROLE_PERMISSIONS)
        perms[UserRole.VIEWER] = perms[UserRole.VIEWER].model_copy(
            update={"can_invite_members": True},
        )
        catalog = RoleCatalog(perms)
        context = ctx("viewer", "pro")
        assert check_permission(context, "canInviteMembers", catalog=catalog) is True
        assert check_permission(context, "canInviteMembers") is False

"""Tests for the FastAPI dependencies (402/403 mapping)."""

import pytest

pytest.importorskip("fastapi")

from fastapi import Depends, FastAPI, Header  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from teamgate import TeamGate  # noqa: E402
from teamgate.guards import (  # noqa: E402
    ensure_permission,
    ensure_role_transition,
    ensure_upload_size,
)
from teamgate.integrations.fastapi import (  # noqa: E402
    init_teamgate,
    install_exception_handlers,
    require_below_limit,
    require_feature,
    require_permission,
)
from teamgate.models import LimitStatus, PermissionContext  # noqa: E402


def current_tier(x_tier: str = Header("free")) -> str:
    return x_tier


def current_project_count(x_projects: int = Header(0)) -> int:
    return x_projects


def current_context(
    x_role: str = Header("viewer"),
    x_tier: str = Header("free"),
    x_task_creator: bool = Header(False),
) -> PermissionContext:
    return PermissionContext(
        user_role=x_role, subscription_tier=x_tier, is_task_creator=x_task_creator,
    )


@pytest.fixture()
def client():
    init_teamgate(TeamGate(auto_discover=False))
    app = FastAPI()
    install_exception_handlers(app)

    @app.get("/analytics", dependencies=[Depends(require_feature("analyticsAccess", current_tier))])
    def analytics():
        return {"ok": True}

    @app.post("/projects")
    def create_project(
        status: LimitStatus = Depends(
            require_below_limit("maxProjects", current_tier, current_project_count),
        ),
    ):
        return {"remaining": status.remaining}

    @app.delete("/tasks/1")
    def delete_task(
        ctx: PermissionContext = Depends(require_permission("canManageTasks", current_context)),
    ):
        return {"role": ctx.user_role.value}

    @app.post("/members/1/role")
    def change_role(x_tier: str = Header("free")):
        ensure_role_transition("member", "admin", "owner", x_tier)
        return {"ok": True}

    return TestClient(app)


class TestRequireFeature:
    def test_allowed(self, client):
        resp = client.get("/analytics", headers={"x-tier": "starter"})
        assert resp.status_code == 200

    def test_upgrade_required(self, client):
        resp = client.get("/analytics", headers={"x-tier": "free"})
        assert resp.status_code == 402
        detail = resp.json()["detail"]
        assert detail["feature"] == "analytics_access"
        assert detail["tier"] == "free"
        assert detail["required_tier"] == "starter"


class TestRequireBelowLimit:
    def test_below_cap_returns_status(self, client):
        resp = client.post("/projects", headers={"x-tier": "pro", "x-projects": "48"})
        assert resp.status_code == 200
        assert resp.json() == {"remaining": 2}

    def test_at_cap(self, client):
        resp = client.post("/projects", headers={"x-tier": "free", "x-projects": "3"})
        assert resp.status_code == 402
        detail = resp.json()["detail"]
        assert detail["reached"] is True
        assert detail["limit"] == 3
        assert "limit" in detail["reason"]

    def test_unlimited(self, client):
        resp = client.post("/projects", headers={"x-tier": "enterprise", "x-projects": "9999"})
        assert resp.status_code == 200
        assert resp.json() == {"remaining": None}


class TestRequirePermission:
    def test_denied(self, client):
        resp = client.delete("/tasks/1", headers={"x-role": "admin", "x-tier": "free"})
        assert resp.status_code == 403
        assert resp.json()["detail"]["permission"] == "can_manage_tasks"

    def test_allowed_on_paid_tier(self, client):
        resp = client.delete("/tasks/1", headers={"x-role": "member", "x-tier": "starter"})
        assert resp.status_code == 200
        assert resp.json() == {"role": "member"}

    def test_task_creator_escape_hatch(self, client):
        resp = client.delete(
            "/tasks/1", headers={"x-role": "viewer", "x-tier": "free", "x-task-creator": "true"},
        )
        assert resp.status_code == 200


class TestExceptionHandlers:
    def test_role_transition_denied_maps_to_403(self, client):
        resp = client.post("/members/1/role", headers={"x-tier": "free"})
        assert resp.status_code == 403
        detail = resp.json()["detail"]
        assert detail["valid"] is False
        assert detail["reason"] == "Admin role requires paid subscription"

    def test_paid_tier_passes(self, client):
        resp = client.post("/members/1/role", headers={"x-tier": "pro"})
        assert resp.status_code == 200

    def test_guard_raised_in_handler_keeps_its_status(self):
        app = FastAPI()
        install_exception_handlers(app)

        @app.post("/uploads")
        def upload():
            ensure_upload_size("free", 6 * 1024 * 1024)

        @app.delete("/teams/1")
        def delete_team():
            ensure_permission(PermissionContext(user_role="admin", subscription_tier="pro"),
                              "canDeleteTeam")

        http = TestClient(app)
        resp = http.post("/uploads")
        assert resp.status_code == 402
        assert resp.json()["detail"]["reason"] == "File size exceeds limit of 5MB"
        resp = http.delete("/teams/1")
        assert resp.status_code == 403
        assert resp.json()["detail"]["permission"] == "can_delete_team"

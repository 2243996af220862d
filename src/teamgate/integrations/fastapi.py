"""FastAPI dependencies that turn teamgate denials into HTTP errors.

Upgrade prompts (capability missing, usage cap reached) become 402 Payment
Required; permission and role-change denials become 403 Forbidden. The
response ``detail`` is a mapping the client can render directly.

The app supplies the request-scoped facts through its own dependencies::

    def current_context(user=Depends(current_user)) -> PermissionContext:
        return PermissionContext(user_role=user.role, subscription_tier=user.team.tier,
                                 is_team_owner=user.id == user.team.owner_id)

    @app.post("/projects", dependencies=[Depends(
        require_below_limit("maxProjects", current_tier, current_project_count))])
    def create_project(...): ...

Requires the ``fastapi`` extra.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from teamgate.guards import (
    AccessDenied,
    LimitReached,
    PermissionDenied,
    RoleTransitionDenied,
    UpgradeRequired,
)
from teamgate.models import (
    Feature,
    LimitStatus,
    Permission,
    PermissionContext,
    SubscriptionTier,
    parse_feature,
    parse_permission,
)
from teamgate.sdk.client import TeamGate

# Module-level gate, set by the app factory.
_gate: TeamGate | None = None


def init_teamgate(gate: TeamGate) -> None:
    """Called by the app factory to inject the gate (custom catalogs)."""
    global _gate  # noqa: PLW0603
    _gate = gate


def _get_gate() -> TeamGate:
    global _gate  # noqa: PLW0603
    if _gate is None:
        _gate = TeamGate(auto_discover=False)
    return _gate


def status_code_for(error: AccessDenied) -> int:
    if isinstance(error, (UpgradeRequired, LimitReached)):
        return 402
    return 403


def denial_detail(error: AccessDenied) -> dict[str, Any]:
    """JSON body describing a denial."""
    detail: dict[str, Any] = {"reason": error.reason}
    match error:
        case UpgradeRequired():
            detail["feature"] = error.feature.value
            detail["tier"] = error.tier.value
            detail["required_tier"] = error.required_tier.value if error.required_tier else None
        case LimitReached():
            detail.update(error.status.to_dict())
        case PermissionDenied():
            detail["permission"] = error.permission.value
        case RoleTransitionDenied():
            detail.update(error.result.to_dict())
    return detail


def _http_error(error: AccessDenied) -> HTTPException:
    return HTTPException(status_code=status_code_for(error), detail=denial_detail(error))


def require_feature(
    feature: Feature | str,
    tier_dependency: Callable[..., SubscriptionTier | str],
) -> Callable[..., SubscriptionTier | str]:
    """Dependency factory: 402 unless the caller's tier has the capability flag."""
    feat = parse_feature(feature)

    def _dependency(
        tier: SubscriptionTier | str = Depends(tier_dependency),
    ) -> SubscriptionTier | str:
        try:
            _get_gate().ensure_feature(tier, feat)
        except UpgradeRequired as e:
            raise _http_error(e) from e
        return tier

    return _dependency


def require_below_limit(
    feature: Feature | str,
    tier_dependency: Callable[..., SubscriptionTier | str],
    count_dependency: Callable[..., int],
) -> Callable[..., LimitStatus]:
    """Dependency factory: 402 if creating one more resource would exceed the cap."""
    feat = parse_feature(feature)

    def _dependency(
        tier: SubscriptionTier | str = Depends(tier_dependency),
        current_count: int = Depends(count_dependency),
    ) -> LimitStatus:
        try:
            return _get_gate().ensure_below_limit(tier, feat, current_count)
        except LimitReached as e:
            raise _http_error(e) from e

    return _dependency


def require_permission(
    permission: Permission | str,
    context_dependency: Callable[..., PermissionContext],
) -> Callable[..., PermissionContext]:
    """Dependency factory: 403 unless the full permission policy allows the action."""
    perm = parse_permission(permission)

    def _dependency(
        context: PermissionContext = Depends(context_dependency),
    ) -> PermissionContext:
        try:
            _get_gate().ensure_permission(context, perm)
        except PermissionDenied as e:
            raise _http_error(e) from e
        return context

    return _dependency


async def _access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content={"detail": denial_detail(exc)})


def install_exception_handlers(app: FastAPI) -> None:
    """Map guard exceptions raised inside route handlers to 402/403 responses."""
    app.add_exception_handler(AccessDenied, _access_denied_handler)

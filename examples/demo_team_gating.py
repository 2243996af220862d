#!/usr/bin/env python3
"""Demo: a team growing from the free tier to pro.

Walks one team through the checks a project-management backend makes
before each write: usage caps, capability flags, role permissions with the
free-tier collapse and ownership escape hatches, and role changes.

Run from the project root after ``pip install -e .``:
    python examples/demo_team_gating.py
"""

from __future__ import annotations

from teamgate import TeamGate
from teamgate.guards import AccessDenied
from teamgate.models import SubscriptionTier

# ANSI colors
GREEN = "\033[92m"
RED = "\033[91m"
CYAN = "\033[96m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"


def _tag(allowed: bool) -> str:
    if allowed:
        return f"{GREEN}{'ALLOW':<7}{RESET}"
    return f"{RED}{'DENY':<7}{RESET}"


def _section(title: str) -> None:
    print(f"\n{BOLD}{CYAN}{title}{RESET}")


def main() -> None:
    gate = TeamGate(auto_discover=False)

    for tier in (SubscriptionTier.FREE, SubscriptionTier.PRO):
        _section(f"Team on the {tier.value} plan (${gate.price(tier)}/month)")

        projects = 3
        status = gate.check_limit(tier, "maxProjects", projects)
        cap = "unlimited" if status.unlimited else status.limit
        print(f"  {_tag(not status.reached)} create project #{projects + 1} "
              f"{DIM}({status.current}/{cap}){RESET}")

        allowed = gate.can_access_feature(tier, "analyticsAccess")
        print(f"  {_tag(allowed)} open analytics dashboard")

        admin = gate.context("admin", tier)
        print(f"  {_tag(gate.can_invite_members(admin))} admin invites a member")

        viewer = gate.context("viewer", tier, is_task_creator=True)
        print(f"  {_tag(gate.can_manage_task(viewer))} viewer edits a task they created")

        result = gate.validate_role_transition("member", "admin", "owner", tier)
        suffix = f" {DIM}({result.reason}){RESET}" if result.reason else ""
        print(f"  {_tag(result.valid)} owner promotes member to admin{suffix}")

        roles = ", ".join(r.value for r in gate.assignable_roles("member", "owner", tier))
        print(f"  {DIM}roles the owner can give a member: {roles}{RESET}")

    _section("Guards raise for handlers that prefer exceptions")
    for check in (
        lambda: gate.ensure_upload_size("free", 12 * 1024 * 1024),
        lambda: gate.ensure_feature("starter", "apiAccess"),
        lambda: gate.ensure_permission(gate.context("member", "free"), "canManageProjects"),
    ):
        try:
            check()
        except AccessDenied as e:
            print(f"  {_tag(False)} {type(e).__name__}: {e.reason}")

    _section("A lapsed subscription falls back to free")
    tier = gate.effective_tier("pro", "past_due")
    print(f"  pro + past_due -> {tier.value} "
          f"(max projects: {gate.get_limit(tier, 'maxProjects')})")


if __name__ == "__main__":
    main()

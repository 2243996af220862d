"""teamgate CLI: inspect catalogs and evaluate decisions from the shell.

Commands:
    init              Scaffold a teamgate.yaml with editable catalog copies
    limits            Show the feature limits of one or every tier
    check-feature     Check a capability flag for a tier
    check-limit       Check a usage count against a tier's cap
    check-permission  Evaluate a permission for a role on a tier
    transition        Validate a role change
    roles             Show roles, their permissions and assignable roles
    validate          Validate catalog files
    test              Run YAML decision test cases
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import yaml

from teamgate import __version__
from teamgate.config import CONFIG_FILENAME, TeamgateConfig, load_config
from teamgate.errors import CatalogError, ConfigError, TeamgateError
from teamgate.models import (
    BOOLEAN_FEATURES,
    NUMERIC_FEATURES,
    ROLE_ORDER,
    TIER_ORDER,
    UNLIMITED,
    Feature,
    Permission,
    parse_feature,
    parse_permission,
    parse_tier,
)
from teamgate.roles.catalog import DEFAULT_ROLE_CATALOG, load_role_catalog
from teamgate.sdk.client import TeamGate
from teamgate.testing.runner import DecisionTestError, load_test_files, run_tests
from teamgate.tiers.catalog import DEFAULT_CATALOG, load_tier_catalog

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_cfg() -> TeamgateConfig:
    """Load config from teamgate.yaml (auto-discover); fall back to defaults on error."""
    try:
        return load_config()
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable %s: %s", CONFIG_FILENAME, e)
        return TeamgateConfig()


def _or(explicit: str | None, cfg_val: str | None) -> str | None:
    """Return first non-None value: explicit CLI flag > config."""
    return explicit or cfg_val


def _load_gate(tiers: str | None, roles: str | None) -> TeamGate:
    cfg = _resolve_cfg()
    try:
        return TeamGate(
            tiers=_or(tiers, cfg.tiers),
            roles=_or(roles, cfg.roles),
            auto_discover=False,
        )
    except (ConfigError, CatalogError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)


def _fail(e: Exception) -> NoReturn:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _verdict(allowed: bool) -> str:
    if allowed:
        return click.style("ALLOW", fg="green", bold=True)
    return click.style("DENY", fg="red", bold=True)


def _format_cap(value: int | bool) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return "unlimited" if value == UNLIMITED else str(value)


tiers_option = click.option(
    "--tiers", default=None, help="Tier catalog YAML (default: teamgate.yaml or built-in)",
)
roles_option = click.option(
    "--roles", default=None, help="Role catalog YAML (default: teamgate.yaml or built-in)",
)
json_option = click.option("--json-output", is_flag=True, help="Output as JSON")


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: log_level from teamgate.yaml, else WARNING)",
)
def cli(log_level: str | None) -> None:
    """teamgate: subscription entitlements and team role permissions."""
    level = log_level.upper() if log_level else _resolve_cfg().log_level_value
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)


# --- init command ---


_INIT_DECISIONS = """\
# Decision tests: run with `teamgate test decisions/`
tests:
  - name: free-has-no-analytics
    kind: feature
    tier: free
    feature: analyticsAccess
    expect: deny

  - name: starter-has-analytics
    kind: feature
    tier: starter
    feature: analyticsAccess
    expect: allow

  - name: free-single-project
    kind: limit
    tier: free
    feature: maxProjects
    count: 3
    expect: deny

  - name: enterprise-teams-unlimited
    kind: limit
    tier: enterprise
    feature: maxTeams
    count: 1000000
    expect: allow

  - name: free-member-cannot-manage-projects
    kind: permission
    role: member
    tier: free
    permission: canManageProjects
    expect: deny

  - name: project-owner-escape-hatch
    kind: permission
    role: viewer
    tier: free
    permission: canManageProjects
    is_project_owner: true
    expect: allow

  - name: admin-requires-paid-tier
    kind: transition
    from: member
    to: admin
    actor: owner
    tier: free
    expect: deny
    reason: Admin role requires paid subscription
"""


@cli.command()
@click.argument("directory", default=".")
def init(directory: str) -> None:
    """Scaffold teamgate.yaml plus editable copies of the built-in catalogs."""
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)

    files: dict[Path, str] = {
        root / CONFIG_FILENAME: (
            "# teamgate project configuration\n"
            "\n"
            "# Paths (relative to this file)\n"
            "tiers: ./catalogs/tiers.yaml\n"
            "roles: ./catalogs/roles.yaml\n"
            "\n"
            "log_level: WARNING\n"
        ),
        root / "catalogs" / "tiers.yaml": (
            "# Feature limits per subscription tier. -1 means unlimited.\n"
            "# Limits must never decrease from free to enterprise.\n"
            + yaml.safe_dump(DEFAULT_CATALOG.to_dict(), sort_keys=False)
        ),
        root / "catalogs" / "roles.yaml": (
            "# Role permissions on paid tiers. The owner must hold every permission.\n"
            + yaml.safe_dump(DEFAULT_ROLE_CATALOG.to_dict(), sort_keys=False)
        ),
        root / "decisions" / "example.yaml": _INIT_DECISIONS,
    }

    created: list[str] = []
    skipped: list[str] = []
    for path, content in files.items():
        rel = str(path.relative_to(root))
        if path.exists():
            skipped.append(rel)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        created.append(rel)

    for rel in created:
        click.echo(click.style("  created", fg="green") + f"  {rel}")
    for rel in skipped:
        click.echo(click.style("  exists ", fg="yellow") + f"  {rel}")

    click.echo(f"\nInitialized teamgate project in {root.resolve()}")
    click.echo("  teamgate validate")
    click.echo("  teamgate test decisions/")


# --- limits command ---


@cli.command()
@click.argument("tier", required=False)
@tiers_option
@json_option
def limits(tier: str | None, tiers: str | None, json_output: bool) -> None:
    """Show the feature limits of TIER, or of every tier."""
    gate = _load_gate(tiers, None)
    try:
        selected = [parse_tier(tier)] if tier else list(TIER_ORDER)
    except TeamgateError as e:
        _fail(e)

    if json_output:
        data = {
            t.value: {
                "limits": gate.limits(t).model_dump(mode="json"),
                "price": gate.price(t),
            }
            for t in selected
        }
        click.echo(json.dumps(data, indent=2))
        return

    header = f"  {'feature':<24}" + "".join(f"{t.value:>12}" for t in selected)
    click.echo(click.style(header, bold=True))
    for feat in Feature:
        row = f"  {feat.value:<24}" + "".join(
            f"{_format_cap(gate.limits(t).value(feat)):>12}" for t in selected
        )
        click.echo(row)
    prices = "".join(
        f"{'-' if gate.price(t) is None else '$' + str(gate.price(t)):>12}"
        for t in selected
    )
    click.echo(f"  {'price (USD/month)':<24}{prices}")


# --- check commands ---


@cli.command("check-feature")
@click.argument("tier")
@click.argument("feature")
@tiers_option
@json_option
def check_feature(tier: str, feature: str, tiers: str | None, json_output: bool) -> None:
    """Check whether TIER includes the capability flag FEATURE."""
    gate = _load_gate(tiers, None)
    try:
        resolved_tier = parse_tier(tier)
        feat = parse_feature(feature)
        allowed = gate.can_access_feature(resolved_tier, feat)
        required = gate.minimum_tier_for(feat)
    except TeamgateError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps({
            "tier": resolved_tier.value,
            "feature": feat.value,
            "allowed": allowed,
            "required_tier": required.value if required else None,
        }, indent=2))
        return

    click.echo(_verdict(allowed) + f" — {feat.value} on {resolved_tier.value}")
    if not allowed and required is not None:
        click.echo(f"  requires: {required.value} or higher")


@cli.command("check-limit")
@click.argument("tier")
@click.argument("feature")
@click.argument("count", type=int)
@tiers_option
@json_option
def check_limit(
    tier: str, feature: str, count: int, tiers: str | None, json_output: bool,
) -> None:
    """Check whether one more FEATURE resource fits when COUNT already exist."""
    gate = _load_gate(tiers, None)
    try:
        status = gate.check_limit(tier, feature, count)
    except TeamgateError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps(status.to_dict(), indent=2))
        return

    cap = "unlimited" if status.unlimited else str(status.limit)
    click.echo(
        _verdict(not status.reached) + f" — {status.feature.value}: {status.current}/{cap}"
    )
    if status.remaining is not None:
        click.echo(f"  remaining: {status.remaining}")
    if status.near_limit and not status.reached:
        click.echo(click.style("  near limit", fg="yellow"))


@cli.command("check-permission")
@click.argument("permission")
@click.option("--role", "-r", required=True, help="Actor's team role")
@click.option("--tier", "-t", required=True, help="Team's subscription tier")
@click.option("--team-owner", is_flag=True, help="Actor owns the team")
@click.option("--project-owner", is_flag=True, help="Actor owns the project")
@click.option("--task-creator", is_flag=True, help="Actor created the task")
@roles_option
@json_option
def check_permission(
    permission: str,
    role: str,
    tier: str,
    team_owner: bool,
    project_owner: bool,
    task_creator: bool,
    roles: str | None,
    json_output: bool,
) -> None:
    """Evaluate PERMISSION for an actor, ownership escape hatches included."""
    gate = _load_gate(None, roles)
    try:
        ctx = gate.context(
            role, tier,
            is_team_owner=team_owner,
            is_project_owner=project_owner,
            is_task_creator=task_creator,
        )
        perm = parse_permission(permission)
        allowed = gate.check_permission(ctx, perm)
        role_flag = gate.has_permission(ctx, perm)
    except TeamgateError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps({
            "permission": perm.value,
            "context": ctx.model_dump(mode="json"),
            "allowed": allowed,
            "role_allows": role_flag,
        }, indent=2))
        return

    click.echo(
        _verdict(allowed)
        + f" — {perm.value} for {ctx.user_role.value} on {ctx.subscription_tier.value}"
    )
    if allowed and not role_flag:
        click.echo("  granted by ownership")


@cli.command()
@click.argument("from_role")
@click.argument("to_role")
@click.option("--actor", "-a", required=True, help="Role of the member making the change")
@click.option("--tier", "-t", required=True, help="Team's subscription tier")
@json_option
def transition(from_role: str, to_role: str, actor: str, tier: str, json_output: bool) -> None:
    """Validate moving a member from FROM_ROLE to TO_ROLE."""
    gate = _load_gate(None, None)
    try:
        result = gate.validate_role_transition(from_role, to_role, actor, tier)
    except TeamgateError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    line = _verdict(result.valid) + f" — {from_role} -> {to_role} by {actor} on {tier}"
    if result.reason:
        line += f": {result.reason}"
    click.echo(line)


# --- roles command ---


@cli.command()
@click.option("--tier", "-t", default=None, help="Also show what each role may assign on this tier")
@roles_option
@json_option
def roles(tier: str | None, roles: str | None, json_output: bool) -> None:
    """Show every role with its permissions."""
    gate = _load_gate(None, roles)
    try:
        resolved_tier = parse_tier(tier) if tier else None
    except TeamgateError as e:
        _fail(e)

    entries = []
    for role in ROLE_ORDER:
        perms = gate.role_catalog.get(role)
        entry = {
            "role": role.value,
            "name": gate.role_display_name(role),
            "description": gate.role_description(role),
            "permissions": [p.value for p in Permission if perms.allows(p)],
        }
        if resolved_tier is not None:
            entry["can_assign"] = [
                r.value for r in ROLE_ORDER
                if any(
                    gate.validate_role_transition(src, r, role, resolved_tier).valid
                    for src in ROLE_ORDER if src is not r
                )
            ]
        entries.append(entry)

    if json_output:
        click.echo(json.dumps(entries, indent=2))
        return

    for entry in entries:
        click.echo(click.style(f"{entry['name']} ({entry['role']})", bold=True))
        click.echo(f"  {entry['description']}")
        click.echo(f"  permissions: {', '.join(entry['permissions']) or '-'}")
        if "can_assign" in entry:
            click.echo(f"  can assign:  {', '.join(entry['can_assign']) or '-'}")
    if resolved_tier is not None:
        click.echo(f"\nMax assignable role on {resolved_tier.value}: "
                   f"{gate.max_role(resolved_tier).value}")


# --- validate command ---


@cli.command()
@tiers_option
@roles_option
def validate(tiers: str | None, roles: str | None) -> None:
    """Validate catalog files."""
    cfg = _resolve_cfg()
    tiers = _or(tiers, cfg.tiers)
    roles = _or(roles, cfg.roles)

    errors: list[str] = []
    ok_count = 0

    if tiers:
        try:
            catalog = load_tier_catalog(tiers)
            click.echo(
                click.style("OK", fg="green")
                + f"  tiers: {len(catalog)} tier(s) loaded"
            )
            ok_count += 1
        except CatalogError as e:
            errors.append(f"tiers: {e}")
            click.echo(click.style("FAIL", fg="red") + f"  tiers: {e}")

    if roles:
        try:
            role_catalog = load_role_catalog(roles)
            click.echo(
                click.style("OK", fg="green")
                + f"  roles: {len(role_catalog)} role(s) loaded"
            )
            ok_count += 1
        except CatalogError as e:
            errors.append(f"roles: {e}")
            click.echo(click.style("FAIL", fg="red") + f"  roles: {e}")

    if errors:
        click.echo(f"\n{len(errors)} error(s) found.")
        sys.exit(1)
    elif ok_count > 0:
        click.echo(f"\nAll {ok_count} catalog(s) valid.")
    else:
        click.echo(
            f"No catalog files configured; using built-in catalogs "
            f"({len(NUMERIC_FEATURES)} limits, {len(BOOLEAN_FEATURES)} flags per tier)."
        )


# --- test command ---


@cli.command("test")
@click.argument("test_path")
@tiers_option
@roles_option
def test_decisions(test_path: str, tiers: str | None, roles: str | None) -> None:
    """Run decision test cases against the current catalogs.

    TEST_PATH is a YAML file or directory of YAML files containing test cases.
    Each test declares a kind (feature, limit, permission, transition), its
    inputs and the expected decision.
    """
    try:
        cases = load_test_files(Path(test_path))
    except DecisionTestError as e:
        click.echo(click.style("ERROR", fg="red") + f"  {e}", err=True)
        sys.exit(1)

    gate = _load_gate(tiers, roles)
    suite = run_tests(gate, cases)

    for result in suite.results:
        if result.passed:
            click.echo(
                click.style("  PASS", fg="green")
                + f"  {result.case.name}"
            )
        else:
            click.echo(
                click.style("  FAIL", fg="red")
                + f"  {result.case.name}"
                + f"  (expected {result.case.expect},"
                + f" got {result.actual})"
            )
            if result.reason:
                click.echo(f"        reason: {result.reason}")
            if result.case.reason is not None:
                click.echo(f"        expected reason: {result.case.reason}")

    click.echo("")
    if suite.all_passed:
        click.echo(click.style(
            f"All {suite.total} test(s) passed.", fg="green", bold=True,
        ))
    else:
        click.echo(click.style(
            f"{suite.failed} of {suite.total} test(s) failed.", fg="red", bold=True,
        ))
        sys.exit(1)


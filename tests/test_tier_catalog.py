"""Tests for the tier catalog: defaults, invariants and YAML loading."""

from pathlib import Path

import pytest
import yaml

from teamgate.errors import CatalogError, UnknownKeyError
from teamgate.models import (
    BOOLEAN_FEATURES,
    NUMERIC_FEATURES,
    TIER_ORDER,
    UNLIMITED,
    FeatureLimits,
    SubscriptionTier,
)
from teamgate.tiers.catalog import (
    DEFAULT_CATALOG,
    DEFAULT_FEATURE_LIMITS,
    TierCatalog,
    cap_at_least,
    find_monotonicity_violations,
    load_tier_catalog,
)


def _with(tier: SubscriptionTier, **overrides) -> dict[SubscriptionTier, FeatureLimits]:
    limits = dict(DEFAULT_FEATURE_LIMITS)
    limits[tier] = limits[tier].model_copy(update=overrides)
    return limits


def _write_catalog(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


# --- Default values ---


class TestDefaultCatalog:
    def test_free(self):
        free = DEFAULT_CATALOG.get("free")
        assert free.max_teams == 1
        assert free.max_projects == 3
        assert free.max_tasks_per_project == 10
        assert free.max_file_upload_mb == 5
        assert free.max_storage_gb == 1
        assert not any(free.value(f) for f in BOOLEAN_FEATURES)

    def test_starter(self):
        starter = DEFAULT_CATALOG.get(SubscriptionTier.STARTER)
        assert (starter.max_teams, starter.max_projects) == (3, 10)
        assert starter.max_tasks_per_project == 50
        assert starter.max_file_upload_mb == 25
        assert starter.max_storage_gb == 10
        assert starter.analytics_access is True
        assert starter.team_roles is True
        assert starter.priority_support is False
        assert starter.custom_integrations is False
        assert starter.advanced_security is False
        assert starter.api_access is False

    def test_pro(self):
        pro = DEFAULT_CATALOG.get("pro")
        assert (pro.max_teams, pro.max_projects, pro.max_tasks_per_project) == (10, 50, 200)
        assert (pro.max_file_upload_mb, pro.max_storage_gb) == (100, 100)
        assert all(pro.value(f) for f in BOOLEAN_FEATURES)

    def test_enterprise_unlimited_counts(self):
        ent = DEFAULT_CATALOG.get("enterprise")
        assert ent.max_teams == UNLIMITED
        assert ent.max_projects == UNLIMITED
        assert ent.max_tasks_per_project == UNLIMITED
        assert ent.max_file_upload_mb == 500
        assert ent.max_storage_gb == 1000

    def test_prices(self):
        assert [DEFAULT_CATALOG.price(t) for t in TIER_ORDER] == [0, 12, 29, 99]

    def test_price_ids(self):
        assert DEFAULT_CATALOG.price_id("free") is None
        assert DEFAULT_CATALOG.price_id("pro") == "price_pro_monthly"

    def test_tier_for_price_id(self):
        tier = DEFAULT_CATALOG.tier_for_price_id("price_starter_monthly")
        assert tier is SubscriptionTier.STARTER

    def test_unknown_price_id(self):
        with pytest.raises(UnknownKeyError):
            DEFAULT_CATALOG.tier_for_price_id("price_gold")

    def test_iteration_in_tier_order(self):
        assert [t for t, _ in DEFAULT_CATALOG] == list(TIER_ORDER)
        assert len(DEFAULT_CATALOG) == 4
        assert DEFAULT_CATALOG.tiers == list(TIER_ORDER)

    def test_unknown_tier(self):
        with pytest.raises(UnknownKeyError):
            DEFAULT_CATALOG.get("platinum")

    def test_default_catalog_is_monotonic(self):
        assert find_monotonicity_violations(DEFAULT_FEATURE_LIMITS) == []


# --- Monotonicity ---


class TestMonotonicity:
    def test_every_numeric_cap_non_decreasing(self):
        for feature in NUMERIC_FEATURES:
            for i, low in enumerate(TIER_ORDER):
                for high in TIER_ORDER[i + 1:]:
                    assert cap_at_least(
                        DEFAULT_CATALOG.get(high).value(feature),
                        DEFAULT_CATALOG.get(low).value(feature),
                    ), (feature, low, high)

    def test_every_flag_non_decreasing(self):
        for feature in BOOLEAN_FEATURES:
            for i, low in enumerate(TIER_ORDER):
                for high in TIER_ORDER[i + 1:]:
                    if DEFAULT_CATALOG.get(low).value(feature):
                        assert DEFAULT_CATALOG.get(high).value(feature), (feature, low, high)

    def test_cap_at_least(self):
        assert cap_at_least(UNLIMITED, 1000)
        assert cap_at_least(UNLIMITED, UNLIMITED)
        assert not cap_at_least(1000, UNLIMITED)
        assert cap_at_least(10, 10)
        assert not cap_at_least(9, 10)

    def test_decreasing_cap_rejected(self):
        with pytest.raises(CatalogError, match="max_projects"):
            TierCatalog(_with(SubscriptionTier.PRO, max_projects=5))

    def test_unlimited_below_finite_rejected(self):
        with pytest.raises(CatalogError, match="max_storage_gb"):
            TierCatalog(_with(SubscriptionTier.PRO, max_storage_gb=UNLIMITED))

    def test_flag_lost_on_higher_tier_rejected(self):
        with pytest.raises(CatalogError, match="analytics_access"):
            TierCatalog(_with(SubscriptionTier.ENTERPRISE, analytics_access=False))

    def test_non_adjacent_pairs_reported(self):
        violations = find_monotonicity_violations(_with(SubscriptionTier.FREE, max_teams=11))
        assert any("starter=3 is below free=11" in v for v in violations)
        assert any("pro=10 is below free=11" in v for v in violations)
        assert not any("enterprise" in v for v in violations)

    def test_equal_caps_allowed(self):
        TierCatalog(_with(SubscriptionTier.STARTER, max_teams=10))


# --- Construction ---


class TestTierCatalogConstruction:
    def test_missing_tier(self):
        limits = dict(DEFAULT_FEATURE_LIMITS)
        del limits[SubscriptionTier.PRO]
        with pytest.raises(CatalogError, match="missing tiers: pro"):
            TierCatalog(limits)

    def test_unknown_tier_key(self):
        limits = {t.value: v for t, v in DEFAULT_FEATURE_LIMITS.items()}
        limits["gold"] = limits["pro"]
        with pytest.raises(CatalogError, match="gold"):
            TierCatalog(limits)

    def test_string_keys_accepted(self):
        catalog = TierCatalog({t.value: v for t, v in DEFAULT_FEATURE_LIMITS.items()})
        assert catalog.get("pro").max_projects == 50

    def test_negative_price_rejected(self):
        with pytest.raises(CatalogError, match="non-negative"):
            TierCatalog(DEFAULT_FEATURE_LIMITS, prices={"pro": -1})

    def test_duplicate_price_id_rejected(self):
        with pytest.raises(CatalogError, match="used by both"):
            TierCatalog(
                DEFAULT_FEATURE_LIMITS,
                price_ids={"starter": "price_x", "pro": "price_x"},
            )

    def test_prices_optional(self):
        catalog = TierCatalog(DEFAULT_FEATURE_LIMITS)
        assert catalog.price("pro") is None
        assert "prices" not in catalog.to_dict()

    def test_to_dict_uses_camel_case(self):
        data = DEFAULT_CATALOG.to_dict()
        assert data["tiers"]["free"]["maxProjects"] == 3
        assert data["tiers"]["enterprise"]["maxTeams"] == -1
        assert data["prices"]["enterprise"] == 99
        assert data["price_ids"]["starter"] == "price_starter_monthly"


# --- YAML loading ---


class TestLoadTierCatalog:
    def test_round_trip_default(self, tmp_path: Path):
        path = _write_catalog(tmp_path / "tiers.yaml", DEFAULT_CATALOG.to_dict())
        catalog = load_tier_catalog(path)
        for tier in TIER_ORDER:
            assert catalog.get(tier) == DEFAULT_CATALOG.get(tier)
        assert catalog.tier_for_price_id("price_pro_monthly") is SubscriptionTier.PRO

    def test_custom_caps(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        data["tiers"]["pro"]["maxProjects"] = 75
        catalog = load_tier_catalog(_write_catalog(tmp_path / "tiers.yaml", data))
        assert catalog.get("pro").max_projects == 75

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(CatalogError, match="not found"):
            load_tier_catalog(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "tiers.yaml"
        path.write_text("tiers: [unclosed\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            load_tier_catalog(path)

    def test_missing_tiers_key(self, tmp_path: Path):
        path = _write_catalog(tmp_path / "tiers.yaml", {"plans": {}})
        with pytest.raises(CatalogError, match="top-level 'tiers'"):
            load_tier_catalog(path)

    def test_tiers_not_mapping(self, tmp_path: Path):
        path = _write_catalog(tmp_path / "tiers.yaml", {"tiers": ["free"]})
        with pytest.raises(CatalogError, match="must be a mapping"):
            load_tier_catalog(path)

    def test_bad_field_value(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        data["tiers"]["starter"]["maxTeams"] = "three"
        path = _write_catalog(tmp_path / "tiers.yaml", data)
        with pytest.raises(CatalogError, match="Invalid limits for tier 'starter'"):
            load_tier_catalog(path)

    def test_unknown_field(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        data["tiers"]["starter"]["maxWidgets"] = 1
        path = _write_catalog(tmp_path / "tiers.yaml", data)
        with pytest.raises(CatalogError):
            load_tier_catalog(path)

    def test_non_monotonic_file_rejected(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        data["tiers"]["enterprise"]["maxFileUploadMB"] = 50
        path = _write_catalog(tmp_path / "tiers.yaml", data)
        with pytest.raises(CatalogError, match="must not decrease"):
            load_tier_catalog(path)

    def test_missing_tier_in_file(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        del data["tiers"]["starter"]
        path = _write_catalog(tmp_path / "tiers.yaml", data)
        with pytest.raises(CatalogError, match="missing tiers: starter"):
            load_tier_catalog(path)

    def test_prices_not_mapping(self, tmp_path: Path):
        data = DEFAULT_CATALOG.to_dict()
        data["prices"] = [0, 12]
        path = _write_catalog(tmp_path / "tiers.yaml", data)
        with pytest.raises(CatalogError, match="'prices' must be a mapping"):
            load_tier_catalog(path)

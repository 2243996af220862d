"""Tier catalog: subscription tier -> feature limits, prices and price IDs.

The catalog is built once (the module-level ``DEFAULT_CATALOG`` or a YAML
override loaded at start-up) and never mutated afterwards. Building a
catalog enforces the monotonicity invariant: every numeric cap and every
capability flag is non-decreasing along free < starter < pro < enterprise,
across all tier pairs, with ``UNLIMITED`` ranking above any finite cap.
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
    NUMERIC_FEATURES,
    TIER_ORDER,
    UNLIMITED,
    Feature,
    FeatureLimits,
    SubscriptionTier,
    parse_tier,
)

logger = logging.getLogger(__name__)

# --- Default catalog ---

DEFAULT_FEATURE_LIMITS: Mapping[SubscriptionTier, FeatureLimits] = MappingProxyType({
    SubscriptionTier.FREE: FeatureLimits(
        max_teams=1,
        max_projects=3,
        max_tasks_per_project=10,
        max_file_upload_mb=5,
        max_storage_gb=1,
        analytics_access=False,
        priority_support=False,
        custom_integrations=False,
        advanced_security=False,
        team_roles=False,
        api_access=False,
    ),
    SubscriptionTier.STARTER: FeatureLimits(
        max_teams=3,
        max_projects=10,
        max_tasks_per_project=50,
        max_file_upload_mb=25,
        max_storage_gb=10,
        analytics_access=True,
        priority_support=False,
        custom_integrations=False,
        advanced_security=False,
        team_roles=True,
        api_access=False,
    ),
    SubscriptionTier.PRO: FeatureLimits(
        max_teams=10,
        max_projects=50,
        max_tasks_per_project=200,
        max_file_upload_mb=100,
        max_storage_gb=100,
        analytics_access=True,
        priority_support=True,
        custom_integrations=True,
        advanced_security=True,
        team_roles=True,
        api_access=True,
    ),
    SubscriptionTier.ENTERPRISE: FeatureLimits(
        max_teams=UNLIMITED,
        max_projects=UNLIMITED,
        max_tasks_per_project=UNLIMITED,
        max_file_upload_mb=500,
        max_storage_gb=1000,
        analytics_access=True,
        priority_support=True,
        custom_integrations=True,
        advanced_security=True,
        team_roles=True,
        api_access=True,
    ),
})

# Monthly price in USD
DEFAULT_PRICES: Mapping[SubscriptionTier, int] = MappingProxyType({
    SubscriptionTier.FREE: 0,
    SubscriptionTier.STARTER: 12,
    SubscriptionTier.PRO: 29,
    SubscriptionTier.ENTERPRISE: 99,
})

# Payment processor price IDs (free has none)
DEFAULT_PRICE_IDS: Mapping[SubscriptionTier, str] = MappingProxyType({
    SubscriptionTier.STARTER: "price_starter_monthly",
    SubscriptionTier.PRO: "price_pro_monthly",
    SubscriptionTier.ENTERPRISE: "price_enterprise_monthly",
})


# --- Invariant checks ---


def cap_at_least(higher: int, lower: int) -> bool:
    """Compare two caps where ``UNLIMITED`` ranks above every finite value."""
    if higher == UNLIMITED:
        return True
    if lower == UNLIMITED:
        return False
    return higher >= lower


def find_monotonicity_violations(
    limits: Mapping[SubscriptionTier, FeatureLimits],
) -> list[str]:
    """Return one message per (feature, lower tier, higher tier) that decreases.

    Every pair of tiers is compared, not only adjacent ones.
    """
    violations: list[str] = []
    for feature in Feature:
        for i, low_tier in enumerate(TIER_ORDER):
            for high_tier in TIER_ORDER[i + 1:]:
                low = limits[low_tier].value(feature)
                high = limits[high_tier].value(feature)
                if feature in NUMERIC_FEATURES:
                    ok = cap_at_least(high, low)  # type: ignore[arg-type]
                else:
                    ok = high or not low
                if not ok:
                    violations.append(
                        f"{feature.value}: {high_tier.value}={high!r} is below "
                        f"{low_tier.value}={low!r}"
                    )
    return violations


# --- Catalog ---


class TierCatalog:
    """Immutable mapping of every subscription tier to its limits and pricing.

    Raises CatalogError on construction if a tier is missing or the
    monotonicity invariant does not hold.
    """

    def __init__(
        self,
        limits: Mapping[SubscriptionTier | str, FeatureLimits],
        prices: Mapping[SubscriptionTier | str, int] | None = None,
        price_ids: Mapping[SubscriptionTier | str, str] | None = None,
    ) -> None:
        normalized = _normalize_tier_keys(limits, "limits")
        missing = [t.value for t in TIER_ORDER if t not in normalized]
        if missing:
            raise CatalogError(f"Tier catalog is missing tiers: {', '.join(missing)}")

        violations = find_monotonicity_violations(normalized)
        if violations:
            raise CatalogError(
                "Tier catalog limits must not decrease with tier: "
                + "; ".join(violations)
            )

        price_map = _normalize_tier_keys(prices or {}, "prices")
        for tier, amount in price_map.items():
            if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
                raise CatalogError(f"Price for {tier.value} must be a non-negative integer")

        price_id_map = _normalize_tier_keys(price_ids or {}, "price_ids")
        seen: dict[str, SubscriptionTier] = {}
        for tier, price_id in price_id_map.items():
            if price_id in seen:
                raise CatalogError(
                    f"Price ID {price_id!r} is used by both "
                    f"{seen[price_id].value} and {tier.value}"
                )
            seen[price_id] = tier

        self._limits: Mapping[SubscriptionTier, FeatureLimits] = MappingProxyType(
            {t: normalized[t] for t in TIER_ORDER}
        )
        self._prices: Mapping[SubscriptionTier, int] = MappingProxyType(price_map)
        self._price_ids: Mapping[SubscriptionTier, str] = MappingProxyType(price_id_map)
        self._tiers_by_price_id: Mapping[str, SubscriptionTier] = MappingProxyType(seen)

    @property
    def tiers(self) -> list[SubscriptionTier]:
        return list(TIER_ORDER)

    def __iter__(self) -> Iterator[tuple[SubscriptionTier, FeatureLimits]]:
        return iter(self._limits.items())

    def __len__(self) -> int:
        return len(self._limits)

    def get(self, tier: SubscriptionTier | str) -> FeatureLimits:
        """Return the exact limits record for a tier."""
        return self._limits[parse_tier(tier)]

    def price(self, tier: SubscriptionTier | str) -> int | None:
        """Monthly price in USD, or None if the catalog has no price for the tier."""
        return self._prices.get(parse_tier(tier))

    def price_id(self, tier: SubscriptionTier | str) -> str | None:
        """Payment processor price ID, or None for tiers that are not sold."""
        return self._price_ids.get(parse_tier(tier))

    def tier_for_price_id(self, price_id: str) -> SubscriptionTier:
        """Reverse lookup used when a checkout confirmation names a price."""
        tier = self._tiers_by_price_id.get(price_id)
        if tier is None:
            raise UnknownKeyError(f"Unknown price ID: {price_id!r}")
        return tier

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the YAML catalog format (camelCase limit names)."""
        data: dict[str, Any] = {
            "tiers": {
                tier.value: limits.model_dump(by_alias=True)
                for tier, limits in self._limits.items()
            },
        }
        if self._prices:
            data["prices"] = {t.value: p for t, p in self._prices.items()}
        if self._price_ids:
            data["price_ids"] = {t.value: p for t, p in self._price_ids.items()}
        return data


def _normalize_tier_keys(mapping: Mapping[Any, Any], section: str) -> dict[SubscriptionTier, Any]:
    result: dict[SubscriptionTier, Any] = {}
    for key, value in mapping.items():
        try:
            tier = parse_tier(key)
        except UnknownKeyError as e:
            raise CatalogError(f"{section}: {e}") from e
        result[tier] = value
    return result


DEFAULT_CATALOG = TierCatalog(DEFAULT_FEATURE_LIMITS, DEFAULT_PRICES, DEFAULT_PRICE_IDS)


# --- YAML loading ---


def load_tier_catalog(path: str | Path) -> TierCatalog:
    """Load and validate a tier catalog from a YAML file.

    The file must have a top-level ``tiers`` mapping with an entry for every
    tier. Optional ``prices`` and ``price_ids`` mappings are keyed by tier.

    Raises:
        CatalogError: If the file cannot be read, parsed, or validated.
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"Tier catalog file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict) or "tiers" not in raw:
        raise CatalogError(f"Tier catalog must have a top-level 'tiers' key: {path}")

    raw_tiers: Any = raw["tiers"]
    if not isinstance(raw_tiers, dict):
        raise CatalogError(f"'tiers' must be a mapping: {path}")

    limits: dict[str, FeatureLimits] = {}
    for name, entry in raw_tiers.items():
        if not isinstance(entry, dict):
            raise CatalogError(f"Limits for tier '{name}' must be a mapping: {path}")
        try:
            limits[name] = FeatureLimits(**entry)
        except (ValidationError, TypeError) as e:
            raise CatalogError(f"Invalid limits for tier '{name}' in {path}: {e}") from e

    for key in ("prices", "price_ids"):
        if key in raw and not isinstance(raw[key], dict):
            raise CatalogError(f"'{key}' must be a mapping: {path}")

    try:
        catalog = TierCatalog(limits, raw.get("prices"), raw.get("price_ids"))
    except CatalogError as e:
        raise CatalogError(f"Error loading {path}: {e}") from e

    logger.debug("Loaded tier catalog from %s", path)
    return catalog


"""Entitlement evaluation: what a subscription tier may access and how much.

Pure functions over a ``TierCatalog`` (the default catalog unless one is
passed in). Nothing here performs I/O or holds state.

Boolean capability flags and numeric caps are checked by different
functions and the two are never mixed: asking ``can_access_feature`` about
a numeric cap, or ``has_reached_limit`` about a flag, is a caller error.
"""

from __future__ import annotations

from teamgate.errors import InvalidArgumentError
from teamgate.models import (
    BOOLEAN_FEATURES,
    NUMERIC_FEATURES,
    TIER_ORDER,
    UNLIMITED,
    Feature,
    FeatureLimits,
    LimitStatus,
    SubscriptionStatus,
    SubscriptionTier,
    parse_feature,
    parse_status,
    parse_tier,
)
from teamgate.tiers.catalog import DEFAULT_CATALOG, TierCatalog

NEAR_LIMIT_RATIO = 0.8
"""Usage share of a finite cap at which callers should warn about upgrading."""

BYTES_PER_MB = 1024 * 1024


def is_unlimited(value: int) -> bool:
    return value == UNLIMITED


def get_feature_limits(
    tier: SubscriptionTier | str,
    *,
    catalog: TierCatalog | None = None,
) -> FeatureLimits:
    """Return the exact limits record for a tier."""
    return (catalog if catalog is not None else DEFAULT_CATALOG).get(tier)


def can_access_feature(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    *,
    catalog: TierCatalog | None = None,
) -> bool:
    """Check whether a tier has a boolean capability flag enabled.

    Raises:
        UnknownKeyError: Unknown tier or feature name.
        InvalidArgumentError: The feature is a numeric cap.
    """
    feat = _boolean_feature(feature)
    return bool(get_feature_limits(tier, catalog=catalog).value(feat))


def get_limit(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    *,
    catalog: TierCatalog | None = None,
) -> int | None:
    """Return the finite cap for a numeric feature, or None when unlimited."""
    feat = _numeric_feature(feature)
    cap = get_feature_limits(tier, catalog=catalog).value(feat)
    if is_unlimited(cap):  # type: ignore[arg-type]
        return None
    return int(cap)


def has_reached_limit(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    current_count: int,
    *,
    catalog: TierCatalog | None = None,
) -> bool:
    """Check whether creating one more resource would exceed the tier's cap.

    Returns False unconditionally for unlimited caps; otherwise
    ``current_count >= cap`` (at the cap blocks one more).

    Raises:
        UnknownKeyError: Unknown tier or feature name.
        InvalidArgumentError: Negative or non-integer count, or a boolean feature.
    """
    _require_count(current_count)
    cap = get_limit(tier, feature, catalog=catalog)
    if cap is None:
        return False
    return current_count >= cap


def check_limit(
    tier: SubscriptionTier | str,
    feature: Feature | str,
    current_count: int,
    *,
    catalog: TierCatalog | None = None,
) -> LimitStatus:
    """Like ``has_reached_limit`` but returns the full usage picture."""
    _require_count(current_count)
    resolved_tier = parse_tier(tier)
    feat = _numeric_feature(feature)
    cap = get_limit(resolved_tier, feat, catalog=catalog)

    if cap is None:
        return LimitStatus(
            tier=resolved_tier,
            feature=feat,
            current=current_count,
            reached=False,
        )

    return LimitStatus(
        tier=resolved_tier,
        feature=feat,
        current=current_count,
        limit=cap,
        reached=current_count >= cap,
        remaining=max(cap - current_count, 0),
        near_limit=current_count >= cap * NEAR_LIMIT_RATIO,
    )


def max_upload_bytes(
    tier: SubscriptionTier | str,
    *,
    catalog: TierCatalog | None = None,
) -> int | None:
    """Largest single file a tier may upload, in bytes. None when unlimited."""
    cap_mb = get_limit(tier, Feature.MAX_FILE_UPLOAD_MB, catalog=catalog)
    if cap_mb is None:
        return None
    return cap_mb * BYTES_PER_MB


def exceeds_upload_limit(
    tier: SubscriptionTier | str,
    size_bytes: int,
    *,
    catalog: TierCatalog | None = None,
) -> bool:
    """Check a file size against the tier's upload cap. A file exactly at the cap fits."""
    _require_count(size_bytes, name="size_bytes")
    cap = max_upload_bytes(tier, catalog=catalog)
    if cap is None:
        return False
    return size_bytes > cap


def minimum_tier_for(
    feature: Feature | str,
    *,
    catalog: TierCatalog | None = None,
) -> SubscriptionTier | None:
    """Lowest tier that enables a capability flag, for upgrade prompts.

    Returns None if no tier enables it.
    """
    feat = _boolean_feature(feature)
    cat = catalog if catalog is not None else DEFAULT_CATALOG
    for tier in TIER_ORDER:
        if cat.get(tier).value(feat):
            return tier
    return None


def effective_tier(
    tier: SubscriptionTier | str,
    status: SubscriptionStatus | str,
) -> SubscriptionTier:
    """Resolve the tier that entitlements should use given the billing status.

    Only an ``active`` subscription keeps its tier. Inactive, canceled and
    past-due accounts are evaluated as free until billing recovers.
    """
    resolved = parse_tier(tier)
    if parse_status(status) is SubscriptionStatus.ACTIVE:
        return resolved
    return SubscriptionTier.FREE


# --- Argument checks ---


def _boolean_feature(feature: Feature | str) -> Feature:
    feat = parse_feature(feature)
    if feat not in BOOLEAN_FEATURES:
        raise InvalidArgumentError(
            f"'{feat.value}' is a numeric limit, not a capability flag; "
            "use has_reached_limit() or check_limit()"
        )
    return feat


def _numeric_feature(feature: Feature | str) -> Feature:
    feat = parse_feature(feature)
    if feat not in NUMERIC_FEATURES:
        raise InvalidArgumentError(
            f"'{feat.value}' is a capability flag, not a numeric limit; "
            "use can_access_feature()"
        )
    return feat


def _require_count(value: object, name: str = "current_count") -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidArgumentError(f"{name} must be non-negative, got {value}")


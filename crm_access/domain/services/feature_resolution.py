from __future__ import annotations

from datetime import datetime, timezone

from crm_access.domain.entities.feature import EffectiveFeature, Feature, TierFeature, UserFeatureOverride


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_override_active(override: UserFeatureOverride, *, now: datetime) -> bool:
    if override.expires_at is None:
        return True
    return _as_aware(override.expires_at) > _as_aware(now)


def is_globally_available(feature: Feature, *, features_by_id: dict[str, Feature]) -> bool:
    """A feature is available only if it and every ancestor are enabled."""
    seen: set[str] = set()
    current: Feature | None = feature
    while current is not None:
        if not current.is_enabled:
            return False
        if current.id in seen:
            # Corrupt hierarchy; treat as unavailable rather than loop forever.
            return False
        seen.add(current.id)
        current = features_by_id.get(current.parent_id) if current.parent_id else None
    return True


def resolve_effective_feature(
    *,
    feature: Feature,
    features_by_id: dict[str, Feature],
    tier_feature: TierFeature | None,
    override: UserFeatureOverride | None,
    now: datetime,
) -> EffectiveFeature:
    available = is_globally_available(feature, features_by_id=features_by_id)

    if override is not None and is_override_active(override, now=now):
        return EffectiveFeature(
            feature_id=feature.id,
            feature_key=feature.feature_key,
            name=feature.name,
            category=feature.category,
            enabled=available and override.enabled,
            source="override",
            override_id=override.id,
            expires_at=override.expires_at,
            granted_by=override.granted_by,
            granted_at=override.granted_at,
        )

    included = tier_feature.included_by_default if tier_feature is not None else False
    return EffectiveFeature(
        feature_id=feature.id,
        feature_key=feature.feature_key,
        name=feature.name,
        category=feature.category,
        enabled=available and included,
        source="tier",
    )


def build_effective_features(
    *,
    features: list[Feature],
    tier_features: list[TierFeature],
    overrides: list[UserFeatureOverride],
    now: datetime,
) -> list[EffectiveFeature]:
    features_by_id = {feature.id: feature for feature in features}
    tier_by_feature = {row.feature_id: row for row in tier_features}
    override_by_feature = {row.feature_id: row for row in overrides}

    return [
        resolve_effective_feature(
            feature=feature,
            features_by_id=features_by_id,
            tier_feature=tier_by_feature.get(feature.id),
            override=override_by_feature.get(feature.id),
            now=now,
        )
        for feature in features
    ]


def would_create_cycle(*, feature_id: str, new_parent_id: str, features_by_id: dict[str, Feature]) -> bool:
    current_id: str | None = new_parent_id
    seen: set[str] = set()
    while current_id is not None:
        if current_id == feature_id:
            return True
        if current_id in seen:
            return True
        seen.add(current_id)
        parent = features_by_id.get(current_id)
        current_id = parent.parent_id if parent is not None else None
    return False

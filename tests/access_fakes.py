from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt

from crm_access.domain.entities.feature import Feature, FeatureUsage, TierFeature, UserFeatureOverride
from crm_access.domain.entities.principal import Principal


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def mint_access_token(
    principal_id: str,
    *,
    secret: str = "test-secret",
    now: datetime | None = None,
    ttl: timedelta = timedelta(minutes=15),
    token_type: str = "access",
) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": principal_id,
        "type": token_type,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def make_principal(**overrides) -> Principal:
    payload = {
        "id": "user-1",
        "email": "alice@example.com",
        "role": "regular_user",
        "product_tier": "smartcrm",
        "permissions": frozenset(),
        "status": "active",
    }
    payload.update(overrides)
    return Principal(**payload)


def make_admin(**overrides) -> Principal:
    payload = {"id": "admin-1", "email": "root@example.com", "role": "super_admin", "product_tier": None}
    payload.update(overrides)
    return make_principal(**payload)


def make_feature(feature_id: str, feature_key: str, **overrides) -> Feature:
    payload = {
        "id": feature_id,
        "feature_key": feature_key,
        "name": feature_key.replace("_", " ").title(),
        "description": None,
        "category": "core",
        "parent_id": None,
        "is_enabled": True,
    }
    payload.update(overrides)
    return Feature(**payload)


class FakePrincipalPort:
    def __init__(self, principals: list[Principal] | None = None):
        self.principals = {principal.id: principal for principal in principals or []}

    def get_principal_by_id(self, *, principal_id: str) -> Principal | None:
        return self.principals.get(principal_id)


class FakeFeaturePort:
    def __init__(
        self,
        *,
        features: list[Feature] | None = None,
        tier_features: list[TierFeature] | None = None,
        overrides: list[UserFeatureOverride] | None = None,
    ):
        self.features: dict[str, Feature] = {feature.id: feature for feature in features or []}
        self.tier_features: list[TierFeature] = list(tier_features or [])
        self.overrides: dict[tuple[str, str], UserFeatureOverride] = {
            (row.profile_id, row.feature_id): row for row in overrides or []
        }
        self.usage: dict[tuple[str, str], FeatureUsage] = {}
        self.transactions = 0

    def execute_in_transaction(self, fn):
        self.transactions += 1
        return fn(self)

    def list_features(self, *, category: str | None = None, is_enabled: bool | None = None) -> list[Feature]:
        rows = list(self.features.values())
        if category is not None:
            rows = [row for row in rows if row.category == category]
        if is_enabled is not None:
            rows = [row for row in rows if row.is_enabled == is_enabled]
        return rows

    def get_feature_by_id(self, *, feature_id: str) -> Feature | None:
        return self.features.get(feature_id)

    def get_feature_by_key(self, *, feature_key: str) -> Feature | None:
        for feature in self.features.values():
            if feature.feature_key == feature_key:
                return feature
        return None

    def count_child_features(self, *, feature_id: str) -> int:
        return sum(1 for feature in self.features.values() if feature.parent_id == feature_id)

    def create_feature(self, *, feature_id, feature_key, name, description, category, parent_id, is_enabled, now):
        feature = Feature(
            id=feature_id,
            feature_key=feature_key,
            name=name,
            description=description,
            category=category,
            parent_id=parent_id,
            is_enabled=is_enabled,
            created_at=now,
            updated_at=now,
        )
        self.features[feature_id] = feature
        return feature

    def update_feature(self, *, feature_id: str, changes: dict, now: datetime) -> Feature | None:
        feature = self.features.get(feature_id)
        if feature is None:
            return None
        updated = replace(feature, updated_at=now, **changes)
        self.features[feature_id] = updated
        return updated

    def delete_feature(self, *, feature_id: str) -> None:
        self.features.pop(feature_id, None)
        self.tier_features = [row for row in self.tier_features if row.feature_id != feature_id]
        self.overrides = {key: row for key, row in self.overrides.items() if key[1] != feature_id}
        self.usage = {key: row for key, row in self.usage.items() if key[1] != feature_id}

    def list_tier_features(self, *, product_tier: str) -> list[TierFeature]:
        return [row for row in self.tier_features if row.product_tier == product_tier]

    def replace_tier_features(self, *, product_tier: str, feature_ids: list[str]) -> None:
        self.tier_features = [row for row in self.tier_features if row.product_tier != product_tier]
        self.tier_features.extend(
            TierFeature(product_tier=product_tier, feature_id=feature_id, included_by_default=True)
            for feature_id in feature_ids
        )

    def clear_tier_features(self, *, product_tier: str, feature_id: str | None = None) -> int:
        kept = [
            row
            for row in self.tier_features
            if row.product_tier != product_tier or (feature_id is not None and row.feature_id != feature_id)
        ]
        removed = len(self.tier_features) - len(kept)
        self.tier_features = kept
        return removed

    def list_user_overrides(self, *, profile_id: str) -> list[UserFeatureOverride]:
        return [row for key, row in self.overrides.items() if key[0] == profile_id]

    def upsert_user_override(
        self, *, override_id, profile_id, feature_id, enabled, expires_at, granted_by, granted_at
    ) -> UserFeatureOverride:
        existing = self.overrides.get((profile_id, feature_id))
        override = UserFeatureOverride(
            id=existing.id if existing is not None else override_id,
            profile_id=profile_id,
            feature_id=feature_id,
            enabled=enabled,
            expires_at=expires_at,
            granted_by=granted_by,
            granted_at=granted_at,
        )
        self.overrides[(profile_id, feature_id)] = override
        return override

    def delete_user_override(self, *, profile_id: str, feature_id: str) -> bool:
        return self.overrides.pop((profile_id, feature_id), None) is not None

    def record_feature_usage(self, *, usage_id: str, profile_id: str, feature_id: str, now: datetime) -> None:
        existing = self.usage.get((profile_id, feature_id))
        feature = self.features.get(feature_id)
        self.usage[(profile_id, feature_id)] = FeatureUsage(
            id=existing.id if existing is not None else usage_id,
            profile_id=profile_id,
            feature_id=feature_id,
            feature_key=feature.feature_key if feature is not None else None,
            feature_name=feature.name if feature is not None else None,
            access_count=(existing.access_count if existing is not None else 0) + 1,
            last_accessed=now,
        )

    def list_feature_usage(self, *, profile_id: str | None = None, feature_id: str | None = None) -> list[FeatureUsage]:
        return [
            row
            for row in self.usage.values()
            if (profile_id is None or row.profile_id == profile_id)
            and (feature_id is None or row.feature_id == feature_id)
        ]

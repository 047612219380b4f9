from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from crm_access.domain.entities.feature import Feature, FeatureUsage, TierFeature, UserFeatureOverride


TFeatureResult = TypeVar("TFeatureResult")


class FeaturePort(Protocol):
    def execute_in_transaction(self, fn: Callable[[FeaturePort], TFeatureResult]) -> TFeatureResult:
        ...

    def list_features(self, *, category: str | None = None, is_enabled: bool | None = None) -> list[Feature]:
        ...

    def get_feature_by_id(self, *, feature_id: str) -> Feature | None:
        ...

    def get_feature_by_key(self, *, feature_key: str) -> Feature | None:
        ...

    def count_child_features(self, *, feature_id: str) -> int:
        ...

    def create_feature(
        self,
        *,
        feature_id: str,
        feature_key: str,
        name: str,
        description: str | None,
        category: str,
        parent_id: str | None,
        is_enabled: bool,
        now: datetime,
    ) -> Feature:
        ...

    def update_feature(self, *, feature_id: str, changes: dict, now: datetime) -> Feature | None:
        ...

    def delete_feature(self, *, feature_id: str) -> None:
        ...

    def list_tier_features(self, *, product_tier: str) -> list[TierFeature]:
        ...

    def replace_tier_features(self, *, product_tier: str, feature_ids: list[str]) -> None:
        ...

    def clear_tier_features(self, *, product_tier: str, feature_id: str | None = None) -> int:
        ...

    def list_user_overrides(self, *, profile_id: str) -> list[UserFeatureOverride]:
        ...

    def upsert_user_override(
        self,
        *,
        override_id: str,
        profile_id: str,
        feature_id: str,
        enabled: bool,
        expires_at: datetime | None,
        granted_by: str,
        granted_at: datetime,
    ) -> UserFeatureOverride:
        ...

    def delete_user_override(self, *, profile_id: str, feature_id: str) -> bool:
        ...

    def record_feature_usage(self, *, usage_id: str, profile_id: str, feature_id: str, now: datetime) -> None:
        ...

    def list_feature_usage(
        self,
        *,
        profile_id: str | None = None,
        feature_id: str | None = None,
    ) -> list[FeatureUsage]:
        ...

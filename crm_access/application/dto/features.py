from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CreateFeatureInput:
    feature_key: str
    name: str
    category: str
    description: str | None = None
    parent_id: str | None = None
    is_enabled: bool = True


@dataclass(frozen=True)
class UpdateFeatureInput:
    feature_id: str
    changes: dict


@dataclass(frozen=True)
class SetTierFeaturesInput:
    product_tier: str
    feature_ids: list[str]


@dataclass(frozen=True)
class SetUserOverrideInput:
    user_id: str
    feature_id: str
    enabled: bool
    expires_at: datetime | None = None


@dataclass(frozen=True)
class EffectiveFeatureOutput:
    feature_key: str
    enabled: bool
    source: str

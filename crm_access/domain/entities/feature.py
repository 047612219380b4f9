from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


FeatureSource = Literal["tier", "override"]


@dataclass(frozen=True)
class Feature:
    id: str
    feature_key: str
    name: str
    description: str | None
    category: str
    parent_id: str | None
    is_enabled: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TierFeature:
    product_tier: str
    feature_id: str
    included_by_default: bool


@dataclass(frozen=True)
class UserFeatureOverride:
    id: str
    profile_id: str
    feature_id: str
    enabled: bool
    expires_at: datetime | None
    granted_by: str | None
    granted_at: datetime | None


@dataclass(frozen=True)
class EffectiveFeature:
    feature_id: str
    feature_key: str
    name: str
    category: str
    enabled: bool
    source: FeatureSource
    override_id: str | None = None
    expires_at: datetime | None = None
    granted_by: str | None = None
    granted_at: datetime | None = None


@dataclass(frozen=True)
class FeatureUsage:
    id: str
    profile_id: str
    feature_id: str
    feature_key: str | None
    feature_name: str | None
    access_count: int
    last_accessed: datetime | None

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class FeatureResponse(BaseModel):
    id: str
    feature_key: str
    name: str
    description: str | None = None
    category: str
    parent_id: str | None = None
    is_enabled: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateFeatureRequest(BaseModel):
    feature_key: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: str | None = None
    parent_id: str | None = None
    is_enabled: bool = True


class UpdateFeatureRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: str | None = Field(default=None, min_length=1)
    parent_id: str | None = None
    is_enabled: bool | None = None


class EffectiveFeatureResponse(BaseModel):
    feature_id: str
    feature_key: str
    name: str
    category: str
    enabled: bool
    source: str
    override_id: str | None = None
    expires_at: datetime | None = None
    granted_by: str | None = None
    granted_at: datetime | None = None


class FeatureCheckResponse(BaseModel):
    feature_key: str
    has_access: bool
    reason: str
    feature_name: str
    feature: EffectiveFeatureResponse | None = None


class EffectiveFeatureStateResponse(BaseModel):
    feature_key: str
    enabled: bool
    source: str


class FeatureUsageResponse(BaseModel):
    id: str
    profile_id: str
    feature_id: str
    feature_key: str | None = None
    feature_name: str | None = None
    access_count: int
    last_accessed: datetime | None = None


class TierFeatureResponse(BaseModel):
    product_tier: str
    feature_id: str
    included_by_default: bool


class SetTierFeaturesRequest(BaseModel):
    feature_ids: list[str]


class ClearTierFeaturesResponse(BaseModel):
    product_tier: str
    removed: int


class UserOverrideResponse(BaseModel):
    id: str
    profile_id: str
    feature_id: str
    enabled: bool
    expires_at: datetime | None = None
    granted_by: str | None = None
    granted_at: datetime | None = None


class SetUserOverrideRequest(BaseModel):
    feature_id: str = Field(..., min_length=1)
    enabled: bool
    expires_at: datetime | None = None


class RemoveUserOverrideResponse(BaseModel):
    removed: bool

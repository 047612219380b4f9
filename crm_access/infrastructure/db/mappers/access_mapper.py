from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from crm_access.domain.entities.feature import Feature, FeatureUsage, TierFeature, UserFeatureOverride
from crm_access.domain.entities.principal import Principal


def _as_str(value: Any) -> str:
    return str(value)


def _as_optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def is_uuid(value: Any) -> bool:
    """Ids are Postgres uuids; anything else can never match a row."""
    if isinstance(value, UUID):
        return True
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def map_row_to_principal(row: Mapping[str, Any]) -> Principal:
    return Principal(
        id=_as_str(row["id"]),
        email=row["email"],
        role=row["role"],
        product_tier=row.get("product_tier") or None,
        permissions=frozenset(row.get("permissions") or ()),
        status=row["status"],
    )


def map_row_to_feature(row: Mapping[str, Any]) -> Feature:
    return Feature(
        id=_as_str(row["id"]),
        feature_key=row["feature_key"],
        name=row["name"],
        description=row.get("description"),
        category=row["category"],
        parent_id=_as_optional_str(row.get("parent_id")),
        is_enabled=bool(row["is_enabled"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def map_row_to_tier_feature(row: Mapping[str, Any]) -> TierFeature:
    return TierFeature(
        product_tier=row["product_tier"],
        feature_id=_as_str(row["feature_id"]),
        included_by_default=bool(row["included_by_default"]),
    )


def map_row_to_user_override(row: Mapping[str, Any]) -> UserFeatureOverride:
    return UserFeatureOverride(
        id=_as_str(row["id"]),
        profile_id=_as_str(row["profile_id"]),
        feature_id=_as_str(row["feature_id"]),
        enabled=bool(row["enabled"]),
        expires_at=row.get("expires_at"),
        granted_by=_as_optional_str(row.get("granted_by")),
        granted_at=row.get("granted_at"),
    )


def map_row_to_feature_usage(row: Mapping[str, Any]) -> FeatureUsage:
    return FeatureUsage(
        id=_as_str(row["id"]),
        profile_id=_as_str(row["profile_id"]),
        feature_id=_as_str(row["feature_id"]),
        feature_key=row.get("feature_key"),
        feature_name=row.get("feature_name"),
        access_count=int(row["access_count"]),
        last_accessed=row.get("last_accessed"),
    )

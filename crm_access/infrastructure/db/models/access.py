from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from crm_access.infrastructure.db.engine import Base


class ProfileModel(Base):
    __tablename__ = "profiles"
    __table_args__ = ({"schema": "public"},)

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'regular_user'"))
    product_tier: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, server_default=text("'{}'"))
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'active'"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))


class FeatureModel(Base):
    __tablename__ = "features"
    __table_args__ = ({"schema": "public"},)

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    feature_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("public.features.id"), nullable=True
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))


class TierFeatureModel(Base):
    __tablename__ = "tier_features"
    __table_args__ = (
        UniqueConstraint("product_tier", "feature_id", name="uq_tier_features_tier_feature"),
        {"schema": "public"},
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    product_tier: Mapped[str] = mapped_column(Text, nullable=False)
    feature_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), ForeignKey("public.features.id"), nullable=False)
    included_by_default: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))


class UserFeatureOverrideModel(Base):
    __tablename__ = "user_feature_overrides"
    __table_args__ = (
        UniqueConstraint("profile_id", "feature_id", name="uq_user_feature_overrides_profile_feature"),
        {"schema": "public"},
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    profile_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), ForeignKey("public.profiles.id"), nullable=False)
    feature_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), ForeignKey("public.features.id"), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    granted_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))


class FeatureUsageModel(Base):
    __tablename__ = "feature_usage"
    __table_args__ = (
        UniqueConstraint("profile_id", "feature_id", name="uq_feature_usage_profile_feature"),
        {"schema": "public"},
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    profile_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), ForeignKey("public.profiles.id"), nullable=False)
    feature_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), ForeignKey("public.features.id"), nullable=False)
    access_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    last_accessed: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))

from __future__ import annotations

from dataclasses import dataclass

from crm_access.domain.entities.feature import EffectiveFeature


@dataclass(frozen=True)
class FeatureCheckOutput:
    feature_key: str
    has_access: bool
    reason: str
    feature: EffectiveFeature | None


@dataclass(frozen=True)
class FeatureCheckResult:
    """What a client sees from the feature-check endpoint."""

    has_access: bool
    feature_name: str | None = None

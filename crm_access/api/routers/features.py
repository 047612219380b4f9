from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from crm_access.api.deps import (
    get_check_feature_access_use_case,
    get_current_principal,
    get_effective_feature_use_case,
)
from crm_access.api.schemas.features import (
    EffectiveFeatureResponse,
    EffectiveFeatureStateResponse,
    FeatureCheckResponse,
)
from crm_access.application.use_cases.check_feature_access import CheckFeatureAccessUseCase
from crm_access.application.use_cases.get_effective_feature import GetEffectiveFeatureUseCase
from crm_access.domain.entities.feature import EffectiveFeature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureNotFoundError
from crm_access.domain.services.access_keys import canonical_key
from crm_access.domain.services.tier_catalog import feature_display_name


router = APIRouter()


def effective_feature_response(item: EffectiveFeature) -> EffectiveFeatureResponse:
    return EffectiveFeatureResponse(
        feature_id=item.feature_id,
        feature_key=item.feature_key,
        name=item.name,
        category=item.category,
        enabled=item.enabled,
        source=item.source,
        override_id=item.override_id,
        expires_at=item.expires_at,
        granted_by=item.granted_by,
        granted_at=item.granted_at,
    )


@router.get("/api/features/check", response_model=FeatureCheckResponse)
def check_feature(
    key: str = Query(..., min_length=1),
    principal: Principal = Depends(get_current_principal),
    use_case: CheckFeatureAccessUseCase = Depends(get_check_feature_access_use_case),
):
    if not canonical_key(key):
        raise HTTPException(status_code=400, detail="Feature key is required.")
    output = use_case.execute(principal=principal, feature_key=key)
    feature = effective_feature_response(output.feature) if output.feature is not None else None
    return FeatureCheckResponse(
        feature_key=output.feature_key,
        has_access=output.has_access,
        reason=output.reason,
        feature_name=output.feature.name if output.feature is not None else feature_display_name(output.feature_key),
        feature=feature,
    )


@router.get("/api/features/effective", response_model=EffectiveFeatureStateResponse)
def get_own_effective_feature(
    key: str = Query(..., min_length=1),
    principal: Principal = Depends(get_current_principal),
    use_case: GetEffectiveFeatureUseCase = Depends(get_effective_feature_use_case),
):
    try:
        output = use_case.execute(actor=principal, user_id=principal.id, feature_key=key)
    except FeatureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return EffectiveFeatureStateResponse(
        feature_key=output.feature_key,
        enabled=output.enabled,
        source=output.source,
    )

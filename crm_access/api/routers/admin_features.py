from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from crm_access.api.deps import (
    get_clear_tier_features_use_case,
    get_create_feature_use_case,
    get_current_principal,
    get_delete_feature_use_case,
    get_effective_features_use_case,
    get_feature_usage_use_case,
    get_list_features_use_case,
    get_list_user_overrides_use_case,
    get_remove_user_override_use_case,
    get_set_tier_features_use_case,
    get_set_user_override_use_case,
    get_tier_features_use_case,
    get_update_feature_use_case,
)
from crm_access.api.routers.features import effective_feature_response
from crm_access.api.schemas.features import (
    ClearTierFeaturesResponse,
    CreateFeatureRequest,
    EffectiveFeatureResponse,
    FeatureResponse,
    FeatureUsageResponse,
    RemoveUserOverrideResponse,
    SetTierFeaturesRequest,
    SetUserOverrideRequest,
    TierFeatureResponse,
    UpdateFeatureRequest,
    UserOverrideResponse,
)
from crm_access.application.dto.features import (
    CreateFeatureInput,
    SetTierFeaturesInput,
    SetUserOverrideInput,
    UpdateFeatureInput,
)
from crm_access.application.use_cases.clear_tier_features import ClearTierFeaturesUseCase
from crm_access.application.use_cases.create_feature import CreateFeatureUseCase
from crm_access.application.use_cases.delete_feature import DeleteFeatureUseCase
from crm_access.application.use_cases.get_effective_features import GetEffectiveFeaturesUseCase
from crm_access.application.use_cases.get_feature_usage import GetFeatureUsageUseCase
from crm_access.application.use_cases.get_tier_features import GetTierFeaturesUseCase
from crm_access.application.use_cases.list_features import ListFeaturesUseCase
from crm_access.application.use_cases.list_user_overrides import ListUserOverridesUseCase
from crm_access.application.use_cases.remove_user_override import RemoveUserOverrideUseCase
from crm_access.application.use_cases.set_tier_features import SetTierFeaturesUseCase
from crm_access.application.use_cases.set_user_override import SetUserOverrideUseCase
from crm_access.application.use_cases.update_feature import UpdateFeatureUseCase
from crm_access.domain.entities.feature import Feature, TierFeature, UserFeatureOverride
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import (
    DomainError,
    FeatureAccessDeniedError,
    FeatureHierarchyError,
    FeatureInUseError,
    FeatureKeyConflictError,
    FeatureNotFoundError,
    InvalidProductTierError,
    OverrideInputError,
    PrincipalNotFoundError,
)


router = APIRouter(prefix="/api/admin")

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (FeatureAccessDeniedError, 403),
    (FeatureNotFoundError, 404),
    (PrincipalNotFoundError, 404),
    (FeatureKeyConflictError, 409),
    (FeatureInUseError, 409),
    (FeatureHierarchyError, 400),
    (InvalidProductTierError, 400),
    (OverrideInputError, 400),
)


def _http_error(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _feature_response(feature: Feature) -> FeatureResponse:
    return FeatureResponse(
        id=feature.id,
        feature_key=feature.feature_key,
        name=feature.name,
        description=feature.description,
        category=feature.category,
        parent_id=feature.parent_id,
        is_enabled=feature.is_enabled,
        created_at=feature.created_at,
        updated_at=feature.updated_at,
    )


def _tier_feature_response(row: TierFeature) -> TierFeatureResponse:
    return TierFeatureResponse(
        product_tier=row.product_tier,
        feature_id=row.feature_id,
        included_by_default=row.included_by_default,
    )


def _override_response(override: UserFeatureOverride) -> UserOverrideResponse:
    return UserOverrideResponse(
        id=override.id,
        profile_id=override.profile_id,
        feature_id=override.feature_id,
        enabled=override.enabled,
        expires_at=override.expires_at,
        granted_by=override.granted_by,
        granted_at=override.granted_at,
    )


@router.get("/features", response_model=list[FeatureResponse])
def list_features(
    category: str | None = Query(default=None),
    is_enabled: bool | None = Query(default=None),
    actor: Principal = Depends(get_current_principal),
    use_case: ListFeaturesUseCase = Depends(get_list_features_use_case),
):
    try:
        features = use_case.execute(actor=actor, category=category, is_enabled=is_enabled)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [_feature_response(feature) for feature in features]


@router.get("/features/usage", response_model=list[FeatureUsageResponse])
def list_feature_usage(
    user_id: str | None = Query(default=None),
    feature_id: str | None = Query(default=None),
    actor: Principal = Depends(get_current_principal),
    use_case: GetFeatureUsageUseCase = Depends(get_feature_usage_use_case),
):
    try:
        rows = use_case.execute(actor=actor, user_id=user_id, feature_id=feature_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [
        FeatureUsageResponse(
            id=row.id,
            profile_id=row.profile_id,
            feature_id=row.feature_id,
            feature_key=row.feature_key,
            feature_name=row.feature_name,
            access_count=row.access_count,
            last_accessed=row.last_accessed,
        )
        for row in rows
    ]


@router.get("/features/{feature_id}", response_model=FeatureResponse)
def get_feature(
    feature_id: str,
    actor: Principal = Depends(get_current_principal),
    use_case: ListFeaturesUseCase = Depends(get_list_features_use_case),
):
    try:
        feature = use_case.get(actor=actor, feature_id=feature_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return _feature_response(feature)


@router.post("/features", response_model=FeatureResponse, status_code=201)
def create_feature(
    req: CreateFeatureRequest,
    actor: Principal = Depends(get_current_principal),
    use_case: CreateFeatureUseCase = Depends(get_create_feature_use_case),
):
    try:
        feature = use_case.execute(
            CreateFeatureInput(
                feature_key=req.feature_key,
                name=req.name,
                category=req.category,
                description=req.description,
                parent_id=req.parent_id,
                is_enabled=req.is_enabled,
            ),
            actor=actor,
        )
    except (DomainError, ValueError) as exc:
        raise _http_error(exc) from exc
    return _feature_response(feature)


@router.patch("/features/{feature_id}", response_model=FeatureResponse)
def update_feature(
    feature_id: str,
    req: UpdateFeatureRequest,
    actor: Principal = Depends(get_current_principal),
    use_case: UpdateFeatureUseCase = Depends(get_update_feature_use_case),
):
    try:
        feature = use_case.execute(
            UpdateFeatureInput(feature_id=feature_id, changes=req.model_dump(exclude_unset=True)),
            actor=actor,
        )
    except (DomainError, ValueError) as exc:
        raise _http_error(exc) from exc
    return _feature_response(feature)


@router.delete("/features/{feature_id}", status_code=204)
def delete_feature(
    feature_id: str,
    actor: Principal = Depends(get_current_principal),
    use_case: DeleteFeatureUseCase = Depends(get_delete_feature_use_case),
):
    try:
        use_case.execute(actor=actor, feature_id=feature_id)
    except DomainError as exc:
        raise _http_error(exc) from exc


@router.get("/tier-features/{product_tier}", response_model=list[TierFeatureResponse])
def get_tier_features(
    product_tier: str,
    actor: Principal = Depends(get_current_principal),
    use_case: GetTierFeaturesUseCase = Depends(get_tier_features_use_case),
):
    try:
        rows = use_case.execute(actor=actor, product_tier=product_tier)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [_tier_feature_response(row) for row in rows]


@router.post("/tier-features/{product_tier}", response_model=list[TierFeatureResponse])
def set_tier_features(
    product_tier: str,
    req: SetTierFeaturesRequest,
    actor: Principal = Depends(get_current_principal),
    use_case: SetTierFeaturesUseCase = Depends(get_set_tier_features_use_case),
):
    try:
        rows = use_case.execute(
            SetTierFeaturesInput(product_tier=product_tier, feature_ids=req.feature_ids),
            actor=actor,
        )
    except FeatureNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [_tier_feature_response(row) for row in rows]


@router.delete("/tier-features/{product_tier}", response_model=ClearTierFeaturesResponse)
def clear_tier_features(
    product_tier: str,
    feature_id: str | None = Query(default=None),
    actor: Principal = Depends(get_current_principal),
    use_case: ClearTierFeaturesUseCase = Depends(get_clear_tier_features_use_case),
):
    try:
        removed = use_case.execute(actor=actor, product_tier=product_tier, feature_id=feature_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return ClearTierFeaturesResponse(product_tier=product_tier, removed=removed)


@router.get("/users/{user_id}/features", response_model=list[UserOverrideResponse])
def list_user_overrides(
    user_id: str,
    actor: Principal = Depends(get_current_principal),
    use_case: ListUserOverridesUseCase = Depends(get_list_user_overrides_use_case),
):
    try:
        overrides = use_case.execute(actor=actor, user_id=user_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [_override_response(override) for override in overrides]


@router.get("/users/{user_id}/features/effective", response_model=list[EffectiveFeatureResponse])
def list_effective_features(
    user_id: str,
    actor: Principal = Depends(get_current_principal),
    use_case: GetEffectiveFeaturesUseCase = Depends(get_effective_features_use_case),
):
    try:
        items = use_case.execute(actor=actor, user_id=user_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return [effective_feature_response(item) for item in items]


@router.post("/users/{user_id}/features", response_model=UserOverrideResponse)
def set_user_override(
    user_id: str,
    req: SetUserOverrideRequest,
    actor: Principal = Depends(get_current_principal),
    use_case: SetUserOverrideUseCase = Depends(get_set_user_override_use_case),
):
    try:
        override = use_case.execute(
            SetUserOverrideInput(
                user_id=user_id,
                feature_id=req.feature_id,
                enabled=req.enabled,
                expires_at=req.expires_at,
            ),
            actor=actor,
        )
    except DomainError as exc:
        raise _http_error(exc) from exc
    return _override_response(override)


@router.delete("/users/{user_id}/features/{feature_id}", response_model=RemoveUserOverrideResponse)
def remove_user_override(
    user_id: str,
    feature_id: str,
    actor: Principal = Depends(get_current_principal),
    use_case: RemoveUserOverrideUseCase = Depends(get_remove_user_override_use_case),
):
    try:
        removed = use_case.execute(actor=actor, user_id=user_id, feature_id=feature_id)
    except DomainError as exc:
        raise _http_error(exc) from exc
    return RemoveUserOverrideResponse(removed=removed)

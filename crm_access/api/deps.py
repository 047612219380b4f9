from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from crm_access.application.use_cases.check_feature_access import CheckFeatureAccessUseCase
from crm_access.application.use_cases.clear_tier_features import ClearTierFeaturesUseCase
from crm_access.application.use_cases.create_feature import CreateFeatureUseCase
from crm_access.application.use_cases.delete_feature import DeleteFeatureUseCase
from crm_access.application.use_cases.get_effective_feature import GetEffectiveFeatureUseCase
from crm_access.application.use_cases.get_effective_features import GetEffectiveFeaturesUseCase
from crm_access.application.use_cases.get_feature_usage import GetFeatureUsageUseCase
from crm_access.application.use_cases.get_tier_features import GetTierFeaturesUseCase
from crm_access.application.use_cases.get_user_role import GetUserRoleUseCase
from crm_access.application.use_cases.list_features import ListFeaturesUseCase
from crm_access.application.use_cases.list_user_overrides import ListUserOverridesUseCase
from crm_access.application.use_cases.remove_user_override import RemoveUserOverrideUseCase
from crm_access.application.use_cases.resolve_principal import ResolvePrincipalUseCase
from crm_access.application.use_cases.set_tier_features import SetTierFeaturesUseCase
from crm_access.application.use_cases.set_user_override import SetUserOverrideUseCase
from crm_access.application.use_cases.update_feature import UpdateFeatureUseCase
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import (
    FeatureAccessDeniedError,
    PrincipalInactiveError,
    PrincipalNotFoundError,
)
from crm_access.domain.services.access_policy import default_access_policy
from crm_access.infrastructure.clients.feature_access_client import FeatureAccessClient
from crm_access.infrastructure.db.engine import get_engine
from crm_access.infrastructure.db.repositories.features_repository import SqlFeaturesRepository
from crm_access.infrastructure.db.repositories.profiles_repository import SqlProfilesRepository
from crm_access.infrastructure.security.token_service import JwtTokenService
from crm_access.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


@lru_cache(maxsize=1)
def get_access_policy() -> AccessPolicy:
    settings = get_settings()
    return default_access_policy(settings.break_glass_emails)


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is required.")
    return JwtTokenService(jwt_secret=settings.jwt_secret)


@lru_cache(maxsize=1)
def get_feature_access_client() -> FeatureAccessClient:
    settings = get_settings()
    return FeatureAccessClient(
        api_base=settings.api_base_url,
        timeout_seconds=settings.feature_check_timeout_seconds,
        cache_ttl_seconds=settings.feature_check_cache_ttl_seconds,
    )


def _get_profiles_repository() -> SqlProfilesRepository:
    return SqlProfilesRepository(_get_db_engine())


def _get_features_repository() -> SqlFeaturesRepository:
    return SqlFeaturesRepository(_get_db_engine())


def get_resolve_principal_use_case() -> ResolvePrincipalUseCase:
    return ResolvePrincipalUseCase(
        token_port=_get_token_service(),
        principal_port=_get_profiles_repository(),
        environment=get_settings().environment,
    )


def get_user_role_use_case() -> GetUserRoleUseCase:
    return GetUserRoleUseCase(policy=get_access_policy())


def get_check_feature_access_use_case() -> CheckFeatureAccessUseCase:
    return CheckFeatureAccessUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_effective_feature_use_case() -> GetEffectiveFeatureUseCase:
    return GetEffectiveFeatureUseCase(
        principal_port=_get_profiles_repository(),
        feature_port=_get_features_repository(),
        policy=get_access_policy(),
    )


def get_effective_features_use_case() -> GetEffectiveFeaturesUseCase:
    return GetEffectiveFeaturesUseCase(
        principal_port=_get_profiles_repository(),
        feature_port=_get_features_repository(),
        policy=get_access_policy(),
    )


def get_list_features_use_case() -> ListFeaturesUseCase:
    return ListFeaturesUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_create_feature_use_case() -> CreateFeatureUseCase:
    return CreateFeatureUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_update_feature_use_case() -> UpdateFeatureUseCase:
    return UpdateFeatureUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_delete_feature_use_case() -> DeleteFeatureUseCase:
    return DeleteFeatureUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_feature_usage_use_case() -> GetFeatureUsageUseCase:
    return GetFeatureUsageUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_tier_features_use_case() -> GetTierFeaturesUseCase:
    return GetTierFeaturesUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_set_tier_features_use_case() -> SetTierFeaturesUseCase:
    return SetTierFeaturesUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_clear_tier_features_use_case() -> ClearTierFeaturesUseCase:
    return ClearTierFeaturesUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_list_user_overrides_use_case() -> ListUserOverridesUseCase:
    return ListUserOverridesUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_set_user_override_use_case() -> SetUserOverrideUseCase:
    return SetUserOverrideUseCase(
        principal_port=_get_profiles_repository(),
        feature_port=_get_features_repository(),
        policy=get_access_policy(),
    )


def get_remove_user_override_use_case() -> RemoveUserOverrideUseCase:
    return RemoveUserOverrideUseCase(feature_port=_get_features_repository(), policy=get_access_policy())


def get_current_principal(
    authorization: str | None = Header(default=None),
) -> Principal:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing access token.")
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token.")

    use_case = get_resolve_principal_use_case()
    try:
        return use_case.execute(token=token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except PrincipalNotFoundError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except PrincipalInactiveError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


def get_current_principal_optional(
    authorization: str | None = Header(default=None),
) -> Principal | None:
    if not authorization:
        return None
    try:
        return get_current_principal(authorization=authorization)
    except HTTPException as exc:
        if exc.status_code >= 500:
            raise
        return None


def require_feature(feature_key: str):
    def _dependency(
        principal: Principal = Depends(get_current_principal),
        use_case: CheckFeatureAccessUseCase = Depends(get_check_feature_access_use_case),
    ) -> Principal:
        output = use_case.execute(principal=principal, feature_key=feature_key)
        if not output.has_access:
            raise HTTPException(
                status_code=403,
                detail=str(FeatureAccessDeniedError(f"Feature '{output.feature_key}' is required.")),
            )
        return principal

    return _dependency

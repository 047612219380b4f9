from __future__ import annotations

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import Feature
from crm_access.domain.entities.principal import Principal

from .features_common import get_feature_or_raise, require_feature_admin


class ListFeaturesUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(
        self,
        *,
        actor: Principal,
        category: str | None = None,
        is_enabled: bool | None = None,
    ) -> list[Feature]:
        require_feature_admin(actor, self._policy)
        return self._feature_port.list_features(category=category, is_enabled=is_enabled)

    def get(self, *, actor: Principal, feature_id: str) -> Feature:
        require_feature_admin(actor, self._policy)
        return get_feature_or_raise(self._feature_port, feature_id=feature_id)

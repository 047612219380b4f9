from __future__ import annotations

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.application.ports.principal_port import PrincipalPort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import EffectiveFeature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import PrincipalNotFoundError

from .features_common import load_effective_features, require_feature_admin, utcnow


class GetEffectiveFeaturesUseCase:
    def __init__(self, *, principal_port: PrincipalPort, feature_port: FeaturePort, policy: AccessPolicy):
        self._principal_port = principal_port
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, user_id: str) -> list[EffectiveFeature]:
        require_feature_admin(actor, self._policy)
        principal = self._principal_port.get_principal_by_id(principal_id=user_id)
        if principal is None:
            raise PrincipalNotFoundError(f"User '{user_id}' not found.")
        return load_effective_features(self._feature_port, principal=principal, now=utcnow())

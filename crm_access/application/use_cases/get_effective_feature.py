from __future__ import annotations

from crm_access.application.dto.features import EffectiveFeatureOutput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.application.ports.principal_port import PrincipalPort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureNotFoundError, PrincipalNotFoundError
from crm_access.domain.services.access_keys import canonical_key

from .features_common import find_feature_by_key, load_effective_features, require_feature_admin, utcnow


class GetEffectiveFeatureUseCase:
    """Resolved state of one feature for one user: an active override wins over the tier default."""

    def __init__(self, *, principal_port: PrincipalPort, feature_port: FeaturePort, policy: AccessPolicy):
        self._principal_port = principal_port
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, user_id: str, feature_key: str) -> EffectiveFeatureOutput:
        if actor.id != user_id:
            require_feature_admin(actor, self._policy)

        principal = actor if actor.id == user_id else self._principal_port.get_principal_by_id(principal_id=user_id)
        if principal is None:
            raise PrincipalNotFoundError(f"User '{user_id}' not found.")

        key = canonical_key(feature_key)
        feature = find_feature_by_key(self._feature_port, feature_key=key)
        if feature is None:
            raise FeatureNotFoundError(f"Feature '{key}' not found.")

        for item in load_effective_features(self._feature_port, principal=principal, now=utcnow()):
            if item.feature_id == feature.id:
                return EffectiveFeatureOutput(feature_key=item.feature_key, enabled=item.enabled, source=item.source)

        return EffectiveFeatureOutput(feature_key=key, enabled=False, source="tier")

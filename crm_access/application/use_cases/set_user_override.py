from __future__ import annotations

from datetime import timezone
import logging
from uuid import uuid4

from crm_access.application.dto.features import SetUserOverrideInput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.application.ports.principal_port import PrincipalPort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import UserFeatureOverride
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import OverrideInputError, PrincipalNotFoundError

from .features_common import get_feature_or_raise, require_feature_admin, utcnow


logger = logging.getLogger(__name__)


class SetUserOverrideUseCase:
    def __init__(self, *, principal_port: PrincipalPort, feature_port: FeaturePort, policy: AccessPolicy):
        self._principal_port = principal_port
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, command: SetUserOverrideInput, *, actor: Principal) -> UserFeatureOverride:
        require_feature_admin(actor, self._policy)

        now = utcnow()
        expires_at = command.expires_at
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= now:
                raise OverrideInputError("expires_at must be in the future.")

        if self._principal_port.get_principal_by_id(principal_id=command.user_id) is None:
            raise PrincipalNotFoundError(f"User '{command.user_id}' not found.")

        def _tx(feature_port: FeaturePort) -> UserFeatureOverride:
            get_feature_or_raise(feature_port, feature_id=command.feature_id)
            return feature_port.upsert_user_override(
                override_id=str(uuid4()),
                profile_id=command.user_id,
                feature_id=command.feature_id,
                enabled=command.enabled,
                expires_at=expires_at,
                granted_by=actor.id,
                granted_at=now,
            )

        override = self._feature_port.execute_in_transaction(_tx)
        logger.info(
            "Override set: user=%s feature=%s enabled=%s expires_at=%s by=%s",
            command.user_id,
            command.feature_id,
            command.enabled,
            expires_at,
            actor.id,
        )
        return override

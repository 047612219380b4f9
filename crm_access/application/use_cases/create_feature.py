from __future__ import annotations

import logging
from uuid import uuid4

from crm_access.application.dto.features import CreateFeatureInput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import Feature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureHierarchyError, FeatureKeyConflictError
from crm_access.domain.services.access_keys import canonical_key

from .features_common import require_feature_admin, utcnow


logger = logging.getLogger(__name__)


class CreateFeatureUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, command: CreateFeatureInput, *, actor: Principal) -> Feature:
        require_feature_admin(actor, self._policy)

        feature_key = canonical_key(command.feature_key)
        name = command.name.strip()
        category = command.category.strip()
        if not feature_key:
            raise ValueError("feature_key is required.")
        if not name:
            raise ValueError("name is required.")
        if not category:
            raise ValueError("category is required.")

        def _tx(feature_port: FeaturePort) -> Feature:
            if feature_port.get_feature_by_key(feature_key=feature_key) is not None:
                raise FeatureKeyConflictError(f"Feature key '{feature_key}' already exists.")
            if command.parent_id is not None and feature_port.get_feature_by_id(feature_id=command.parent_id) is None:
                raise FeatureHierarchyError(f"Parent feature '{command.parent_id}' not found.")

            return feature_port.create_feature(
                feature_id=str(uuid4()),
                feature_key=feature_key,
                name=name,
                description=command.description,
                category=category,
                parent_id=command.parent_id,
                is_enabled=command.is_enabled,
                now=utcnow(),
            )

        feature = self._feature_port.execute_in_transaction(_tx)
        logger.info("Feature %s created by %s", feature.feature_key, actor.id)
        return feature

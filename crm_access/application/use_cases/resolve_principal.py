from __future__ import annotations

from dataclasses import replace
import logging

from crm_access.application.ports.principal_port import PrincipalPort
from crm_access.application.ports.token_port import TokenPort
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import PrincipalInactiveError, PrincipalNotFoundError
from crm_access.domain.services.tier_catalog import DEV_ALL_ACCESS_TIER


logger = logging.getLogger(__name__)


class ResolvePrincipalUseCase:
    def __init__(
        self,
        *,
        token_port: TokenPort,
        principal_port: PrincipalPort,
        environment: str,
    ):
        self._token_port = token_port
        self._principal_port = principal_port
        self._environment = environment

    def execute(self, *, token: str) -> Principal:
        payload = self._token_port.decode_access_token(token=token)

        principal = self._principal_port.get_principal_by_id(principal_id=payload.principal_id)
        if principal is None:
            raise PrincipalNotFoundError("Principal not found.")
        if not principal.is_active:
            raise PrincipalInactiveError(f"Principal is {principal.status}.")

        if principal.product_tier == DEV_ALL_ACCESS_TIER and self._environment == "production":
            logger.warning(
                "Dropping %s tier from principal %s in production",
                DEV_ALL_ACCESS_TIER,
                principal.id,
            )
            principal = replace(principal, product_tier=None)
        return principal

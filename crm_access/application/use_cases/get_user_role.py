from __future__ import annotations

from crm_access.application.access_engine import AccessEngine
from crm_access.application.dto.session import UserRoleOutput
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal


class GetUserRoleUseCase:
    def __init__(self, *, policy: AccessPolicy):
        self._policy = policy

    def execute(self, *, principal: Principal | None) -> UserRoleOutput:
        if principal is None:
            return UserRoleOutput(
                success=False,
                user_id=None,
                email=None,
                role=None,
                product_tier=None,
                status=None,
                permissions=[],
                has_access=False,
            )

        engine = AccessEngine(principal=principal, policy=self._policy)
        if engine.is_super_admin():
            permissions = ["all"]
        else:
            permissions = sorted(principal.permissions)

        return UserRoleOutput(
            success=True,
            user_id=principal.id,
            email=principal.email,
            role=principal.role,
            product_tier=principal.product_tier,
            status=principal.status,
            permissions=permissions,
            has_access=engine.has_product_tier(),
        )

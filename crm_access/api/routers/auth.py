from __future__ import annotations

from fastapi import APIRouter, Depends

from crm_access.api.deps import get_current_principal_optional, get_user_role_use_case
from crm_access.api.schemas.auth import UserRoleResponse, UserRoleUser
from crm_access.application.use_cases.get_user_role import GetUserRoleUseCase
from crm_access.domain.entities.principal import Principal


router = APIRouter()


@router.get("/api/auth/user-role", response_model=UserRoleResponse)
def get_user_role(
    principal: Principal | None = Depends(get_current_principal_optional),
    use_case: GetUserRoleUseCase = Depends(get_user_role_use_case),
):
    output = use_case.execute(principal=principal)
    user = None
    if output.success:
        user = UserRoleUser(
            id=output.user_id,
            email=output.email,
            role=output.role,
            product_tier=output.product_tier,
            status=output.status,
        )
    return UserRoleResponse(
        success=output.success,
        user=user,
        has_access=output.has_access,
        permissions=output.permissions,
    )

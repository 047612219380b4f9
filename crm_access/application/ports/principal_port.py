from __future__ import annotations

from typing import Protocol

from crm_access.domain.entities.principal import Principal


class PrincipalPort(Protocol):
    def get_principal_by_id(self, *, principal_id: str) -> Principal | None:
        ...

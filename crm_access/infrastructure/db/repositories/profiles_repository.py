from __future__ import annotations

from sqlalchemy import text

from crm_access.application.ports.principal_port import PrincipalPort
from crm_access.infrastructure.db.mappers.access_mapper import is_uuid, map_row_to_principal


class SqlProfilesRepository(PrincipalPort):
    def __init__(self, engine):
        self._engine = engine

    def get_principal_by_id(self, *, principal_id: str):
        if not is_uuid(principal_id):
            return None
        sql = """
            SELECT id, email, role, product_tier, permissions, status
            FROM public.profiles
            WHERE id = :principal_id
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"principal_id": principal_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_principal(row)

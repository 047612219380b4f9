from __future__ import annotations

from typing import Protocol

from crm_access.application.dto.session import AccessTokenPayload


class TokenPort(Protocol):
    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        ...

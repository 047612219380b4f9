from __future__ import annotations

import jwt

from crm_access.application.dto.session import AccessTokenPayload
from crm_access.application.ports.token_port import TokenPort


class JwtTokenService(TokenPort):
    """Decodes HS256 access tokens issued by the identity provider."""

    def __init__(self, *, jwt_secret: str):
        self._jwt_secret = jwt_secret

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        try:
            payload = jwt.decode(token, self._jwt_secret, algorithms=["HS256"])
        except jwt.PyJWTError as exc:
            raise ValueError("Invalid access token.") from exc

        if payload.get("type") != "access":
            raise ValueError("Invalid token type.")

        principal_id = payload.get("sub")
        if not principal_id or not isinstance(principal_id, str):
            raise ValueError("Invalid token subject.")

        return AccessTokenPayload(principal_id=principal_id)

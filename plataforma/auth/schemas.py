"""Schemas de saída da emissão de tokens."""

from __future__ import annotations

from plataforma.serializers import OutputSchema


class UserClaim(OutputSchema):
    """Claim exposta no corpo da resposta."""

    value: str
    type: str


class UserToken(OutputSchema):
    """Identidade do usuário autenticado."""

    id: str
    email: str
    claims: list[UserClaim]


class UserResponse(OutputSchema):
    """
    Resposta de registro/login.

    JSON:
        {"accessToken": "...", "expiresIn": 7200,
         "userToken": {"id": "...", "email": "...", "claims": [...]}}
    """

    access_token: str
    expires_in: int
    user_token: UserToken

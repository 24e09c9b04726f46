"""
Emissão e verificação de tokens JWT.

A emissão é uma função pura: recebe a identidade do usuário, suas claims,
seus roles e a configuração de assinatura, e devolve a resposta com o
token assinado.

Uso:
    from plataforma.auth.tokens import JwtSettings, build_user_response

    jwt_settings = JwtSettings.from_settings(settings)
    response = build_user_response(user.id, user.email, claims, roles, jwt_settings)
    payload = decode_access_token(response.access_token, jwt_settings)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple, TYPE_CHECKING
from collections.abc import Iterable

import jwt

from plataforma.auth.schemas import UserClaim, UserResponse, UserToken
from plataforma.exceptions import TokenError

if TYPE_CHECKING:
    from plataforma.config import Settings

logger = logging.getLogger("plataforma.auth.tokens")

# Tipo de claim usado para roles
ROLE_CLAIM_TYPE = "role"

# Claims registradas pela emissão; não podem ser sobrescritas por claims do usuário
RESERVED_CLAIM_TYPES = frozenset({"sub", "email", "jti", "nbf", "iat", "exp", "iss", "aud"})

# Claims de controle do JWT que não representam a identidade
PROTOCOL_CLAIM_TYPES = frozenset({"exp", "iss", "aud", "nbf", "iat", "jti"})


class Claim(NamedTuple):
    """Par (tipo, valor) atribuído a um usuário."""

    type: str
    value: str


@dataclass(frozen=True)
class JwtSettings:
    """Configuração de assinatura dos tokens."""

    secret_key: str
    expiration_hours: int = 2
    issuer: str = "MeuSistema"
    audience: str = "https://localhost"
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "JwtSettings":
        return cls(
            secret_key=settings.effective_auth_secret,
            expiration_hours=settings.auth_access_token_expire_hours,
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            algorithm=settings.auth_algorithm,
        )

    @property
    def expires_in(self) -> int:
        """Validade do token em segundos."""
        return int(timedelta(hours=self.expiration_hours).total_seconds())


def claims_to_payload(claims: Iterable[Claim]) -> dict[str, Any]:
    """Agrupa claims por tipo; tipos repetidos viram lista."""
    payload: dict[str, Any] = {}
    for claim in claims:
        if claim.type not in payload:
            payload[claim.type] = claim.value
        elif isinstance(payload[claim.type], list):
            payload[claim.type].append(claim.value)
        else:
            payload[claim.type] = [payload[claim.type], claim.value]
    return payload


def payload_to_claims(payload: dict[str, Any]) -> list[Claim]:
    """Inverso de claims_to_payload, ignorando as claims de protocolo."""
    claims: list[Claim] = []
    for claim_type, value in payload.items():
        if claim_type in PROTOCOL_CLAIM_TYPES:
            continue
        values = value if isinstance(value, list) else [value]
        claims.extend(Claim(claim_type, str(item)) for item in values)
    return claims


def build_user_response(
    user_id: str,
    email: str,
    claims: Iterable[Claim],
    roles: Iterable[str],
    jwt_settings: JwtSettings,
    now: datetime | None = None,
) -> UserResponse:
    """
    Monta e assina o token de acesso de um usuário.

    Args:
        user_id: Id do usuário (claim sub)
        email: Email do usuário
        claims: Claims customizadas do usuário
        roles: Nomes dos roles do usuário
        jwt_settings: Configuração de assinatura
        now: Instante de emissão (default: agora, UTC)

    Returns:
        UserResponse com accessToken, expiresIn e userToken
    """
    now = now or datetime.now(timezone.utc)
    issued_at = int(now.timestamp())
    expires_at = now + timedelta(hours=jwt_settings.expiration_hours)

    user_claims = []
    for claim in claims:
        if claim.type in RESERVED_CLAIM_TYPES:
            logger.warning("Ignoring user claim with reserved type '%s' (user=%s)", claim.type, user_id)
            continue
        user_claims.append(claim)

    identity_claims = [
        Claim("sub", user_id),
        Claim("email", email),
        Claim("jti", str(uuid.uuid4())),
        Claim("nbf", str(issued_at)),
        Claim("iat", str(issued_at)),
    ]
    role_claims = [Claim(ROLE_CLAIM_TYPE, role) for role in roles]
    all_claims = [*user_claims, *identity_claims, *role_claims]

    payload = claims_to_payload(all_claims)
    payload.update({
        "nbf": issued_at,
        "iat": issued_at,
        "exp": int(expires_at.timestamp()),
        "iss": jwt_settings.issuer,
        "aud": jwt_settings.audience,
    })

    token = jwt.encode(payload, jwt_settings.secret_key, algorithm=jwt_settings.algorithm)
    logger.debug("Token issued: sub=%s, claims=%d, roles=%d", user_id, len(user_claims), len(role_claims))

    return UserResponse(
        access_token=token,
        expires_in=jwt_settings.expires_in,
        user_token=UserToken(
            id=user_id,
            email=email,
            claims=[UserClaim(value=claim.value, type=claim.type) for claim in all_claims],
        ),
    )


def decode_access_token(token: str, jwt_settings: JwtSettings) -> dict[str, Any]:
    """
    Decodifica e verifica um token (assinatura, exp, nbf, iss e aud).

    Raises:
        TokenError: Se token inválido ou expirado
    """
    try:
        payload = jwt.decode(
            token,
            jwt_settings.secret_key,
            algorithms=[jwt_settings.algorithm],
            audience=jwt_settings.audience,
            issuer=jwt_settings.issuer,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Token decode failed: token expired")
        raise TokenError("Token expired", code="token_expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Token decode failed: %s", e)
        raise TokenError(f"Invalid token: {e}")

    logger.debug("Token decoded: sub=%s", payload.get("sub"))
    return payload

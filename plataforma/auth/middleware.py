"""
Authentication Middleware.

Uses Starlette's AuthenticationMiddleware pattern: the decoded token is
exposed to views as ``request.user`` (a TokenUser). The identity comes
entirely from the token's claims; no database lookup is performed.

Usage:
    app.add_middleware(AuthenticationMiddleware, jwt_settings=jwt_settings)

    @router.get("/me")
    async def me(request: Request):
        if not request.user.is_authenticated:
            raise Unauthorized()
        return {"id": request.user.id, "claims": request.user.claims}
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.authentication import (
    AuthenticationBackend,
    AuthCredentials,
    BaseUser,
)
from starlette.middleware.authentication import AuthenticationMiddleware as StarletteAuthMiddleware
from starlette.requests import HTTPConnection

from plataforma.auth.tokens import ROLE_CLAIM_TYPE, Claim, JwtSettings, decode_access_token, payload_to_claims
from plataforma.exceptions import TokenError

# Logger for authentication - NEVER silent!
logger = logging.getLogger("plataforma.auth")


# =============================================================================
# Token User
# =============================================================================

class TokenUser(BaseUser):
    """
    Authenticated caller built from a verified token payload.

    Usage in views:
        user = request.user
        if user.has_claim("ExcluirFornecedor"):
            ...
    """

    def __init__(self, payload: dict[str, Any]) -> None:
        self.payload = payload
        self.claims: list[Claim] = payload_to_claims(payload)

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return str(self.payload.get("email", self.identity))

    @property
    def identity(self) -> str:
        return str(self.payload.get("sub", ""))

    @property
    def id(self) -> str:
        return self.identity

    @property
    def email(self) -> str | None:
        return self.payload.get("email")

    @property
    def roles(self) -> list[str]:
        return [claim.value for claim in self.claims if claim.type == ROLE_CLAIM_TYPE]

    def has_claim(self, claim_type: str, value: str | None = None) -> bool:
        """Verifica se o token carrega a claim (com qualquer valor se value=None)."""
        return any(
            claim.type == claim_type and (value is None or claim.value == value)
            for claim in self.claims
        )

    def is_in_role(self, role: str) -> bool:
        return role in self.roles

    def __repr__(self) -> str:
        return f"<TokenUser {self.display_name}>"


# =============================================================================
# Authentication Backend
# =============================================================================

class JWTAuthBackend(AuthenticationBackend):
    """
    JWT Authentication Backend for Starlette.

    This backend:
    1. Extracts Bearer token from Authorization header
    2. Verifies signature, expiry, issuer and audience
    3. Returns AuthCredentials and TokenUser

    Missing or invalid tokens leave the request anonymous; the failure is
    logged and the route's policy decides between 401 and success.
    """

    def __init__(
        self,
        jwt_settings: JwtSettings,
        header_name: str = "Authorization",
        scheme: str = "Bearer",
    ) -> None:
        self.jwt_settings = jwt_settings
        self.header_name = header_name
        self.scheme = scheme

    async def authenticate(self, conn: HTTPConnection) -> tuple[AuthCredentials, BaseUser] | None:
        auth_header = conn.headers.get(self.header_name)

        if not auth_header:
            logger.debug("No Authorization header present")
            return None

        parts = auth_header.split()
        if len(parts) != 2:
            logger.warning("Malformed Authorization header: expected 2 parts, got %d", len(parts))
            return None

        scheme, token = parts
        if scheme.lower() != self.scheme.lower():
            logger.warning("Unexpected auth scheme: expected '%s', got '%s'", self.scheme, scheme)
            return None

        try:
            payload = decode_access_token(token, self.jwt_settings)
        except TokenError as e:
            logger.warning("Rejected bearer token: %s", e.message)
            return None

        user = TokenUser(payload)
        logger.debug("User authenticated: %s", user.display_name)
        return AuthCredentials(["authenticated"]), user


class AuthenticationMiddleware(StarletteAuthMiddleware):
    """
    Authentication Middleware using Starlette's pattern.

    Anonymous requests get ``request.user`` as UnauthenticatedUser.
    """

    def __init__(
        self,
        app: Any,
        jwt_settings: JwtSettings,
        header_name: str = "Authorization",
        scheme: str = "Bearer",
    ) -> None:
        backend = JWTAuthBackend(
            jwt_settings=jwt_settings,
            header_name=header_name,
            scheme=scheme,
        )
        super().__init__(app, backend=backend)
        logger.info("AuthenticationMiddleware initialized")

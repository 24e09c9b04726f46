"""
Modelos do store de identidade.

Modelos disponíveis:
- IdentityUser: Usuário (email usado como username)
- IdentityUserClaim: Claims (tipo, valor) de um usuário
- IdentityRole: Roles
- IdentityUserRole: Associação usuário <-> role

Os modelos são manipulados apenas via UserManager/SignInManager
(plataforma.auth.identity), nunca diretamente pelos handlers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import String
from sqlalchemy.orm import Mapped

from plataforma.models import Model, Field


def new_stamp() -> str:
    """Gera um stamp aleatório (security/concurrency)."""
    return uuid.uuid4().hex.upper()


class IdentityUser(Model):
    """
    Usuário do store de identidade.

    Campos de lockout:
        - lockout_enabled: Se o usuário pode ser bloqueado
        - lockout_end: Fim do bloqueio (UTC); bloqueado enquanto no futuro
        - access_failed_count: Falhas consecutivas de login
    """

    __tablename__ = "auth_users"

    id: Mapped[str] = Field.uuid_pk()
    user_name: Mapped[str] = Field.string(max_length=256)
    normalized_user_name: Mapped[str] = Field.string(max_length=256, unique=True, index=True)
    email: Mapped[str] = Field.string(max_length=256)
    normalized_email: Mapped[str] = Field.string(max_length=256, index=True)
    email_confirmed: Mapped[bool] = Field.boolean(default=False)
    password_hash: Mapped[str] = Field.string(max_length=255)
    security_stamp: Mapped[str] = Field.string(max_length=64, default=new_stamp)
    concurrency_stamp: Mapped[str] = Field.string(max_length=64, default=new_stamp)
    lockout_end: Mapped[datetime | None] = Field.datetime(nullable=True)
    lockout_enabled: Mapped[bool] = Field.boolean(default=True)
    access_failed_count: Mapped[int] = Field.integer(default=0)
    created_at: Mapped[datetime] = Field.datetime(auto_now_add=True)

    @property
    def lockout_end_utc(self) -> datetime | None:
        """lockout_end sempre aware (SQLite devolve datetimes naive)."""
        if self.lockout_end is None:
            return None
        if self.lockout_end.tzinfo is None:
            return self.lockout_end.replace(tzinfo=timezone.utc)
        return self.lockout_end

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.email}>"

    def __str__(self) -> str:
        return self.email


class IdentityUserClaim(Model):
    """Claim (tipo, valor) atribuída a um usuário."""

    __tablename__ = "auth_user_claims"

    id: Mapped[int] = Field.pk()
    user_id: Mapped[str] = Field.foreign_key("auth_users.id", column_type=String(36))
    claim_type: Mapped[str] = Field.string(max_length=256)
    claim_value: Mapped[str] = Field.string(max_length=256)


class IdentityRole(Model):
    """Role nomeado."""

    __tablename__ = "auth_roles"

    id: Mapped[str] = Field.uuid_pk()
    name: Mapped[str] = Field.string(max_length=256)
    normalized_name: Mapped[str] = Field.string(max_length=256, unique=True, index=True)


class IdentityUserRole(Model):
    """Associação usuário <-> role."""

    __tablename__ = "auth_user_roles"

    user_id: Mapped[str] = Field.foreign_key("auth_users.id", column_type=String(36), primary_key=True)
    role_id: Mapped[str] = Field.foreign_key("auth_roles.id", column_type=String(36), primary_key=True)

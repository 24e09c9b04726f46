"""
Dependencies compartilhadas pelos handlers.

Cada handler recebe explicitamente o que usa (sessão, settings, managers
de identidade, configuração JWT); nada é resolvido por estado global.

Uso:
    @router.post("/login")
    async def login(sign_in: SignInManagerDep, jwt_settings: JwtSettingsDep):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from plataforma.auth.hashers import make_password_hasher
from plataforma.auth.identity import IdentityOptions, SignInManager, UserManager
from plataforma.auth.tokens import JwtSettings
from plataforma.config import Settings
from plataforma.database import DBSession

__all__ = [
    "Depends",
    "get_settings_dep",
    "get_jwt_settings",
    "get_user_manager",
    "get_sign_in_manager",
    "SettingsDep",
    "JwtSettingsDep",
    "UserManagerDep",
    "SignInManagerDep",
]


def get_settings_dep(request: Request) -> Settings:
    """Settings da aplicação que atende o request."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_settings_dep)]


def get_jwt_settings(settings: SettingsDep) -> JwtSettings:
    return JwtSettings.from_settings(settings)


def get_user_manager(db: DBSession, settings: SettingsDep) -> UserManager:
    """UserManager ligado à sessão do request."""
    hasher = make_password_hasher(
        settings.auth_password_hasher,
        iterations=settings.auth_password_iterations,
    )
    return UserManager(db, IdentityOptions.from_settings(settings), hasher)


UserManagerDep = Annotated[UserManager, Depends(get_user_manager)]


def get_sign_in_manager(user_manager: UserManagerDep) -> SignInManager:
    return SignInManager(user_manager)


JwtSettingsDep = Annotated[JwtSettings, Depends(get_jwt_settings)]
SignInManagerDep = Annotated[SignInManager, Depends(get_sign_in_manager)]

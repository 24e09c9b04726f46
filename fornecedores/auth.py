"""
Registro e login de usuários.

Ambos os endpoints devolvem o mesmo corpo de token:
    {"accessToken": "...", "expiresIn": 7200, "userToken": {...}}
"""

import logging

from fastapi import APIRouter

from plataforma.auth import IdentityUser, JwtSettings, UserManager, build_user_response
from plataforma.auth.schemas import UserResponse
from plataforma.dependencies import JwtSettingsDep, SignInManagerDep, UserManagerDep
from plataforma.exceptions import BadRequest, IdentityFailure
from plataforma.validation import JsonBody, validate

from fornecedores.schemas import LoginUser, RegisterUser

logger = logging.getLogger("fornecedores.auth")

auth_router = APIRouter(tags=["Usuario"])


async def gerar_token(
    user_manager: UserManager,
    user: IdentityUser,
    jwt_settings: JwtSettings,
) -> UserResponse:
    """Emite o token com as claims e roles atuais do usuário."""
    claims = await user_manager.get_claims(user)
    roles = await user_manager.get_roles(user)
    return build_user_response(user.id, user.email, claims, roles, jwt_settings)


@auth_router.post("/registro", name="RegistroUsuario", response_model=UserResponse)
async def registro(
    payload: JsonBody,
    user_manager: UserManagerDep,
    jwt_settings: JwtSettingsDep,
) -> UserResponse:
    """Cria o usuário (email confirmado) e devolve o token."""
    data = validate(RegisterUser, payload)

    user = IdentityUser(
        user_name=data.email,
        email=data.email,
        email_confirmed=True,
    )
    result = await user_manager.create(user, data.password)
    if not result.succeeded:
        raise IdentityFailure(result.error_list())

    logger.info("User registered: %s", user.email)
    return await gerar_token(user_manager, user, jwt_settings)


@auth_router.post("/login", name="LoginUsuario", response_model=UserResponse)
async def login(
    payload: JsonBody,
    sign_in: SignInManagerDep,
    jwt_settings: JwtSettingsDep,
) -> UserResponse:
    data = validate(LoginUser, payload)

    result = await sign_in.password_sign_in(data.email, data.password, lockout_on_failure=False)

    if result.is_locked_out:
        raise BadRequest("Usuário bloqueado", code="user_locked_out")

    if result.is_not_allowed:
        raise BadRequest("Usuário não autorizado a entrar", code="not_allowed")

    if not result.succeeded:
        raise BadRequest("Usuário ou senha inválidos", code="invalid_credentials")

    user = await sign_in.user_manager.find_by_name(data.email)
    logger.info("User signed in: %s", user.email)
    return await gerar_token(sign_in.user_manager, user, jwt_settings)

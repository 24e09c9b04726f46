"""
Autenticação: store de identidade, hash de senha e tokens JWT.

Exemplo de uso:
    from plataforma.auth import IdentityUser, UserManager, SignInManager, build_user_response

    result = await sign_in_manager.password_sign_in(email, password)
    if result.succeeded:
        user = await user_manager.find_by_email(email)
        response = build_user_response(
            user.id, user.email,
            await user_manager.get_claims(user),
            await user_manager.get_roles(user),
            jwt_settings,
        )
"""

from plataforma.auth.hashers import (
    PasswordHasher,
    PBKDF2Hasher,
    make_password_hasher,
    register_password_hasher,
)
from plataforma.auth.tokens import (
    Claim,
    JwtSettings,
    build_user_response,
    decode_access_token,
)
from plataforma.auth.models import (
    IdentityUser,
    IdentityUserClaim,
    IdentityRole,
    IdentityUserRole,
)
from plataforma.auth.identity import (
    IdentityError,
    IdentityOptions,
    IdentityResult,
    SignInResult,
    UserManager,
    SignInManager,
)
from plataforma.auth.middleware import (
    AuthenticationMiddleware,
    JWTAuthBackend,
    TokenUser,
)

__all__ = [
    # Hashers
    "PasswordHasher",
    "PBKDF2Hasher",
    "make_password_hasher",
    "register_password_hasher",
    # Tokens
    "Claim",
    "JwtSettings",
    "build_user_response",
    "decode_access_token",
    # Models
    "IdentityUser",
    "IdentityUserClaim",
    "IdentityRole",
    "IdentityUserRole",
    # Identity
    "IdentityError",
    "IdentityOptions",
    "IdentityResult",
    "SignInResult",
    "UserManager",
    "SignInManager",
    # Middleware
    "AuthenticationMiddleware",
    "JWTAuthBackend",
    "TokenUser",
]

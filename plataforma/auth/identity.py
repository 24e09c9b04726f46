"""
Store de identidade: criação de usuários, senha, claims, roles e lockout.

Componentes:
- IdentityOptions: Política de senha, lockout e sign-in
- PasswordValidator: Valida senhas contra a política
- UserManager: Operações sobre usuários (persistidas imediatamente)
- SignInManager: Login por senha com verificação de lockout

Uso:
    user_manager = UserManager(db, IdentityOptions.from_settings(settings), hasher)
    result = await user_manager.create(IdentityUser(user_name=email, email=email), password)
    if not result.succeeded:
        print([error.description for error in result.errors])

    sign_in = SignInManager(user_manager)
    result = await sign_in.password_sign_in(email, password)
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plataforma.auth.hashers import PasswordHasher
from plataforma.auth.models import IdentityRole, IdentityUser, IdentityUserClaim, IdentityUserRole, new_stamp
from plataforma.auth.tokens import Claim

if TYPE_CHECKING:
    from plataforma.config import Settings

logger = logging.getLogger("plataforma.auth.identity")

ALLOWED_USER_NAME_CHARACTERS = string.ascii_letters + string.digits + "-._@+"


def normalize(value: str) -> str:
    """Normaliza nomes/emails para busca case-insensitive."""
    return value.strip().upper()


# =============================================================================
# Options
# =============================================================================

@dataclass(frozen=True)
class PasswordOptions:
    required_length: int = 6
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True
    required_unique_chars: int = 1


@dataclass(frozen=True)
class LockoutOptions:
    allowed_for_new_users: bool = True
    max_failed_access_attempts: int = 5
    default_lockout_minutes: int = 5


@dataclass(frozen=True)
class IdentityOptions:
    """Opções do store de identidade."""

    password: PasswordOptions = field(default_factory=PasswordOptions)
    lockout: LockoutOptions = field(default_factory=LockoutOptions)
    require_unique_email: bool = True
    require_confirmed_email: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "IdentityOptions":
        return cls(
            password=PasswordOptions(
                required_length=settings.identity_password_required_length,
                require_digit=settings.identity_password_require_digit,
                require_lowercase=settings.identity_password_require_lowercase,
                require_uppercase=settings.identity_password_require_uppercase,
                require_non_alphanumeric=settings.identity_password_require_non_alphanumeric,
                required_unique_chars=settings.identity_password_required_unique_chars,
            ),
            lockout=LockoutOptions(
                allowed_for_new_users=settings.identity_lockout_allowed_for_new_users,
                max_failed_access_attempts=settings.identity_lockout_max_failed_attempts,
                default_lockout_minutes=settings.identity_lockout_minutes,
            ),
            require_unique_email=settings.identity_require_unique_email,
            require_confirmed_email=settings.identity_require_confirmed_email,
        )


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class IdentityError:
    code: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "description": self.description}


@dataclass(frozen=True)
class IdentityResult:
    """Resultado de uma operação do UserManager."""

    succeeded: bool
    errors: tuple[IdentityError, ...] = ()

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(succeeded=False, errors=errors)

    def error_list(self) -> list[dict[str, str]]:
        return [error.to_dict() for error in self.errors]


@dataclass(frozen=True)
class SignInResult:
    """Resultado de uma tentativa de login."""

    succeeded: bool = False
    is_locked_out: bool = False
    is_not_allowed: bool = False

    @classmethod
    def success(cls) -> "SignInResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls) -> "SignInResult":
        return cls()

    @classmethod
    def locked_out(cls) -> "SignInResult":
        return cls(is_locked_out=True)

    @classmethod
    def not_allowed(cls) -> "SignInResult":
        return cls(is_not_allowed=True)


class IdentityErrors:
    """Fábrica das mensagens de erro do store de identidade."""

    @staticmethod
    def invalid_user_name(user_name: str) -> IdentityError:
        return IdentityError(
            "InvalidUserName",
            f"Username '{user_name}' is invalid, can only contain letters or digits.",
        )

    @staticmethod
    def invalid_email(email: str) -> IdentityError:
        return IdentityError("InvalidEmail", f"Email '{email}' is invalid.")

    @staticmethod
    def duplicate_user_name(user_name: str) -> IdentityError:
        return IdentityError("DuplicateUserName", f"Username '{user_name}' is already taken.")

    @staticmethod
    def duplicate_email(email: str) -> IdentityError:
        return IdentityError("DuplicateEmail", f"Email '{email}' is already taken.")

    @staticmethod
    def password_too_short(length: int) -> IdentityError:
        return IdentityError("PasswordTooShort", f"Passwords must be at least {length} characters.")

    @staticmethod
    def password_requires_unique_chars(count: int) -> IdentityError:
        return IdentityError(
            "PasswordRequiresUniqueChars",
            f"Passwords must use at least {count} different characters.",
        )

    password_requires_non_alphanumeric = IdentityError(
        "PasswordRequiresNonAlphanumeric",
        "Passwords must have at least one non alphanumeric character.",
    )
    password_requires_digit = IdentityError(
        "PasswordRequiresDigit",
        "Passwords must have at least one digit ('0'-'9').",
    )
    password_requires_lower = IdentityError(
        "PasswordRequiresLower",
        "Passwords must have at least one lowercase ('a'-'z').",
    )
    password_requires_upper = IdentityError(
        "PasswordRequiresUpper",
        "Passwords must have at least one uppercase ('A'-'Z').",
    )
    user_lockout_not_enabled = IdentityError(
        "UserLockoutNotEnabled",
        "Lockout is not enabled for this user.",
    )

    @staticmethod
    def duplicate_role_name(role: str) -> IdentityError:
        return IdentityError("DuplicateRoleName", f"Role name '{role}' is already taken.")

    @staticmethod
    def role_not_found(role: str) -> IdentityError:
        return IdentityError("RoleNotFound", f"Role {role} does not exist.")

    @staticmethod
    def user_already_in_role(role: str) -> IdentityError:
        return IdentityError("UserAlreadyInRole", f"User already in role '{role}'.")

    @staticmethod
    def claim_not_found(claim_type: str) -> IdentityError:
        return IdentityError("ClaimNotFound", f"Claim '{claim_type}' not found for this user.")


# =============================================================================
# Password validation
# =============================================================================

class PasswordValidator:
    """Valida senhas contra PasswordOptions, reportando todas as regras violadas."""

    def __init__(self, options: PasswordOptions) -> None:
        self.options = options

    def validate(self, password: str) -> list[IdentityError]:
        options = self.options
        errors: list[IdentityError] = []

        if len(password) < options.required_length:
            errors.append(IdentityErrors.password_too_short(options.required_length))
        if options.require_non_alphanumeric and all(c in string.ascii_letters + string.digits for c in password):
            errors.append(IdentityErrors.password_requires_non_alphanumeric)
        if options.require_digit and not any(c in string.digits for c in password):
            errors.append(IdentityErrors.password_requires_digit)
        if options.require_lowercase and not any(c in string.ascii_lowercase for c in password):
            errors.append(IdentityErrors.password_requires_lower)
        if options.require_uppercase and not any(c in string.ascii_uppercase for c in password):
            errors.append(IdentityErrors.password_requires_upper)
        if options.required_unique_chars >= 1 and len(set(password)) < options.required_unique_chars:
            errors.append(IdentityErrors.password_requires_unique_chars(options.required_unique_chars))

        return errors


# =============================================================================
# UserManager
# =============================================================================

class UserManager:
    """
    Operações sobre usuários do store de identidade.

    Toda operação que altera estado é commitada imediatamente, de modo que
    contadores de falha e bloqueios sobrevivem a respostas de erro.
    """

    def __init__(
        self,
        db: AsyncSession,
        options: IdentityOptions,
        hasher: PasswordHasher,
    ) -> None:
        self.db = db
        self.options = options
        self.hasher = hasher
        self.password_validator = PasswordValidator(options.password)

    async def _save(self) -> None:
        await self.db.commit()

    # ── Lookup ──

    async def find_by_id(self, user_id: str) -> IdentityUser | None:
        return await IdentityUser.objects.using(self.db).get_or_none(id=user_id)

    async def find_by_name(self, user_name: str) -> IdentityUser | None:
        return await IdentityUser.objects.using(self.db).get_or_none(
            normalized_user_name=normalize(user_name),
        )

    async def find_by_email(self, email: str) -> IdentityUser | None:
        return await IdentityUser.objects.using(self.db).filter(
            normalized_email=normalize(email),
        ).order_by("created_at").first()

    # ── Criação ──

    async def _validate_user(self, user: IdentityUser) -> list[IdentityError]:
        errors: list[IdentityError] = []

        user_name = user.user_name or ""
        if not user_name or any(c not in ALLOWED_USER_NAME_CHARACTERS for c in user_name):
            errors.append(IdentityErrors.invalid_user_name(user_name))
        else:
            existing = await self.find_by_name(user_name)
            if existing is not None and existing.id != user.id:
                errors.append(IdentityErrors.duplicate_user_name(user_name))

        if self.options.require_unique_email:
            email = user.email or ""
            if "@" not in email:
                errors.append(IdentityErrors.invalid_email(email))
            else:
                existing = await self.find_by_email(email)
                if existing is not None and existing.id != user.id:
                    errors.append(IdentityErrors.duplicate_email(email))

        return errors

    async def create(self, user: IdentityUser, password: str) -> IdentityResult:
        """
        Cria o usuário com a senha informada.

        A senha é validada primeiro; se falhar, os dados do usuário nem
        chegam a ser verificados.
        """
        password_errors = self.password_validator.validate(password)
        if password_errors:
            logger.info("User creation rejected by password policy: %s", [e.code for e in password_errors])
            return IdentityResult.failed(*password_errors)

        user_errors = await self._validate_user(user)
        if user_errors:
            logger.info("User creation rejected: %s", [e.code for e in user_errors])
            return IdentityResult.failed(*user_errors)

        user.normalized_user_name = normalize(user.user_name)
        user.normalized_email = normalize(user.email)
        user.password_hash = self.hasher.hash(password)
        user.security_stamp = new_stamp()
        user.lockout_enabled = self.options.lockout.allowed_for_new_users
        if user.access_failed_count is None:
            user.access_failed_count = 0

        self.db.add(user)
        await self._save()
        logger.info("User created: %s", user.email)
        return IdentityResult.success()

    # ── Senha ──

    async def check_password(self, user: IdentityUser, password: str) -> bool:
        """Verifica a senha; recalcula o hash se estiver com parâmetros antigos."""
        if not user.password_hash:
            return False

        if not self.hasher.verify(password, user.password_hash):
            return False

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash(password)
            await self._save()
            logger.debug("Password rehashed for user %s", user.id)

        return True

    # ── Lockout ──

    async def is_locked_out(self, user: IdentityUser) -> bool:
        if not user.lockout_enabled:
            return False
        lockout_end = user.lockout_end_utc
        return lockout_end is not None and lockout_end > datetime.now(timezone.utc)

    async def set_lockout_end(self, user: IdentityUser, lockout_end: datetime | None) -> IdentityResult:
        if not user.lockout_enabled:
            return IdentityResult.failed(IdentityErrors.user_lockout_not_enabled)

        user.lockout_end = lockout_end
        await self._save()
        return IdentityResult.success()

    async def access_failed(self, user: IdentityUser) -> IdentityResult:
        """Registra uma falha de login; bloqueia ao atingir o máximo configurado."""
        user.access_failed_count = (user.access_failed_count or 0) + 1

        lockout = self.options.lockout
        if user.access_failed_count >= lockout.max_failed_access_attempts:
            user.lockout_end = datetime.now(timezone.utc) + timedelta(minutes=lockout.default_lockout_minutes)
            user.access_failed_count = 0
            logger.warning("User %s locked out for %d minutes", user.id, lockout.default_lockout_minutes)

        await self._save()
        return IdentityResult.success()

    async def reset_access_failed_count(self, user: IdentityUser) -> IdentityResult:
        if user.access_failed_count:
            user.access_failed_count = 0
            await self._save()
        return IdentityResult.success()

    # ── Claims ──

    async def get_claims(self, user: IdentityUser) -> list[Claim]:
        rows = await IdentityUserClaim.objects.using(self.db).filter(user_id=user.id).order_by("id").all()
        return [Claim(row.claim_type, row.claim_value) for row in rows]

    async def add_claim(self, user: IdentityUser, claim_type: str, claim_value: str) -> IdentityResult:
        self.db.add(IdentityUserClaim(user_id=user.id, claim_type=claim_type, claim_value=claim_value))
        await self._save()
        logger.info("Claim %s=%s added to user %s", claim_type, claim_value, user.email)
        return IdentityResult.success()

    async def remove_claim(self, user: IdentityUser, claim_type: str, claim_value: str) -> IdentityResult:
        removed = await IdentityUserClaim.objects.using(self.db).delete(
            user_id=user.id,
            claim_type=claim_type,
            claim_value=claim_value,
        )
        if not removed:
            return IdentityResult.failed(IdentityErrors.claim_not_found(claim_type))

        await self._save()
        return IdentityResult.success()

    # ── Roles ──

    async def find_role(self, role_name: str) -> IdentityRole | None:
        return await IdentityRole.objects.using(self.db).get_or_none(normalized_name=normalize(role_name))

    async def create_role(self, role_name: str) -> IdentityResult:
        if await self.find_role(role_name) is not None:
            return IdentityResult.failed(IdentityErrors.duplicate_role_name(role_name))

        self.db.add(IdentityRole(name=role_name, normalized_name=normalize(role_name)))
        await self._save()
        return IdentityResult.success()

    async def get_roles(self, user: IdentityUser) -> list[str]:
        stmt = (
            select(IdentityRole.name)
            .join(IdentityUserRole, IdentityUserRole.role_id == IdentityRole.id)
            .where(IdentityUserRole.user_id == user.id)
            .order_by(IdentityRole.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def is_in_role(self, user: IdentityUser, role_name: str) -> bool:
        role = await self.find_role(role_name)
        if role is None:
            return False
        return await IdentityUserRole.objects.using(self.db).exists(user_id=user.id, role_id=role.id)

    async def add_to_role(self, user: IdentityUser, role_name: str) -> IdentityResult:
        role = await self.find_role(role_name)
        if role is None:
            return IdentityResult.failed(IdentityErrors.role_not_found(role_name))

        if await IdentityUserRole.objects.using(self.db).exists(user_id=user.id, role_id=role.id):
            return IdentityResult.failed(IdentityErrors.user_already_in_role(role_name))

        self.db.add(IdentityUserRole(user_id=user.id, role_id=role.id))
        await self._save()
        return IdentityResult.success()


# =============================================================================
# SignInManager
# =============================================================================

class SignInManager:
    """Login por senha sobre um UserManager."""

    def __init__(self, user_manager: UserManager) -> None:
        self.user_manager = user_manager
        self.options = user_manager.options

    async def can_sign_in(self, user: IdentityUser) -> bool:
        if self.options.require_confirmed_email and not user.email_confirmed:
            logger.warning("User %s cannot sign in without a confirmed email.", user.id)
            return False
        return True

    async def check_password_sign_in(
        self,
        user: IdentityUser,
        password: str,
        lockout_on_failure: bool = False,
    ) -> SignInResult:
        """
        Verifica a senha respeitando o lockout.

        Um usuário bloqueado é recusado mesmo com a senha correta.
        """
        if not await self.can_sign_in(user):
            return SignInResult.not_allowed()

        if await self.user_manager.is_locked_out(user):
            logger.warning("User %s is currently locked out.", user.id)
            return SignInResult.locked_out()

        if await self.user_manager.check_password(user, password):
            await self.user_manager.reset_access_failed_count(user)
            return SignInResult.success()

        logger.info("User %s failed to provide the correct password.", user.id)

        if lockout_on_failure and user.lockout_enabled:
            await self.user_manager.access_failed(user)
            if await self.user_manager.is_locked_out(user):
                return SignInResult.locked_out()

        return SignInResult.failed()

    async def password_sign_in(
        self,
        user_name: str,
        password: str,
        lockout_on_failure: bool = False,
    ) -> SignInResult:
        user = await self.user_manager.find_by_name(user_name)
        if user is None:
            logger.info("Sign-in attempt for unknown user name")
            return SignInResult.failed()

        return await self.check_password_sign_in(user, password, lockout_on_failure)

"""
Tests for the identity store (UserManager / SignInManager).
"""

from datetime import datetime, timedelta, timezone

import pytest

from plataforma.auth import IdentityUser, SignInManager
from plataforma.auth.identity import PasswordOptions, PasswordValidator, normalize

SENHA = "Senha@123"


def novo_usuario(email: str) -> IdentityUser:
    return IdentityUser(user_name=email, email=email, email_confirmed=True)


class TestPasswordValidator:
    """Test password policy."""

    def test_valid_password(self):
        validator = PasswordValidator(PasswordOptions())
        assert validator.validate(SENHA) == []

    def test_reports_every_failing_rule(self):
        validator = PasswordValidator(PasswordOptions())
        codes = [error.code for error in validator.validate("aaa")]
        assert codes == [
            "PasswordTooShort",
            "PasswordRequiresNonAlphanumeric",
            "PasswordRequiresDigit",
            "PasswordRequiresUpper",
        ]

    def test_unique_chars(self):
        validator = PasswordValidator(PasswordOptions(
            require_digit=False,
            require_lowercase=False,
            require_uppercase=False,
            require_non_alphanumeric=False,
            required_unique_chars=3,
        ))
        codes = [error.code for error in validator.validate("aaaaaaab")]
        assert codes == ["PasswordRequiresUniqueChars"]


class TestNormalize:
    def test_upper_and_strip(self):
        assert normalize("  Fulano@Teste.com ") == "FULANO@TESTE.COM"


class TestUserManager:
    """Test UserManager."""

    @pytest.mark.asyncio
    async def test_create_hashes_and_normalizes(self, user_manager):
        user = novo_usuario("Fulano@Teste.com")
        result = await user_manager.create(user, SENHA)

        assert result.succeeded
        assert user.id
        assert user.normalized_user_name == "FULANO@TESTE.COM"
        assert user.password_hash.startswith("pbkdf2_sha256$1000$")
        assert user.security_stamp
        assert user.lockout_enabled is True
        assert user.access_failed_count == 0

    @pytest.mark.asyncio
    async def test_find_is_case_insensitive(self, user_manager):
        await user_manager.create(novo_usuario("caixa@teste.com"), SENHA)

        assert await user_manager.find_by_name("CAIXA@teste.com") is not None
        assert await user_manager.find_by_email("Caixa@Teste.com") is not None

    @pytest.mark.asyncio
    async def test_password_errors_skip_user_validation(self, user_manager):
        await user_manager.create(novo_usuario("dup@teste.com"), SENHA)

        result = await user_manager.create(novo_usuario("dup@teste.com"), "fraca")
        assert not result.succeeded
        assert all(error.code.startswith("Password") for error in result.errors)

    @pytest.mark.asyncio
    async def test_invalid_user_name(self, user_manager):
        user = IdentityUser(user_name="nome com espaço", email="x@teste.com")
        result = await user_manager.create(user, SENHA)
        assert [error.code for error in result.errors] == ["InvalidUserName"]

    @pytest.mark.asyncio
    async def test_check_password(self, user_manager):
        user = novo_usuario("senha@teste.com")
        await user_manager.create(user, SENHA)

        assert await user_manager.check_password(user, SENHA) is True
        assert await user_manager.check_password(user, "Errada@1") is False

    @pytest.mark.asyncio
    async def test_claims(self, user_manager):
        user = novo_usuario("claims@teste.com")
        await user_manager.create(user, SENHA)

        await user_manager.add_claim(user, "ExcluirFornecedor", "1")
        await user_manager.add_claim(user, "departamento", "compras")

        claims = await user_manager.get_claims(user)
        assert [(c.type, c.value) for c in claims] == [
            ("ExcluirFornecedor", "1"),
            ("departamento", "compras"),
        ]

        result = await user_manager.remove_claim(user, "departamento", "compras")
        assert result.succeeded
        assert len(await user_manager.get_claims(user)) == 1

        result = await user_manager.remove_claim(user, "departamento", "compras")
        assert [error.code for error in result.errors] == ["ClaimNotFound"]

    @pytest.mark.asyncio
    async def test_roles(self, user_manager):
        user = novo_usuario("roles@teste.com")
        await user_manager.create(user, SENHA)

        result = await user_manager.add_to_role(user, "Admin")
        assert [error.code for error in result.errors] == ["RoleNotFound"]

        assert (await user_manager.create_role("Admin")).succeeded
        assert not (await user_manager.create_role("admin")).succeeded

        assert (await user_manager.add_to_role(user, "Admin")).succeeded
        assert await user_manager.is_in_role(user, "Admin")
        assert await user_manager.get_roles(user) == ["Admin"]

        result = await user_manager.add_to_role(user, "Admin")
        assert [error.code for error in result.errors] == ["UserAlreadyInRole"]


class TestSignInManager:
    """Test password sign-in and lockout."""

    @pytest.mark.asyncio
    async def test_success_resets_failed_count(self, user_manager):
        user = novo_usuario("reset@teste.com")
        await user_manager.create(user, SENHA)
        user.access_failed_count = 3

        sign_in = SignInManager(user_manager)
        result = await sign_in.password_sign_in("reset@teste.com", SENHA)

        assert result.succeeded
        assert user.access_failed_count == 0

    @pytest.mark.asyncio
    async def test_unknown_user_fails(self, user_manager):
        sign_in = SignInManager(user_manager)
        result = await sign_in.password_sign_in("ninguem@teste.com", SENHA)
        assert not result.succeeded
        assert not result.is_locked_out

    @pytest.mark.asyncio
    async def test_locked_out_with_correct_password(self, user_manager):
        user = novo_usuario("lock@teste.com")
        await user_manager.create(user, SENHA)
        await user_manager.set_lockout_end(user, datetime.now(timezone.utc) + timedelta(minutes=1))

        result = await SignInManager(user_manager).password_sign_in("lock@teste.com", SENHA)
        assert result.is_locked_out
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_expired_lockout_allows_sign_in(self, user_manager):
        user = novo_usuario("expirou@teste.com")
        await user_manager.create(user, SENHA)
        await user_manager.set_lockout_end(user, datetime.now(timezone.utc) - timedelta(minutes=1))

        result = await SignInManager(user_manager).password_sign_in("expirou@teste.com", SENHA)
        assert result.succeeded

    @pytest.mark.asyncio
    async def test_lockout_on_failure(self, user_manager):
        user = novo_usuario("falhas@teste.com")
        await user_manager.create(user, SENHA)
        sign_in = SignInManager(user_manager)

        for _ in range(4):
            result = await sign_in.password_sign_in("falhas@teste.com", "Errada@1", lockout_on_failure=True)
            assert not result.succeeded
            assert not result.is_locked_out

        result = await sign_in.password_sign_in("falhas@teste.com", "Errada@1", lockout_on_failure=True)
        assert result.is_locked_out
        assert user.lockout_end is not None

        result = await sign_in.password_sign_in("falhas@teste.com", SENHA)
        assert result.is_locked_out

    @pytest.mark.asyncio
    async def test_failure_without_lockout_does_not_count(self, user_manager):
        user = novo_usuario("conta@teste.com")
        await user_manager.create(user, SENHA)

        await SignInManager(user_manager).password_sign_in("conta@teste.com", "Errada@1")
        assert user.access_failed_count == 0

    @pytest.mark.asyncio
    async def test_not_allowed_without_confirmed_email(self, user_manager):
        from dataclasses import replace

        user = IdentityUser(user_name="pendente@teste.com", email="pendente@teste.com", email_confirmed=False)
        await user_manager.create(user, SENHA)
        user_manager.options = replace(user_manager.options, require_confirmed_email=True)

        result = await SignInManager(user_manager).password_sign_in("pendente@teste.com", SENHA)
        assert result.is_not_allowed

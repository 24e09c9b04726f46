"""
Tests for the admin CLI.

Os comandos rodam o próprio event loop (asyncio.run), então os testes são
síncronos e apontam o CLI para o banco temporário.
"""

import asyncio

import pytest

from fornecedores import cli
from plataforma.dependencies import get_user_manager
from plataforma.models import init_database, close_database, get_session


@pytest.fixture
def cli_settings(settings, monkeypatch):
    monkeypatch.setattr(cli, "settings", settings)
    assert cli.cli(["createtables"]) == 0
    return settings


def carregar_usuario(settings, email):
    async def run():
        await init_database(settings.database_url)
        session = await get_session()
        try:
            manager = get_user_manager(session, settings)
            user = await manager.find_by_email(email)
            return user, await manager.get_claims(user), await manager.get_roles(user)
        finally:
            await session.close()
            await close_database()

    return asyncio.run(run())


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert cli.cli([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_createuser_requires_email(self):
        with pytest.raises(SystemExit):
            cli.create_parser().parse_args(["createuser", "--password", "x"])


class TestCommands:
    """Test user administration commands."""

    def test_createuser_and_claims(self, cli_settings):
        assert cli.cli(["createuser", "--email", "admin@teste.com", "--password", "Senha@123"]) == 0
        assert cli.cli([
            "addclaim", "--email", "admin@teste.com", "--type", "ExcluirFornecedor", "--value", "1",
        ]) == 0
        assert cli.cli(["addrole", "--email", "admin@teste.com", "--role", "Admin"]) == 0

        user, claims, roles = carregar_usuario(cli_settings, "admin@teste.com")
        assert user.email_confirmed is True
        assert [(c.type, c.value) for c in claims] == [("ExcluirFornecedor", "1")]
        assert roles == ["Admin"]

    def test_createuser_weak_password(self, cli_settings):
        assert cli.cli(["createuser", "--email", "fraco@teste.com", "--password", "123"]) == 1

    def test_unknown_user(self, cli_settings):
        assert cli.cli(["lockuser", "--email", "ninguem@teste.com"]) == 1

    def test_lock_and_unlock(self, cli_settings):
        cli.cli(["createuser", "--email", "lock@teste.com", "--password", "Senha@123"])

        assert cli.cli(["lockuser", "--email", "lock@teste.com", "--minutes", "10"]) == 0
        user, _, _ = carregar_usuario(cli_settings, "lock@teste.com")
        assert user.lockout_end is not None

        assert cli.cli(["unlockuser", "--email", "lock@teste.com"]) == 0
        user, _, _ = carregar_usuario(cli_settings, "lock@teste.com")
        assert user.lockout_end is None

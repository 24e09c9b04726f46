"""
CLI de administração da aplicação de fornecedores.

Uso:
    python -m fornecedores.cli <command> [options]

Comandos:
    run           Executa servidor de desenvolvimento
    createtables  Cria as tabelas a partir dos models
    createuser    Cria um usuário com email confirmado
    addclaim      Adiciona uma claim ao usuário (ex: ExcluirFornecedor)
    addrole       Adiciona o usuário a um role (cria o role se preciso)
    lockuser      Bloqueia o usuário por N minutos
    unlockuser    Remove o bloqueio do usuário
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from plataforma.auth import IdentityResult, IdentityUser, UserManager
from plataforma.dependencies import get_user_manager
from plataforma.models import init_database, create_tables, close_database, get_session

from fornecedores.settings import settings

# Models registrados no metadata
import fornecedores.models  # noqa: F401


# Cores para output
class Colors:
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'


def color(text: str, c: str) -> str:
    """Aplica cor ao texto."""
    return f"{c}{text}{Colors.ENDC}"


def success(text: str) -> str:
    return color(text, Colors.GREEN)


def error(text: str) -> str:
    return color(text, Colors.FAIL)


def warning(text: str) -> str:
    return color(text, Colors.WARNING)


def info(text: str) -> str:
    return color(text, Colors.CYAN)


# =============================================================================
# Helpers
# =============================================================================

async def _open_database() -> None:
    await init_database(
        database_url=settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


def run_with_user_manager(work: Callable[[UserManager], Awaitable[int]]) -> int:
    """Executa ``work`` com um UserManager ligado a uma sessão nova."""

    async def run() -> int:
        await _open_database()
        try:
            session = await get_session()
            try:
                return await work(get_user_manager(session, settings))
            finally:
                await session.close()
        finally:
            await close_database()

    return asyncio.run(run())


async def _require_user(manager: UserManager, email: str) -> IdentityUser | None:
    user = await manager.find_by_email(email)
    if user is None:
        print(error(f"User '{email}' not found."))
    return user


def _report(result: IdentityResult, message: str) -> int:
    if not result.succeeded:
        for item in result.errors:
            print(error(f"  {item.code}: {item.description}"))
        return 1

    print(success(message))
    return 0


# =============================================================================
# Commands
# =============================================================================

def cmd_run(args: argparse.Namespace) -> int:
    """Executa servidor de desenvolvimento."""
    host = args.host or settings.host
    port = args.port or settings.port

    print(info(f"Starting development server at http://{host}:{port}"))
    print(info("Press CTRL+C to stop"))
    print()

    import uvicorn

    try:
        uvicorn.run(
            "fornecedores.app:app",
            host=host,
            port=port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        print()
        print(info("Server stopped."))

    return 0


def cmd_createtables(args: argparse.Namespace) -> int:
    """Cria todas as tabelas."""

    async def run() -> None:
        await _open_database()
        try:
            await create_tables()
        finally:
            await close_database()

    asyncio.run(run())
    print(success("Tables created."))
    return 0


def cmd_createuser(args: argparse.Namespace) -> int:
    """Cria um usuário confirmado."""

    async def work(manager: UserManager) -> int:
        user = IdentityUser(user_name=args.email, email=args.email, email_confirmed=True)
        result = await manager.create(user, args.password)
        return _report(result, f"User '{args.email}' created.")

    return run_with_user_manager(work)


def cmd_addclaim(args: argparse.Namespace) -> int:
    """Adiciona uma claim ao usuário."""

    async def work(manager: UserManager) -> int:
        user = await _require_user(manager, args.email)
        if user is None:
            return 1
        result = await manager.add_claim(user, args.type, args.value)
        return _report(result, f"Claim {args.type}={args.value} added to '{args.email}'.")

    return run_with_user_manager(work)


def cmd_addrole(args: argparse.Namespace) -> int:
    """Adiciona o usuário a um role, criando o role se não existir."""

    async def work(manager: UserManager) -> int:
        user = await _require_user(manager, args.email)
        if user is None:
            return 1

        if await manager.find_role(args.role) is None:
            created = await manager.create_role(args.role)
            if not created.succeeded:
                return _report(created, "")
            print(info(f"Role '{args.role}' created."))

        result = await manager.add_to_role(user, args.role)
        return _report(result, f"User '{args.email}' added to role '{args.role}'.")

    return run_with_user_manager(work)


def cmd_lockuser(args: argparse.Namespace) -> int:
    """Bloqueia o usuário."""

    async def work(manager: UserManager) -> int:
        user = await _require_user(manager, args.email)
        if user is None:
            return 1
        lockout_end = datetime.now(timezone.utc) + timedelta(minutes=args.minutes)
        result = await manager.set_lockout_end(user, lockout_end)
        return _report(result, f"User '{args.email}' locked until {lockout_end.isoformat()}.")

    return run_with_user_manager(work)


def cmd_unlockuser(args: argparse.Namespace) -> int:
    """Remove o bloqueio do usuário."""

    async def work(manager: UserManager) -> int:
        user = await _require_user(manager, args.email)
        if user is None:
            return 1
        result = await manager.set_lockout_end(user, None)
        if result.succeeded:
            await manager.reset_access_failed_count(user)
        return _report(result, f"User '{args.email}' unlocked.")

    return run_with_user_manager(work)


# =============================================================================
# Parser
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fornecedores",
        description="Administração da API de fornecedores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fornecedores.cli createtables
  python -m fornecedores.cli createuser --email a@b.com --password Senha@123
  python -m fornecedores.cli addclaim --email a@b.com --type ExcluirFornecedor --value 1
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run development server")
    run_parser.add_argument("--host", help="Host to bind")
    run_parser.add_argument("--port", type=int, help="Port to bind")
    run_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    run_parser.set_defaults(func=cmd_run)

    tables_parser = subparsers.add_parser("createtables", help="Create database tables")
    tables_parser.set_defaults(func=cmd_createtables)

    user_parser = subparsers.add_parser("createuser", help="Create a confirmed user")
    user_parser.add_argument("--email", required=True, help="User e-mail (also the user name)")
    user_parser.add_argument("--password", required=True, help="User password")
    user_parser.set_defaults(func=cmd_createuser)

    claim_parser = subparsers.add_parser("addclaim", help="Add a claim to a user")
    claim_parser.add_argument("--email", required=True, help="User e-mail")
    claim_parser.add_argument("--type", required=True, help="Claim type (e.g. ExcluirFornecedor)")
    claim_parser.add_argument("--value", required=True, help="Claim value")
    claim_parser.set_defaults(func=cmd_addclaim)

    role_parser = subparsers.add_parser("addrole", help="Add a user to a role")
    role_parser.add_argument("--email", required=True, help="User e-mail")
    role_parser.add_argument("--role", required=True, help="Role name")
    role_parser.set_defaults(func=cmd_addrole)

    lock_parser = subparsers.add_parser("lockuser", help="Lock a user out")
    lock_parser.add_argument("--email", required=True, help="User e-mail")
    lock_parser.add_argument(
        "--minutes",
        type=int,
        default=settings.identity_lockout_minutes,
        help="Lockout duration in minutes",
    )
    lock_parser.set_defaults(func=cmd_lockuser)

    unlock_parser = subparsers.add_parser("unlockuser", help="Clear a user lockout")
    unlock_parser.add_argument("--email", required=True, help="User e-mail")
    unlock_parser.set_defaults(func=cmd_unlockuser)

    return parser


def cli(args: list[str] | None = None) -> int:
    """Executa o CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 0

    return parsed_args.func(parsed_args)


def main():
    """Entry point principal."""
    sys.exit(cli())


if __name__ == "__main__":
    main()

"""
Configurações de teste compartilhadas.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from plataforma.auth import JwtSettings
from plataforma.dependencies import get_user_manager
from plataforma.models import init_database, create_tables, drop_tables, close_database, get_session

from fornecedores.app import create_fornecedores_app
from fornecedores.settings import AppSettings

SENHA = "Senha@123"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    """Settings isoladas: banco em arquivo temporário e PBKDF2 barato."""
    return AppSettings(
        environment="testing",
        secret_key="test-secret-key-que-nao-muda-entre-execucoes",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        auto_create_tables=False,
        auth_password_iterations=1_000,
    )


@pytest.fixture
def jwt_settings(settings):
    return JwtSettings.from_settings(settings)


@pytest_asyncio.fixture(scope="function")
async def database(settings):
    """Inicializa o banco e cria as tabelas (ASGITransport não executa lifespan)."""
    await init_database(settings.database_url, echo=False)
    await create_tables()
    try:
        yield
    finally:
        await drop_tables()
        await close_database()


@pytest_asyncio.fixture(scope="function")
async def db_session(database):
    """Fornece uma sessão de banco de dados para testes."""
    session = await get_session()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def user_manager(db_session, settings):
    return get_user_manager(db_session, settings)


@pytest.fixture
def app(settings):
    return create_fornecedores_app(settings).app


@pytest_asyncio.fixture(scope="function")
async def client(app, database):
    """Fornece um cliente HTTP para testes de API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Helpers
# =============================================================================

async def registrar(client, email: str, password: str = SENHA) -> dict:
    """Registra um usuário e retorna o corpo da resposta de token."""
    response = await client.post(
        "/registro",
        json={"email": email, "password": password, "confirmPassword": password},
    )
    assert response.status_code == 200, response.text
    return response.json()


async def conceder_claim(settings, email: str, claim_type: str, claim_value: str = "1") -> None:
    """Adiciona uma claim direto no store de identidade."""
    session = await get_session()
    try:
        manager = get_user_manager(session, settings)
        user = await manager.find_by_email(email)
        result = await manager.add_claim(user, claim_type, claim_value)
        assert result.succeeded
    finally:
        await session.close()


async def obter_token(client, email: str, password: str = SENHA) -> str:
    response = await client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["accessToken"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(client):
    """Headers de um usuário autenticado sem claims."""
    body = await registrar(client, "usuario@teste.com")
    return bearer(body["accessToken"])

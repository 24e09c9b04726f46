"""
Tests for /registro and /login.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from httpx import ASGITransport, AsyncClient
import pytest

from conftest import SENHA, conceder_claim, registrar

PROBLEM_TYPE = "https://tools.ietf.org/html/rfc7231#section-6.5.1"


class TestRegistro:
    """Test POST /registro."""

    @pytest.mark.asyncio
    async def test_returns_token_response(self, client, jwt_settings):
        """Test corpo camelCase e token verificável."""
        body = await registrar(client, "novo@teste.com")

        assert set(body) == {"accessToken", "expiresIn", "userToken"}
        assert body["expiresIn"] == 2 * 3600
        assert body["userToken"]["email"] == "novo@teste.com"

        payload = jwt.decode(
            body["accessToken"],
            jwt_settings.secret_key,
            algorithms=["HS256"],
            audience="https://localhost",
            issuer="MeuSistema",
        )
        assert payload["sub"] == body["userToken"]["id"]
        assert payload["email"] == "novo@teste.com"
        assert payload["exp"] - payload["iat"] == 2 * 3600

        tipos = [claim["type"] for claim in body["userToken"]["claims"]]
        assert tipos == ["sub", "email", "jti", "nbf", "iat"]

    @pytest.mark.asyncio
    async def test_passwords_do_not_match(self, client):
        response = await client.post(
            "/registro",
            json={"email": "a@teste.com", "password": SENHA, "confirmPassword": "Outra@123"},
        )
        assert response.status_code == 400
        assert response.json() == {
            "type": PROBLEM_TYPE,
            "title": "One or more validation errors occurred.",
            "status": 400,
            "errors": {"confirmPassword": ["The passwords do not match."]},
        }

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        response = await client.post(
            "/registro",
            json={"email": "sem-arroba", "password": SENHA, "confirmPassword": SENHA},
        )
        assert response.status_code == 400
        assert "email" in response.json()["errors"]

    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        response = await client.post("/registro", json={})
        assert response.status_code == 400
        errors = response.json()["errors"]
        assert set(errors) == {"email", "password", "confirmPassword"}

    @pytest.mark.asyncio
    async def test_password_policy_lists_every_failing_rule(self, client):
        response = await client.post(
            "/registro",
            json={"email": "fraca@teste.com", "password": "abcdef", "confirmPassword": "abcdef"},
        )
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "identity_error"
        codes = [error["code"] for error in detail["errors"]]
        assert codes == [
            "PasswordRequiresNonAlphanumeric",
            "PasswordRequiresDigit",
            "PasswordRequiresUpper",
        ]

    @pytest.mark.asyncio
    async def test_duplicate_user(self, client):
        await registrar(client, "repetido@teste.com")

        response = await client.post(
            "/registro",
            json={"email": "repetido@teste.com", "password": SENHA, "confirmPassword": SENHA},
        )
        assert response.status_code == 400
        codes = [error["code"] for error in response.json()["detail"]["errors"]]
        assert codes == ["DuplicateUserName", "DuplicateEmail"]


class TestLogin:
    """Test POST /login."""

    @pytest.mark.asyncio
    async def test_success(self, client):
        registro = await registrar(client, "login@teste.com")

        response = await client.post("/login", json={"email": "login@teste.com", "password": SENHA})
        assert response.status_code == 200
        body = response.json()
        assert body["userToken"]["id"] == registro["userToken"]["id"]
        assert body["accessToken"] != registro["accessToken"]

    @pytest.mark.asyncio
    async def test_token_carries_claims(self, client, settings, jwt_settings):
        await registrar(client, "claims@teste.com")
        await conceder_claim(settings, "claims@teste.com", "ExcluirFornecedor", "1")

        response = await client.post("/login", json={"email": "claims@teste.com", "password": SENHA})
        body = response.json()

        assert body["userToken"]["claims"][0] == {"value": "1", "type": "ExcluirFornecedor"}
        payload = jwt.decode(
            body["accessToken"],
            jwt_settings.secret_key,
            algorithms=["HS256"],
            audience=jwt_settings.audience,
        )
        assert payload["ExcluirFornecedor"] == "1"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await registrar(client, "errado@teste.com")

        response = await client.post("/login", json={"email": "errado@teste.com", "password": "Errada@1"})
        assert response.status_code == 400
        assert response.json() == {
            "detail": {"message": "Usuário ou senha inválidos", "code": "invalid_credentials"},
        }

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        response = await client.post("/login", json={"email": "ninguem@teste.com", "password": SENHA})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_locked_out_even_with_correct_password(self, client, user_manager):
        await registrar(client, "bloqueado@teste.com")
        user = await user_manager.find_by_email("bloqueado@teste.com")
        await user_manager.set_lockout_end(user, datetime.now(timezone.utc) + timedelta(minutes=5))

        response = await client.post("/login", json={"email": "bloqueado@teste.com", "password": SENHA})
        assert response.status_code == 400
        assert response.json() == {
            "detail": {"message": "Usuário bloqueado", "code": "user_locked_out"},
        }

    @pytest.mark.asyncio
    async def test_failed_logins_do_not_lock(self, client):
        """O handler usa lockout_on_failure=False."""
        await registrar(client, "insiste@teste.com")

        for _ in range(6):
            response = await client.post("/login", json={"email": "insiste@teste.com", "password": "Errada@1"})
            assert response.json()["detail"]["code"] == "invalid_credentials"

        response = await client.post("/login", json={"email": "insiste@teste.com", "password": SENHA})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_validation_problem(self, client):
        response = await client.post("/login", json={"email": "a@teste.com", "password": "123"})
        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["password"]

    @pytest.mark.asyncio
    async def test_password_is_not_trimmed(self, client):
        """Espaços nas pontas fazem parte da senha."""
        await registrar(client, "espacos@teste.com", password="  Senha@123  ")

        response = await client.post("/login", json={"email": "espacos@teste.com", "password": "Senha@123"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_credentials"

        response = await client.post("/login", json={"email": "espacos@teste.com", "password": "  Senha@123  "})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_members_are_ignored(self, client):
        await registrar(client, "lembrar@teste.com")

        response = await client.post(
            "/login",
            json={"email": "lembrar@teste.com", "password": SENHA, "rememberMe": True},
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_malformed_json(self, client):
        response = await client.post(
            "/login",
            content=b'{"email": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["errors"] == {"$": ["The JSON value could not be parsed."]}

    @pytest.mark.asyncio
    async def test_empty_body(self, client):
        response = await client.post("/login", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["errors"] == {"$": ["A non-empty request body is required."]}


class TestHealth:
    """Test health checks."""

    @pytest.mark.asyncio
    async def test_healthz(self, client):
        response = await client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    @pytest.mark.asyncio
    async def test_readyz(self, client):
        response = await client.get("/readyz")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "ok"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/healthz", headers={"X-Request-ID": "abc-123"})
        assert response.headers["x-request-id"] == "abc-123"


class TestUnhandledErrors:
    """Exceções não tratadas viram 500 e passam pelo log de requests."""

    @pytest.mark.asyncio
    async def test_unhandled_exception(self, app, database, caplog):
        async def explode():
            raise RuntimeError("boom")

        app.add_api_route("/explode", explode)
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        with caplog.at_level(logging.INFO, logger="plataforma.requests"):
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.get("/explode")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error", "code": "internal_error"}
        assert "Error: RuntimeError: boom" in caplog.messages

"""
Tests for permissions and authorization policies.

Requests are MagicMock doubles carrying ``scope["user"]`` the way
Starlette's AuthenticationMiddleware leaves it.
"""

import pytest
from unittest.mock import MagicMock

from starlette.authentication import UnauthenticatedUser

from plataforma.auth.middleware import TokenUser
from plataforma.exceptions import ConfigurationError, Forbidden, Unauthorized
from plataforma.permissions import (
    AllowAny,
    AuthorizationPolicy,
    HasRole,
    IsAuthenticated,
    PolicyRegistry,
    RequireClaim,
    authorize,
)


def create_mock_request(payload=None, registry=None):
    """Create a mock request; payload=None means anonymous."""
    request = MagicMock()
    request.method = "DELETE"
    request.url.path = "/fornecedor/1"
    request.scope = {"user": TokenUser(payload) if payload is not None else UnauthenticatedUser()}
    request.app.state.policies = registry or PolicyRegistry()
    return request


USUARIO = {"sub": "u1", "email": "u1@teste.com"}
EXCLUI = {**USUARIO, "ExcluirFornecedor": "1", "role": ["Admin", "Compras"]}


class TestBuiltinPermissions:
    """Test AllowAny, IsAuthenticated, RequireClaim, HasRole."""

    @pytest.mark.asyncio
    async def test_allow_any(self):
        assert await AllowAny().has_permission(create_mock_request())

    @pytest.mark.asyncio
    async def test_is_authenticated(self):
        assert not await IsAuthenticated().has_permission(create_mock_request())
        assert await IsAuthenticated().has_permission(create_mock_request(USUARIO))

    @pytest.mark.asyncio
    async def test_missing_middleware_is_anonymous(self):
        request = create_mock_request()
        request.scope = {}
        assert not await IsAuthenticated().has_permission(request)

    @pytest.mark.asyncio
    async def test_require_claim_any_value(self):
        perm = RequireClaim("ExcluirFornecedor")
        assert not await perm.has_permission(create_mock_request())
        assert not await perm.has_permission(create_mock_request(USUARIO))
        assert await perm.has_permission(create_mock_request(EXCLUI))

    @pytest.mark.asyncio
    async def test_require_claim_allowed_values(self):
        perm = RequireClaim("ExcluirFornecedor", "2", "3")
        assert not await perm.has_permission(create_mock_request(EXCLUI))
        assert await perm.has_permission(create_mock_request({**USUARIO, "ExcluirFornecedor": "3"}))

    @pytest.mark.asyncio
    async def test_has_role(self):
        assert await HasRole("Compras").has_permission(create_mock_request(EXCLUI))
        assert not await HasRole("Financeiro").has_permission(create_mock_request(EXCLUI))


class TestComposition:
    """Test &, | and ~."""

    @pytest.mark.asyncio
    async def test_and(self):
        perm = IsAuthenticated() & RequireClaim("ExcluirFornecedor")
        assert await perm.has_permission(create_mock_request(EXCLUI))
        assert not await perm.has_permission(create_mock_request(USUARIO))

    @pytest.mark.asyncio
    async def test_or(self):
        perm = HasRole("Financeiro") | RequireClaim("ExcluirFornecedor")
        assert await perm.has_permission(create_mock_request(EXCLUI))
        assert not await perm.has_permission(create_mock_request(USUARIO))

    @pytest.mark.asyncio
    async def test_not(self):
        perm = ~IsAuthenticated()
        assert await perm.has_permission(create_mock_request())


class TestPolicies:
    """Test AuthorizationPolicy and PolicyRegistry."""

    @pytest.mark.asyncio
    async def test_policy_requires_authentication_first(self):
        policy = AuthorizationPolicy("ExcluirFornecedor", RequireClaim("ExcluirFornecedor"))

        failed = await policy.evaluate(create_mock_request())
        assert isinstance(failed, IsAuthenticated)

        failed = await policy.evaluate(create_mock_request(USUARIO))
        assert isinstance(failed, RequireClaim)

        assert await policy.evaluate(create_mock_request(EXCLUI)) is None

    def test_registry_default_policy(self):
        registry = PolicyRegistry()
        assert "Default" in registry
        assert registry.get_policy().name == "Default"

    def test_registry_unknown_policy(self):
        with pytest.raises(ConfigurationError):
            PolicyRegistry().get_policy("NaoExiste")

    def test_register_application_policies(self):
        from fornecedores.policies import EXCLUIR_FORNECEDOR, register_policies

        registry = PolicyRegistry()
        register_policies(registry)
        assert registry.names == ["Default", EXCLUIR_FORNECEDOR]


class TestAuthorizeDependency:
    """Test authorize() dependency."""

    @pytest.mark.asyncio
    async def test_anonymous_gets_401(self):
        dependency = authorize()
        with pytest.raises(Unauthorized) as exc_info:
            await dependency(create_mock_request())
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    @pytest.mark.asyncio
    async def test_missing_claim_gets_403(self):
        registry = PolicyRegistry()
        registry.add_policy("ExcluirFornecedor", RequireClaim("ExcluirFornecedor"))

        dependency = authorize("ExcluirFornecedor")
        with pytest.raises(Forbidden) as exc_info:
            await dependency(create_mock_request(USUARIO, registry))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["code"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_authorized_passes(self):
        registry = PolicyRegistry()
        registry.add_policy("ExcluirFornecedor", RequireClaim("ExcluirFornecedor"))

        dependency = authorize("ExcluirFornecedor")
        assert await dependency(create_mock_request(EXCLUI, registry)) is None

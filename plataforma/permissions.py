"""
Sistema de Permissões e Políticas de autorização.

Características:
- Interface clara e explícita
- Composição de permissões (&, |, ~)
- Políticas nomeadas avaliadas contra as claims do token
- Integração com FastAPI Depends

Uso:
    registry = PolicyRegistry()
    registry.add_policy("ExcluirFornecedor", RequireClaim("ExcluirFornecedor"))
    app.state.policies = registry

    @router.delete("/{id}", dependencies=[Depends(authorize("ExcluirFornecedor"))])
    async def excluir(id: int): ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, status

from plataforma.exceptions import ConfigurationError, Forbidden, Unauthorized

logger = logging.getLogger("plataforma.permissions")


def get_request_user(request: Request) -> Any | None:
    """Usuário do request (None se o AuthenticationMiddleware não estiver instalado)."""
    return request.scope.get("user")


def is_authenticated(request: Request) -> bool:
    user = get_request_user(request)
    return user is not None and user.is_authenticated


class Permission(ABC):
    """
    Classe base para permissões.

    Exemplo:
        class IsAtivo(Permission):
            async def has_permission(self, request: Request) -> bool:
                return get_request_user(request).has_claim("ativo", "true")
    """

    message: str = "Permission denied"
    status_code: int = status.HTTP_403_FORBIDDEN

    @abstractmethod
    async def has_permission(self, request: Request) -> bool:
        """
        Verifica se a requisição tem permissão.

        Returns:
            True se permitido, False caso contrário
        """
        ...

    def __and__(self, other: "Permission") -> "AndPermission":
        """Combina permissões com AND."""
        return AndPermission(self, other)

    def __or__(self, other: "Permission") -> "OrPermission":
        """Combina permissões com OR."""
        return OrPermission(self, other)

    def __invert__(self) -> "NotPermission":
        """Inverte a permissão."""
        return NotPermission(self)


class AndPermission(Permission):
    """Combina duas permissões com AND."""

    def __init__(self, perm1: Permission, perm2: Permission) -> None:
        self.perm1 = perm1
        self.perm2 = perm2
        self.message = f"{perm1.message} and {perm2.message}"

    async def has_permission(self, request: Request) -> bool:
        return (
            await self.perm1.has_permission(request)
            and await self.perm2.has_permission(request)
        )


class OrPermission(Permission):
    """Combina duas permissões com OR."""

    def __init__(self, perm1: Permission, perm2: Permission) -> None:
        self.perm1 = perm1
        self.perm2 = perm2
        self.message = f"{perm1.message} or {perm2.message}"

    async def has_permission(self, request: Request) -> bool:
        return (
            await self.perm1.has_permission(request)
            or await self.perm2.has_permission(request)
        )


class NotPermission(Permission):
    """Inverte uma permissão."""

    def __init__(self, perm: Permission) -> None:
        self.perm = perm
        self.message = f"Not {perm.message}"

    async def has_permission(self, request: Request) -> bool:
        return not await self.perm.has_permission(request)


# Permissões built-in
class AllowAny(Permission):
    """Permite qualquer acesso."""

    message = "Access allowed"

    async def has_permission(self, request: Request) -> bool:
        return True


class IsAuthenticated(Permission):
    """Requer usuário autenticado."""

    message = "Authentication required"
    status_code = status.HTTP_401_UNAUTHORIZED

    async def has_permission(self, request: Request) -> bool:
        return is_authenticated(request)


class RequireClaim(Permission):
    """
    Requer uma claim no token.

    Sem valores, basta a claim existir; com valores, ao menos um deles.

    Exemplo:
        RequireClaim("ExcluirFornecedor")
        RequireClaim("departamento", "compras", "financeiro")
    """

    def __init__(self, claim_type: str, *allowed_values: str) -> None:
        self.claim_type = claim_type
        self.allowed_values = set(allowed_values)
        self.message = f"Required claim: {claim_type}"

    async def has_permission(self, request: Request) -> bool:
        if not is_authenticated(request):
            return False

        user = get_request_user(request)
        if not self.allowed_values:
            return user.has_claim(self.claim_type)
        return any(user.has_claim(self.claim_type, value) for value in self.allowed_values)


class HasRole(Permission):
    """Verifica se o usuário tem ao menos um dos roles."""

    def __init__(self, *roles: str) -> None:
        self.roles = set(roles)
        self.message = f"Required role: {', '.join(roles)}"

    async def has_permission(self, request: Request) -> bool:
        if not is_authenticated(request):
            return False
        return bool(self.roles & set(get_request_user(request).roles))


# =============================================================================
# Policies
# =============================================================================

class AuthorizationPolicy:
    """
    Política nomeada: usuário autenticado + requisitos adicionais.

    Os requisitos são avaliados em ordem; o primeiro que falhar decide a
    resposta (401 para autenticação, 403 para os demais).
    """

    def __init__(self, name: str, *requirements: Permission) -> None:
        self.name = name
        self.requirements: list[Permission] = [IsAuthenticated(), *requirements]

    async def evaluate(self, request: Request) -> Permission | None:
        """Retorna o requisito que falhou, ou None se autorizado."""
        for requirement in self.requirements:
            if not await requirement.has_permission(request):
                return requirement
        return None

    def __repr__(self) -> str:
        return f"<AuthorizationPolicy {self.name}>"


class PolicyRegistry:
    """Tabela de políticas por nome."""

    DEFAULT_POLICY = "Default"

    def __init__(self) -> None:
        self._policies: dict[str, AuthorizationPolicy] = {
            self.DEFAULT_POLICY: AuthorizationPolicy(self.DEFAULT_POLICY),
        }

    def add_policy(self, name: str, *requirements: Permission) -> AuthorizationPolicy:
        policy = AuthorizationPolicy(name, *requirements)
        self._policies[name] = policy
        logger.debug("Policy registered: %s", name)
        return policy

    def get_policy(self, name: str | None = None) -> AuthorizationPolicy:
        """
        Retorna a política pelo nome (None = política padrão).

        Raises:
            ConfigurationError: Se a política não foi registrada
        """
        name = name or self.DEFAULT_POLICY
        if name not in self._policies:
            raise ConfigurationError(f"Authorization policy '{name}' is not registered")
        return self._policies[name]

    def __contains__(self, name: str) -> bool:
        return name in self._policies

    @property
    def names(self) -> list[str]:
        return list(self._policies)


def authorize(policy_name: str | None = None) -> Callable[[Request], Awaitable[None]]:
    """
    Dependency que exige a política antes do handler.

    Exemplo:
        @router.post("/", dependencies=[Depends(authorize())])
        @router.delete("/{id}", dependencies=[Depends(authorize("ExcluirFornecedor"))])
    """
    async def dependency(request: Request) -> None:
        registry: PolicyRegistry = request.app.state.policies
        policy = registry.get_policy(policy_name)

        failed = await policy.evaluate(request)
        if failed is None:
            return

        logger.info(
            "Authorization failed for %s %s (policy=%s): %s",
            request.method,
            request.url.path,
            policy.name,
            failed.message,
        )
        if failed.status_code == status.HTTP_401_UNAUTHORIZED:
            raise Unauthorized(failed.message)
        raise Forbidden(failed.message, code="permission_denied")

    return dependency

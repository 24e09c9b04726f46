"""
Tabela de políticas de autorização da aplicação.

Cada política nomeada exige usuário autenticado mais os requisitos listados.
"""

from plataforma.permissions import PolicyRegistry, RequireClaim

EXCLUIR_FORNECEDOR = "ExcluirFornecedor"


def register_policies(registry: PolicyRegistry) -> None:
    registry.add_policy(EXCLUIR_FORNECEDOR, RequireClaim(EXCLUIR_FORNECEDOR))

"""
QuerySet - API fluente para queries de banco de dados.

Características:
- Encadeamento de métodos (filter, exclude, order_by, limit)
- Lazy evaluation (queries só executam quando necessário)
- Suporte a lookups de comparação (field__gt, field__in, etc.)
- Leitura sem rastreamento via as_no_tracking()
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, TYPE_CHECKING
from collections.abc import Sequence

from sqlalchemy import select, func, and_, or_, not_, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

if TYPE_CHECKING:
    from plataforma.models import Model


class DoesNotExist(Exception):
    """Exceção levantada quando um registro não é encontrado."""
    pass


class MultipleObjectsReturned(Exception):
    """Exceção levantada quando múltiplos registros são retornados para get()."""
    pass


# Operadores de lookup suportados
LOOKUP_OPERATORS = {
    "exact": lambda col, val: col == val,
    "gt": lambda col, val: col > val,
    "gte": lambda col, val: col >= val,
    "lt": lambda col, val: col < val,
    "lte": lambda col, val: col <= val,
    "in": lambda col, val: col.in_(val),
}


def parse_lookup(model_class: type, field_lookup: str, value: Any) -> Any:
    """
    Parseia um lookup do estilo Django e retorna a condição SQLAlchemy.

    Exemplos:
        - nome="Acme" -> Fornecedor.nome == "Acme"
        - id__gt=10 -> Fornecedor.id > 10
    """
    parts = field_lookup.split("__")
    field_name = parts[0]
    operator = parts[1] if len(parts) > 1 else "exact"

    if not hasattr(model_class, field_name):
        raise AttributeError(f"Model {model_class.__name__} não tem campo '{field_name}'")

    column = getattr(model_class, field_name)

    if operator not in LOOKUP_OPERATORS:
        raise ValueError(f"Operador de lookup '{operator}' não suportado")

    return LOOKUP_OPERATORS[operator](column, value)


T = TypeVar("T", bound="Model")


class QuerySet(Generic[T]):
    """
    QuerySet para operações de banco de dados.

    Exemplo:
        ativos = await Fornecedor.objects.using(session)\\
            .filter(ativo=True)\\
            .order_by("nome")\\
            .all()

        somente_leitura = await Fornecedor.objects.using(session)\\
            .as_no_tracking()\\
            .filter(id=1)\\
            .first()
    """

    def __init__(
        self,
        model_class: type[T],
        session: AsyncSession | None = None,
    ) -> None:
        self._model_class = model_class
        self._session = session
        self._filters: list[Any] = []
        self._excludes: list[Any] = []
        self._order_by: list[Any] = []
        self._limit_value: int | None = None
        self._no_tracking = False

    def _clone(self) -> "QuerySet[T]":
        """Cria uma cópia do QuerySet."""
        qs = QuerySet(self._model_class, self._session)
        qs._filters = self._filters.copy()
        qs._excludes = self._excludes.copy()
        qs._order_by = self._order_by.copy()
        qs._limit_value = self._limit_value
        qs._no_tracking = self._no_tracking
        return qs

    def _get_session(self) -> AsyncSession:
        """Retorna a sessão atual ou levanta erro."""
        if self._session is None:
            raise RuntimeError(
                "Nenhuma sessão definida. Use 'Model.objects.using(session)' "
                "ou passe a sessão via dependency injection."
            )
        return self._session

    def _where(self, stmt: Any) -> Any:
        if self._filters:
            stmt = stmt.where(and_(*self._filters))
        if self._excludes:
            stmt = stmt.where(not_(or_(*self._excludes)))
        return stmt

    def _build_query(self) -> Select:
        """Constrói a query SQLAlchemy."""
        stmt = self._where(select(self._model_class))

        for order in self._order_by:
            stmt = stmt.order_by(order)

        if self._limit_value is not None:
            stmt = stmt.limit(self._limit_value)

        return stmt

    # Métodos de filtragem
    def filter(self, **kwargs: Any) -> "QuerySet[T]":
        """Filtra registros por condições (suporta lookups field__op)."""
        qs = self._clone()
        for field_lookup, value in kwargs.items():
            qs._filters.append(parse_lookup(self._model_class, field_lookup, value))
        return qs

    def exclude(self, **kwargs: Any) -> "QuerySet[T]":
        """Exclui registros por condições."""
        qs = self._clone()
        for field_lookup, value in kwargs.items():
            qs._excludes.append(parse_lookup(self._model_class, field_lookup, value))
        return qs

    def order_by(self, *fields: str) -> "QuerySet[T]":
        """
        Ordena resultados.

        Use prefixo '-' para ordem decrescente:
            .order_by("-id", "nome")
        """
        qs = self._clone()
        for field in fields:
            if field.startswith("-"):
                qs._order_by.append(desc(getattr(self._model_class, field[1:])))
            else:
                qs._order_by.append(asc(getattr(self._model_class, field)))
        return qs

    def limit(self, value: int) -> "QuerySet[T]":
        """Limita o número de resultados."""
        qs = self._clone()
        qs._limit_value = value
        return qs

    def as_no_tracking(self) -> "QuerySet[T]":
        """Retorna instâncias desanexadas da sessão (leitura somente)."""
        qs = self._clone()
        qs._no_tracking = True
        return qs

    # Métodos de execução
    async def all(self) -> Sequence[T]:
        """Executa a query e retorna todos os resultados."""
        session = self._get_session()
        result = await session.execute(self._build_query())
        instances = result.scalars().all()

        if self._no_tracking:
            for instance in instances:
                session.expunge(instance)

        return instances

    async def first(self) -> T | None:
        """Retorna o primeiro resultado ou None."""
        results = await self.limit(1).all()
        return results[0] if results else None

    async def get(self) -> T:
        """
        Retorna exatamente um resultado.

        Raises:
            DoesNotExist: Se nenhum registro for encontrado
            MultipleObjectsReturned: Se mais de um registro for encontrado
        """
        results = await self.limit(2).all()

        if not results:
            raise DoesNotExist(
                f"{self._model_class.__name__} matching query does not exist."
            )

        if len(results) > 1:
            raise MultipleObjectsReturned(
                f"get() returned more than one {self._model_class.__name__}"
            )

        return results[0]

    async def count(self) -> int:
        """Conta o número de registros."""
        session = self._get_session()
        stmt = self._where(select(func.count()).select_from(self._model_class))
        result = await session.execute(stmt)
        return result.scalar() or 0

    async def exists(self) -> bool:
        """Verifica se existem registros."""
        return await self.count() > 0

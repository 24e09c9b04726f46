"""
Sistema de Models inspirado no Django, com SQLAlchemy 2.0 async.

Características:
- Sintaxe declarativa e limpa
- Campos tipados
- Query API fluente via Manager
- Leitura sem rastreamento (as_no_tracking) para fluxos de update
- Async por padrão
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, Self, TypeVar, TYPE_CHECKING
from collections.abc import Callable, Sequence

from sqlalchemy import MetaData, Integer, String, Boolean, DateTime as SADateTime, ForeignKey
from sqlalchemy import update, delete
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

if TYPE_CHECKING:
    from plataforma.querysets import QuerySet

# Convenção de nomes para constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    """Datetime atual em UTC (aware)."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base declarativa do SQLAlchemy com metadata customizada."""
    metadata = metadata


class Field:
    """
    Namespace para tipos de campos.

    Uso:
        class Fornecedor(Model):
            nome: Mapped[str] = Field.string(max_length=100)
            ativo: Mapped[bool] = Field.boolean(default=False)
    """

    @staticmethod
    def integer(
        *,
        nullable: bool = False,
        default: int | None = None,
        index: bool = False,
    ) -> Mapped[int]:
        """Campo inteiro."""
        return mapped_column(
            Integer,
            nullable=nullable,
            default=default,
            index=index,
        )

    @staticmethod
    def string(
        *,
        max_length: int = 255,
        nullable: bool = False,
        default: str | Callable[[], str] | None = None,
        unique: bool = False,
        index: bool = False,
    ) -> Mapped[str]:
        """Campo string com tamanho máximo."""
        return mapped_column(
            String(max_length),
            nullable=nullable,
            default=default,
            unique=unique,
            index=index,
        )

    @staticmethod
    def boolean(
        *,
        nullable: bool = False,
        default: bool = False,
        index: bool = False,
    ) -> Mapped[bool]:
        """Campo booleano."""
        return mapped_column(
            Boolean,
            nullable=nullable,
            default=default,
            index=index,
        )

    @staticmethod
    def datetime(
        *,
        nullable: bool = False,
        auto_now_add: bool = False,
        index: bool = False,
    ) -> Mapped[datetime]:
        """
        Campo datetime.

        Sempre armazenado em UTC.
        """
        return mapped_column(
            SADateTime(timezone=True),
            nullable=nullable,
            default=utcnow if auto_now_add else None,
            index=index,
        )

    @staticmethod
    def foreign_key(
        target: str,
        *,
        column_type: Any = Integer,
        nullable: bool = False,
        ondelete: str = "CASCADE",
        index: bool = True,
        primary_key: bool = False,
    ) -> Mapped[Any]:
        """Campo de chave estrangeira."""
        return mapped_column(
            column_type,
            ForeignKey(target, ondelete=ondelete),
            nullable=nullable,
            index=index,
            primary_key=primary_key,
        )

    @staticmethod
    def pk() -> Mapped[int]:
        """Campo de chave primária autoincrement."""
        return mapped_column(
            Integer,
            primary_key=True,
            autoincrement=True,
        )

    @staticmethod
    def uuid_pk() -> Mapped[str]:
        """Chave primária string gerada com uuid4."""
        return mapped_column(
            String(36),
            primary_key=True,
            default=lambda: str(uuid.uuid4()),
        )


T = TypeVar("T", bound="Model")


class Manager(Generic[T]):
    """
    Manager para operações de banco de dados.

    Uso:
        fornecedores = await Fornecedor.objects.using(session).all()
        fornecedor = await Fornecedor.objects.using(session).get_or_none(id=1)
    """

    def __init__(self, model_class: type[T]) -> None:
        self._model_class = model_class
        self._session: AsyncSession | None = None

    def using(self, session: AsyncSession) -> "Manager[T]":
        """Define a sessão a ser usada nas queries."""
        new_manager = Manager(self._model_class)
        new_manager._session = session
        return new_manager

    def _get_session(self) -> AsyncSession:
        """Retorna a sessão atual ou levanta erro."""
        if self._session is None:
            raise RuntimeError(
                "Nenhuma sessão definida. Use 'Model.objects.using(session)' "
                "ou passe a sessão via dependency injection."
            )
        return self._session

    def _queryset(self) -> "QuerySet[T]":
        from plataforma.querysets import QuerySet
        return QuerySet(self._model_class, self._session)

    # Query methods
    def filter(self, **kwargs: Any) -> "QuerySet[T]":
        """Filtra registros por condições."""
        return self._queryset().filter(**kwargs)

    def exclude(self, **kwargs: Any) -> "QuerySet[T]":
        """Exclui registros por condições."""
        return self._queryset().exclude(**kwargs)

    def order_by(self, *fields: str) -> "QuerySet[T]":
        """Ordena resultados."""
        return self._queryset().order_by(*fields)

    def as_no_tracking(self) -> "QuerySet[T]":
        """
        Leitura somente: as instâncias retornadas ficam desanexadas da sessão.

        Alterações nelas não são persistidas por ``save_changes``.
        """
        return self._queryset().as_no_tracking()

    async def all(self) -> Sequence[T]:
        """Retorna todos os registros."""
        return await self._queryset().all()

    async def get(self, **kwargs: Any) -> T:
        """Retorna um único registro ou levanta exceção."""
        return await self._queryset().filter(**kwargs).get()

    async def get_or_none(self, **kwargs: Any) -> T | None:
        """Retorna um único registro ou None."""
        return await self._queryset().filter(**kwargs).first()

    async def count(self) -> int:
        """Conta registros."""
        return await self._queryset().count()

    async def exists(self, **kwargs: Any) -> bool:
        """Verifica se existem registros."""
        qs = self._queryset()
        if kwargs:
            qs = qs.filter(**kwargs)
        return await qs.exists()

    async def create(self, **kwargs: Any) -> T:
        """Cria um novo registro (flush, sem commit)."""
        session = self._get_session()
        instance = self._model_class(**kwargs)
        session.add(instance)
        await session.flush()
        return instance

    async def update(self, filters: dict[str, Any], **values: Any) -> int:
        """Atualiza registros em massa. Retorna linhas afetadas."""
        session = self._get_session()
        stmt = update(self._model_class)
        for key, value in filters.items():
            stmt = stmt.where(getattr(self._model_class, key) == value)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        return result.rowcount

    async def delete(self, **filters: Any) -> int:
        """Deleta registros em massa. Retorna linhas afetadas."""
        session = self._get_session()
        stmt = delete(self._model_class)
        for key, value in filters.items():
            stmt = stmt.where(getattr(self._model_class, key) == value)
        stmt = stmt.execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        return result.rowcount


class ModelMeta(type(Base)):
    """
    Metaclass para Models.

    Adiciona automaticamente o Manager 'objects' a cada Model.
    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict[str, Any], **kwargs: Any):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        if name != "Model" and name != "Base":
            cls.objects = Manager(cls)

        return cls


class Model(Base, metaclass=ModelMeta):
    """
    Classe base para todos os Models.

    Exemplo:
        class Fornecedor(Model):
            __tablename__ = "fornecedores"

            id: Mapped[int] = Field.pk()
            nome: Mapped[str] = Field.string(max_length=100)
    """

    __abstract__ = True

    objects: ClassVar[Manager[Self]]

    def __repr__(self) -> str:
        pk_cols = [col.name for col in self.__table__.primary_key.columns]
        pk_values = ", ".join(f"{col}={getattr(self, col, None)}" for col in pk_cols)
        return f"<{self.__class__.__name__}({pk_values})>"


# Engine e Session factory globais
_engine = None
_session_factory = None


async def init_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> None:
    """
    Inicializa a conexão com o banco de dados.

    Args:
        database_url: URL de conexão async (ex: sqlite+aiosqlite:///./app.db)
        echo: Habilita logging de SQL
        pool_size: Tamanho do pool de conexões
        max_overflow: Conexões extras além do pool
    """
    global _engine, _session_factory

    engine_kwargs: dict[str, Any] = {"echo": echo}
    # SQLite usa pool próprio, sem pool_size/max_overflow
    if "sqlite" not in database_url:
        engine_kwargs["pool_size"] = pool_size
        engine_kwargs["max_overflow"] = max_overflow
        engine_kwargs["pool_pre_ping"] = True

    _engine = create_async_engine(database_url, **engine_kwargs)

    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables() -> None:
    """Cria todas as tabelas no banco de dados."""
    if _engine is None:
        raise RuntimeError("Database não inicializado. Chame init_database() primeiro.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Remove todas as tabelas do banco de dados."""
    if _engine is None:
        raise RuntimeError("Database não inicializado. Chame init_database() primeiro.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_session() -> AsyncSession:
    """Retorna uma nova sessão do banco de dados."""
    if _session_factory is None:
        raise RuntimeError("Database não inicializado. Chame init_database() primeiro.")

    return _session_factory()


async def close_database() -> None:
    """Fecha a conexão com o banco de dados."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None

"""
Gerenciamento de sessão por request.

A sessão é criada pela session factory global de ``plataforma.models``,
commitada ao final do request e sempre fechada.
"""

from __future__ import annotations

from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from plataforma.models import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency que fornece sessão de banco de dados.

    Commit automático ao final, rollback em caso de erro.
    """
    session = await get_session()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def save_changes(session: AsyncSession) -> int:
    """
    Persiste a unidade de trabalho pendente na sessão.

    Returns:
        Número de entidades gravadas (novas, alteradas e removidas)
    """
    pending = (
        len(session.new)
        + len(session.deleted)
        + sum(1 for obj in session.dirty if session.is_modified(obj))
    )
    await session.commit()
    return pending


DBSession = Annotated[AsyncSession, Depends(get_db)]

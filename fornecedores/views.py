"""
Endpoints de Fornecedor.

- GET    /fornecedor        público
- GET    /fornecedor/{id}   público
- POST   /fornecedor        autenticado
- PUT    /fornecedor/{id}   autenticado
- DELETE /fornecedor/{id}   política ExcluirFornecedor
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from plataforma.database import DBSession, save_changes
from plataforma.exceptions import BadRequest, ValidationProblem
from plataforma.permissions import authorize
from plataforma.validation import JsonBody, validate

from fornecedores.models import Fornecedor
from fornecedores.policies import EXCLUIR_FORNECEDOR
from fornecedores.schemas import FornecedorInput, FornecedorOutput

logger = logging.getLogger("fornecedores.views")

fornecedor_router = APIRouter(prefix="/fornecedor", tags=["Fornecedor"])


@fornecedor_router.get("", name="GetFornecedor", response_model=list[FornecedorOutput])
async def listar(db: DBSession) -> list[FornecedorOutput]:
    fornecedores = await Fornecedor.objects.using(db).as_no_tracking().all()
    return FornecedorOutput.from_orm_list(fornecedores)


@fornecedor_router.get("/{id}", name="GetFornecedorPorId", response_model=FornecedorOutput)
async def obter(id: int, db: DBSession) -> Any:
    fornecedor = await Fornecedor.objects.using(db).as_no_tracking().filter(id=id).first()
    if fornecedor is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return FornecedorOutput.model_validate(fornecedor)


@fornecedor_router.post(
    "",
    name="PostFornecedor",
    status_code=status.HTTP_201_CREATED,
    response_model=FornecedorOutput,
    dependencies=[Depends(authorize())],
)
async def criar(
    request: Request,
    payload: JsonBody,
    db: DBSession,
) -> JSONResponse:
    data = validate(FornecedorInput, payload)

    fornecedor = Fornecedor(**data.model_dump(exclude={"id"}))
    db.add(fornecedor)

    if await save_changes(db) == 0:
        raise BadRequest("Erro ao salvar o registro", code="save_failed")

    logger.info("Fornecedor created: id=%s", fornecedor.id)
    location = request.app.url_path_for("GetFornecedorPorId", id=str(fornecedor.id))
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=FornecedorOutput.model_validate(fornecedor).to_json(),
        headers={"Location": str(location)},
    )


@fornecedor_router.put(
    "/{id}",
    name="PutFornecedor",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authorize())],
)
async def alterar(
    id: int,
    payload: JsonBody,
    db: DBSession,
) -> Response:
    """
    Substitui o registro inteiro.

    O id da rota prevalece; um id divergente no corpo é erro de validação.
    """
    existente = await Fornecedor.objects.using(db).as_no_tracking().filter(id=id).first()
    if existente is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    data = validate(FornecedorInput, payload)
    if data.id is not None and data.id != id:
        raise ValidationProblem.for_field("id", "The id in the body must match the id in the route.")

    affected = await Fornecedor.objects.using(db).update(
        {"id": id},
        **data.model_dump(exclude={"id"}),
    )
    await db.commit()

    if not affected:
        raise BadRequest("Ocorreu um problema ao alterar o registro", code="update_failed")

    logger.info("Fornecedor updated: id=%s", id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@fornecedor_router.delete(
    "/{id}",
    name="DeleteFornecedor",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authorize(EXCLUIR_FORNECEDOR))],
)
async def excluir(id: int, db: DBSession) -> Response:
    fornecedor = await Fornecedor.objects.using(db).get_or_none(id=id)
    if fornecedor is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    await db.delete(fornecedor)

    if await save_changes(db) == 0:
        raise BadRequest("Ocorreu um problema ao deletar o registro", code="delete_failed")

    logger.info("Fornecedor deleted: id=%s", id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

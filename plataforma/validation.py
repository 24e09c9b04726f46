"""
Validação explícita de payloads de entrada.

Cada DTO é validado por ``validate(schema, payload)``; falhas viram um
``ValidationProblem`` com o mapa ``campo -> [mensagens]``, renderizado
como 400 pelo handler da aplicação.

Uso:
    async def criar(payload: JsonBody, db: DBSession):
        data = validate(FornecedorInput, payload)
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar
from collections.abc import Iterable

from fastapi import Depends, Request
from pydantic import ValidationError

from plataforma.exceptions import ValidationProblem
from plataforma.serializers import InputSchema

# Chave usada para erros que não pertencem a um campo (ex: body não é objeto)
ROOT_FIELD = "$"

# Locations adicionadas pelo FastAPI em RequestValidationError
REQUEST_LOCATIONS = {"body", "path", "query", "header", "cookie"}

INVALID_JSON_MESSAGE = "The JSON value could not be parsed."
EMPTY_BODY_MESSAGE = "A non-empty request body is required."

MESSAGES = {
    "missing": "The {field} field is required.",
    "string_too_short": "The field {field} must be a string with a minimum length of {min_length}.",
    "string_too_long": "The field {field} must be a string with a maximum length of {max_length}.",
    "int_parsing": "The value '{input}' is not valid for {field}.",
    "bool_parsing": "The value '{input}' is not valid for {field}.",
    "string_type": "The field {field} must be a string.",
    "json_invalid": INVALID_JSON_MESSAGE,
}


def error_message(field: str, error: dict[str, Any]) -> str:
    """Traduz um erro do pydantic em mensagem legível."""
    ctx = error.get("ctx") or {}

    if error["type"] == "value_error" and "error" in ctx:
        return str(ctx["error"])

    template = MESSAGES.get(error["type"])
    if template is None:
        return error["msg"]

    return template.format(field=field, input=error.get("input"), **ctx)


def collect_errors(
    errors: Iterable[dict[str, Any]],
    strip_request_location: bool = False,
) -> dict[str, list[str]]:
    """
    Agrupa erros do pydantic por campo.

    Args:
        errors: Saída de ``ValidationError.errors()``
        strip_request_location: Remove o prefixo body/path/query do FastAPI

    Returns:
        Mapa ``campo -> [mensagens]``
    """
    problems: dict[str, list[str]] = {}

    for error in errors:
        loc = list(error.get("loc", ()))
        if strip_request_location and loc and loc[0] in REQUEST_LOCATIONS:
            loc = loc[1:]

        # json_invalid traz o offset do caractere como loc
        if error.get("type") == "json_invalid" or all(isinstance(part, int) for part in loc):
            loc = []

        field = ".".join(str(part) for part in loc) or ROOT_FIELD
        problems.setdefault(field, []).append(error_message(field, error))

    return problems


S = TypeVar("S", bound=InputSchema)


def validate(schema: type[S], payload: Any) -> S:
    """
    Valida o payload contra o schema.

    Raises:
        ValidationProblem: Se alguma regra falhar
    """
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise ValidationProblem(collect_errors(exc.errors())) from exc


async def read_json_body(request: Request) -> Any:
    """
    Lê o corpo JSON do request dentro da cadeia de dependencies.

    Declarado depois das dependencies da rota, roda depois de ``authorize``:
    um corpo malformado num endpoint protegido ainda responde 401/403 antes
    do 400.

    Raises:
        ValidationProblem: Corpo vazio ou JSON inválido
    """
    body = await request.body()
    if not body.strip():
        raise ValidationProblem.for_field(ROOT_FIELD, EMPTY_BODY_MESSAGE)

    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationProblem.for_field(ROOT_FIELD, INVALID_JSON_MESSAGE) from exc


JsonBody = Annotated[Any, Depends(read_json_body)]

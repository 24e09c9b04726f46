"""
Schemas base para entrada e saída da API.

Os nomes de campo no JSON seguem camelCase (confirmPassword, accessToken);
no Python, snake_case.
"""

from __future__ import annotations

from typing import Any
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class InputSchema(BaseModel):
    """
    Schema base para dados de entrada (request body).

    Exemplo:
        class LoginUser(InputSchema):
            email: EmailStr
            password: str
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_default=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class OutputSchema(BaseModel):
    """
    Schema base para dados de saída (response body).

    Exemplo:
        class FornecedorOutput(OutputSchema):
            id: int
            nome: str
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @classmethod
    def from_orm_list(cls, objects: Sequence[Any]) -> list["OutputSchema"]:
        """Cria uma lista de schemas a partir de objetos ORM."""
        return [cls.model_validate(obj) for obj in objects]

    def to_json(self) -> dict[str, Any]:
        """Dicionário JSON-serializável com os nomes em camelCase."""
        return self.model_dump(mode="json", by_alias=True)

"""
Schemas (DTOs) da aplicação de fornecedores.

Os payloads são validados explicitamente com ``plataforma.validate``;
os nomes no JSON seguem camelCase (``confirmPassword``).
"""

from pydantic import ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from plataforma.serializers import InputSchema, OutputSchema


# ============================================================
# Usuário
# ============================================================

class RegisterUser(InputSchema):
    """Payload de registro."""

    # Senha é usada como veio; espaços nas pontas fazem parte dela
    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str = Field(min_length=6, max_length=100)
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("The passwords do not match.")
        return v


class LoginUser(InputSchema):
    """Payload de login."""

    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str = Field(min_length=6, max_length=100)


# ============================================================
# Fornecedor
# ============================================================

class FornecedorInput(InputSchema):
    """
    Payload de criação e alteração.

    ``id`` é opcional; no PUT, se informado, deve coincidir com o da rota.
    """

    id: int | None = None
    nome: str = Field(min_length=1, max_length=100)
    documento: str | None = Field(default=None, max_length=20)
    ativo: bool = False


class FornecedorOutput(OutputSchema):
    id: int
    nome: str
    documento: str | None = None
    ativo: bool

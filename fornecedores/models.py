"""
Models da aplicação de fornecedores.

As tabelas de identidade (usuários, claims, roles) vêm de
``plataforma.auth.models`` e compartilham o mesmo metadata.
"""

from sqlalchemy.orm import Mapped

from plataforma.models import Model, Field


class Fornecedor(Model):
    """
    Fornecedor cadastrado.

    Exemplo de uso:
        fornecedor = await Fornecedor.objects.using(db).create(nome="Acme")

        # Leitura sem rastreamento
        fornecedor = await Fornecedor.objects.using(db).as_no_tracking().get()
    """

    __tablename__ = "fornecedores"

    id: Mapped[int] = Field.pk()
    nome: Mapped[str] = Field.string(max_length=100)
    documento: Mapped[str | None] = Field.string(max_length=20, nullable=True)
    ativo: Mapped[bool] = Field.boolean(default=False)

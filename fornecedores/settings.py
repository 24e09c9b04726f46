"""
Configurações da aplicação de fornecedores.

ESTE é o único local de configuração da aplicação.
Todas as settings da plataforma + customizações ficam aqui.

Variáveis de ambiente carregadas automaticamente de:
    .env                (base)
    .env.development    (sobrescreve em dev)
    .env.production     (sobrescreve em prod)
"""

from plataforma.config import Settings, PydanticField, configure


class AppSettings(Settings):
    """Configurações específicas da aplicação de fornecedores."""

    app_name: str = PydanticField(
        default="Fornecedores API",
        description="Nome da aplicação",
    )
    database_url: str = PydanticField(
        default="sqlite+aiosqlite:///./fornecedores.db",
        description="URL de conexão async do banco de dados",
    )
    auto_create_tables: bool = PydanticField(
        default=True,
        description="Cria as tabelas a partir dos models no startup",
    )


# Registrar AppSettings globalmente na plataforma.
settings = configure(settings_class=AppSettings)

"""
Aplicação de fornecedores.

Rotas de usuário (registro/login) + CRUD de fornecedores protegido por
token e pela política ExcluirFornecedor.
"""

from plataforma.app import PlataformaApp, create_app

from fornecedores.auth import auth_router
from fornecedores.policies import register_policies
from fornecedores.settings import AppSettings, settings
from fornecedores.views import fornecedor_router


def create_fornecedores_app(app_settings: AppSettings | None = None) -> PlataformaApp:
    """
    Cria a aplicação de fornecedores.

    Retorna:
        Instância configurada do PlataformaApp
    """
    return create_app(
        settings=app_settings or settings,
        description="Cadastro de fornecedores com autenticação JWT.",
        routers=[auth_router, fornecedor_router],
        policies=register_policies,
    )


# Cria instância da aplicação
fornecedores_app = create_fornecedores_app()

# Exporta a aplicação FastAPI para uso com uvicorn
app = fornecedores_app.app
